"""Link and split test endpoints.

Saving a test is the Draft -> Active transition: the submitted URLs and
completion date are validated as a whole and either replace the stored test
or are rejected with the specific reason. Nothing is written on rejection.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from linksplit.database import get_db
from linksplit.middleware.logging import get_logger
from linksplit.schemas.links import (
    CreateLinkRequest,
    EndTestRequest,
    LinkResponse,
    SaveTestsRequest,
)
from linksplit.services.lifecycle import (
    CompletionDateError,
    InvalidTestConfig,
    TestAlreadyStartedError,
    TestNotActiveError,
    utcnow,
)
from linksplit.services.link_cache import LinkCache, get_link_cache
from linksplit.services.link_tests import LinkAlreadyExists, LinkNotFound, LinkTestService
from linksplit.services.variants import VariantValidationError

router = APIRouter()
logger = get_logger()


def get_link_service(
    db: Session = Depends(get_db),
    cache: LinkCache = Depends(get_link_cache)
) -> LinkTestService:
    return LinkTestService(db, cache)


def to_http_error(key: str, error: Exception) -> HTTPException:
    """Map a service error to the HTTP error shown to the operator."""
    if isinstance(error, LinkNotFound):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, (LinkAlreadyExists, TestNotActiveError, TestAlreadyStartedError, InvalidTestConfig)):
        status_code = 409
    else:
        status_code = 422

    logger.warning(
        "test_change_rejected",
        key=key,
        reason=str(error),
        error_type=type(error).__name__,
        status_code=status_code
    )
    return HTTPException(status_code=status_code, detail=str(error))


SERVICE_ERRORS = (
    LinkNotFound,
    LinkAlreadyExists,
    VariantValidationError,
    CompletionDateError,
    InvalidTestConfig,
    TestNotActiveError,
    TestAlreadyStartedError,
)


def link_response(service: LinkTestService, link) -> LinkResponse:
    try:
        config = service.load_config(link)
    except InvalidTestConfig as e:
        raise to_http_error(link.key, e)
    return LinkResponse.from_link(link, config, utcnow())


@router.post("/links", response_model=LinkResponse, status_code=201)
async def create_link(
    request: CreateLinkRequest,
    service: LinkTestService = Depends(get_link_service)
):
    """Create a short link, with a split test already running if `tests` is given."""
    try:
        draft = request.to_draft()
        link = service.create_link(request.key, request.url, draft)
    except SERVICE_ERRORS as e:
        raise to_http_error(request.key, e)
    return link_response(service, link)


@router.get("/links/{key}", response_model=LinkResponse)
async def get_link(key: str, service: LinkTestService = Depends(get_link_service)):
    """Get a link with its split test, state and label."""
    try:
        link = service.require_link(key)
    except LinkNotFound as e:
        raise to_http_error(key, e)
    return link_response(service, link)


@router.put("/links/{key}/tests", response_model=LinkResponse)
async def save_tests(
    key: str,
    request: SaveTestsRequest,
    service: LinkTestService = Depends(get_link_service)
):
    """
    Start or edit a link's split test.

    - Percentages must add up to 100, each at least the minimum
    - Every URL must be valid
    - The completion date must be within [-1 day, +6 weeks] of now
    """
    try:
        link = service.save_tests(key, request.to_draft())
    except SERVICE_ERRORS as e:
        raise to_http_error(key, e)
    return link_response(service, link)


@router.post("/links/{key}/tests/end", response_model=LinkResponse)
async def end_test(
    key: str,
    request: EndTestRequest,
    service: LinkTestService = Depends(get_link_service)
):
    """End a running test early and send all traffic to the winner."""
    try:
        link = service.end_test(key, winner_url=request.winner_url, scores=request.scores)
    except SERVICE_ERRORS as e:
        raise to_http_error(key, e)
    return link_response(service, link)


@router.delete("/links/{key}/tests", response_model=LinkResponse)
async def remove_test(key: str, service: LinkTestService = Depends(get_link_service)):
    """Remove a test that never started; a started test must be ended instead."""
    try:
        link = service.remove_test(key)
    except SERVICE_ERRORS as e:
        raise to_http_error(key, e)
    return link_response(service, link)
