"""Editing session endpoints for test URLs.

These are stateless: the client sends its current URLs and gets back the
rebalanced set. Nothing is stored until the test is saved on the link.
"""
from fastapi import APIRouter, HTTPException

from linksplit.middleware.logging import get_logger
from linksplit.schemas.variants import (
    PercentagesRequest,
    RemoveVariantRequest,
    SeedRequest,
    VariantsRequest,
    VariantsResponse,
)
from linksplit.services import rebalancer
from linksplit.services.rebalancer import RebalanceError
from linksplit.services.variants import VariantValidationError

router = APIRouter(prefix="/tests/variants")
logger = get_logger()


def rejected(operation: str, error: Exception) -> HTTPException:
    logger.info("rebalance_rejected", operation=operation, reason=str(error), error_type=type(error).__name__)
    return HTTPException(status_code=422, detail=str(error))


@router.post("/seed", response_model=VariantsResponse)
async def seed(request: SeedRequest):
    """Start a test from the link's URL plus one empty URL, split 50/50."""
    return VariantsResponse.from_variant_set(rebalancer.seed_variants(request.url))


@router.post("/add", response_model=VariantsResponse)
async def add(request: VariantsRequest):
    """Add an empty test URL and rebalance percentages to make room for it."""
    try:
        variant_set = rebalancer.add_variant(request.to_variant_set())
    except (RebalanceError, VariantValidationError) as e:
        raise rejected("add", e)
    return VariantsResponse.from_variant_set(variant_set)


@router.post("/remove", response_model=VariantsResponse)
async def remove(request: RemoveVariantRequest):
    """Remove the test URL at `index` and hand its traffic to the others."""
    try:
        variant_set = rebalancer.remove_variant(request.to_variant_set(), request.index)
    except (RebalanceError, VariantValidationError, IndexError) as e:
        raise rejected("remove", e)
    return VariantsResponse.from_variant_set(variant_set)


@router.post("/percentages", response_model=VariantsResponse)
async def set_percentages(request: PercentagesRequest):
    """Replace every percentage at once, as the traffic split slider does."""
    try:
        variant_set = request.to_variant_set().with_percentages(request.percentages)
    except VariantValidationError as e:
        raise rejected("percentages", e)
    return VariantsResponse.from_variant_set(variant_set)
