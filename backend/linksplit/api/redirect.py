"""Redirect endpoint for short links.

The visitor's sticky URL arrives in the test cookie and is handed to the
selector explicitly. The cookie is only (re)written after a fresh weighted
draw; a visitor who already has a live assignment keeps it.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from linksplit.config import get_settings
from linksplit.database import get_db
from linksplit.middleware.logging import get_logger
from linksplit.models.link import Link
from linksplit.services.link_cache import LinkCache, get_link_cache, redirect_record
from linksplit.services.selector import resolve_persisted

router = APIRouter()
settings = get_settings()
logger = get_logger()


def load_redirect_record(key: str, db: Session, cache: LinkCache) -> dict:
    """Get a link's redirect record from the cache, falling back to the database."""
    record = cache.get(key)
    if record is not None:
        return record

    link = db.query(Link).filter(Link.key == key).first()
    if not link:
        raise HTTPException(status_code=404, detail="Link not found")

    record = redirect_record(link)
    cache.set(key, record)
    return record


@router.get("/r/{key}")
async def follow_link(
    key: str,
    request: Request,
    db: Session = Depends(get_db),
    cache: LinkCache = Depends(get_link_cache)
):
    """
    Redirect to the link's destination.

    Links under test are routed to one of their test URLs; links whose test
    is complete go to the winner. Anything unexpected in the stored test
    falls back to the link's own URL.
    """
    record = load_redirect_record(key, db, cache)
    sticky_value = request.cookies.get(settings.test_cookie_name)

    selection = resolve_persisted(
        record.get("tests"),
        record.get("tests_started_at"),
        record.get("tests_complete_at"),
        sticky_value=sticky_value,
        winner_url=record["url"],
    )
    destination = selection.url or record["url"]

    logger.info(
        "link_redirected",
        key=key,
        destination=destination,
        split_tested=selection.url is not None,
        sticky_hit=bool(sticky_value) and selection.url == sticky_value,
        fresh_draw=selection.is_fresh_draw
    )

    response = RedirectResponse(destination, status_code=302)
    if selection.is_fresh_draw:
        response.set_cookie(
            settings.test_cookie_name,
            selection.url,
            max_age=settings.test_cookie_max_age_seconds,
            path=f"/r/{key}",
            httponly=True,
            samesite="lax"
        )
    return response
