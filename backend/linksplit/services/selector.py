"""Destination selection for split-tested links.

Runs once per redirect. Everything it needs is passed in: the link's test
configuration, the visitor's sticky URL (from the `dub_test_url` cookie), the
current time and a random generator. It never raises for bad test data; the
caller falls back to the link's own URL when nothing is selected.
"""
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Mapping, Optional

from linksplit.middleware.logging import get_logger
from linksplit.services.lifecycle import (
    InvalidTestConfig,
    TestConfig,
    TestState,
    state_of,
    utcnow,
)
from linksplit.services.variants import Variant, VariantSet

logger = get_logger()


@dataclass(frozen=True)
class Selection:
    """Outcome of a selection.

    `url` is None when the link's own destination should be used.
    `is_fresh_draw` is True when the URL came from a new weighted draw and
    should be stored as the visitor's sticky URL.
    """

    url: Optional[str] = None
    is_fresh_draw: bool = False


NO_SELECTION = Selection()


def select_variant(variants: VariantSet, sample: float) -> Variant:
    """
    Pick the variant a sample falls on.

    Builds cumulative weights and returns the first variant whose cumulative
    weight is strictly greater than `sample`. A sample sitting exactly on a
    boundary therefore goes to the later variant.

    Args:
        variants: Variant set to choose from
        sample: Number in [0, total percentage)

    Example:
        >>> select_variant(VariantSet.of([("a", 60), ("b", 40)]), 0)  # a
        >>> select_variant(VariantSet.of([("a", 60), ("b", 40)]), 60)  # b
    """
    cumulative = 0
    for variant in variants:
        cumulative += variant.percentage
        if cumulative > sample:
            return variant
    raise ValueError(f"Sample {sample} is outside [0, {cumulative})")


def resolve(
    config: TestConfig,
    sticky_value: Optional[str] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Selection:
    """
    Resolve where a request for a split-tested link should go.

    - No test: nothing selected, the link's URL is used
    - Test complete: the winner, whatever the sticky value or randomness
    - Sticky value still one of the URLs: returned unchanged
    - Otherwise: a fresh weighted draw, flagged for the sticky cookie
    """
    try:
        state = state_of(config, now or utcnow())

        if state == TestState.NO_TEST:
            return NO_SELECTION

        if state == TestState.COMPLETED:
            return Selection(url=config.winner)

        variants = config.variants
        if sticky_value and sticky_value in variants.urls:
            return Selection(url=sticky_value)

        sample = (rng or random).random() * variants.total
        variant = select_variant(variants, sample)
        return Selection(url=variant.url, is_fresh_draw=True)

    except Exception as e:
        logger.warning(
            "selection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        return NO_SELECTION


def resolve_destination(
    config: TestConfig,
    sticky_value: Optional[str] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    """URL to redirect to, or None to use the link's own destination."""
    return resolve(config, sticky_value, now, rng).url


def resolve_persisted(
    tests: Optional[List[Mapping[str, Any]]],
    started_at: Optional[datetime],
    complete_at: Optional[datetime],
    sticky_value: Optional[str] = None,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
    winner_url: Optional[str] = None,
) -> Selection:
    """Resolve straight from stored columns; corrupt data selects nothing."""
    try:
        config = TestConfig.from_persisted(tests, started_at, complete_at, winner_url)
    except InvalidTestConfig as e:
        logger.warning("invalid_test_config", error=str(e))
        return NO_SELECTION

    return resolve(config, sticky_value, now, rng)
