"""Split test configuration and lifecycle.

A link is in one of four states:

    NO_TEST -> DRAFT -> ACTIVE -> COMPLETED

DRAFT only lives inside an editing session (a TestDraft) and is never stored.
ACTIVE becomes COMPLETED purely by the clock passing `complete_at`; nothing
fires when that happens, readers just observe it.
"""
import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Union

from linksplit.services.variants import (
    UnknownVariantError,
    Variant,
    VariantSet,
    VariantValidationError,
)

# Completion date must fall within [-1 day, +6 weeks] of the save time
MIN_COMPLETION_OFFSET_DAYS = -1
MAX_COMPLETION_OFFSET_DAYS = 6 * 7


class TestState(str, enum.Enum):
    """Lifecycle state of a link's split test."""
    __test__ = False

    NO_TEST = "no_test"
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"


class NoTest:
    """Marker for a link that runs no split test."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "NO_TEST"

    def __bool__(self):
        return False


NO_TEST = NoTest()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive timestamps (SQLite, bare ISO strings) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class TestConfig:
    """Persisted test configuration of a link."""

    __test__ = False

    variants: Union[VariantSet, NoTest] = NO_TEST
    started_at: Optional[datetime] = None
    complete_at: Optional[datetime] = None
    winner_url: Optional[str] = None

    def __post_init__(self):
        has_variants = isinstance(self.variants, VariantSet)
        if has_variants != (self.complete_at is not None):
            raise InvalidTestConfig(
                "Test URLs and completion date must be set together"
            )
        if not has_variants and not isinstance(self.variants, NoTest):
            raise InvalidTestConfig(f"Unexpected variants value: {self.variants!r}")
        object.__setattr__(self, "started_at", as_utc(self.started_at))
        object.__setattr__(self, "complete_at", as_utc(self.complete_at))

    @property
    def has_test(self) -> bool:
        return isinstance(self.variants, VariantSet)

    @property
    def winner(self) -> Optional[str]:
        """URL all traffic goes to once the test is complete."""
        if not self.has_test:
            return None
        return self.winner_url or self.variants.primary.url

    @classmethod
    def from_persisted(
        cls,
        tests: Optional[List[Mapping[str, Any]]],
        started_at: Optional[datetime],
        complete_at: Optional[datetime],
        winner_url: Optional[str] = None,
    ) -> "TestConfig":
        """
        Build a config from stored columns.

        Args:
            tests: List of {"url", "percentage"} dicts, or None for no test
            started_at: When the test was first activated
            complete_at: When the test completes
            winner_url: The link's own URL, which holds the winner

        Raises:
            InvalidTestConfig: If the stored data is malformed
        """
        for name, value in (("started_at", started_at), ("complete_at", complete_at)):
            if value is not None and not isinstance(value, datetime):
                raise InvalidTestConfig(f"Stored {name} is not a timestamp: {value!r}")

        if tests is None:
            if complete_at is not None:
                raise InvalidTestConfig("Completion date set without test URLs")
            return cls(started_at=started_at)

        try:
            variants = VariantSet(tuple(
                Variant(str(t["url"]), t["percentage"]) for t in tests
            ))
        except (VariantValidationError, KeyError, TypeError) as e:
            raise InvalidTestConfig(f"Stored test URLs are invalid: {e}") from e

        if winner_url is not None and winner_url not in variants.urls:
            winner_url = None

        return cls(
            variants=variants,
            started_at=started_at,
            complete_at=complete_at,
            winner_url=winner_url,
        )

    def to_persisted(self) -> Dict[str, Any]:
        return {
            "tests": self.variants.to_list() if self.has_test else None,
            "tests_started_at": self.started_at,
            "tests_complete_at": self.complete_at,
        }


@dataclass(frozen=True)
class TestDraft:
    """Candidate configuration built in an editing session."""

    __test__ = False

    variants: VariantSet
    complete_at: datetime


def state_of(config: TestConfig, now: Optional[datetime] = None) -> TestState:
    """Current lifecycle state, evaluated against the clock."""
    if not config.has_test:
        return TestState.NO_TEST
    now = as_utc(now) or utcnow()
    if now >= config.complete_at:
        return TestState.COMPLETED
    return TestState.ACTIVE


def validate_completion_date(complete_at: datetime, now: Optional[datetime] = None) -> None:
    """
    Check the completion date is within [-1 day, +6 weeks] of now.

    Offsets are counted in whole days, truncated toward zero, so a date
    6 weeks and some hours away is still accepted.

    Raises:
        CompletionDateError: If the date falls outside the window
    """
    now = as_utc(now) or utcnow()
    days = int((as_utc(complete_at) - now) / timedelta(days=1))
    if days > MAX_COMPLETION_OFFSET_DAYS:
        raise CompletionDateError("Completion date can be at most 6 weeks away")
    if days < MIN_COMPLETION_OFFSET_DAYS:
        raise CompletionDateError("Completion date can be at most 1 day in the past")


def activate(
    draft: TestDraft,
    current: TestConfig,
    now: Optional[datetime] = None,
) -> TestConfig:
    """
    Turn an editor draft into the active configuration.

    The start time is set on first activation and kept on later edits.

    Raises:
        InvalidUrlError: If any test URL is missing or malformed
        CompletionDateError: If the completion date is out of range
    """
    now = as_utc(now) or utcnow()
    draft.variants.validate_urls()
    validate_completion_date(draft.complete_at, now)

    return TestConfig(
        variants=draft.variants,
        started_at=current.started_at or now,
        complete_at=draft.complete_at,
    )


def leading_url(variants: VariantSet, scores: Optional[Mapping[str, float]] = None) -> str:
    """URL with the highest score, earliest index on ties; the primary without scores."""
    if not scores:
        return variants.primary.url
    best = variants.primary.url
    best_score = scores.get(best, 0)
    for url in variants.urls[1:]:
        if scores.get(url, 0) > best_score:
            best, best_score = url, scores.get(url, 0)
    return best


def end_test(
    config: TestConfig,
    now: Optional[datetime] = None,
    winner_url: Optional[str] = None,
    scores: Optional[Mapping[str, float]] = None,
) -> TestConfig:
    """
    End a running test early and send all traffic to one URL.

    The winner is the operator's choice, else the leading URL by `scores`,
    else the primary. It moves to index 0 and the completion date is set to
    now, so selection collapses to the winner immediately.

    Raises:
        TestNotActiveError: If the test is not running
        UnknownVariantError: If `winner_url` is not one of the test URLs
    """
    now = as_utc(now) or utcnow()
    state = state_of(config, now)
    if state != TestState.ACTIVE:
        raise TestNotActiveError(f"Only a running test can be ended (state: {state.value})")

    winner = winner_url or leading_url(config.variants, scores)
    if winner not in config.variants.urls:
        raise UnknownVariantError(f"{winner} is not one of the test URLs")

    return TestConfig(
        variants=config.variants.move_to_front(winner),
        started_at=config.started_at,
        complete_at=now,
        winner_url=winner,
    )


def remove_test(config: TestConfig) -> TestConfig:
    """
    Drop a test that never started.

    Raises:
        TestAlreadyStartedError: If the test has already been activated
    """
    if config.started_at is not None:
        raise TestAlreadyStartedError("A test that has started can only be ended")
    return TestConfig()


def label_for(config: TestConfig, now: Optional[datetime] = None) -> str:
    """Short status label shown next to a link."""
    if state_of(config, now) == TestState.COMPLETED:
        return "Test Complete"
    if config.has_test:
        return f"{len(config.variants)} URLs"
    return "A/B Test"


class InvalidTestConfig(ValueError):
    """Raised when a stored test configuration cannot be loaded."""
    pass


class CompletionDateError(ValueError):
    """Raised when the completion date is outside the allowed window."""
    pass


class TestNotActiveError(Exception):
    """Raised when ending a test that is not running."""
    __test__ = False


class TestAlreadyStartedError(Exception):
    """Raised when removing a test that has already started."""
    __test__ = False
