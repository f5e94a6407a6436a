"""Variant value types for split-tested links.

A link under test carries an ordered set of destination URLs, each with an
integer share of the traffic. The set is immutable: every edit produces a new
VariantSet, validated as a whole before anything else sees it.
"""
from dataclasses import dataclass, replace
from typing import Iterable, Iterator, List, Sequence, Tuple

from pydantic import AnyUrl, TypeAdapter, ValidationError

# Primary URL plus up to 3 additional destinations
MAX_TEST_COUNT = 4
MIN_TEST_PERCENTAGE = 10

_url_adapter = TypeAdapter(AnyUrl)


def is_valid_url(url: str) -> bool:
    """Check that a destination URL is non-empty and parses as an absolute URL."""
    if not url or not url.strip():
        return False
    try:
        _url_adapter.validate_python(url)
    except ValidationError:
        return False
    return True


@dataclass(frozen=True)
class Variant:
    """One candidate destination and its share of traffic."""

    url: str
    percentage: int


@dataclass(frozen=True)
class VariantSet:
    """Ordered variants whose percentages always add up to 100.

    Index 0 is the primary URL: the link's default destination and the
    winner once a test completes without an explicit choice.
    """

    variants: Tuple[Variant, ...]

    def __post_init__(self):
        count = len(self.variants)
        if count < 2 or count > MAX_TEST_COUNT:
            raise VariantCountError(
                f"A test needs between 2 and {MAX_TEST_COUNT} URLs, got {count}"
            )
        for variant in self.variants:
            if not isinstance(variant.percentage, int) or isinstance(variant.percentage, bool):
                raise PercentageError(f"Percentage must be an integer, got {variant.percentage!r}")
            if variant.percentage < MIN_TEST_PERCENTAGE:
                raise PercentageError(
                    f"Each URL needs at least {MIN_TEST_PERCENTAGE}% of traffic, "
                    f"got {variant.percentage}%"
                )
        total = sum(v.percentage for v in self.variants)
        if total != 100:
            raise PercentageSumError(f"Total percentage must equal 100%, got {total}%")

    @classmethod
    def of(cls, pairs: Iterable[Tuple[str, int]]) -> "VariantSet":
        """Build a set from (url, percentage) pairs."""
        return cls(tuple(Variant(url, percentage) for url, percentage in pairs))

    def __len__(self) -> int:
        return len(self.variants)

    def __iter__(self) -> Iterator[Variant]:
        return iter(self.variants)

    def __getitem__(self, index: int) -> Variant:
        return self.variants[index]

    @property
    def urls(self) -> List[str]:
        return [v.url for v in self.variants]

    @property
    def percentages(self) -> List[int]:
        return [v.percentage for v in self.variants]

    @property
    def total(self) -> int:
        return sum(self.percentages)

    @property
    def primary(self) -> Variant:
        return self.variants[0]

    def is_evenly_split(self) -> bool:
        return percentages_evenly_split(self.percentages)

    def validate_urls(self) -> None:
        """Raise InvalidUrlError for the first missing or malformed URL."""
        for index, variant in enumerate(self.variants):
            if not variant.url:
                raise InvalidUrlError(f"URL {index + 1} is required")
            if not is_valid_url(variant.url):
                raise InvalidUrlError(f"URL {index + 1} is invalid: {variant.url}")

    def with_url(self, index: int, url: str) -> "VariantSet":
        """Return a copy with the URL at `index` replaced."""
        if index < 0 or index >= len(self.variants):
            raise IndexError(f"No variant at index {index}")
        variants = list(self.variants)
        variants[index] = replace(variants[index], url=url)
        return VariantSet(tuple(variants))

    def with_percentages(self, percentages: Sequence[int]) -> "VariantSet":
        """Return a copy with every percentage replaced at once."""
        if len(percentages) != len(self.variants):
            raise VariantCountError(
                f"Expected {len(self.variants)} percentages, got {len(percentages)}"
            )
        return VariantSet(tuple(
            replace(variant, percentage=percentage)
            for variant, percentage in zip(self.variants, percentages)
        ))

    def move_to_front(self, url: str) -> "VariantSet":
        """Return a copy with the variant for `url` at index 0."""
        if url not in self.urls:
            raise UnknownVariantError(f"{url} is not one of the test URLs")
        index = self.urls.index(url)
        variants = list(self.variants)
        variants.insert(0, variants.pop(index))
        return VariantSet(tuple(variants))

    def to_list(self) -> List[dict]:
        return [{"url": v.url, "percentage": v.percentage} for v in self.variants]


def percentages_evenly_split(percentages: Sequence[int]) -> bool:
    """True when every percentage is within 1 point of the first one."""
    if not percentages:
        return False
    first = percentages[0]
    return all(abs(p - first) <= 1 for p in percentages)


class VariantValidationError(ValueError):
    """Raised when a set of variants breaks one of its invariants."""
    pass


class VariantCountError(VariantValidationError):
    """Raised when a test has too few or too many URLs."""
    pass


class PercentageError(VariantValidationError):
    """Raised when a single percentage is not an integer or is below the minimum."""
    pass


class PercentageSumError(VariantValidationError):
    """Raised when percentages do not add up to 100."""
    pass


class InvalidUrlError(VariantValidationError):
    """Raised when a test URL is missing or malformed."""
    pass


class UnknownVariantError(VariantValidationError):
    """Raised when a URL is not part of the current variants."""
    pass
