"""Percentage rebalancing for adding and removing test URLs.

Both operations take a valid VariantSet and return a new one that still sums
to 100 with every share at or above the minimum. They never mutate their
input, so a failed call leaves the editor's current set untouched.
"""
from linksplit.services.variants import (
    MAX_TEST_COUNT,
    MIN_TEST_PERCENTAGE,
    Variant,
    VariantSet,
    percentages_evenly_split,
)


def seed_variants(primary_url: str) -> VariantSet:
    """
    Start a test from a link's single destination.

    Same result as adding a URL to a one-URL set at 100%: the link's URL
    keeps half the traffic and an empty placeholder gets the other half.
    """
    return VariantSet((Variant(primary_url, 50), Variant("", 50)))


def add_variant(variant_set: VariantSet) -> VariantSet:
    """
    Append an empty-URL variant and make room for it.

    An evenly split set stays evenly split, with the new variant absorbing
    the rounding remainder. Otherwise the last variant holding at least twice
    the minimum is halved and the new variant gets the other half.

    Raises:
        CapacityError: If the set already holds MAX_TEST_COUNT variants
        NoShareableSlotError: If no variant is large enough to split
    """
    count = len(variant_set)
    if count >= MAX_TEST_COUNT:
        raise CapacityError(f"You may only add {MAX_TEST_COUNT} URLs")

    if variant_set.is_evenly_split():
        share = 100 // (count + 1)
        percentages = [share] * count + [100 - share * count]
        urls = variant_set.urls + [""]
        return VariantSet.of(zip(urls, percentages))

    split_index = None
    for index in range(count - 1, -1, -1):
        if variant_set[index].percentage >= MIN_TEST_PERCENTAGE * 2:
            split_index = index
            break

    if split_index is None:
        raise NoShareableSlotError(
            f"No URL has at least {MIN_TEST_PERCENTAGE * 2}% of traffic to share"
        )

    to_split = variant_set[split_index].percentage
    kept = to_split // 2
    percentages = variant_set.percentages
    percentages[split_index] = kept
    percentages.append(to_split - kept)
    urls = variant_set.urls + [""]
    return VariantSet.of(zip(urls, percentages))


def remove_variant(variant_set: VariantSet, index: int) -> VariantSet:
    """
    Drop the variant at `index` and hand its traffic to the survivors.

    If the survivors are evenly split they are re-split evenly, the last one
    taking the rounding remainder. Otherwise the removed share goes, in full,
    to the last surviving variant.

    Raises:
        MinimumCountError: If only two variants are left
        IndexError: If `index` is out of range
    """
    count = len(variant_set)
    if count <= 2:
        raise MinimumCountError(
            "A test needs at least 2 URLs; end the test to keep a single URL"
        )
    if index < 0 or index >= count:
        raise IndexError(f"No variant at index {index}")

    removed = variant_set[index]
    survivors = [v for i, v in enumerate(variant_set) if i != index]
    percentages = [v.percentage for v in survivors]

    if percentages_evenly_split(percentages):
        share = 100 // len(survivors)
        percentages = [share] * (len(survivors) - 1)
        percentages.append(100 - share * (len(survivors) - 1))
    else:
        percentages[-1] += removed.percentage

    return VariantSet.of(zip((v.url for v in survivors), percentages))


class RebalanceError(ValueError):
    """Base class for rejected add/remove operations."""
    pass


class CapacityError(RebalanceError):
    """Raised when adding a URL to a test that is already full."""
    pass


class NoShareableSlotError(RebalanceError):
    """Raised when no URL has enough traffic to give half to a new one."""
    pass


class MinimumCountError(RebalanceError):
    """Raised when removing a URL would leave fewer than two."""
    pass
