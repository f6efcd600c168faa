"""Merge a freshly scraped batch with the listings already on disk."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace

from ipg.models import Listing, ListingFeatures

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeResult:
    listings: list[Listing]
    added: int = 0
    updated: int = 0
    unchanged: int = 0


def _canonical(value: object) -> str:
    """Stable text form of a JSON value; arrays compare as multisets.

    Booleans stay distinct from numbers, while ints and floats of equal value
    compare equal.
    """

    if isinstance(value, dict):
        items = sorted((str(key), _canonical(item)) for key, item in value.items())
        return "{" + ",".join(f"{json.dumps(key)}:{item}" for key, item in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(sorted(_canonical(item) for item in value)) + "]"
    if isinstance(value, bool) or value is None:
        return json.dumps(value)
    if isinstance(value, (int, float)):
        return repr(float(value))
    return json.dumps(value, ensure_ascii=False)


def features_equal(left: ListingFeatures, right: ListingFeatures) -> bool:
    return _canonical(left.to_dict()) == _canonical(right.to_dict())


def has_listing_changed(new: Listing, old: Listing) -> bool:
    """Price, title, features and image list decide whether a listing changed."""

    if new.price != old.price or new.title != old.title:
        return True
    if not features_equal(new.features, old.features):
        return True
    # Image order is what the game shows first, so it counts.
    return list(new.images) != list(old.images)


def merge_listings(
    batch: Sequence[Listing], existing: Mapping[str, Listing]
) -> MergeResult:
    """Classify each batch listing as added, updated or unchanged.

    ``existing`` maps composite ids to stored listings of the same source.
    Stored listings that are absent from the batch are not carried over.
    """

    result = MergeResult(listings=[])
    for listing in batch:
        current = existing.get(listing.id)
        if current is None:
            result.added += 1
            result.listings.append(listing)
            continue

        if not has_listing_changed(listing, current):
            result.unchanged += 1
            result.listings.append(current)
            continue

        result.updated += 1
        if listing.price != current.price:
            previous_price = current.price
            logger.debug(
                "Price change for %s: %s -> %s",
                listing.id,
                current.price,
                listing.price,
            )
        elif listing.previous_price is None:
            previous_price = current.previous_price
        else:
            previous_price = listing.previous_price
        result.listings.append(replace(listing, previous_price=previous_price))

    return result
