"""Intra-batch duplicate removal for scraped listings."""

from collections.abc import Iterable

from ipg.models import Listing


def dedupe_listings(listings: Iterable[Listing]) -> list[Listing]:
    """Keep the first listing per (source, source_id), preserving input order.

    Paginated sources can return the same listing on overlapping pages.
    """

    seen: set[tuple[str, str]] = set()
    unique: list[Listing] = []
    for listing in listings:
        key = (listing.source, listing.source_id)
        if key in seen:
            continue
        seen.add(key)
        unique.append(listing)
    return unique
