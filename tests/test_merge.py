from __future__ import annotations

from dataclasses import replace

from ipg.crawlers.dedup import dedupe_listings
from ipg.db.merge import features_equal, has_listing_changed, merge_listings
from ipg.models import Listing, ListingFeatures, ListingLocation


def _listing(
    source_id: str,
    price: int,
    *,
    title: str = "Villa in Axa",
    images: list[str] | None = None,
    features: ListingFeatures | None = None,
    previous_price: int | None = None,
) -> Listing:
    return Listing(
        source="immobiliare",
        source_id=source_id,
        title=title,
        price=price,
        price_formatted=f"€ {price:,}".replace(",", "."),
        images=images if images is not None else ["111", "222"],
        location=ListingLocation(
            region="lazio", province="Roma", city="roma", zone="Axa", zone_id="roma-axa"
        ),
        features=features or ListingFeatures(rooms=4, other_features=["balcone"]),
        url=f"https://www.immobiliare.it/annunci/{source_id}/",
        scraped_at="2026-01-15T08:00:00.000Z",
        previous_price=previous_price,
    )


def test_dedupe_keeps_first_occurrence() -> None:
    first = _listing("1", 100000)
    duplicate = _listing("1", 999999)
    other = _listing("2", 200000)

    unique = dedupe_listings([first, other, duplicate])

    assert unique == [first, other]
    assert unique[0].price == 100000


def test_merge_against_empty_storage_adds_everything() -> None:
    result = merge_listings([_listing("1", 100000), _listing("2", 200000)], {})

    assert (result.added, result.updated, result.unchanged) == (2, 0, 0)
    assert [listing.source_id for listing in result.listings] == ["1", "2"]


def test_price_change_records_previous_price() -> None:
    stored = _listing("123", 300000)

    result = merge_listings([_listing("123", 320000)], {stored.id: stored})

    assert result.updated == 1
    merged = result.listings[0]
    assert merged.price == 320000
    assert merged.previous_price == 300000


def test_price_history_survives_an_unchanged_merge() -> None:
    stored = _listing("123", 300000)
    first = merge_listings([_listing("123", 320000)], {stored.id: stored})
    after_first = first.listings[0]

    second = merge_listings([_listing("123", 320000)], {after_first.id: after_first})

    assert (second.added, second.updated, second.unchanged) == (0, 0, 1)
    assert second.listings[0].previous_price == 300000


def test_non_price_change_carries_previous_price_forward() -> None:
    stored = _listing("123", 320000, previous_price=300000)

    result = merge_listings(
        [_listing("123", 320000, title="Villa ristrutturata in Axa")],
        {stored.id: stored},
    )

    assert result.updated == 1
    assert result.listings[0].title == "Villa ristrutturata in Axa"
    assert result.listings[0].previous_price == 300000


def test_merge_is_idempotent() -> None:
    batch = [_listing("1", 100000), _listing("2", 200000)]
    first = merge_listings(batch, {})
    existing = {listing.id: listing for listing in first.listings}

    second = merge_listings(batch, existing)

    assert (second.added, second.updated, second.unchanged) == (0, 0, 2)
    assert second.listings == first.listings


def test_unchanged_keeps_stored_listing_verbatim() -> None:
    stored = replace(_listing("1", 100000), scraped_at="2025-12-01T00:00:00.000Z")

    result = merge_listings([_listing("1", 100000)], {stored.id: stored})

    assert result.listings[0] is stored


def test_stored_listings_missing_from_batch_are_dropped() -> None:
    stored = _listing("old", 150000)

    result = merge_listings([_listing("new", 180000)], {stored.id: stored})

    assert len(result.listings) == 1
    assert result.listings[0].source_id == "new"


def test_feature_arrays_compare_order_independently() -> None:
    left = ListingFeatures(other_features=["balcone", "cantina"])
    right = ListingFeatures(other_features=["cantina", "balcone"])

    assert features_equal(left, right)
    assert not features_equal(left, ListingFeatures(other_features=["balcone"]))


def test_feature_comparison_is_type_aware() -> None:
    assert features_equal(ListingFeatures(area=80), ListingFeatures(area=80.0))
    assert not features_equal(
        ListingFeatures(elevator=True), ListingFeatures(elevator=None)
    )
    assert not features_equal(ListingFeatures(rooms=1), ListingFeatures(rooms_raw="1"))


def test_image_order_counts_as_a_change() -> None:
    stored = _listing("1", 100000, images=["111", "222"])

    assert has_listing_changed(_listing("1", 100000, images=["222", "111"]), stored)
    assert not has_listing_changed(_listing("1", 100000, images=["111", "222"]), stored)
