"""Listing, snapshot and compact storage models.

In-memory models use snake_case attributes; ``to_dict``/``from_dict`` map them
to the camelCase keys of the persisted JSON files.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Final, Literal, cast

Source = Literal["immobiliare", "idealista"]
SOURCES: Final[tuple[Source, ...]] = ("immobiliare", "idealista")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def listing_key(source: str, source_id: str) -> str:
    """Composite storage key for a listing."""

    return f"{source}-{source_id}"


def _as_int(value: object, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    return default


def _as_optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _as_str_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


@dataclass(slots=True)
class ListingFeatures:
    """Property features; ``*_raw`` keep values such as "5+" for display."""

    area: int | float | None = None
    rooms: int | float | None = None
    rooms_raw: str | None = None
    bedrooms: int | float | None = None
    bedrooms_raw: str | None = None
    bathrooms: int | float | None = None
    bathrooms_raw: str | None = None
    floor: int | float | None = None
    floor_raw: str | None = None
    total_floors: int | None = None
    elevator: bool | None = None
    energy_class: str | None = None
    year_built: int | None = None
    condition: str | None = None
    typology: str | None = None
    heating: str | None = None
    balcony: bool | None = None
    terrace: bool | None = None
    furnished: bool | None = None
    cellar: bool | None = None
    luxury: bool | None = None
    air_conditioning: bool | None = None
    parking: bool | None = None
    other_features: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data = {_camel(f.name): getattr(self, f.name) for f in fields(self)}
        if self.other_features is not None:
            data["otherFeatures"] = list(self.other_features)
        return data

    @classmethod
    def from_dict(cls, payload: object) -> ListingFeatures:
        """Build features from stored JSON, filling missing keys with None."""

        data = payload if isinstance(payload, dict) else {}
        values = {f.name: data.get(_camel(f.name)) for f in fields(cls)}
        other_features = values["other_features"]
        values["other_features"] = (
            _as_str_list(other_features) if isinstance(other_features, list) else None
        )
        return cls(**values)


@dataclass(slots=True)
class ListingLocation:
    region: str
    province: str
    city: str
    zone: str
    zone_id: str
    address: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "region": self.region,
            "province": self.province,
            "city": self.city,
            "zone": self.zone,
            "zoneId": self.zone_id,
        }
        if self.address is not None:
            data["address"] = self.address
        return data

    @classmethod
    def from_dict(cls, payload: object) -> ListingLocation:
        data = payload if isinstance(payload, dict) else {}
        address = data.get("address")
        return cls(
            region=str(data.get("region") or ""),
            province=str(data.get("province") or ""),
            city=str(data.get("city") or ""),
            zone=str(data.get("zone") or ""),
            zone_id=str(data.get("zoneId") or ""),
            address=str(address) if address is not None else None,
        )


@dataclass(slots=True)
class Listing:
    """One advertisement from one source, identified by (source, source_id)."""

    source: Source
    source_id: str
    title: str
    price: int
    price_formatted: str
    images: list[str]
    location: ListingLocation
    features: ListingFeatures
    url: str
    scraped_at: str
    previous_price: int | None = None
    description: str | None = None

    @property
    def id(self) -> str:
        return listing_key(self.source, self.source_id)

    @property
    def is_playable(self) -> bool:
        """A listing is guessable only when its price is disclosed."""

        return self.price != 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "source": self.source,
            "sourceId": self.source_id,
            "title": self.title,
        }
        if self.description is not None:
            data["description"] = self.description
        data["price"] = self.price
        data["priceFormatted"] = self.price_formatted
        if self.previous_price is not None:
            data["previousPrice"] = self.previous_price
        data["images"] = list(self.images)
        data["location"] = self.location.to_dict()
        data["features"] = self.features.to_dict()
        data["url"] = self.url
        data["scrapedAt"] = self.scraped_at
        return data

    @classmethod
    def from_dict(
        cls, payload: dict[str, Any], *, default_source: Source = "immobiliare"
    ) -> Listing:
        """Read a listing stored in the full (pre-compaction) format."""

        source = payload.get("source")
        description = payload.get("description")
        return cls(
            source=cast(Source, source if source in SOURCES else default_source),
            source_id=str(payload.get("sourceId") or ""),
            title=str(payload.get("title") or ""),
            price=_as_int(payload.get("price")),
            price_formatted=str(payload.get("priceFormatted") or ""),
            images=_as_str_list(payload.get("images")),
            location=ListingLocation.from_dict(payload.get("location")),
            features=ListingFeatures.from_dict(payload.get("features")),
            url=str(payload.get("url") or ""),
            scraped_at=str(payload.get("scrapedAt") or ""),
            previous_price=_as_optional_int(payload.get("previousPrice")),
            description=str(description) if description is not None else None,
        )


@dataclass(slots=True)
class SnapshotMetadata:
    requested_limit: int | None = None
    returned_count: int | None = None
    hit_limit: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            _camel(f.name): getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    @classmethod
    def from_dict(cls, payload: object) -> SnapshotMetadata | None:
        if not isinstance(payload, dict):
            return None
        hit_limit = payload.get("hitLimit")
        return cls(
            requested_limit=_as_optional_int(payload.get("requestedLimit")),
            returned_count=_as_optional_int(payload.get("returnedCount")),
            hit_limit=hit_limit if isinstance(hit_limit, bool) else None,
        )


@dataclass(slots=True)
class Snapshot:
    """One scrape run's output for one (zone, source) pair."""

    zone_id: str
    scraped_at: str
    source: Source
    listing_count: int
    listings: list[Listing] = field(default_factory=list)
    metadata: SnapshotMetadata | None = None


@dataclass(slots=True)
class CompactListing:
    """Storage projection of a listing without zone-derivable fields."""

    source_id: str
    title: str
    price: int
    images: list[str]
    features: ListingFeatures
    previous_price: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "sourceId": self.source_id,
            "title": self.title,
            "price": self.price,
        }
        if self.previous_price is not None:
            data["previousPrice"] = self.previous_price
        data["images"] = list(self.images)
        data["features"] = self.features.to_dict()
        return data

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CompactListing:
        return cls(
            source_id=str(payload.get("sourceId") or ""),
            title=str(payload.get("title") or ""),
            price=_as_int(payload.get("price")),
            images=_as_str_list(payload.get("images")),
            features=ListingFeatures.from_dict(payload.get("features")),
            previous_price=_as_optional_int(payload.get("previousPrice")),
        )


@dataclass(slots=True)
class CompactSnapshot:
    zone_id: str
    scraped_at: str
    source: Source
    listing_count: int
    listings: list[CompactListing] = field(default_factory=list)
    metadata: SnapshotMetadata | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "zoneId": self.zone_id,
            "scrapedAt": self.scraped_at,
            "source": self.source,
            "listingCount": self.listing_count,
            "listings": [listing.to_dict() for listing in self.listings],
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> CompactSnapshot:
        source = payload.get("source")
        raw_listings = payload.get("listings")
        listings = [
            CompactListing.from_dict(item)
            for item in (raw_listings if isinstance(raw_listings, list) else [])
            if isinstance(item, dict)
        ]
        return cls(
            zone_id=str(payload.get("zoneId") or ""),
            scraped_at=str(payload.get("scrapedAt") or ""),
            source=cast(Source, source if source in SOURCES else "immobiliare"),
            listing_count=_as_int(payload.get("listingCount"), len(listings)),
            listings=listings,
            metadata=SnapshotMetadata.from_dict(payload.get("metadata")),
        )
