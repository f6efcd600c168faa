"""Normalization of raw immobiliare.it records into canonical listings."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Final

from ipg.crawlers.parsing import (
    format_price,
    parse_count,
    parse_floor,
    parse_number,
    parse_price,
)
from ipg.db.images import compact_image
from ipg.models import Listing, ListingFeatures, ListingLocation, Zone

DEFAULT_TYPOLOGY: Final = "Immobile"

AMENITY_KEYWORDS: Final[Mapping[str, tuple[str, ...]]] = {
    "balcony": ("balcone",),
    "terrace": ("terrazzo",),
    "furnished": ("arredato",),
    "cellar": ("cantina",),
    "air_conditioning": ("aria condizion", "condizion", "climatizz"),
    "parking": ("posto auto", "garage", "box", "parcheggio", "autorimessa"),
}


def _dig(payload: object, *keys: str) -> object:
    current = payload
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _text(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _flag(value: object) -> bool | None:
    return value if isinstance(value, bool) else None


def _source_id(value: object) -> str | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value) if value else None
    return _text(value) if isinstance(value, str) else None


def immobiliare_listing_url(source_id: str) -> str:
    return f"https://www.immobiliare.it/annunci/{source_id}/"


def normalize_other_features(value: object) -> list[str] | None:
    """Lower-case, de-duplicate and sort the free-form feature tags."""

    if not isinstance(value, list):
        return None
    normalized = sorted(
        {item.strip().lower() for item in value if isinstance(item, str)} - {""}
    )
    return normalized or None


def has_any_feature(other_features: Iterable[str] | None, keywords: Iterable[str]) -> bool:
    if not other_features:
        return False
    needles = tuple(keywords)
    return any(needle in tag for tag in other_features for needle in needles)


def derive_amenity(
    amenity: str, other_features: list[str] | None, explicit: object = None
) -> bool | None:
    """Resolve an amenity flag; a missing tag means unknown, never False."""

    if isinstance(explicit, bool):
        return explicit
    if has_any_feature(other_features, AMENITY_KEYWORDS[amenity]):
        return True
    return None


def extract_images(media: object) -> list[str]:
    """Collect image references, reducing CDN URLs to bare image ids."""

    images = _dig(media, "images")
    if not isinstance(images, list):
        return []

    references: list[str] = []
    for image in images:
        if not isinstance(image, dict):
            continue
        url = _text(image.get("hd")) or _text(image.get("sd"))
        if not url or "placeholder" in url or "data:image" in url:
            continue
        references.append(compact_image(url))
    return references


def build_title(typology: str | None, microzone: str | None, zone: Zone) -> str:
    return f"{typology or DEFAULT_TYPOLOGY} in {microzone or zone.name}"


def _mobile_typology(raw: dict[str, Any]) -> str | None:
    from_analytics = _text(_dig(raw, "analytics", "typology"))
    if from_analytics:
        return from_analytics

    topology_typology = _dig(raw, "topology", "typology")
    if isinstance(topology_typology, dict):
        return _text(topology_typology.get("name"))
    return _text(topology_typology)


def _mobile_price(raw: dict[str, Any]) -> tuple[int, str]:
    raw_price = _dig(raw, "price", "raw")
    if isinstance(raw_price, (int, float)):
        price, formatted = parse_price(raw_price)
        if price > 0:
            return price, _text(_dig(raw, "price", "value")) or formatted

    price, formatted = parse_price(_dig(raw, "price", "value"))
    if price > 0:
        return price, formatted
    price, _ = parse_price(_dig(raw, "analytics", "price"))
    return max(price, 0), format_price(max(price, 0))


def normalize_mobile_property(
    raw: dict[str, Any], zone: Zone, scraped_at: str
) -> Listing | None:
    """Normalize one property of the immobiliare.it mobile API.

    Returns None when the record has no id or no disclosed price.
    """

    source_id = _source_id(raw.get("id"))
    if not source_id:
        return None

    price, price_formatted = _mobile_price(raw)
    if price == 0:
        return None

    typology = _mobile_typology(raw)
    microzone = _text(_dig(raw, "geography", "microzone", "name")) or zone.name
    other_features = normalize_other_features(_dig(raw, "analytics", "otherFeatures"))

    rooms = parse_count(_dig(raw, "topology", "rooms"))
    bathrooms = parse_count(_dig(raw, "topology", "bathrooms"))
    bedrooms = parse_count(_dig(raw, "analytics", "numBedrooms"))
    topology_floor = _dig(raw, "topology", "floor")
    floor = parse_floor(
        topology_floor
        if topology_floor is not None
        else _dig(raw, "analytics", "floor")
    )

    elevator = _flag(_dig(raw, "topology", "lift"))
    if elevator is None:
        elevator = _flag(_dig(raw, "analytics", "elevator"))

    return Listing(
        source="immobiliare",
        source_id=source_id,
        title=build_title(typology, microzone, zone),
        price=price,
        price_formatted=price_formatted,
        images=extract_images(raw.get("media")),
        location=ListingLocation(
            region=_text(_dig(raw, "geography", "region", "name")) or zone.region,
            province=_text(_dig(raw, "geography", "province", "abbreviation")) or "",
            city=_text(_dig(raw, "geography", "municipality", "name")) or zone.city,
            zone=microzone,
            zone_id=zone.id,
            address=_text(_dig(raw, "geography", "macrozone", "name")),
        ),
        features=ListingFeatures(
            area=parse_number(_dig(raw, "topology", "surface", "size")),
            rooms=rooms.value,
            rooms_raw=rooms.raw,
            bedrooms=bedrooms.value,
            bedrooms_raw=bedrooms.raw,
            bathrooms=bathrooms.value,
            bathrooms_raw=bathrooms.raw,
            floor=floor.value,
            floor_raw=floor.raw,
            elevator=elevator,
            condition=_text(_dig(raw, "analytics", "propertyStatus")),
            typology=typology,
            heating=_text(_dig(raw, "analytics", "heating")),
            balcony=derive_amenity(
                "balcony", other_features, _dig(raw, "topology", "balcony")
            ),
            terrace=derive_amenity(
                "terrace", other_features, _dig(raw, "topology", "terrace")
            ),
            furnished=derive_amenity(
                "furnished", other_features, _dig(raw, "topology", "furnished")
            ),
            cellar=derive_amenity(
                "cellar", other_features, _dig(raw, "topology", "cellar")
            ),
            luxury=_flag(_dig(raw, "topology", "isLuxury")),
            air_conditioning=derive_amenity("air_conditioning", other_features),
            parking=derive_amenity("parking", other_features),
            other_features=other_features,
        ),
        url=immobiliare_listing_url(source_id),
        scraped_at=scraped_at,
    )


def _main_data_value(raw: dict[str, Any], label: str) -> str | None:
    sections = raw.get("mainData")
    if not isinstance(sections, list):
        return None
    wanted = label.lower()
    for section in sections:
        rows = _dig(section, "rows")
        if not isinstance(rows, list):
            continue
        for row in rows:
            if not isinstance(row, dict):
                continue
            row_label = _text(row.get("label"))
            value = _text(row.get("value"))
            if row_label and row_label.lower() == wanted and value:
                return value
    return None


def normalize_apify_item(
    raw: dict[str, Any], zone: Zone, scraped_at: str
) -> Listing | None:
    """Normalize one dataset item of the Apify immobiliare.it actor."""

    source_id = _source_id(raw.get("id"))
    if not source_id:
        return None

    price, price_formatted = parse_price(
        _text(_dig(raw, "analytics", "price"))
        or _text(_dig(raw, "price", "value"))
        or _text(_dig(raw, "price", "formattedValue"))
    )
    if price == 0:
        return None

    typology = _text(_dig(raw, "analytics", "typology"))
    microzone = _text(_dig(raw, "analytics", "microzone")) or zone.name

    rooms = parse_count(_main_data_value(raw, "Rooms"))
    bathrooms = parse_count(_main_data_value(raw, "Bathrooms"))
    bedrooms = parse_count(
        _main_data_value(raw, "Bedrooms") or _dig(raw, "analytics", "numBedrooms")
    )
    floor = parse_floor(_main_data_value(raw, "Floor"))

    return Listing(
        source="immobiliare",
        source_id=source_id,
        title=build_title(typology or _text(raw.get("title")), microzone, zone),
        price=price,
        price_formatted=price_formatted,
        images=extract_images(raw.get("media")),
        location=ListingLocation(
            region=_text(_dig(raw, "analytics", "region")) or zone.region,
            province=_text(_dig(raw, "analytics", "province")) or "",
            city=zone.city,
            zone=microzone,
            zone_id=zone.id,
            address=_text(_dig(raw, "analytics", "macrozone")),
        ),
        features=ListingFeatures(
            area=parse_number(_main_data_value(raw, "Surface")),
            rooms=rooms.value,
            rooms_raw=rooms.raw,
            bedrooms=bedrooms.value,
            bedrooms_raw=bedrooms.raw,
            bathrooms=bathrooms.value,
            bathrooms_raw=bathrooms.raw,
            floor=floor.value,
            floor_raw=floor.raw,
            elevator=_flag(_dig(raw, "analytics", "elevator")),
            energy_class=_text(_dig(raw, "energyClass", "value")),
            condition=_text(_dig(raw, "analytics", "propertyStatus")),
            typology=typology,
        ),
        url=_text(raw.get("shareUrl")) or immobiliare_listing_url(source_id),
        scraped_at=scraped_at,
    )
