"""Zone reference data model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Coordinates:
    """Zone centroid used by the map views."""

    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class Zone:
    """Named neighborhood in the region > city > area > slug hierarchy.

    immobiliare.it keys its searches on two zone granularities:
    ``immobiliare_z2`` is the macrozone (e.g. "Axa, Casal Palocco, Infernetto")
    and ``immobiliare_z3`` the microzone (e.g. "Axa").
    """

    id: str
    name: str
    slug: str
    region: str
    city: str
    area: str
    coordinates: Coordinates | None = None
    immobiliare_z2: int | None = None
    immobiliare_z3: int | None = None

    @property
    def path_parts(self) -> tuple[str, str, str, str]:
        return (self.region, self.city, self.area, self.slug)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Zone:
        coordinates = payload.get("coordinates")
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name") or payload["id"]),
            slug=str(payload.get("slug") or payload["id"]),
            region=str(payload.get("region", "")),
            city=str(payload.get("city", "")),
            area=str(payload.get("area", "")),
            coordinates=(
                Coordinates(
                    lat=float(coordinates["lat"]), lng=float(coordinates["lng"])
                )
                if isinstance(coordinates, dict)
                and coordinates.get("lat") is not None
                and coordinates.get("lng") is not None
                else None
            ),
            immobiliare_z2=_optional_int(payload.get("immobiliareZ2")),
            immobiliare_z3=_optional_int(payload.get("immobiliareZ3")),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "region": self.region,
            "city": self.city,
            "area": self.area,
        }
        if self.coordinates is not None:
            data["coordinates"] = {
                "lat": self.coordinates.lat,
                "lng": self.coordinates.lng,
            }
        if self.immobiliare_z2 is not None:
            data["immobiliareZ2"] = self.immobiliare_z2
        if self.immobiliare_z3 is not None:
            data["immobiliareZ3"] = self.immobiliare_z3
        return data


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None
