from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry


@dataclass(frozen=True)
class AreaOfInterest:
    """
    Resolved AOI boundary.

    name:      country/site name used in export names
    asset_id:  asset path/key the geometry was loaded from
    geometry:  dissolved Polygon/MultiPolygon in EPSG:4326
    """

    name: str
    asset_id: str
    geometry: BaseGeometry

    def __post_init__(self) -> None:
        if self.geometry.geom_type not in ("Polygon", "MultiPolygon"):
            raise ValueError(f"AOI geometry must be a (multi)polygon, got {self.geometry.geom_type}")
        if self.geometry.is_empty:
            raise ValueError(f"AOI geometry is empty: {self.asset_id}")

    @property
    def bounds(self) -> Tuple[float, float, float, float]:
        return tuple(self.geometry.bounds)

    def to_geojson(self) -> dict:
        return mapping(self.geometry)
