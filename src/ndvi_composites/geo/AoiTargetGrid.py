from __future__ import annotations

from dataclasses import dataclass
import math

import geopandas as gpd
import numpy as np
import rasterio
from rasterio.transform import from_origin
from rasterio.features import rasterize

from ndvi_composites.core.constants import DEFAULT_AOI_CRS, METERS_PER_DEGREE
from ndvi_composites.geo.AreaOfInterest import AreaOfInterest


@dataclass(frozen=True)
class AoiTargetGridResult:
    crs: rasterio.crs.CRS
    transform: rasterio.Affine
    width: int
    height: int
    aoi_mask: np.ndarray  # True inside AOI

    @property
    def shape(self) -> tuple[int, int]:
        return (self.height, self.width)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def empty(self) -> np.ndarray:
        """All-nodata float32 raster on this grid."""
        return np.full(self.shape, np.nan, dtype=np.float32)


class AoiTargetGrid:
    """
    Builds a fixed AOI-based target grid (extent == AOI bounds) in a chosen CRS + resolution.
    Every scene of every month is warped onto this grid, so per-pixel mosaics line up.

    `resolution` is in meters. For geographic CRSs it is converted to degrees
    (same convention as an export `scale` in meters with an EPSG:4326 output).
    """

    def __init__(self, aoi: AreaOfInterest, target_crs: str = DEFAULT_AOI_CRS, resolution: float = 10.0) -> None:
        self.aoi = aoi
        self.target_crs = rasterio.crs.CRS.from_string(target_crs)
        self.resolution_m = float(resolution)

        if self.target_crs.is_geographic:
            self.res = self.resolution_m / METERS_PER_DEGREE
        else:
            self.res = self.resolution_m

        self.geom_target = (
            gpd.GeoSeries([aoi.geometry], crs=DEFAULT_AOI_CRS).to_crs(self.target_crs).iloc[0]
        )

    def build(self) -> AoiTargetGridResult:
        minx, miny, maxx, maxy = self.geom_target.bounds

        # snap bounds to resolution grid (so output is stable)
        minx_s = math.floor(minx / self.res) * self.res
        miny_s = math.floor(miny / self.res) * self.res
        maxx_s = math.ceil(maxx / self.res) * self.res
        maxy_s = math.ceil(maxy / self.res) * self.res

        width = max(1, int(round((maxx_s - minx_s) / self.res)))
        height = max(1, int(round((maxy_s - miny_s) / self.res)))

        # rasterio transform from upper-left
        transform = from_origin(minx_s, maxy_s, self.res, self.res)

        mask = rasterize(
            [(self.geom_target, 1)],
            out_shape=(height, width),
            transform=transform,
            fill=0,
            dtype="uint8",
            all_touched=False,
        ).astype(bool)

        return AoiTargetGridResult(
            crs=self.target_crs,
            transform=transform,
            width=width,
            height=height,
            aoi_mask=mask,
        )
