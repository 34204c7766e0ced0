from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ndvi_composites.core.constants import BAND_NDVI, BAND_NIR, BAND_RED, NDVI_NODATA
from ndvi_composites.geo.Scene import Scene


@dataclass(frozen=True)
class NdviConfig:
    nir_band: str = BAND_NIR
    red_band: str = BAND_RED
    out_band: str = BAND_NDVI
    # Output nodata value for NDVI GeoTIFF
    nodata: float = NDVI_NODATA
    # values beyond +-(1 + tolerance) are no-data, not clamped
    range_tolerance: float = 1e-6


class NdviProcessor:
    def __init__(self, config: NdviConfig | None = None) -> None:
        self.config = config or NdviConfig()

    def compute_ndvi(self, red: np.ndarray, nir: np.ndarray) -> np.ndarray:
        """
        NDVI = (NIR - RED) / (NIR + RED)
        Returns float32 array with NaNs where invalid: no-data input, a
        non-positive denominator, or |NDVI| > 1. The last two come from
        slightly negative reflectances once the STAC offset is applied.
        """
        red_f = red.astype(np.float32)
        nir_f = nir.astype(np.float32)

        denom = nir_f + red_f
        with np.errstate(divide="ignore", invalid="ignore"):
            ndvi = (nir_f - red_f) / denom
            ndvi[denom <= 0] = np.nan
            ndvi[np.abs(ndvi) > 1.0 + self.config.range_tolerance] = np.nan

        # float32 rounding only, clamp it.
        ndvi = np.clip(ndvi, -1.0, 1.0)

        return ndvi.astype(np.float32)

    def add_index(self, scene: Scene) -> Scene:
        """Returns the scene with an extra NDVI band; original bands are kept."""
        ndvi = self.compute_ndvi(
            scene.band(self.config.red_band),
            scene.band(self.config.nir_band),
        )
        return scene.add_band(self.config.out_band, ndvi)

    def to_nodata(self, ndvi: np.ndarray) -> np.ndarray:
        """
        Converts NaNs to configured nodata value for GeoTIFF writing.
        """
        out = ndvi.copy()
        out[np.isnan(out)] = self.config.nodata
        return out.astype(np.float32)
