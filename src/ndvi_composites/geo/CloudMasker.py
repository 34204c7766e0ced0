from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ndvi_composites.core.constants import BAND_SCL, SCL_EXCLUDED_CLASSES, SCL_NO_DATA
from ndvi_composites.geo.Scene import Scene


@dataclass(frozen=True)
class CloudMaskConfig:
    # SCL classes to mask (set to nodata)
    # 1 = saturated / defective
    # 2 = dark area
    # 3 = cloud shadows
    # 7 = unclassified
    # 8 = cloud medium prob
    # 9 = cloud high prob
    # 10 = thin cirrus
    # 11 = snow / ice
    masked_classes: Tuple[int, ...] = SCL_EXCLUDED_CLASSES
    scl_band: str = BAND_SCL
    scl_nodata: float = SCL_NO_DATA


class CloudMasker:
    def __init__(self, config: CloudMaskConfig | None = None) -> None:
        self.config = config or CloudMaskConfig()

    def build_validity_mask(self, scl: np.ndarray) -> np.ndarray:
        """
        Returns valid_mask (True where the pixel is kept).
        NaN and SCL "no data" pixels are never valid.
        """
        invalid = np.isin(scl, np.array(self.config.masked_classes, dtype=scl.dtype))
        invalid |= scl == self.config.scl_nodata
        invalid |= np.isnan(scl)
        return ~invalid

    def mask(self, scene: Scene) -> Scene:
        """
        Applies the SCL validity mask to every band of the scene.
        Pure: returns a new Scene, the input is left untouched.
        """
        valid = self.build_validity_mask(scene.band(self.config.scl_band))

        masked = {}
        for name, arr in scene.bands.items():
            out = arr.astype(np.float32, copy=True)
            out[~valid] = np.nan
            masked[name] = out

        return scene.with_bands(masked)
