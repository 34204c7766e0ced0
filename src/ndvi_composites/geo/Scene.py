from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import numpy as np

from ndvi_composites.geo.AoiTargetGrid import AoiTargetGridResult


@dataclass(frozen=True)
class SceneRef:
    """
    Catalog entry for one acquisition, before any pixels are read.
    `assets` maps band name -> href; `extra` carries backend-specific fields.
    """

    scene_id: str
    acquired: datetime
    cloud_cover: Optional[float] = None
    assets: Mapping[str, str] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, eq=False)
class Scene:
    """
    One acquisition warped onto the AOI target grid.

    All bands are float32 arrays of shape grid.shape; NaN marks no-data.
    Transforms (masking, indices) return new Scene objects.
    """

    scene_id: str
    acquired: datetime
    cloud_cover: Optional[float]
    bands: Mapping[str, np.ndarray]
    grid: AoiTargetGridResult

    def __post_init__(self) -> None:
        for name, arr in self.bands.items():
            if arr.shape != self.grid.shape:
                raise ValueError(
                    f"Band {name} of {self.scene_id} has shape {arr.shape}, grid is {self.grid.shape}"
                )

    def band(self, name: str) -> np.ndarray:
        if name not in self.bands:
            raise KeyError(f"Scene {self.scene_id} has no band {name!r} (has {sorted(self.bands)})")
        return self.bands[name]

    @property
    def band_names(self) -> list[str]:
        return list(self.bands)

    def with_bands(self, bands: Dict[str, np.ndarray]) -> "Scene":
        return replace(self, bands=bands)

    def add_band(self, name: str, arr: np.ndarray) -> "Scene":
        bands = dict(self.bands)
        bands[name] = arr.astype(np.float32, copy=False)
        return self.with_bands(bands)
