# tests/mocks/FakeImageryBackend.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
from shapely.geometry.base import BaseGeometry

from ndvi_composites.core.constants import BAND_NIR, BAND_RED, BAND_SCL
from ndvi_composites.core.params import StacQueryParams
from ndvi_composites.geo.AoiTargetGrid import AoiTargetGridResult
from ndvi_composites.geo.AreaOfInterest import AreaOfInterest
from ndvi_composites.geo.Scene import Scene, SceneRef
from ndvi_composites.services.StacImageryBackend import in_window
from ndvi_composites.utils.DateRange import DateWindow

SCL_VEGETATION = 4
SCL_CLOUD_HIGH = 9


@dataclass(frozen=True)
class FakeScene:
    """
    Synthetic acquisition with constant reflectances.

    cloud_rows="north" flags the upper half of the grid as SCL cloud (9).
    footprint=None means the scene covers every AOI.
    """

    ref: SceneRef
    red: float
    nir: float
    cloud_rows: Optional[str] = None
    footprint: Optional[BaseGeometry] = None


class FakeImageryBackend:
    """
    Reusable test double for StacImageryBackend.

    Behaves like a STAC backend at a high level:
      - search() applies footprint intersection + half-open date window + eo:cloud_cover
      - load() returns constant-valued bands on the requested grid

    Records calls so tests can assert on the queries.
    """

    def __init__(self, scenes: List[FakeScene]) -> None:
        self._scenes: Dict[str, FakeScene] = {s.ref.scene_id: s for s in scenes}
        self.search_calls: List[tuple] = []
        self.load_calls: List[str] = []

    def search(
        self,
        aoi: AreaOfInterest,
        window: DateWindow,
        params: Optional[StacQueryParams] = None,
    ) -> List[SceneRef]:
        self.search_calls.append((aoi.name, window.label, params))
        max_cloud = params.cloud_cover_max if params is not None else None

        out: List[SceneRef] = []
        for s in self._scenes.values():
            if s.footprint is not None and not s.footprint.intersects(aoi.geometry):
                continue
            if not in_window(s.ref.acquired, window):
                continue
            if max_cloud is not None and s.ref.cloud_cover is not None and s.ref.cloud_cover > max_cloud:
                continue
            out.append(s.ref)
        return out

    def load(self, ref: SceneRef, grid: AoiTargetGridResult) -> Scene:
        self.load_calls.append(ref.scene_id)
        s = self._scenes[ref.scene_id]

        scl = np.full(grid.shape, SCL_VEGETATION, dtype=np.float32)
        if s.cloud_rows == "north":
            scl[: grid.height // 2, :] = SCL_CLOUD_HIGH

        return Scene(
            scene_id=ref.scene_id,
            acquired=ref.acquired,
            cloud_cover=ref.cloud_cover,
            bands={
                BAND_RED: np.full(grid.shape, s.red, dtype=np.float32),
                BAND_NIR: np.full(grid.shape, s.nir, dtype=np.float32),
                BAND_SCL: scl,
            },
            grid=grid,
        )
