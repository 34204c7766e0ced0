from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence, Tuple, Union

import numpy as np

from ndvi_composites.core.constants import BAND_NDVI
from ndvi_composites.geo.AoiTargetGrid import AoiTargetGridResult
from ndvi_composites.geo.Scene import Scene, SceneRef
from ndvi_composites.utils.DateRange import DateWindow


@dataclass(frozen=True, eq=False)
class MonthlyComposite:
    aoi_name: str
    window: DateWindow
    data: np.ndarray  # float32, NaN = no-data, clipped to AOI
    grid: AoiTargetGridResult
    scene_ids: Tuple[str, ...]

    @property
    def valid_pixels(self) -> int:
        return int(np.isfinite(self.data).sum())

    @property
    def is_empty(self) -> bool:
        return self.valid_pixels == 0


SceneLike = Union[Scene, SceneRef]

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def _time_key(scene: SceneLike):
    acquired = scene.acquired or _FAR_FUTURE
    if acquired.tzinfo is None:
        acquired = acquired.replace(tzinfo=timezone.utc)
    return (acquired, scene.scene_id)


def _cloud_then_time_key(scene: SceneLike):
    cloud = scene.cloud_cover if scene.cloud_cover is not None else float("inf")
    return (cloud,) + _time_key(scene)


def order_scenes(scenes: Sequence[SceneLike], mode: str = "time") -> List[SceneLike]:
    """
    Stack order for the first-valid mosaic.

      time            -> earliest acquisition first (ties by scene id)
      cloud_then_time -> least cloudy first, then earliest
      as_returned     -> backend order, unchanged
    """
    if mode == "time":
        return sorted(scenes, key=_time_key)
    if mode == "cloud_then_time":
        return sorted(scenes, key=_cloud_then_time_key)
    if mode == "as_returned":
        return list(scenes)
    raise ValueError(f"Unknown scene order: {mode!r}")


class MonthlyCompositor:
    """
    First-valid mosaic of per-scene NDVI bands.

    For each pixel the value of the first scene (in input order) holding a
    finite NDVI is taken. Pixels invalid in every scene stay NaN. The result
    is clipped to the AOI mask of the grid.
    """

    def __init__(self, band: str = BAND_NDVI) -> None:
        self.band = band

    def mosaic_first_valid(self, stack: np.ndarray) -> np.ndarray:
        """stack: (n, h, w) float array -> (h, w) first finite value along axis 0."""
        if stack.shape[0] == 0:
            return np.full(stack.shape[1:], np.nan, dtype=np.float32)

        valid = np.isfinite(stack)
        first = valid.argmax(axis=0)
        out = np.take_along_axis(stack, first[np.newaxis, ...], axis=0)[0]
        out = out.astype(np.float32)
        out[~valid.any(axis=0)] = np.nan
        return out

    def composite(
        self,
        scenes: Sequence[Scene],
        grid: AoiTargetGridResult,
        *,
        aoi_name: str,
        window: DateWindow,
    ) -> MonthlyComposite:
        if scenes:
            stack = np.stack([s.band(self.band) for s in scenes], axis=0)
        else:
            stack = np.empty((0,) + grid.shape, dtype=np.float32)

        data = self.mosaic_first_valid(stack)
        data[~grid.aoi_mask] = np.nan

        valid = data[np.isfinite(data)]
        if valid.size > 0:
            if valid.min() < -1.0001 or valid.max() > 1.0001:
                raise ValueError("Composite NDVI outside [-1,1].")

        return MonthlyComposite(
            aoi_name=aoi_name,
            window=window,
            data=data,
            grid=grid,
            scene_ids=tuple(s.scene_id for s in scenes),
        )
