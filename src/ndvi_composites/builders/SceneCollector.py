from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ndvi_composites.core.constants import DEFAULT_CLOUD_COVER_MAX, DEFAULT_MAX_ITEMS
from ndvi_composites.core.params import StacQueryParams
from ndvi_composites.core.settings import DEFAULT_COLLECTION, VERBOSE
from ndvi_composites.geo.AoiTargetGrid import AoiTargetGridResult
from ndvi_composites.geo.AreaOfInterest import AreaOfInterest
from ndvi_composites.geo.MonthlyCompositor import order_scenes
from ndvi_composites.geo.Scene import Scene, SceneRef
from ndvi_composites.utils.DateRange import DateWindow


@dataclass(frozen=True)
class SceneCollectorConfig:
    collection: str = DEFAULT_COLLECTION
    # scenes with eo:cloud_cover above this are dropped when filter_cloud is on
    cloud_cover_max: float = DEFAULT_CLOUD_COVER_MAX
    # STAC item cap per month (None = no cap)
    max_items: Optional[int] = DEFAULT_MAX_ITEMS
    # cap applied after ordering (None = keep all)
    max_scenes: Optional[int] = None
    scene_order: str = "time"
    # raise on unreadable scenes instead of skipping them
    debug: bool = False


class SceneCollector:
    """
    Finds and loads the scenes of one month over one AOI.

    The backend must provide:
      search(aoi, window, params) -> list[SceneRef]
      load(ref, grid)             -> Scene
    """

    def __init__(self, backend, cfg: SceneCollectorConfig | None = None) -> None:
        self.backend = backend
        self.cfg = cfg or SceneCollectorConfig()

    def search(self, aoi: AreaOfInterest, window: DateWindow, filter_cloud: bool) -> List[SceneRef]:
        params = StacQueryParams(
            collection=self.cfg.collection,
            cloud_cover_max=self.cfg.cloud_cover_max if filter_cloud else None,
            max_items=self.cfg.max_items,
        )
        refs = self.backend.search(aoi, window, params)

        if filter_cloud:
            # backend query already filters; keep the rule explicit for
            # backends that ignore the parameter. Unknown cloud cover is kept.
            refs = [
                r for r in refs
                if r.cloud_cover is None or r.cloud_cover <= self.cfg.cloud_cover_max
            ]

        refs = order_scenes(refs, self.cfg.scene_order)

        if self.cfg.max_scenes is not None:
            refs = refs[: self.cfg.max_scenes]

        return refs

    def load(self, refs: Sequence[SceneRef], grid: AoiTargetGridResult) -> List[Scene]:
        scenes: List[Scene] = []
        skipped = 0

        for ref in refs:
            try:
                scenes.append(self.backend.load(ref, grid))
            except Exception as e:
                if self.cfg.debug:
                    raise
                print(f"[WARN] Skipping {ref.scene_id} -> {e}")
                skipped += 1

        if VERBOSE or skipped:
            print(f"[INFO] Scenes loaded: {len(scenes)}, skipped: {skipped}")

        return scenes

    def collect(
        self,
        aoi: AreaOfInterest,
        window: DateWindow,
        filter_cloud: bool,
        grid: AoiTargetGridResult,
    ) -> List[Scene]:
        return self.load(self.search(aoi, window, filter_cloud), grid)
