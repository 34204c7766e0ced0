from __future__ import annotations

from typing import List, Optional

from ndvi_composites.builders.ExportDispatcher import ExportDispatcher, ExportJob
from ndvi_composites.builders.SceneCollector import SceneCollector, SceneCollectorConfig
from ndvi_composites.core.pipeline_config import PipelineConfig
from ndvi_composites.geo.AoiTargetGrid import AoiTargetGrid
from ndvi_composites.geo.CloudMasker import CloudMasker
from ndvi_composites.geo.MonthlyCompositor import MonthlyCompositor
from ndvi_composites.geo.NdviProcessor import NdviProcessor
from ndvi_composites.services.AoiResolver import build_aoi_resolver
from ndvi_composites.services.StacImageryBackend import StacImageryBackend
from ndvi_composites.utils.DateRange import DateRange


class BuildNdviMonthlyCompositesPipeline:
    """
    Orchestrates, once per month of the configured range:

      SceneCollector -> CloudMasker -> NdviProcessor -> MonthlyCompositor -> ExportDispatcher

    The AOI and its target grid are resolved once, before the month loop.
    Months without scenes still produce an (all no-data) export so the
    monthly series stays complete.

    Collaborators can be injected (tests use an in-memory backend); anything
    left as None is built from the config at run time.
    """

    def __init__(
        self,
        backend=None,
        aoi_resolver=None,
        dispatcher: Optional[ExportDispatcher] = None,
        masker: Optional[CloudMasker] = None,
        ndvi: Optional[NdviProcessor] = None,
        compositor: Optional[MonthlyCompositor] = None,
    ) -> None:
        self.backend = backend
        self.aoi_resolver = aoi_resolver
        self.dispatcher = dispatcher
        self.masker = masker or CloudMasker()
        self.ndvi = ndvi or NdviProcessor()
        self.compositor = compositor or MonthlyCompositor()

    def _ensure_collaborators(self, cfg: PipelineConfig) -> None:
        if self.backend is None:
            self.backend = StacImageryBackend(stac_url=cfg.stac_url)
        if self.aoi_resolver is None:
            self.aoi_resolver = build_aoi_resolver(cfg.aoi)
        if self.dispatcher is None:
            self.dispatcher = ExportDispatcher(
                resolution=cfg.resolution,
                crs=cfg.crs,
                output_folder=cfg.output_folder_resolved,
                max_pixels=cfg.max_pixels,
                max_workers=cfg.export.max_workers,
            )

    def run(self, cfg: PipelineConfig) -> List[ExportJob]:
        self._ensure_collaborators(cfg)

        # AOI does not change per month: resolve once (NotFoundError propagates)
        aoi = self.aoi_resolver.resolve(cfg.country_name)
        grid = AoiTargetGrid(aoi, target_crs=cfg.crs, resolution=cfg.resolution).build()
        print(f"[INFO] AOI {aoi.name}: {aoi.asset_id} -> grid {grid.width}x{grid.height} ({cfg.crs})")

        # every month shares this grid: fail before any scene is read onto it
        self.dispatcher.check_grid_limit(grid, label=f"AOI {aoi.name} grid")

        collector = SceneCollector(
            self.backend,
            SceneCollectorConfig(
                collection=cfg.collection,
                max_items=cfg.max_items,
                cloud_cover_max=cfg.cloud_cover_max,
                max_scenes=cfg.max_scenes,
                scene_order=cfg.scene_order,
                debug=cfg.debug,
            ),
        )

        jobs: List[ExportJob] = []
        for window in DateRange(cfg.start_year, cfg.start_month, cfg.end_year, cfg.end_month):
            print(f"[INFO] Processing date: {window.label}")

            refs = collector.search(aoi, window, cfg.filter_cloud)
            print(f"[INFO] Image count: {len(refs)}")
            if not refs:
                print(f"[WARN] No scenes for {window.label}; exporting an empty composite.")

            scenes = collector.load(refs, grid)
            scenes = [self.ndvi.add_index(self.masker.mask(s)) for s in scenes]

            composite = self.compositor.composite(scenes, grid, aoi_name=aoi.name, window=window)

            jobs.append(self.dispatcher.submit(composite, aoi, cfg.export))

        return jobs

    def close(self, wait: bool = True) -> None:
        """Flush pending export jobs (the run itself never waits on them)."""
        if self.dispatcher is not None:
            self.dispatcher.shutdown(wait=wait)
