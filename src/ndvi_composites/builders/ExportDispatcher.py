from __future__ import annotations

import shutil
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from ndvi_composites.core.constants import DEFAULT_MAX_PIXELS
from ndvi_composites.core.errors import ExportLimitError
from ndvi_composites.core.pipeline_config import ExportConfig
from ndvi_composites.core.settings import VERBOSE
from ndvi_composites.geo.AoiTargetGrid import AoiTargetGridResult
from ndvi_composites.geo.AreaOfInterest import AreaOfInterest
from ndvi_composites.geo.MonthlyCompositor import MonthlyComposite
from ndvi_composites.geo.RasterWriter import RasterWriter
from ndvi_composites.utils.DateRange import DateWindow
from ndvi_composites.utils.GcsClient import GcsClient


@dataclass(eq=False)
class ExportJob:
    """
    Handle for one deferred composite write.
    The pipeline never waits on it; monitoring code can use done()/result().
    """

    name: str
    file_name: str
    destination: str
    folder: str
    uri: str
    resolution: float
    crs: str
    region: Tuple[float, float, float, float]
    max_pixels: int
    future: Future

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> str:
        """Blocks until the write finished; returns the final URI or re-raises the failure."""
        return self.future.result(timeout=timeout)


class ExportDispatcher:
    """
    Submits monthly composites as named GeoTIFF export jobs.

      name   = YYYY-MM_NDVI_<country>      (deterministic per month/AOI)
      folder = output folder template, e.g. GEE/Zambia/10m_resolution

    Destinations:
      local -> <local_root>/<folder>/<name>.tif
      gcs   -> gs://<bucket>/<folder>/<name>.tif (staged locally, then uploaded)
    """

    def __init__(
        self,
        *,
        resolution: float,
        crs: str,
        output_folder: str,
        max_pixels: int = DEFAULT_MAX_PIXELS,
        writer: RasterWriter | None = None,
        max_workers: int = 2,
        gcs_factory: Callable[[ExportConfig], GcsClient] | None = None,
    ) -> None:
        self.resolution = float(resolution)
        self.crs = crs
        self.output_folder = output_folder.strip("/")
        self.max_pixels = int(max_pixels)
        self.writer = writer or RasterWriter()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ndvi-export")
        self._gcs_factory = gcs_factory or (lambda d: GcsClient(bucket=d.bucket, credentials=d.credentials))

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------
    @staticmethod
    def job_name(window: DateWindow, country_name: str) -> str:
        return f"{window.year}-{window.month:02d}_NDVI_{country_name}"

    def _uri(self, destination: ExportConfig, file_name: str) -> str:
        if destination.destination == "gcs":
            return f"gs://{destination.bucket}/{self.output_folder}/{file_name}"
        return str(Path(destination.local_root) / self.output_folder / file_name)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def check_grid_limit(self, grid: AoiTargetGridResult, label: str = "AOI grid") -> None:
        """Raises ExportLimitError when a grid holds more pixels than max_pixels."""
        n = grid.pixel_count
        if n > self.max_pixels:
            raise ExportLimitError(
                f"{label} has {n} pixels ({grid.width}x{grid.height}), above max_pixels={self.max_pixels}"
            )

    def check_pixel_limit(self, composite: MonthlyComposite) -> None:
        self.check_grid_limit(composite.grid, label=f"Composite {composite.window.label}")

    def submit(
        self,
        composite: MonthlyComposite,
        aoi: AreaOfInterest,
        destination: ExportConfig,
    ) -> ExportJob:
        self.check_pixel_limit(composite)

        name = self.job_name(composite.window, aoi.name)
        file_name = f"{name}.tif"
        uri = self._uri(destination, file_name)

        future = self._executor.submit(self._write, composite, destination, name, uri)

        job = ExportJob(
            name=name,
            file_name=file_name,
            destination=destination.destination,
            folder=self.output_folder,
            uri=uri,
            resolution=self.resolution,
            crs=self.crs,
            region=aoi.bounds,
            max_pixels=self.max_pixels,
            future=future,
        )
        future.add_done_callback(lambda f, job=job: self._report(job, f))

        print(f"[INFO] Export job submitted: {name} -> {uri}")
        return job

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------
    def _write(self, composite: MonthlyComposite, destination: ExportConfig, name: str, uri: str) -> str:
        profile = self.writer.profile_for(composite.grid)

        if destination.destination == "local":
            out_tif = Path(uri)
            self.writer.write_geotiff(out_tif, composite.data, profile)
            if destination.preview:
                self.writer.write_preview_png(out_tif.with_suffix(".png"), composite.data)
            return uri

        staging = Path(tempfile.mkdtemp(prefix="ndvi-export-"))
        try:
            local_tif = self.writer.write_geotiff(staging / f"{name}.tif", composite.data, profile)
            gcs = self._gcs_factory(destination)
            gcs.upload(local_tif, f"{self.output_folder}/{local_tif.name}")

            if destination.preview:
                local_png = self.writer.write_preview_png(staging / f"{name}.png", composite.data)
                gcs.upload(local_png, f"{self.output_folder}/{local_png.name}")
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        return uri

    @staticmethod
    def _report(job: ExportJob, future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            print(f"[WARN] Export job {job.name} failed: {exc}")
        elif VERBOSE:
            print(f"[OK] Export job {job.name} written: {job.uri}")
