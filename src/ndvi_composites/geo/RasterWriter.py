from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import numpy as np
import rasterio
from rasterio.enums import Resampling

from ndvi_composites.core.constants import (
    DEFAULT_COMPRESS,
    DEFAULT_DRIVER,
    DEFAULT_OVERVIEWS,
    PREVIEW_PALETTE,
    PREVIEW_VMAX,
    PREVIEW_VMIN,
)
from ndvi_composites.core.settings import GLOBAL_NODATA
from ndvi_composites.geo.AoiTargetGrid import AoiTargetGridResult


@dataclass(frozen=True)
class RasterWriterConfig:
    compress: str = DEFAULT_COMPRESS
    tiled: bool = True
    overviews: tuple[int, ...] = DEFAULT_OVERVIEWS
    nodata: float = GLOBAL_NODATA


class RasterWriter:
    def __init__(self, cfg: RasterWriterConfig | None = None) -> None:
        self.cfg = cfg or RasterWriterConfig()

    def profile_for(self, grid: AoiTargetGridResult) -> dict:
        return {
            "driver": DEFAULT_DRIVER,
            "dtype": "float32",
            "count": 1,
            "crs": grid.crs,
            "transform": grid.transform,
            "width": grid.width,
            "height": grid.height,
            "nodata": self.cfg.nodata,
        }

    def write_geotiff(self, path: Path, arr: np.ndarray, profile: dict) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)

        prof = profile.copy()
        prof.update(driver=DEFAULT_DRIVER, compress=self.cfg.compress)
        # GTiff tiles must be multiples of 16; tiny rasters stay striped
        if self.cfg.tiled and min(prof["width"], prof["height"]) >= 256:
            prof.update(tiled=True, blockxsize=256, blockysize=256)

        out = np.where(np.isnan(arr), prof["nodata"], arr)

        with rasterio.open(path, "w", **prof) as dst:
            dst.write(out.astype(np.float32), 1)

            # QGIS-friendly pyramids
            factors = [f for f in self.cfg.overviews if min(prof["width"], prof["height"]) // f > 0]
            try:
                if factors:
                    dst.build_overviews(factors, Resampling.nearest)
                    dst.update_tags(ns="rio_overview", resampling="nearest")
            except Exception:
                # overviews can fail on some drivers/filesystems; not fatal
                pass

        return path

    def write_preview_png(
        self,
        path: Path,
        arr: np.ndarray,
        *,
        vmin: float = PREVIEW_VMIN,
        vmax: float = PREVIEW_VMAX,
        palette: tuple[str, ...] = PREVIEW_PALETTE,
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)

        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        from matplotlib.colors import LinearSegmentedColormap

        cmap = LinearSegmentedColormap.from_list("ndvi", list(palette))

        plt.figure(figsize=(6, 6))
        plt.imshow(np.ma.masked_invalid(arr), vmin=vmin, vmax=vmax, cmap=cmap)
        plt.axis("off")
        plt.tight_layout()
        plt.savefig(path, dpi=150, bbox_inches="tight", pad_inches=0)
        plt.close()

        return path
