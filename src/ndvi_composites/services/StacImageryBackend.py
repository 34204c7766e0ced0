from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import rasterio
from rasterio.enums import Resampling
from rasterio.vrt import WarpedVRT
from pystac_client import Client

from ndvi_composites.core.constants import (
    ASSET_NIR,
    ASSET_RED,
    ASSET_SCL,
    BAND_NIR,
    BAND_RED,
    BAND_SCL,
)
from ndvi_composites.core.params import StacQueryParams
from ndvi_composites.core.settings import STAC_URL, VERBOSE
from ndvi_composites.geo.AoiTargetGrid import AoiTargetGridResult
from ndvi_composites.geo.AreaOfInterest import AreaOfInterest
from ndvi_composites.geo.Scene import Scene, SceneRef
from ndvi_composites.utils.DateRange import DateWindow


# band name on Scene -> (STAC asset key, resampling)
DEFAULT_BAND_ASSETS: Dict[str, Tuple[str, Resampling]] = {
    BAND_RED: (ASSET_RED, Resampling.bilinear),
    BAND_NIR: (ASSET_NIR, Resampling.bilinear),
    BAND_SCL: (ASSET_SCL, Resampling.nearest),  # categorical
}

# GDAL options for reading public COGs over HTTP
GDAL_HTTP_ENV = {
    "GDAL_DISABLE_READDIR_ON_OPEN": "EMPTY_DIR",
    "CPL_VSIL_CURL_ALLOWED_EXTENSIONS": ".tif,.TIF,.tiff",
    "AWS_NO_SIGN_REQUEST": "YES",
}


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _window_bounds(window: DateWindow) -> Tuple[datetime, datetime]:
    start = datetime.combine(window.start, time.min, tzinfo=timezone.utc)
    end = datetime.combine(window.end, time.min, tzinfo=timezone.utc)
    return start, end


def stac_datetime_range(window: DateWindow) -> str:
    """
    STAC datetime intervals are closed on both ends, so the half-open month
    [start, end) is queried as [start, end] and items at exactly `end` are
    dropped afterwards (see in_window).
    """
    start, end = _window_bounds(window)
    return f"{start:%Y-%m-%dT%H:%M:%SZ}/{end:%Y-%m-%dT%H:%M:%SZ}"


def in_window(acquired: datetime, window: DateWindow) -> bool:
    start, end = _window_bounds(window)
    return start <= _to_utc(acquired) < end


def _scale_offset(asset_extra: Mapping[str, Any]) -> Tuple[float, float]:
    """
    Reflectance scale/offset from the STAC raster extension, if present.
    Processing baseline >= 04.00 products carry offset -0.1 (DN 1000).
    """
    bands = asset_extra.get("raster:bands") or []
    if not bands:
        return 1.0, 0.0
    b0 = bands[0] or {}
    return float(b0.get("scale", 1.0)), float(b0.get("offset", 0.0))


class StacImageryBackend:
    """
    Imagery backend on top of a STAC API with Sentinel-2 L2A COG assets.

    Owns:
      - space/time (+ optional eo:cloud_cover) catalogue search
      - converting STAC items -> SceneRef
      - reading red/nir/scl assets warped onto the AOI target grid

    Does NOT own:
      - masking / indices / compositing
      - export
      - pipeline orchestration
    """

    def __init__(
        self,
        stac_url: str = STAC_URL,
        band_assets: Optional[Dict[str, Tuple[str, Resampling]]] = None,
        client: Any = None,
    ) -> None:
        self.stac_url = stac_url
        self.band_assets = band_assets or DEFAULT_BAND_ASSETS
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = Client.open(self.stac_url)
        return self._client

    # ------------------------------------------------------------------
    # STAC query
    # ------------------------------------------------------------------
    def search(
        self,
        aoi: AreaOfInterest,
        window: DateWindow,
        params: Optional[StacQueryParams] = None,
    ) -> List[SceneRef]:
        p = params or StacQueryParams()
        dt_range = stac_datetime_range(window)

        if VERBOSE:
            print("[INFO] STAC URL:", self.stac_url)
            print("[INFO] Collection:", p.collection)
            print("[INFO] Date range:", dt_range)
            print("[INFO] Cloud cover <=", p.cloud_cover_max)
            print("[INFO] Max items:", p.max_items)

        query = (
            {"eo:cloud_cover": {"lte": p.cloud_cover_max}}
            if p.cloud_cover_max is not None
            else None
        )

        search = self.client.search(
            collections=[p.collection],
            intersects=aoi.to_geojson(),
            datetime=dt_range,
            query=query,
            max_items=p.max_items,
        )

        refs = self.items_to_refs(search.items())

        if p.max_items is not None and len(refs) >= p.max_items:
            # pystac-client stops in server page order, before any time ordering
            print(
                f"[WARN] STAC search for {window.label} hit max_items={p.max_items}; "
                "scenes beyond the cap are dropped. Raise or unset max_items."
            )

        return [r for r in refs if in_window(r.acquired, window)]

    def items_to_refs(self, items: Sequence[Any]) -> List[SceneRef]:
        """pystac Items -> SceneRefs (only band assets we know how to read)."""
        refs: List[SceneRef] = []
        for it in items:
            props = it.properties or {}
            acquired = it.datetime or pd.to_datetime(props.get("datetime"), utc=True).to_pydatetime()

            assets: Dict[str, str] = {}
            extra: Dict[str, Any] = {}
            for band, (key, _) in self.band_assets.items():
                asset = it.assets.get(key)
                if asset is None:
                    continue
                assets[band] = asset.href
                extra[band] = dict(asset.extra_fields or {})

            cloud = props.get("eo:cloud_cover", props.get("cloud_cover"))
            refs.append(
                SceneRef(
                    scene_id=it.id,
                    acquired=_to_utc(acquired),
                    cloud_cover=None if cloud is None else float(cloud),
                    assets=assets,
                    extra=extra,
                )
            )
        return refs

    # ------------------------------------------------------------------
    # Pixel access
    # ------------------------------------------------------------------
    def read_band(
        self,
        href: str,
        grid: AoiTargetGridResult,
        resampling: Resampling,
    ) -> np.ndarray:
        """
        Reads one asset on the target grid (float32, NaN = no-data).
        WarpedVRT only fetches the COG blocks/overviews covering the AOI.
        """
        with rasterio.Env(**GDAL_HTTP_ENV):
            with rasterio.open(href) as src:
                src_nodata = src.nodata if src.nodata is not None else 0

                with WarpedVRT(
                    src,
                    crs=grid.crs,
                    transform=grid.transform,
                    width=grid.width,
                    height=grid.height,
                    resampling=resampling,
                    src_nodata=src_nodata,
                    nodata=src_nodata,
                ) as vrt:
                    arr = vrt.read(1, masked=True)

        return arr.astype(np.float32).filled(np.nan)

    def load(self, ref: SceneRef, grid: AoiTargetGridResult) -> Scene:
        missing = [b for b in self.band_assets if b not in ref.assets]
        if missing:
            raise KeyError(f"Scene {ref.scene_id} is missing assets for bands {missing}")

        bands: Dict[str, np.ndarray] = {}
        for band, (_, resampling) in self.band_assets.items():
            arr = self.read_band(ref.assets[band], grid, resampling)
            if band != BAND_SCL:
                scale, offset = _scale_offset(ref.extra.get(band, {}))
                arr = arr * np.float32(scale) + np.float32(offset)
            bands[band] = arr.astype(np.float32)

        return Scene(
            scene_id=ref.scene_id,
            acquired=ref.acquired,
            cloud_cover=ref.cloud_cover,
            bands=bands,
            grid=grid,
        )
