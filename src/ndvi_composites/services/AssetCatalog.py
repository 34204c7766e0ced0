from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, List, Optional

import geopandas as gpd
from shapely.geometry.base import BaseGeometry

from ndvi_composites.core import settings
from ndvi_composites.core.constants import AOI_VECTOR_SUFFIXES, DEFAULT_AOI_CRS
from ndvi_composites.core.settings import VERBOSE
from ndvi_composites.utils.GcsClient import GcsClient


def dissolve_to_wgs84(gdf: gpd.GeoDataFrame, source: str) -> BaseGeometry:
    """Single AOI geometry in EPSG:4326 from any vector layer."""
    if gdf.empty:
        raise ValueError(f"AOI asset has no features: {source}")

    if gdf.crs is None:
        gdf = gdf.set_crs(DEFAULT_AOI_CRS)
    else:
        gdf = gdf.to_crs(DEFAULT_AOI_CRS)

    return gdf.geometry.union_all()


class LocalAssetCatalog:
    """
    AOI boundaries stored as vector files in a local directory.

    Listed asset ids are absolute file paths; listing is sorted so catalog
    searches do not depend on filesystem ordering. Relative folders and
    asset ids (as written in the YAML config) are anchored at `root`,
    the repo root by default, not at the working directory.
    """

    def __init__(self, root: str | Path = settings.REPO_ROOT) -> None:
        self.root = Path(root)

    def _path(self, asset_id: str | Path) -> Path:
        p = Path(asset_id).expanduser()
        return p if p.is_absolute() else self.root / p

    def list_assets(self, folder: str) -> List[str]:
        root = self._path(folder)
        if not root.is_dir():
            raise FileNotFoundError(f"AOI folder not found: {root}")

        assets = [
            str(p.resolve())
            for p in root.iterdir()
            if p.is_file() and p.suffix.lower() in AOI_VECTOR_SUFFIXES
        ]
        return sorted(assets)

    def read_geometry(self, asset_id: str) -> BaseGeometry:
        p = self._path(asset_id)
        if not p.exists():
            raise FileNotFoundError(f"AOI file not found: {p}")
        if VERBOSE:
            print(f"[INFO] Reading AOI asset: {p}")
        return dissolve_to_wgs84(gpd.read_file(p), asset_id)


class GcsAssetCatalog:
    """
    AOI boundaries stored in a GCS bucket (single-file formats: GeoJSON, GPKG).
    Asset ids are gs:// URIs.
    """

    def __init__(
        self,
        credentials: Optional[str] = None,
        client_factory: Callable[[str], GcsClient] | None = None,
    ) -> None:
        self.credentials = credentials
        self._client_factory = client_factory or (lambda bucket: GcsClient(bucket, credentials))

    def list_assets(self, folder: str) -> List[str]:
        bucket, prefix = GcsClient.split_uri(folder)
        if prefix and not prefix.endswith("/"):
            prefix += "/"

        client = self._client_factory(bucket)
        names = [
            n for n in client.list(prefix)
            if Path(n).suffix.lower() in AOI_VECTOR_SUFFIXES and Path(n).suffix.lower() != ".shp"
        ]
        return sorted(f"gs://{bucket}/{n}" for n in names)

    def read_geometry(self, asset_id: str) -> BaseGeometry:
        bucket, path = GcsClient.split_uri(asset_id)
        client = self._client_factory(bucket)

        with tempfile.TemporaryDirectory() as tmpdir:
            local = client.download(path, Path(tmpdir) / Path(path).name)
            gdf = gpd.read_file(local)

        return dissolve_to_wgs84(gdf, asset_id)
