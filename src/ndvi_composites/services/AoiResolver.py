from __future__ import annotations

from pathlib import PurePosixPath
from typing import List, Mapping

from ndvi_composites.core.errors import AmbiguousAoiError, NotFoundError
from ndvi_composites.core.pipeline_config import AoiConfig
from ndvi_composites.core.settings import GCS_CREDENTIALS, VERBOSE
from ndvi_composites.geo.AreaOfInterest import AreaOfInterest
from ndvi_composites.services.AssetCatalog import GcsAssetCatalog, LocalAssetCatalog


def _asset_basename(asset_id: str) -> str:
    # works for local paths, gs:// URIs and catalog-style ids alike
    return PurePosixPath(asset_id.replace("\\", "/")).name


def _asset_stem(asset_id: str) -> str:
    return PurePosixPath(_asset_basename(asset_id)).stem


class DictionaryAoiResolver:
    """
    Name -> asset path lookup in a mapping injected from configuration.
    The catalog is only used to read the geometry of the configured asset.
    """

    def __init__(self, assets: Mapping[str, str], catalog) -> None:
        self.assets = dict(assets)
        self.catalog = catalog

    def resolve(self, country_name: str) -> AreaOfInterest:
        asset_id = self.assets.get(country_name)
        if asset_id is None:
            known = ", ".join(sorted(self.assets)) or "<none>"
            raise NotFoundError(
                f"No AOI asset configured for {country_name!r}. Known names: {known}"
            )

        geom = self.catalog.read_geometry(asset_id)
        return AreaOfInterest(name=country_name, asset_id=asset_id, geometry=geom)


class CatalogAoiResolver:
    """
    Lists every asset in a catalog folder and picks the one whose file name
    contains the requested name.

    Tie-break: a file whose stem equals the name wins; any other multiple
    match raises AmbiguousAoiError, unless on_ambiguous="first" (then the
    lexicographically first candidate is used).
    """

    def __init__(self, catalog, folder: str, on_ambiguous: str = "error") -> None:
        self.catalog = catalog
        self.folder = folder
        self.on_ambiguous = on_ambiguous

    def find_matches(self, country_name: str) -> List[str]:
        assets = sorted(self.catalog.list_assets(self.folder))
        return [a for a in assets if country_name in _asset_basename(a)]

    def resolve(self, country_name: str) -> AreaOfInterest:
        matches = self.find_matches(country_name)

        if not matches:
            raise NotFoundError(
                f"No asset in {self.folder} matches the partial filename: {country_name}"
            )

        if len(matches) > 1:
            exact = [a for a in matches if _asset_stem(a) == country_name]
            if len(exact) == 1:
                matches = exact
            elif self.on_ambiguous == "first":
                print(f"[WARN] {len(matches)} AOI assets match {country_name!r}; using {matches[0]}")
            else:
                raise AmbiguousAoiError(country_name, matches)

        asset_id = matches[0]
        if VERBOSE:
            print(f"[INFO] AOI {country_name!r} resolved to {asset_id}")

        geom = self.catalog.read_geometry(asset_id)
        return AreaOfInterest(name=country_name, asset_id=asset_id, geometry=geom)


def build_aoi_resolver(cfg: AoiConfig, catalog=None):
    """Resolver for the configured mode; `catalog` overrides the configured one."""
    if catalog is None:
        if cfg.catalog == "gcs":
            catalog = GcsAssetCatalog(credentials=GCS_CREDENTIALS)
        else:
            catalog = LocalAssetCatalog()

    if cfg.mode == "dictionary":
        return DictionaryAoiResolver(cfg.assets, catalog)
    return CatalogAoiResolver(catalog, cfg.folder, on_ambiguous=cfg.on_ambiguous)
