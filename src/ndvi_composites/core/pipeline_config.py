from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from ndvi_composites.core import settings
from ndvi_composites.core.constants import (
    DEFAULT_CLOUD_COVER_MAX,
    DEFAULT_CRS,
    DEFAULT_MAX_ITEMS,
    DEFAULT_MAX_PIXELS,
    DEFAULT_OUTPUT_FOLDER,
    DEFAULT_RESOLUTION,
)
from ndvi_composites.core.errors import ConfigError


_AOI_MODES = {"dictionary", "catalog"}
_AOI_CATALOGS = {"local", "gcs"}
_ON_AMBIGUOUS = {"error", "first"}
_DESTINATIONS = {"local", "gcs"}
_SCENE_ORDERS = {"time", "cloud_then_time", "as_returned"}


def _check_choice(key: str, value: str, allowed: set[str]) -> str:
    if value not in allowed:
        raise ConfigError(f"Invalid {key}={value!r}. Allowed values: {sorted(allowed)}")
    return value


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def _anchor(path: Any) -> Path:
    # relative paths in the YAML are relative to the repo, not the working directory
    p = Path(path).expanduser()
    return p if p.is_absolute() else settings.REPO_ROOT / p


@dataclass(frozen=True)
class AoiConfig:
    mode: str = "dictionary"
    # country/site name -> asset path (dictionary mode)
    assets: Mapping[str, str] = field(default_factory=dict)
    # folder listed in catalog mode (directory or gs:// prefix)
    folder: str = ""
    catalog: str = "local"
    on_ambiguous: str = "error"

    def __post_init__(self) -> None:
        _check_choice("aoi.mode", self.mode, _AOI_MODES)
        _check_choice("aoi.catalog", self.catalog, _AOI_CATALOGS)
        _check_choice("aoi.on_ambiguous", self.on_ambiguous, _ON_AMBIGUOUS)

        if self.catalog != "gcs":
            return
        # a GCS catalog only understands gs:// ids
        if self.mode == "dictionary":
            local = sorted(name for name, path in self.assets.items() if not str(path).startswith("gs://"))
            if local:
                raise ConfigError(
                    f"aoi.catalog is 'gcs' but aoi.assets for {local} are not gs:// URIs"
                )
        elif not self.folder.startswith("gs://"):
            raise ConfigError(
                f"aoi.catalog is 'gcs' but aoi.folder={self.folder!r} is not a gs:// prefix"
            )

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "AoiConfig":
        return cls(
            mode=raw.get("mode", "dictionary"),
            assets=dict(raw.get("assets") or {}),
            folder=str(raw.get("folder") or settings.AOI_DIR),
            catalog=raw.get("catalog", "local"),
            on_ambiguous=raw.get("on_ambiguous", "error"),
        )


@dataclass(frozen=True)
class ExportConfig:
    destination: str = "local"
    local_root: Path = settings.OUTPUTS_DIR
    bucket: Optional[str] = settings.GCS_BUCKET
    credentials: Optional[str] = settings.GCS_CREDENTIALS
    preview: bool = False
    max_workers: int = settings.EXPORT_MAX_WORKERS

    def __post_init__(self) -> None:
        _check_choice("export.destination", self.destination, _DESTINATIONS)
        if self.destination == "gcs" and not self.bucket:
            raise ConfigError("export.bucket (or GCS_BUCKET) is required for destination 'gcs'")

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "ExportConfig":
        return cls(
            destination=raw.get("destination", "local"),
            local_root=_anchor(raw.get("local_root") or settings.OUTPUTS_DIR),
            bucket=raw.get("bucket") or settings.GCS_BUCKET,
            credentials=raw.get("credentials") or settings.GCS_CREDENTIALS,
            preview=bool(raw.get("preview", False)),
            max_workers=int(raw.get("max_workers", settings.EXPORT_MAX_WORKERS)),
        )


@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable run configuration for the monthly NDVI composite pipeline.
    Built once from YAML (+ CLI overrides) and passed to the pipeline.
    """

    country_name: str
    start_year: int
    start_month: int
    end_year: Optional[int] = None
    end_month: Optional[int] = None

    resolution: float = DEFAULT_RESOLUTION
    crs: str = DEFAULT_CRS
    output_folder: str = DEFAULT_OUTPUT_FOLDER
    max_pixels: int = DEFAULT_MAX_PIXELS

    filter_cloud: bool = True
    cloud_cover_max: float = DEFAULT_CLOUD_COVER_MAX
    max_scenes: Optional[int] = None
    scene_order: str = "time"
    # STAC item cap per month search (None = no cap)
    max_items: Optional[int] = DEFAULT_MAX_ITEMS

    stac_url: str = settings.STAC_URL
    collection: str = settings.DEFAULT_COLLECTION

    aoi: AoiConfig = field(default_factory=AoiConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    debug: bool = False

    def __post_init__(self) -> None:
        if not self.country_name:
            raise ConfigError("country_name must be set")
        for key in ("start_month", "end_month"):
            value = getattr(self, key)
            if value is not None and not 1 <= value <= 12:
                raise ConfigError(f"{key} must be in 1..12, got {value}")
        if self.end_year is not None and self.end_month is not None:
            if (self.end_year, self.end_month) < (self.start_year, self.start_month):
                raise ConfigError("end_year/end_month must not precede start_year/start_month")
        if self.resolution <= 0:
            raise ConfigError(f"resolution must be positive, got {self.resolution}")
        if not 0 <= self.cloud_cover_max <= 100:
            raise ConfigError(f"cloud_cover_max must be in [0, 100], got {self.cloud_cover_max}")
        _check_choice("scene_order", self.scene_order, _SCENE_ORDERS)
        if self.max_items is not None and self.max_items <= 0:
            raise ConfigError(f"max_items must be positive or empty, got {self.max_items}")

    @property
    def output_folder_resolved(self) -> str:
        res = self.resolution
        res_txt = str(int(res)) if float(res).is_integer() else str(res)
        return self.output_folder.format(country=self.country_name, resolution=res_txt)

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PipelineConfig":
        try:
            return cls(
                country_name=str(raw.get("country_name") or ""),
                start_year=int(raw["start_year"]),
                start_month=int(raw["start_month"]),
                end_year=_optional_int(raw.get("end_year")),
                end_month=_optional_int(raw.get("end_month")),
                resolution=float(raw.get("resolution", DEFAULT_RESOLUTION)),
                crs=str(raw.get("crs", DEFAULT_CRS)),
                output_folder=str(raw.get("output_folder", DEFAULT_OUTPUT_FOLDER)),
                max_pixels=int(float(raw.get("max_pixels", DEFAULT_MAX_PIXELS))),
                filter_cloud=bool(raw.get("filter_cloud", True)),
                cloud_cover_max=float(raw.get("cloud_cover_max", DEFAULT_CLOUD_COVER_MAX)),
                max_scenes=_optional_int(raw.get("max_scenes")),
                max_items=_optional_int(raw.get("max_items", DEFAULT_MAX_ITEMS)),
                scene_order=str(raw.get("scene_order", "time")),
                stac_url=str(raw.get("stac_url", settings.STAC_URL)),
                collection=str(raw.get("collection", settings.DEFAULT_COLLECTION)),
                aoi=AoiConfig.from_raw(raw.get("aoi") or {}),
                export=ExportConfig.from_raw(raw.get("export") or {}),
                debug=bool(raw.get("debug", False)),
            )
        except KeyError as e:
            raise ConfigError(f"Missing required config key: {e.args[0]}") from e


def load_pipeline_config(path: Optional[Path] = None) -> PipelineConfig:
    cfg_path = Path(path or settings.DEFAULT_CONFIG_PATH)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Missing pipeline config: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        data: Dict[str, Any] = yaml.safe_load(f) or {}
    return PipelineConfig.from_raw(data)
