from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path
from typing import List, Optional

from ndvi_composites.core.pipeline_config import PipelineConfig, load_pipeline_config
from ndvi_composites.core.settings import DEFAULT_CONFIG_PATH
from ndvi_composites.pipelines.BuildNdviMonthlyCompositesPipeline import (
    BuildNdviMonthlyCompositesPipeline,
)
from ndvi_composites.utils.log_parameters import log_parameters


PARAMETER_DOCS = {
    "country_name": "Country/site name used to resolve the AOI and name exports.",
    "start_year": "First year of the range.",
    "start_month": "First month of the range (inclusive).",
    "end_year": "Year of the end month (None = single month).",
    "end_month": "End month of the range (exclusive, None = single month).",
    "resolution": "Output pixel size in meters.",
    "crs": "Output coordinate reference system.",
    "output_folder": "Destination folder template ({country}, {resolution}).",
    "max_pixels": "Export pixel-count ceiling.",
    "filter_cloud": "Pre-filter scenes on eo:cloud_cover.",
    "cloud_cover_max": "Scene cloud percentage ceiling used by the pre-filter.",
    "scene_order": "Stack order for the first-valid mosaic.",
    "max_items": "STAC item cap per month (None = all items).",
    "aoi.mode": "AOI resolution strategy (dictionary | catalog).",
    "export.destination": "Where composites are written (local | gcs).",
}


def _parse_month(label: str) -> tuple[int, int]:
    try:
        y, m = label.split("-")
        return int(y), int(m)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Expected YYYY-MM, got {label!r}") from e


def apply_cli_overrides(cfg: PipelineConfig, args: argparse.Namespace) -> PipelineConfig:
    changes = {}

    if args.country:
        changes["country_name"] = args.country
    if args.start:
        changes["start_year"], changes["start_month"] = args.start
        # a new start without an end means a single month
        changes["end_year"], changes["end_month"] = None, None
    if args.end:
        changes["end_year"], changes["end_month"] = args.end
    if args.resolution is not None:
        changes["resolution"] = args.resolution
    if args.crs:
        changes["crs"] = args.crs
    if args.no_cloud_filter:
        changes["filter_cloud"] = False
    if args.cloud_cover_max is not None:
        changes["cloud_cover_max"] = args.cloud_cover_max
    if args.max_scenes is not None:
        changes["max_scenes"] = args.max_scenes
    if args.max_items is not None:
        changes["max_items"] = args.max_items

    export_changes = {}
    if args.destination:
        export_changes["destination"] = args.destination
    if args.bucket:
        export_changes["bucket"] = args.bucket
    if args.preview:
        export_changes["preview"] = True
    if export_changes:
        changes["export"] = dataclasses.replace(cfg.export, **export_changes)

    return dataclasses.replace(cfg, **changes) if changes else cfg


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Build cloud-free monthly Sentinel-2 NDVI composites (first-valid mosaic) "
                    "for an AOI and export one GeoTIFF per month."
    )

    p.add_argument("--config", default=str(DEFAULT_CONFIG_PATH), help="Pipeline YAML config.")
    p.add_argument("--country", default=None, help="Override country_name.")
    p.add_argument("--start", type=_parse_month, default=None, help="First month, YYYY-MM.")
    p.add_argument("--end", type=_parse_month, default=None, help="End month (exclusive), YYYY-MM.")
    p.add_argument("--resolution", type=float, default=None, help="Pixel size in meters.")
    p.add_argument("--crs", default=None, help="Output CRS, e.g. EPSG:4326.")
    p.add_argument("--no-cloud-filter", action="store_true", help="Disable eo:cloud_cover pre-filter.")
    p.add_argument("--cloud-cover-max", type=float, default=None)
    p.add_argument("--max-scenes", type=int, default=None, help="Max scenes per month.")
    p.add_argument("--max-items", type=int, default=None, help="STAC item cap per month search.")

    p.add_argument("--destination", choices=["local", "gcs"], default=None)
    p.add_argument("--bucket", default=None, help="GCS bucket for destination 'gcs'.")
    p.add_argument("--preview", action="store_true", help="Also write PNG previews.")
    p.add_argument(
        "--no-wait",
        action="store_true",
        help="Do not wait for pending export jobs before exiting.",
    )
    return p


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    cfg = apply_cli_overrides(load_pipeline_config(Path(args.config)), args)

    log_parameters(
        "BuildNdviMonthlyComposites",
        cfg,
        PARAMETER_DOCS,
        extra={"config": args.config},
    )

    pipe = BuildNdviMonthlyCompositesPipeline()
    try:
        jobs = pipe.run(cfg)
    finally:
        pipe.close(wait=not args.no_wait)

    for job in jobs:
        status = "done" if job.done() else "pending"
        print(f"[OUTPUT] {job.name} ({status}): {job.uri}")


if __name__ == "__main__":
    main()
