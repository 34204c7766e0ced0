from __future__ import annotations

import dataclasses
import tempfile
import unittest
from pathlib import Path

import yaml

from ndvi_composites.core import settings
from ndvi_composites.core.errors import ConfigError
from ndvi_composites.core.pipeline_config import (
    AoiConfig,
    ExportConfig,
    PipelineConfig,
    load_pipeline_config,
)
from ndvi_composites.entrypoints.BuildNdviMonthlyComposites import (
    apply_cli_overrides,
    build_parser,
)


BASE = {
    "country_name": "Zambia",
    "start_year": 2020,
    "start_month": 2,
}


class PipelineConfigTest(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = PipelineConfig.from_raw(BASE)

        self.assertIsNone(cfg.end_year)
        self.assertIsNone(cfg.end_month)
        self.assertEqual(cfg.resolution, 10.0)
        self.assertEqual(cfg.crs, "EPSG:4326")
        self.assertEqual(cfg.max_pixels, 1_000_000_000)
        self.assertTrue(cfg.filter_cloud)
        self.assertEqual(cfg.scene_order, "time")
        self.assertEqual(cfg.aoi.mode, "dictionary")
        self.assertEqual(cfg.export.destination, "local")
        # no STAC item cap unless configured
        self.assertIsNone(cfg.max_items)

    def test_output_folder_resolved(self) -> None:
        cfg = PipelineConfig.from_raw(BASE)
        self.assertEqual(cfg.output_folder_resolved, "GEE/Zambia/10m_resolution")

        cfg = PipelineConfig.from_raw({**BASE, "resolution": 2.5, "output_folder": "ndvi/{country}_{resolution}"})
        self.assertEqual(cfg.output_folder_resolved, "ndvi/Zambia_2.5")

    def test_max_pixels_accepts_scientific_notation(self) -> None:
        cfg = PipelineConfig.from_raw({**BASE, "max_pixels": "1e7"})
        self.assertEqual(cfg.max_pixels, 10_000_000)

    def test_missing_key_raises_config_error(self) -> None:
        with self.assertRaises(ConfigError):
            PipelineConfig.from_raw({"country_name": "Zambia", "start_year": 2020})

    def test_invalid_values(self) -> None:
        bad = [
            {"start_month": 13},
            {"end_year": 2019, "end_month": 5},
            {"resolution": 0},
            {"cloud_cover_max": 120},
            {"scene_order": "random"},
            {"country_name": ""},
            {"aoi": {"mode": "regex"}},
            {"export": {"destination": "s3"}},
            {"max_items": 0},
        ]
        for override in bad:
            with self.subTest(override=override):
                with self.assertRaises(ConfigError):
                    PipelineConfig.from_raw({**BASE, **override})

    def test_max_items_from_config(self) -> None:
        self.assertEqual(PipelineConfig.from_raw({**BASE, "max_items": 2000}).max_items, 2000)
        self.assertIsNone(PipelineConfig.from_raw({**BASE, "max_items": None}).max_items)

    def test_gcs_catalog_needs_gs_uris(self) -> None:
        with self.assertRaises(ConfigError):
            AoiConfig(mode="dictionary", catalog="gcs", assets={"Zambia": "aoi/Zambia.geojson"})
        with self.assertRaises(ConfigError):
            AoiConfig(mode="catalog", catalog="gcs", folder="aoi")
        with self.assertRaises(ConfigError):
            PipelineConfig.from_raw({**BASE, "aoi": {"catalog": "gcs", "assets": {"Zambia": "aoi/Zambia.geojson"}}})

        ok = AoiConfig(mode="dictionary", catalog="gcs", assets={"Zambia": "gs://b/aoi/Zambia.geojson"})
        self.assertEqual(ok.assets["Zambia"], "gs://b/aoi/Zambia.geojson")
        self.assertEqual(AoiConfig(mode="catalog", catalog="gcs", folder="gs://b/aoi").folder, "gs://b/aoi")

    def test_gcs_destination_needs_bucket(self) -> None:
        with self.assertRaises(ConfigError):
            ExportConfig(destination="gcs", bucket=None)
        self.assertEqual(ExportConfig(destination="gcs", bucket="b").bucket, "b")

    def test_config_is_immutable(self) -> None:
        cfg = PipelineConfig.from_raw(BASE)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            cfg.country_name = "Malawi"

    def test_load_from_yaml(self) -> None:
        raw = {
            **BASE,
            "end_year": 2020,
            "end_month": 5,
            "aoi": {"mode": "catalog", "folder": "aoi", "on_ambiguous": "first"},
            "export": {"destination": "local", "local_root": "out", "preview": True},
        }
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "pipeline.yaml"
            path.write_text(yaml.safe_dump(raw), encoding="utf-8")
            cfg = load_pipeline_config(path)

        self.assertEqual((cfg.end_year, cfg.end_month), (2020, 5))
        self.assertEqual(cfg.aoi.mode, "catalog")
        self.assertEqual(cfg.aoi.on_ambiguous, "first")
        # relative to the repo root, not the working directory
        self.assertEqual(cfg.export.local_root, settings.REPO_ROOT / "out")
        self.assertTrue(cfg.export.preview)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_pipeline_config(Path("does/not/exist.yaml"))


class CliOverridesTest(unittest.TestCase):
    def setUp(self) -> None:
        self.cfg = PipelineConfig.from_raw({**BASE, "end_year": 2020, "end_month": 6})
        self.parser = build_parser()

    def test_no_overrides_returns_same_config(self) -> None:
        args = self.parser.parse_args([])
        self.assertIs(apply_cli_overrides(self.cfg, args), self.cfg)

    def test_start_without_end_means_single_month(self) -> None:
        args = self.parser.parse_args(["--start", "2021-07"])
        cfg = apply_cli_overrides(self.cfg, args)
        self.assertEqual((cfg.start_year, cfg.start_month), (2021, 7))
        self.assertIsNone(cfg.end_year)

    def test_overrides(self) -> None:
        args = self.parser.parse_args([
            "--country", "Malawi",
            "--start", "2020-01",
            "--end", "2020-04",
            "--resolution", "20",
            "--no-cloud-filter",
            "--max-scenes", "3",
            "--max-items", "800",
            "--destination", "gcs",
            "--bucket", "my-bucket",
        ])
        cfg = apply_cli_overrides(self.cfg, args)

        self.assertEqual(cfg.country_name, "Malawi")
        self.assertEqual((cfg.end_year, cfg.end_month), (2020, 4))
        self.assertEqual(cfg.resolution, 20.0)
        self.assertFalse(cfg.filter_cloud)
        self.assertEqual(cfg.max_scenes, 3)
        self.assertEqual(cfg.max_items, 800)
        self.assertEqual(cfg.export.destination, "gcs")
        self.assertEqual(cfg.export.bucket, "my-bucket")

    def test_override_is_validated(self) -> None:
        args = self.parser.parse_args(["--cloud-cover-max", "150"])
        with self.assertRaises(ConfigError):
            apply_cli_overrides(self.cfg, args)


if __name__ == "__main__":
    unittest.main()
