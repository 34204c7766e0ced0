from __future__ import annotations

import unittest

import numpy as np

from ndvi_composites.core.constants import BAND_NDVI, BAND_NIR, BAND_RED, BAND_SCL
from ndvi_composites.geo.NdviProcessor import NdviProcessor
from tests.fixtures.generators.MiniSceneGenerator import MiniSceneGenerator


class NdviProcessorTest(unittest.TestCase):
    def setUp(self) -> None:
        self.gen = MiniSceneGenerator()
        self.ndvi = NdviProcessor()

    def test_compute_ndvi_values(self) -> None:
        red = np.array([[0.1, 0.5, 0.0]], dtype=np.float32)
        nir = np.array([[0.5, 0.1, 0.3]], dtype=np.float32)

        out = self.ndvi.compute_ndvi(red, nir)

        np.testing.assert_allclose(out, [[2.0 / 3.0, -2.0 / 3.0, 1.0]], rtol=1e-6)
        self.assertEqual(out.dtype, np.float32)

    def test_zero_denominator_is_nodata_not_error(self) -> None:
        red = np.array([[0.0, 0.2]], dtype=np.float32)
        nir = np.array([[0.0, 0.4]], dtype=np.float32)

        out = self.ndvi.compute_ndvi(red, nir)

        self.assertTrue(np.isnan(out[0, 0]))
        self.assertAlmostEqual(float(out[0, 1]), 1.0 / 3.0, places=6)

    def test_out_of_range_ndvi_is_nodata_not_clamped(self) -> None:
        # slightly negative reflectances after the L2A offset
        red = np.array([[-0.06, 0.02, -0.02, 0.1]], dtype=np.float32)
        nir = np.array([[0.05, -0.03, 0.05, 0.5]], dtype=np.float32)

        out = self.ndvi.compute_ndvi(red, nir)

        # (0.11 / -0.01) and a negative denominator
        self.assertTrue(np.isnan(out[0, 0]))
        self.assertTrue(np.isnan(out[0, 1]))
        # positive denominator, NDVI = 0.07 / 0.03
        self.assertTrue(np.isnan(out[0, 2]))
        self.assertAlmostEqual(float(out[0, 3]), 2.0 / 3.0, places=6)

    def test_nodata_inputs_propagate(self) -> None:
        red = np.array([[np.nan, 0.2]], dtype=np.float32)
        nir = np.array([[0.5, np.nan]], dtype=np.float32)
        out = self.ndvi.compute_ndvi(red, nir)
        self.assertTrue(np.isnan(out).all())

    def test_add_index_keeps_original_bands(self) -> None:
        scene = self.gen.scene("s1", red=0.1, nir=0.5)
        out = self.ndvi.add_index(scene)

        self.assertEqual(sorted(out.band_names), sorted([BAND_RED, BAND_NIR, BAND_SCL, BAND_NDVI]))
        np.testing.assert_array_equal(out.band(BAND_RED), scene.band(BAND_RED))
        np.testing.assert_allclose(out.band(BAND_NDVI), self.gen.full(2.0 / 3.0), rtol=1e-6)
        self.assertNotIn(BAND_NDVI, scene.band_names)

    def test_values_stay_within_bounds(self) -> None:
        rng = np.random.default_rng(3)
        red = rng.uniform(0, 1, size=(16, 16)).astype(np.float32)
        nir = rng.uniform(0, 1, size=(16, 16)).astype(np.float32)
        out = self.ndvi.compute_ndvi(red, nir)
        self.assertTrue(np.all(out >= -1.0) and np.all(out <= 1.0))

    def test_to_nodata(self) -> None:
        out = self.ndvi.to_nodata(np.array([[np.nan, 0.5]], dtype=np.float32))
        self.assertEqual(out.tolist(), [[-9999.0, 0.5]])


if __name__ == "__main__":
    unittest.main()
