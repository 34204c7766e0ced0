from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from ndvi_composites.core.constants import (
    NDVI_NODATA,
    DEFAULT_S2_COLLECTION,
    EARTH_SEARCH_STAC_URL,
)

# Load .env if available (keep only here)
load_dotenv()


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


# ---------------------------------------------------------------------
# Repo roots
# ---------------------------------------------------------------------

# Root of the git repo (src/ndvi_composites/core/settings.py -> up 3 levels)
REPO_ROOT = Path(__file__).resolve().parents[3]

CONFIG_DIR = REPO_ROOT / "config"
DEFAULT_CONFIG_PATH = Path(
    os.environ.get("PIPELINE_CONFIG", str(CONFIG_DIR / "pipeline.yaml"))
)

# Local folder with AOI vector files (catalog-search mode, local catalog)
AOI_DIR = Path(os.environ.get("AOI_DIR", str(REPO_ROOT / "aoi")))

# Root for "local" export destinations
OUTPUTS_DIR = Path(os.environ.get("OUTPUTS_DIR", str(REPO_ROOT / "outputs")))

# ---------------------------------------------------------------------
# Imagery backend
# ---------------------------------------------------------------------

STAC_URL = os.environ.get("STAC_URL", EARTH_SEARCH_STAC_URL)
DEFAULT_COLLECTION = os.environ.get("DEFAULT_COLLECTION", DEFAULT_S2_COLLECTION)

# ---------------------------------------------------------------------
# Raster defaults
# ---------------------------------------------------------------------

GLOBAL_NODATA = float(os.environ.get("NDVI_NODATA", str(NDVI_NODATA)))

# ---------------------------------------------------------------------
# Cloud storage
# ---------------------------------------------------------------------

GCS_BUCKET = os.environ.get("GCS_BUCKET")
GCS_CREDENTIALS = os.environ.get("GCS_CREDENTIALS")

# ---------------------------------------------------------------------
# Export jobs
# ---------------------------------------------------------------------

EXPORT_MAX_WORKERS = int(os.environ.get("EXPORT_MAX_WORKERS", "2"))

# ---------------------------------------------------------------------
# Logging / verbosity
# ---------------------------------------------------------------------

VERBOSE = _as_bool(os.environ.get("VERBOSE"), default=False)


# ---------------------------------------------------------------------
# Debug
# ---------------------------------------------------------------------
def debug() -> None:
    print("=== SETTINGS ===")
    print("REPO_ROOT:            ", REPO_ROOT)
    print("DEFAULT_CONFIG_PATH:  ", DEFAULT_CONFIG_PATH)
    print("AOI_DIR:              ", AOI_DIR)
    print("OUTPUTS_DIR:          ", OUTPUTS_DIR)
    print("STAC_URL:             ", STAC_URL)
    print("DEFAULT_COLLECTION:   ", DEFAULT_COLLECTION)
    print("GLOBAL_NODATA:        ", GLOBAL_NODATA)
    print("GCS_BUCKET:           ", GCS_BUCKET)
    print("EXPORT_MAX_WORKERS:   ", EXPORT_MAX_WORKERS)
    print("VERBOSE:              ", VERBOSE)
    print("=================")


if __name__ == "__main__":
    debug()
