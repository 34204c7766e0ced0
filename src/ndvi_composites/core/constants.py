from __future__ import annotations

# ---------------------------------------------------------------------
# STAC catalogue
# ---------------------------------------------------------------------

# Public Sentinel-2 COG archive on AWS (no auth needed to read assets)
EARTH_SEARCH_STAC_URL = "https://earth-search.aws.element84.com/v1"

DEFAULT_S2_COLLECTION = "sentinel-2-l2a"

# STAC asset keys on Earth Search items
ASSET_RED = "red"     # B04, 10 m
ASSET_NIR = "nir"     # B08, 10 m
ASSET_SCL = "scl"     # scene classification, 20 m

# Band names carried by Scene objects
BAND_RED = "B04"
BAND_NIR = "B08"
BAND_SCL = "SCL"
BAND_NDVI = "NDVI"

# ---------------------------------------------------------------------
# Sentinel-2 Scene Classification Layer (SCL)
# ---------------------------------------------------------------------

# ESA L2A class codes:
#   0 = No data
#   1 = Saturated / defective
#   2 = Dark area pixels
#   3 = Cloud shadows
#   4 = Vegetation
#   5 = Not vegetated
#   6 = Water
#   7 = Unclassified
#   8 = Cloud medium probability
#   9 = Cloud high probability
#  10 = Thin cirrus
#  11 = Snow / ice
SCL_NO_DATA = 0

SCL_EXCLUDED_CLASSES = (1, 2, 3, 7, 8, 9, 10, 11)

# ---------------------------------------------------------------------
# Scene metadata filtering
# ---------------------------------------------------------------------

# 100 keeps every scene; lower it to actually pre-filter on eo:cloud_cover
DEFAULT_CLOUD_COVER_MAX = 100.0

# None = no cap: every item of the month is returned (paged by pystac-client)
DEFAULT_MAX_ITEMS = None

# ---------------------------------------------------------------------
# Raster / export defaults
# ---------------------------------------------------------------------

NDVI_NODATA = -9999.0

DEFAULT_CRS = "EPSG:4326"
DEFAULT_RESOLUTION = 10.0  # meters

DEFAULT_MAX_PIXELS = int(1e9)

DEFAULT_OUTPUT_FOLDER = "GEE/{country}/{resolution}m_resolution"

DEFAULT_DRIVER = "GTiff"
DEFAULT_COMPRESS = "deflate"
DEFAULT_OVERVIEWS = (2, 4, 8, 16)  # for QGIS-friendly pyramids

# meters per degree of latitude, used when the target CRS is geographic
METERS_PER_DEGREE = 111_320.0

# ---------------------------------------------------------------------
# Preview rendering (same stretch as the GEE map layer)
# ---------------------------------------------------------------------

PREVIEW_VMIN = -1.0
PREVIEW_VMAX = 0.8
PREVIEW_PALETTE = ("brown", "white", "green")

# ---------------------------------------------------------------------
# AOI defaults
# ---------------------------------------------------------------------

DEFAULT_AOI_CRS = "EPSG:4326"

AOI_VECTOR_SUFFIXES = (".geojson", ".json", ".gpkg", ".shp")
