from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

from ndvi_composites.core.constants import DEFAULT_MAX_ITEMS
from ndvi_composites.core.settings import DEFAULT_COLLECTION

@dataclass(frozen=True)
class StacQueryParams:
    collection: str = DEFAULT_COLLECTION
    cloud_cover_max: Optional[float] = None  # None = no eo:cloud_cover filter
    max_items: Optional[int] = DEFAULT_MAX_ITEMS  # None = no cap
