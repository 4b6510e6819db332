"""Pool item models and the loader that reads them from disk."""

from poolreview.pool.loader import LoadResult, load_pool
from poolreview.pool.models import ItemRef, ItemType, PartAttribute

__all__ = ["ItemRef", "ItemType", "LoadResult", "PartAttribute", "load_pool"]
