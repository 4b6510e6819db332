"""Dependency graph over pool items."""

from poolreview.graph.builder import PoolGraphBuilder
from poolreview.graph.query import ItemStore
from poolreview.graph.store import IndexStore

__all__ = ["PoolGraphBuilder", "ItemStore", "IndexStore"]
