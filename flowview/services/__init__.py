"""Service modules"""
from .batch import BatchAggregator, chunk
from .catalog import CatalogResolver, resolve_types
from .inventory import InventoryService

__all__ = ["BatchAggregator", "CatalogResolver", "InventoryService", "chunk", "resolve_types"]
