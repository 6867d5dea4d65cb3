"""
Catalog Module
==============

Catalog entries every pack draw and election reads from.

Exports:
- CatalogService: catalog reads, admin writes and subscriptions
"""

from .service import CATALOG_COLLECTION, CatalogService

__all__ = ["CatalogService", "CATALOG_COLLECTION"]
