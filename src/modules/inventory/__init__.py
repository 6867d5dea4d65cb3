"""
Inventory Module
================

Exports:
- InventoryService: per-user owned instances
- inventory_collection: store path of a user's inventory
"""

from .service import InventoryService, inventory_collection

__all__ = ["InventoryService", "inventory_collection"]
