"""
Inventory module - items, weight and equipment.

Provides:
- Item definitions and the item catalog
- Item use effects
- The inventory ledger (weight limit, stacking, equipment)
"""

from framework.inventory.items import (
    EQUIP_SLOTS,
    BuffItemEffect,
    DamageItemEffect,
    HealItemEffect,
    ItemCatalog,
    ItemCategory,
    ItemDefinition,
    ItemEffect,
    RestoreApItemEffect,
)
from framework.inventory.ledger import InventoryLedger

__all__ = [
    # Items
    "EQUIP_SLOTS",
    "ItemCatalog",
    "ItemCategory",
    "ItemDefinition",
    "ItemEffect",
    "HealItemEffect",
    "RestoreApItemEffect",
    "BuffItemEffect",
    "DamageItemEffect",
    # Ledger
    "InventoryLedger",
]
