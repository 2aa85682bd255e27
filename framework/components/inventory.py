"""
Inventory components - item stacks, equipment slots.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from pydantic import Field

from engine.core.component import Component, register_component


class EquipmentSlot(Enum):
    """Equipment slot types."""
    WEAPON = auto()
    ARMOR = auto()


@dataclass
class ItemStack:
    """
    One inventory entry.

    Attributes:
        item_id: Reference to item definition
        count: Number of items in the entry (always > 0 while held)
    """
    item_id: str = ""
    count: int = 1

    @property
    def is_empty(self) -> bool:
        """Check if stack is empty."""
        return self.count <= 0


@register_component
class Inventory(Component):
    """
    Ordered list of held item stacks.

    Only InventoryLedger mutates this; it enforces the weight limit.
    """
    entries: list[ItemStack] = Field(default_factory=list)

    def find(self, item_id: str) -> Optional[ItemStack]:
        """First entry for an item."""
        for entry in self.entries:
            if entry.item_id == item_id:
                return entry
        return None

    def count_item(self, item_id: str) -> int:
        """Count total quantity of an item."""
        return sum(e.count for e in self.entries if e.item_id == item_id)


@register_component
class Equipment(Component):
    """
    Equipped items by slot. Each slot holds one item id or None.
    """
    weapon: Optional[str] = None
    armor: Optional[str] = None

    def get(self, slot: EquipmentSlot) -> Optional[str]:
        return self.weapon if slot == EquipmentSlot.WEAPON else self.armor

    def set(self, slot: EquipmentSlot, item_id: Optional[str]) -> None:
        if slot == EquipmentSlot.WEAPON:
            self.weapon = item_id
        else:
            self.armor = item_id
