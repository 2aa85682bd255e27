"""
Item system - item definitions and catalog.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from framework.components.combat import DamageRange
from framework.components.inventory import EquipmentSlot


class ItemCategory(Enum):
    """Item categories."""
    WEAPON = auto()
    ARMOR = auto()
    CONSUMABLE = auto()
    AMMO = auto()
    MISC = auto()
    QUEST = auto()


EQUIP_SLOTS = {
    ItemCategory.WEAPON: EquipmentSlot.WEAPON,
    ItemCategory.ARMOR: EquipmentSlot.ARMOR,
}


class _ItemEffectBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')


class HealItemEffect(_ItemEffectBase):
    type: Literal["heal"] = "heal"
    amount: int


class RestoreApItemEffect(_ItemEffectBase):
    type: Literal["restore_ap"] = "restore_ap"
    amount: int


class BuffItemEffect(_ItemEffectBase):
    """Direct attribute change; not time-limited."""
    type: Literal["buff"] = "buff"
    attribute: str
    amount: int


class DamageItemEffect(_ItemEffectBase):
    type: Literal["damage"] = "damage"
    amount: int


ItemEffect = Annotated[
    Union[HealItemEffect, RestoreApItemEffect, BuffItemEffect, DamageItemEffect],
    Field(discriminator="type"),
]

_item_effects_adapter = TypeAdapter(list[ItemEffect])


@dataclass(frozen=True)
class ItemDefinition:
    """Complete, immutable item definition."""
    id: str
    name: str
    description: str = ""
    category: ItemCategory = ItemCategory.MISC

    # Weight / value
    weight: float = 0.0
    value: int = 0
    stackable: bool = True

    # Weapons
    weapon_type: Optional[str] = None
    damage: Optional[DamageRange] = None
    range: Optional[float] = None
    ammo_type: Optional[str] = None

    # Armor
    defense: int = 0

    # Consumables
    effects: tuple[ItemEffect, ...] = field(default_factory=tuple)
    use_message: str = ""

    @property
    def equip_slot(self) -> Optional[EquipmentSlot]:
        return EQUIP_SLOTS.get(self.category)

    @property
    def is_melee(self) -> bool:
        return self.weapon_type == "melee"


class ItemCatalog:
    """
    Catalog of all item definitions.
    """

    def __init__(self):
        self._items: dict[str, ItemDefinition] = {}
        self.logger = logging.getLogger(__name__)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def load(self, records: dict[str, dict[str, Any]]) -> None:
        """Parse raw item records (as loaded by the Database)."""
        for item_id, data in records.items():
            try:
                self.register_item(self._parse_item(data))
            except (KeyError, ValueError, ValidationError) as e:
                self.logger.error(f"Invalid item {item_id!r}: {e}")

    def _parse_item(self, data: dict) -> ItemDefinition:
        """Parse an item from JSON data."""
        damage = data.get('damage')
        return ItemDefinition(
            id=data['id'],
            name=data['name'],
            description=data.get('description', ''),
            category=ItemCategory[data.get('category', 'misc').upper()],
            weight=data.get('weight', 0.0),
            value=data.get('value', 0),
            stackable=data.get('stackable', True),
            weapon_type=data.get('weapon_type'),
            damage=DamageRange(**damage) if damage else None,
            range=data.get('range'),
            ammo_type=data.get('ammo_type'),
            defense=data.get('defense', 0),
            effects=tuple(_item_effects_adapter.validate_python(data.get('effects', []))),
            use_message=data.get('use_message', ''),
        )

    def get_item(self, item_id: str) -> Optional[ItemDefinition]:
        """Get an item definition."""
        return self._items.get(item_id)

    def get_items_by_category(self, category: ItemCategory) -> list[ItemDefinition]:
        """Get all items of a category."""
        return [i for i in self._items.values() if i.category == category]

    def register_item(self, item: ItemDefinition) -> None:
        """Register an item definition."""
        self._items[item.id] = item
