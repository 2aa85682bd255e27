"""
Game record components.

All components are Pydantic models. Rules live in the systems
(progression, inventory, dialog, battle, world); components only keep
their own fields consistent.
"""

from framework.components.character import (
    ATTR_BONUS_POINTS,
    ATTR_DEFAULT,
    ATTR_MAX,
    ATTR_MIN,
    ATTRIBUTE_NAMES,
    Attributes,
    DerivedStats,
    GridPosition,
    PlayerRecord,
    clamp_attribute,
)
from framework.components.combat import CombatPhase, DamageRange
from framework.components.inventory import (
    Equipment,
    EquipmentSlot,
    Inventory,
    ItemStack,
)
from framework.components.entity import EntityType, MapEntity
from framework.components.dialog import DialogSession, ResponseView

__all__ = [
    # Character
    "ATTR_BONUS_POINTS",
    "ATTR_DEFAULT",
    "ATTR_MAX",
    "ATTR_MIN",
    "ATTRIBUTE_NAMES",
    "Attributes",
    "DerivedStats",
    "GridPosition",
    "PlayerRecord",
    "clamp_attribute",
    # Combat
    "CombatPhase",
    "DamageRange",
    # Inventory
    "Equipment",
    "EquipmentSlot",
    "Inventory",
    "ItemStack",
    # Entities
    "EntityType",
    "MapEntity",
    # Dialog
    "DialogSession",
    "ResponseView",
]
