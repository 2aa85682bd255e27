"""
Map entity component - NPCs, enemies, containers, terminals, pickups.
"""

from __future__ import annotations

from enum import Enum, auto
from typing import Optional

from pydantic import Field

from engine.core.component import Component, register_component
from framework.components.character import GridPosition
from framework.components.combat import DamageRange


class EntityType(Enum):
    """Kinds of things placed on a map."""
    PLAYER = auto()
    NPC = auto()
    ENEMY = auto()
    CONTAINER = auto()
    DOOR = auto()
    TERMINAL = auto()
    ITEM_PICKUP = auto()


@register_component
class MapEntity(Component):
    """
    A live entity on the active map.

    Built from an entity definition plus a map placement. Only the fields
    relevant to the entity's type are set.

    Attributes:
        id: Definition id (e.g. "radroach_1"); kill objectives match on its prefix
        instance_id: Unique per placement: "<map>_<id>_<x>_<y>"
        type: Entity kind
        name: Display name
        description: Examine text
        position: Tile position
        alive: False once destroyed or picked up
        blocking: Whether it occupies its tile
        hostile: Bumping into it starts combat
        dialog_id: Dialog started on interaction
        items: Container contents
        item_id: Item granted by a pickup
        allies: NPC ids that resent this entity's death
        hp/max_hp, ap/max_ap: Enemy vitals
        damage: Enemy damage range
        accuracy: Enemy base hit chance
        range: Enemy attack range in tiles
        initiative: Turn order score
        xp_reward: XP granted on death
        loot: Item ids dropped on death
        combat_quip: Line spoken when a one-on-one fight opens
        death_quip: Line shown on death
    """
    id: str
    instance_id: str = ""
    type: EntityType = EntityType.NPC
    name: str = ""
    description: str = ""
    position: GridPosition = Field(default_factory=GridPosition)
    alive: bool = True
    blocking: bool = False
    hostile: bool = False
    dialog_id: Optional[str] = None
    items: list[str] = Field(default_factory=list)
    item_id: Optional[str] = None
    allies: list[str] = Field(default_factory=list)

    # Combat
    hp: int = 0
    max_hp: int = 0
    ap: int = 0
    max_ap: Optional[int] = None
    damage: Optional[DamageRange] = None
    accuracy: Optional[int] = None
    range: Optional[float] = None
    initiative: Optional[int] = None
    xp_reward: int = 0
    loot: list[str] = Field(default_factory=list)
    combat_quip: Optional[str] = None
    death_quip: Optional[str] = None

    def occupies(self, x: int, y: int) -> bool:
        return self.alive and self.position.x == x and self.position.y == y
