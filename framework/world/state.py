"""
World state - the one owner of mutable session data.

Holds the player record, the inventory, story flags, NPC reputation, the
active map id and that map's live entity roster. Systems read it freely
but mutate flags and reputation only through its methods.
"""

from __future__ import annotations

import logging
from enum import Enum, auto
from typing import Any, Optional

from engine.core.events import EventBus, GameEvent
from framework.components.character import PlayerRecord
from framework.components.entity import MapEntity
from framework.components.inventory import Inventory


# Reputation tier thresholds
REPUTATION_HOSTILE = -50
REPUTATION_UNFRIENDLY = -20
REPUTATION_FRIENDLY = 20
REPUTATION_ALLIED = 50
REPUTATION_DEVOTED = 75


class ReputationTier(Enum):
    """Named reputation bands."""
    HOSTILE = auto()
    UNFRIENDLY = auto()
    NEUTRAL = auto()
    FRIENDLY = auto()
    ALLIED = auto()
    DEVOTED = auto()


def reputation_tier(value: int) -> ReputationTier:
    """Band for a raw reputation score."""
    if value <= REPUTATION_HOSTILE:
        return ReputationTier.HOSTILE
    if value <= REPUTATION_UNFRIENDLY:
        return ReputationTier.UNFRIENDLY
    if value >= REPUTATION_DEVOTED:
        return ReputationTier.DEVOTED
    if value >= REPUTATION_ALLIED:
        return ReputationTier.ALLIED
    if value >= REPUTATION_FRIENDLY:
        return ReputationTier.FRIENDLY
    return ReputationTier.NEUTRAL


class WorldState:
    """
    Session data that outlives any single system call.

    Attributes:
        player: The player record
        inventory: Held item entries
        flags: Story flags by key
        reputation: Signed score per NPC id (absent = 0)
        current_map_id: Active map, None before the first load
        entities: Live roster of the active map
    """

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus

        self.player = PlayerRecord()
        self.inventory = Inventory()
        self.flags: dict[str, Any] = {}
        self.reputation: dict[str, int] = {}
        self.current_map_id: Optional[str] = None
        self.entities: list[MapEntity] = []

        self.logger = logging.getLogger(__name__)

    def reset(self) -> None:
        """Back to a blank world (new game)."""
        self.player = PlayerRecord()
        self.inventory = Inventory()
        self.flags = {}
        self.reputation = {}
        self.current_map_id = None
        self.entities = []

    # -- Flags --------------------------------------------------------------

    def set_flag(self, key: str, value: Any = True) -> None:
        self.flags[key] = value
        self.event_bus.publish(GameEvent.FLAG_SET, key=key, value=value)

    def has_flag(self, key: str) -> bool:
        return bool(self.flags.get(key))

    def get_flag(self, key: str, default: Any = None) -> Any:
        return self.flags.get(key, default)

    # -- Reputation ---------------------------------------------------------

    def get_reputation(self, npc_id: str) -> int:
        return self.reputation.get(npc_id, 0)

    def change_reputation(self, npc_id: str, amount: int) -> int:
        """Shift reputation by a delta. Returns the new value."""
        return self.set_reputation(npc_id, self.get_reputation(npc_id) + amount)

    def set_reputation(self, npc_id: str, value: int) -> int:
        old = self.get_reputation(npc_id)
        self.reputation[npc_id] = value
        self.event_bus.publish(
            GameEvent.REPUTATION_CHANGE, npc_id=npc_id, old=old, value=value,
        )
        return value

    def get_reputation_tier(self, npc_id: str) -> ReputationTier:
        return reputation_tier(self.get_reputation(npc_id))

    # -- Entities -----------------------------------------------------------

    def find_entity(self, entity_id: str) -> Optional[MapEntity]:
        """First living entity built from the given definition id."""
        for entity in self.entities:
            if entity.id == entity_id and entity.alive:
                return entity
        return None

    def get_entity(self, instance_id: str) -> Optional[MapEntity]:
        for entity in self.entities:
            if entity.instance_id == instance_id:
                return entity
        return None

    def entity_at(self, x: int, y: int) -> Optional[MapEntity]:
        """Any living entity on a tile."""
        for entity in self.entities:
            if entity.occupies(x, y):
                return entity
        return None

    def blocking_entity_at(self, x: int, y: int) -> Optional[MapEntity]:
        for entity in self.entities:
            if entity.blocking and entity.occupies(x, y):
                return entity
        return None

    def remove_entity(self, entity: MapEntity) -> None:
        self.entities = [e for e in self.entities if e is not entity]
