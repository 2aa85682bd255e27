"""
Character components - attributes, derived stats, the player record.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from engine.core.component import Component, register_component
from framework.components.inventory import Equipment


# Attribute range
ATTR_MIN = 1
ATTR_MAX = 10
ATTR_DEFAULT = 5
ATTR_BONUS_POINTS = 5

ATTRIBUTE_NAMES = ("wits", "agility", "strength", "toughness", "eyes", "daring")


def clamp_attribute(value: int) -> int:
    """Clamp a raw score into the attribute range."""
    return max(ATTR_MIN, min(ATTR_MAX, int(value)))


@register_component
class Attributes(Component):
    """
    The six base attributes.

    Attributes:
        wits: Reasoning, feeds hacking/medicine/speech and skill points
        agility: Speed, feeds AP, dodge and initiative
        strength: Carry weight and melee bonus
        toughness: Max health
        eyes: Perception, feeds firearms, crits and initiative
        daring: Crit chance/multiplier, barter and speech
    """
    wits: int = Field(default=ATTR_DEFAULT, ge=ATTR_MIN, le=ATTR_MAX)
    agility: int = Field(default=ATTR_DEFAULT, ge=ATTR_MIN, le=ATTR_MAX)
    strength: int = Field(default=ATTR_DEFAULT, ge=ATTR_MIN, le=ATTR_MAX)
    toughness: int = Field(default=ATTR_DEFAULT, ge=ATTR_MIN, le=ATTR_MAX)
    eyes: int = Field(default=ATTR_DEFAULT, ge=ATTR_MIN, le=ATTR_MAX)
    daring: int = Field(default=ATTR_DEFAULT, ge=ATTR_MIN, le=ATTR_MAX)

    @classmethod
    def from_mapping(cls, values: dict[str, Any]) -> Attributes:
        """Build from loose input: missing default to 5, out-of-range values are clamped."""
        return cls(**{
            name: clamp_attribute(values.get(name, ATTR_DEFAULT))
            for name in ATTRIBUTE_NAMES
        })

    def get(self, name: str, default: int = 0) -> int:
        """Get an attribute by id, or default for unknown ids."""
        if name not in ATTRIBUTE_NAMES:
            return default
        return getattr(self, name)

    @property
    def total(self) -> int:
        return sum(getattr(self, name) for name in ATTRIBUTE_NAMES)


@register_component
class DerivedStats(Component):
    """
    Stats computed from attributes. Never edited directly; see
    CharacterResolver.recalculate().
    """
    max_hp: int = 0
    max_ap: int = 0
    carry_weight: float = 0
    crit_chance: int = 0
    crit_multiplier: float = 1.5
    dodge_chance: int = 0
    melee_damage_bonus: int = 0
    initiative: int = 0


@register_component
class GridPosition(Component):
    """Tile coordinates."""
    x: int = 0
    y: int = 0


@register_component
class PlayerRecord(Component):
    """
    Everything that describes the player character.

    Attributes:
        name: Character name
        attributes: Base attribute scores
        derived: Derived stats (recomputed from attributes)
        skills: Current skill values by skill id
        skill_points: Bonus points invested per skill
        pending_skill_points: Points earned from leveling, not yet spent
        hp: Current health, within [0, derived.max_hp]
        ap: Current action points, within [0, derived.max_ap]
        xp: Experience points
        level: Character level (never decreases)
        caps: Currency
        map_id: Current map identifier
        position: Tile position on the current map
        equipment: Equipped weapon and armor
    """
    name: str = "Vault Dweller"
    attributes: Attributes = Field(default_factory=Attributes)
    derived: DerivedStats = Field(default_factory=DerivedStats)
    skills: dict[str, int] = Field(default_factory=dict)
    skill_points: dict[str, int] = Field(default_factory=dict)
    pending_skill_points: int = 0
    hp: int = Field(default=0, ge=0)
    ap: int = Field(default=0, ge=0)
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    caps: int = Field(default=0, ge=0)
    map_id: Optional[str] = None
    position: GridPosition = Field(default_factory=GridPosition)
    equipment: Equipment = Field(default_factory=Equipment)

    @property
    def is_dead(self) -> bool:
        return self.hp <= 0

    def take_damage(self, amount: int) -> int:
        """
        Lose health, never below zero.

        Returns:
            Health actually lost
        """
        actual = max(0, min(amount, self.hp))
        self.hp -= actual
        return actual

    def heal(self, amount: int) -> int:
        """
        Gain health, never above max.

        Returns:
            Actual amount healed
        """
        healed = max(0, min(amount, self.derived.max_hp - self.hp))
        self.hp += healed
        return healed

    def spend_ap(self, amount: int) -> bool:
        """
        Spend action points.

        Returns:
            True if successful, False if insufficient AP
        """
        if self.ap >= amount:
            self.ap -= amount
            return True
        return False

    def restore_ap(self, amount: int) -> int:
        """Restore action points up to max. Returns the amount restored."""
        restored = max(0, min(amount, self.derived.max_ap - self.ap))
        self.ap += restored
        return restored

    def refill(self, hp: bool = True, ap: bool = True) -> None:
        """Top health and/or AP up to their maxima."""
        if hp:
            self.hp = self.derived.max_hp
        if ap:
            self.ap = self.derived.max_ap

    def clamp_vitals(self) -> None:
        """Pull hp/ap back inside their maxima after a recalculation."""
        self.hp = min(self.hp, self.derived.max_hp)
        self.ap = min(self.ap, self.derived.max_ap)

    def add_caps(self, amount: int) -> None:
        self.caps += max(0, amount)

    def take_caps(self, amount: int) -> int:
        """Remove caps, never below zero. Returns the amount taken."""
        taken = max(0, min(amount, self.caps))
        self.caps -= taken
        return taken
