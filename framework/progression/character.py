"""
Character progression - derived stats, skills, checks, damage, leveling.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from engine.core.events import EventBus, GameEvent, MessageCategory, post_message
from framework.components.character import (
    ATTR_DEFAULT,
    ATTRIBUTE_NAMES,
    Attributes,
    DerivedStats,
    PlayerRecord,
    clamp_attribute,
)

if TYPE_CHECKING:
    from framework.world.state import WorldState


# Derived stat formulas
BASE_HP = 20
HP_PER_TOUGHNESS = 10
BASE_AP = 6
AP_PER_AGILITY = 0.5
BASE_CARRY = 50
CARRY_PER_STRENGTH = 10
CRIT_MULTIPLIER_BASE = 1.5
SKILL_MULTIPLIER = 5

# Leveling
MAX_LEVEL = 20
XP_PER_LEVEL = (
    0, 100, 300, 600, 1000, 1500, 2100, 2800, 3600, 4500,
    5500, 6600, 7800, 9100, 10500, 12000, 13600, 15300, 17100, 19000,
)
SKILL_POINTS_PER_LEVEL_BASE = 5

# Check bounds
CHECK_FLOOR = 5
CHECK_CEILING = 95


@dataclass(frozen=True)
class SkillFormula:
    """A skill is the sum of two attributes times SKILL_MULTIPLIER."""
    name: str
    attrs: tuple[str, str]


SKILL_FORMULAS: dict[str, SkillFormula] = {
    "firearms": SkillFormula("Firearms", ("eyes", "agility")),
    "melee": SkillFormula("Melee", ("strength", "agility")),
    "lockpick": SkillFormula("Lockpick", ("eyes", "agility")),
    "hacking": SkillFormula("Hacking", ("wits", "eyes")),
    "medicine": SkillFormula("Medicine", ("wits", "eyes")),
    "barter": SkillFormula("Barter", ("wits", "daring")),
    "speech": SkillFormula("Speech", ("wits", "daring")),
    "sneak": SkillFormula("Sneak", ("agility", "eyes")),
    "repair": SkillFormula("Repair", ("wits", "strength")),
    "survival": SkillFormula("Survival", ("toughness", "eyes")),
}


@dataclass(frozen=True)
class SkillCheckResult:
    """Outcome of a skill check."""
    success: bool
    roll: int
    target: int
    margin: int
    skill_name: str


def clamp_check(value: float) -> int:
    """Keep a percentage chance inside [5, 95]."""
    return int(min(CHECK_CEILING, max(CHECK_FLOOR, value)))


def derive_stats(attributes: Attributes) -> DerivedStats:
    """Pure derived-stat formulas."""
    a = attributes
    return DerivedStats(
        max_hp=BASE_HP + a.toughness * HP_PER_TOUGHNESS,
        max_ap=math.floor(BASE_AP + a.agility * AP_PER_AGILITY),
        carry_weight=BASE_CARRY + a.strength * CARRY_PER_STRENGTH,
        crit_chance=a.eyes + a.daring * 2,
        crit_multiplier=round(CRIT_MULTIPLIER_BASE + a.daring * 0.1, 2),
        dodge_chance=a.agility * 2 + a.eyes,
        melee_damage_bonus=a.strength // 2,
        initiative=a.agility + a.eyes,
    )


def derive_skills(attributes: Attributes, skill_points: dict[str, int]) -> dict[str, int]:
    """Pure skill formulas: (attr1 + attr2) * 5 plus invested points."""
    skills = {}
    for skill_id, formula in SKILL_FORMULAS.items():
        attr_sum = sum(attributes.get(attr, ATTR_DEFAULT) for attr in formula.attrs)
        skills[skill_id] = attr_sum * SKILL_MULTIPLIER + skill_points.get(skill_id, 0)
    return skills


def skill_points_for_level(attributes: Attributes) -> int:
    return SKILL_POINTS_PER_LEVEL_BASE + attributes.wits // 2


class CharacterResolver:
    """
    Derives stats and resolves everything numeric about the player.

    Unknown skill and attribute ids never raise; they resolve to 0.
    """

    def __init__(
        self,
        world: WorldState,
        event_bus: EventBus,
        rng: Optional[random.Random] = None,
        armor_defense: Optional[Callable[[], int]] = None,
    ):
        self.world = world
        self.event_bus = event_bus
        self.rng = rng or random.Random()
        # Provided by the inventory ledger once it exists
        self.armor_defense = armor_defense or (lambda: 0)
        self.logger = logging.getLogger(__name__)

    @property
    def player(self) -> PlayerRecord:
        return self.world.player

    def roll_percent(self) -> int:
        """Uniform roll in [1, 100]."""
        return self.rng.randint(1, 100)

    # -- Derived stats ------------------------------------------------------

    def recalculate(self, player: Optional[PlayerRecord] = None) -> None:
        """
        Recompute every derived stat and skill from attributes.

        Idempotent. Current hp/ap are pulled inside the new maxima.
        """
        player = player or self.player
        player.derived = derive_stats(player.attributes)
        player.skills = derive_skills(player.attributes, player.skill_points)
        player.clamp_vitals()

    def modify_attribute(self, attr: str, amount: int) -> bool:
        """
        Shift an attribute (clamped to its range) and recalculate.

        Returns:
            False for unknown attribute ids
        """
        if attr not in ATTRIBUTE_NAMES:
            self.logger.warning(f"Unknown attribute: {attr}")
            return False
        attributes = self.player.attributes
        setattr(attributes, attr, clamp_attribute(getattr(attributes, attr) + amount))
        self.recalculate()
        return True

    def allocate_skill_points(self, skill_id: str, points: int) -> bool:
        """Spend pending level-up points on a skill, one point per skill value."""
        player = self.player
        if skill_id not in SKILL_FORMULAS:
            self.logger.warning(f"Unknown skill: {skill_id}")
            return False
        if points <= 0 or points > player.pending_skill_points:
            post_message(self.event_bus, MessageCategory.WARNING, "Not enough skill points.")
            return False

        player.pending_skill_points -= points
        bonuses = dict(player.skill_points)
        bonuses[skill_id] = bonuses.get(skill_id, 0) + points
        player.skill_points = bonuses
        self.recalculate()
        return True

    # -- Experience ---------------------------------------------------------

    def add_xp(self, amount: int) -> None:
        """Add XP and level up as many times as the table allows."""
        player = self.player
        player.xp += amount
        post_message(self.event_bus, MessageCategory.SYSTEM, f"Gained {amount} XP.")

        while player.level < MAX_LEVEL and player.xp >= XP_PER_LEVEL[player.level]:
            self.level_up()

    def level_up(self) -> None:
        player = self.player
        player.level += 1

        gained = skill_points_for_level(player.attributes)
        player.pending_skill_points += gained

        self.recalculate()
        player.refill()

        self.event_bus.publish(GameEvent.PLAYER_LEVEL_UP, level=player.level, skill_points=gained)
        post_message(
            self.event_bus, MessageCategory.QUEST,
            f"LEVEL UP! You are now level {player.level}. "
            f"You gained {gained} skill points. "
            "The wasteland trembles. Or maybe that's just indigestion.",
        )

    # -- Health -------------------------------------------------------------

    def get_armor_reduction(self) -> int:
        return max(0, self.armor_defense())

    def damage_player(self, amount: int) -> int:
        """
        Apply incoming damage after armor.

        At least 1 damage always lands.

        Returns:
            Damage actually applied
        """
        player = self.player
        actual = max(1, amount - self.get_armor_reduction())
        player.take_damage(actual)

        self.event_bus.publish(GameEvent.PLAYER_DAMAGE, amount=actual)
        if player.hp <= 0:
            self.event_bus.publish(GameEvent.PLAYER_DEATH)
            post_message(
                self.event_bus, MessageCategory.COMBAT,
                "You have died. The wasteland claims another. "
                "On the bright side, at least the rent is free now.",
            )
        return actual

    def heal_player(self, amount: int) -> int:
        """Heal up to max health. Returns the amount healed."""
        healed = self.player.heal(amount)
        self.event_bus.publish(GameEvent.PLAYER_HEAL, amount=healed)
        return healed

    # -- Checks -------------------------------------------------------------

    def get_skill(self, skill_id: str) -> int:
        return self.player.skills.get(skill_id, 0)

    def skill_check(self, skill_id: str, difficulty: int) -> SkillCheckResult:
        """
        Roll d100 against skill minus difficulty, clamped to [5, 95].

        Args:
            skill_id: Skill to test (unknown skills count as 0)
            difficulty: Subtracted from the skill value

        Returns:
            Roll, target, margin and display name of the skill
        """
        roll = self.roll_percent()
        target = clamp_check(self.get_skill(skill_id) - difficulty)
        formula = SKILL_FORMULAS.get(skill_id)
        return SkillCheckResult(
            success=roll <= target,
            roll=roll,
            target=target,
            margin=target - roll,
            skill_name=formula.name if formula else skill_id,
        )

    def attribute_check(self, attr_id: str, threshold: int) -> bool:
        """Check if an attribute meets a threshold. Unknown attributes count as 0."""
        return self.player.attributes.get(attr_id, 0) >= threshold
