"""
Battle system - turn-based combat on the map grid.

Two-phase turn state machine: the player acts until ending the turn, then
the enemy side is resolved as one discrete step. The caller decides when
that step runs; update(dt) runs it after the configured delay, or call
resolve_enemy_turn() directly.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Optional, Union

from engine.core.events import EventBus, GameEvent, MessageCategory, post_message
from framework.components.combat import CombatPhase, DamageRange
from framework.components.entity import MapEntity

if TYPE_CHECKING:
    from framework.components.character import GridPosition
    from framework.inventory.ledger import InventoryLedger
    from framework.progression.character import CharacterResolver
    from framework.world.state import WorldState


# Action point costs
AP_COST_MELEE = 3
AP_COST_SHOOT = 4
AP_COST_USE_ITEM = 2

# Enemy defaults
ENEMY_DEFAULT_AP = 8
ENEMY_DEFAULT_INITIATIVE = 5
ENEMY_DEFAULT_ACCURACY = 50
ENEMY_DEFAULT_DAMAGE = DamageRange(min=1, max=5)

# Checks
DEFAULT_ATTACK_SKILL = 50
RANGE_PENALTY_PER_TILE = 5
RANGE_TOLERANCE = 0.5
HIT_FLOOR = 5
HIT_CEILING = 95
FLEE_BASE = 30
FLEE_PER_AGILITY = 5
FLEE_PER_DARING = 3

UNARMED_DAMAGE = DamageRange(min=1, max=3)

DEFAULT_DEATH_LINE = "They won't be bothering anyone else."

MISS_QUIPS = (
    "The wasteland dust gets in your eyes.",
    "You swing with the confidence of someone who clearly can't aim.",
    "Close, but no mutfruit cigar.",
    "Your attack hits nothing but air and regret.",
    "That was embarrassing. Let's pretend it didn't happen.",
)

ENEMY_MISS_QUIPS = (
    "Their aim is worse than yours, which is saying something.",
    "You dodge with unexpected grace.",
    "They clearly didn't attend wasteland combat school.",
    "Lucky you.",
)


def grid_distance(a: GridPosition, b: GridPosition) -> float:
    """Euclidean distance between two tiles."""
    return math.hypot(a.x - b.x, a.y - b.y)


def in_range(distance: float, attack_range: float) -> bool:
    """Range check with half-tile tolerance for diagonals."""
    return distance <= attack_range + RANGE_TOLERANCE


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


@dataclass
class Combatant:
    """An entry in the turn order. entity is None for the player."""
    initiative: int
    entity: Optional[MapEntity] = None

    @property
    def is_player(self) -> bool:
        return self.entity is None


class TurnOrder:
    """Combatants sorted by descending initiative, ties in insertion order."""

    def __init__(self):
        self._combatants: list[Combatant] = []
        self._round = 0

    def initialize(self, player_initiative: int, enemies: Iterable[MapEntity]) -> None:
        combatants = [Combatant(player_initiative)]
        combatants += [Combatant(enemy_initiative(e), e) for e in enemies]
        # sorted() is stable, so the player wins ties
        self._combatants = sorted(combatants, key=lambda c: c.initiative, reverse=True)
        self._round = 1

    def add(self, enemy: MapEntity) -> None:
        self._combatants.append(Combatant(enemy_initiative(enemy), enemy))

    def remove(self, enemy: MapEntity) -> None:
        self._combatants = [c for c in self._combatants if c.entity is not enemy]

    def next_round(self) -> None:
        self._round += 1

    def clear(self) -> None:
        self._combatants = []
        self._round = 0

    @property
    def first(self) -> Optional[Combatant]:
        return self._combatants[0] if self._combatants else None

    @property
    def combatants(self) -> list[Combatant]:
        return list(self._combatants)

    @property
    def round(self) -> int:
        return self._round


def enemy_initiative(enemy: MapEntity) -> int:
    return enemy.initiative if enemy.initiative is not None else ENEMY_DEFAULT_INITIATIVE


def enemy_max_ap(enemy: MapEntity) -> int:
    return enemy.max_ap or ENEMY_DEFAULT_AP


class CombatResolver:
    """
    Resolves combat between the player and map enemies.

    State machine: idle -> player turn <-> enemy turn -> idle
    """

    def __init__(
        self,
        world: WorldState,
        character: CharacterResolver,
        inventory: InventoryLedger,
        event_bus: EventBus,
        opening_enemy_turn_delay: float = 0.5,
        enemy_turn_delay: float = 0.3,
    ):
        self.world = world
        self.character = character
        self.inventory = inventory
        self.event_bus = event_bus
        self.opening_enemy_turn_delay = opening_enemy_turn_delay
        self.enemy_turn_delay = enemy_turn_delay

        self._phase = CombatPhase.IDLE
        self._enemies: list[MapEntity] = []
        self._turn_order = TurnOrder()

        # Seconds until the pending enemy turn runs (None = nothing pending)
        self._enemy_turn_timer: Optional[float] = None

        self.logger = logging.getLogger(__name__)

    @property
    def rng(self):
        return self.character.rng

    @property
    def phase(self) -> CombatPhase:
        return self._phase

    @property
    def in_combat(self) -> bool:
        return self._phase != CombatPhase.IDLE

    @property
    def is_player_turn(self) -> bool:
        return self._phase == CombatPhase.PLAYER_TURN

    @property
    def enemy_turn_pending(self) -> bool:
        return self._phase == CombatPhase.ENEMY_TURN

    @property
    def enemies(self) -> list[MapEntity]:
        return list(self._enemies)

    @property
    def turn_order(self) -> TurnOrder:
        return self._turn_order

    def _message(self, category: MessageCategory, text: str) -> None:
        post_message(self.event_bus, category, text)

    # -- Lifecycle ----------------------------------------------------------

    def start_combat(self, enemy: Union[MapEntity, Iterable[MapEntity]]) -> bool:
        """
        Engage one or more enemies.

        While combat is active, new enemies join the current encounter.

        Returns:
            False if no living enemy was given
        """
        if isinstance(enemy, MapEntity):
            enemies = [enemy] if enemy.alive else []
        else:
            enemies = [e for e in enemy if e.alive]
        if not enemies:
            return False

        if self.in_combat:
            for e in enemies:
                if e not in self._enemies:
                    e.ap = enemy_max_ap(e)
                    self._enemies.append(e)
                    self._turn_order.add(e)
            return True

        player = self.world.player
        self._enemies = enemies
        player.refill(hp=False)
        for e in self._enemies:
            e.ap = enemy_max_ap(e)

        self._turn_order.initialize(player.derived.initiative, self._enemies)
        player_first = self._turn_order.first.is_player
        self._phase = CombatPhase.PLAYER_TURN if player_first else CombatPhase.ENEMY_TURN

        self.event_bus.publish(GameEvent.COMBAT_START, enemies=self.enemies)
        names = ", ".join(e.name for e in self._enemies)
        self._message(MessageCategory.COMBAT, f"Combat begins! You face: {names}")

        if len(self._enemies) == 1 and self._enemies[0].combat_quip:
            only = self._enemies[0]
            self._message(MessageCategory.DIALOG, f'{only.name}: "{only.combat_quip}"')

        if player_first:
            self.event_bus.publish(GameEvent.COMBAT_TURN, side="player")
        else:
            self._schedule_enemy_turn(self.opening_enemy_turn_delay)
        return True

    def end_combat(self, victory: bool) -> None:
        """Leave combat and restore the player's AP."""
        if not self.in_combat:
            return

        self._phase = CombatPhase.IDLE
        self._enemies = []
        self._turn_order.clear()
        self._enemy_turn_timer = None

        self.world.player.refill(hp=False)
        self.event_bus.publish(GameEvent.COMBAT_END, victory=victory)

    def reset(self) -> None:
        """Drop any encounter without publishing (new game, loading a save)."""
        self._phase = CombatPhase.IDLE
        self._enemies = []
        self._turn_order.clear()
        self._enemy_turn_timer = None

    def get_first_enemy(self) -> Optional[MapEntity]:
        """First living enemy (auto-targeting)."""
        for enemy in self._enemies:
            if enemy.hp > 0:
                return enemy
        return None

    # -- Player actions -----------------------------------------------------

    def player_attack(self, target: Optional[MapEntity] = None) -> bool:
        """
        Attack with the equipped weapon, or bare fists.

        Returns:
            True if the attack was made (hit or miss)
        """
        if not self.is_player_turn:
            return False

        target = target or self.get_first_enemy()
        if target is None or target not in self._enemies:
            return False

        player = self.world.player
        weapon = self.inventory.weapon
        ranged = weapon is not None and not weapon.is_melee
        ap_cost = AP_COST_SHOOT if ranged else AP_COST_MELEE

        if player.ap < ap_cost:
            self._message(MessageCategory.WARNING, "Not enough AP for that attack.")
            return False

        distance = grid_distance(player.position, target.position)
        attack_range = (weapon.range or 1) if weapon else 1
        if not in_range(distance, attack_range):
            self._message(
                MessageCategory.WARNING,
                "Target is out of range. Move closer or find a bigger gun.",
            )
            return False

        player.spend_ap(ap_cost)
        self.event_bus.publish(
            GameEvent.COMBAT_ACTION, action="attack", ap_cost=ap_cost, target=target,
        )

        skill = self.character.get_skill("firearms" if ranged else "melee") or DEFAULT_ATTACK_SKILL
        hit_chance = min(HIT_CEILING, max(HIT_FLOOR, skill - distance * RANGE_PENALTY_PER_TILE))
        roll = self.character.roll_percent()

        if roll > hit_chance:
            self._message(
                MessageCategory.COMBAT, f"You miss {target.name}. {self.rng.choice(MISS_QUIPS)}",
            )
            self.event_bus.publish(GameEvent.COMBAT_MISS, attacker="player", target=target)
            return True

        damage_range = weapon.damage if weapon and weapon.damage else UNARMED_DAMAGE
        damage = self.rng.randint(damage_range.min, damage_range.max)
        if damage_range is UNARMED_DAMAGE:
            damage += player.derived.melee_damage_bonus

        is_crit = self.character.roll_percent() <= player.derived.crit_chance
        if is_crit:
            damage = math.floor(damage * player.derived.crit_multiplier)

        target.hp = max(0, target.hp - damage)

        weapon_name = weapon.name if weapon else "bare fists"
        crit_text = " CRITICAL HIT!" if is_crit else ""
        self._message(
            MessageCategory.COMBAT,
            f"You hit {target.name} with {weapon_name} for {damage} damage!{crit_text}",
        )
        self.event_bus.publish(
            GameEvent.COMBAT_HIT, attacker="player", target=target, damage=damage, is_crit=is_crit,
        )

        if target.hp <= 0:
            self._enemy_death(target)
        return True

    def player_use_item(self, item_id: str) -> bool:
        """Use an item for a fixed AP cost. AP is only spent if the item was used."""
        if not self.is_player_turn:
            return False

        player = self.world.player
        if player.ap < AP_COST_USE_ITEM:
            self._message(MessageCategory.WARNING, "Not enough AP to use an item.")
            return False

        if not self.inventory.use_item(item_id):
            return False

        player.spend_ap(AP_COST_USE_ITEM)
        self.event_bus.publish(
            GameEvent.COMBAT_ACTION, action="use_item", ap_cost=AP_COST_USE_ITEM, item_id=item_id,
        )
        return True

    def end_player_turn(self) -> bool:
        """Hand the turn to the enemies. Their step runs after the turn delay."""
        if not self.is_player_turn:
            return False
        self._phase = CombatPhase.ENEMY_TURN
        self._schedule_enemy_turn(self.enemy_turn_delay)
        return True

    def player_flee(self) -> bool:
        """
        Try to run. A failed attempt passes the turn.

        Returns:
            True if the player escaped
        """
        if not self.is_player_turn:
            return False

        attributes = self.world.player.attributes
        chance = (
            FLEE_BASE
            + attributes.agility * FLEE_PER_AGILITY
            + attributes.daring * FLEE_PER_DARING
        )

        if self.character.roll_percent() <= chance:
            self._message(MessageCategory.ACTION, "You bravely run away! Sir Robin would be proud.")
            self.end_combat(False)
            return True

        self._message(
            MessageCategory.COMBAT,
            "You try to flee but can't escape! Turns out running from your "
            "problems doesn't work in combat either.",
        )
        self.end_player_turn()
        return False

    # -- Enemy turn ---------------------------------------------------------

    def _schedule_enemy_turn(self, delay: float) -> None:
        self._enemy_turn_timer = delay
        self.event_bus.publish(GameEvent.COMBAT_TURN, side="enemy", delay=delay)

    def update(self, dt: float) -> None:
        """Count down a pending enemy turn and resolve it when due."""
        if self._enemy_turn_timer is None or not self.enemy_turn_pending:
            return
        self._enemy_turn_timer -= dt
        if self._enemy_turn_timer <= 0:
            self.resolve_enemy_turn()

    def resolve_enemy_turn(self) -> bool:
        """
        Run every living enemy's action, then return control to the player.

        Each enemy attacks when in range; otherwise it steps toward the
        player and attacks if that brought it into range.

        Returns:
            False if no enemy turn was pending
        """
        if not self.enemy_turn_pending:
            return False
        self._enemy_turn_timer = None

        player = self.world.player
        for enemy in list(self._enemies):
            if enemy.hp <= 0:
                continue

            enemy.ap = enemy_max_ap(enemy)
            attack_range = enemy.range or 1

            if not in_range(grid_distance(enemy.position, player.position), attack_range):
                self._step_toward_player(enemy)
                if not in_range(grid_distance(enemy.position, player.position), attack_range):
                    continue

            self._enemy_attack(enemy)
            if not self.in_combat:
                # Player died
                return True

        player.refill(hp=False)
        self._turn_order.next_round()
        self._phase = CombatPhase.PLAYER_TURN
        self.event_bus.publish(GameEvent.COMBAT_TURN, side="player")
        return True

    def _step_toward_player(self, enemy: MapEntity) -> None:
        target = self.world.player.position
        enemy.position.x += _sign(target.x - enemy.position.x)
        enemy.position.y += _sign(target.y - enemy.position.y)
        self._message(MessageCategory.COMBAT, f"{enemy.name} moves closer.")

    def _enemy_attack(self, enemy: MapEntity) -> None:
        player = self.world.player
        accuracy = enemy.accuracy if enemy.accuracy is not None else ENEMY_DEFAULT_ACCURACY
        hit_chance = max(HIT_FLOOR, accuracy - player.derived.dodge_chance)

        if self.character.roll_percent() > hit_chance:
            self._message(
                MessageCategory.COMBAT,
                f"{enemy.name} misses you. {self.rng.choice(ENEMY_MISS_QUIPS)}",
            )
            self.event_bus.publish(GameEvent.COMBAT_MISS, attacker=enemy, target="player")
            return

        damage_range = enemy.damage or ENEMY_DEFAULT_DAMAGE
        damage = self.rng.randint(damage_range.min, damage_range.max)
        actual = self.character.damage_player(damage)

        self._message(MessageCategory.COMBAT, f"{enemy.name} hits you for {actual} damage!")
        self.event_bus.publish(GameEvent.COMBAT_HIT, attacker=enemy, target="player", damage=actual)

        if player.hp <= 0:
            self.end_combat(False)
            self.event_bus.publish(GameEvent.GAME_OVER, victory=False)

    def _enemy_death(self, enemy: MapEntity) -> None:
        enemy.alive = False
        enemy.hp = 0

        self._message(
            MessageCategory.COMBAT,
            f"{enemy.name} is defeated! "
            f"{enemy.death_quip or DEFAULT_DEATH_LINE}",
        )
        self.event_bus.publish(GameEvent.ENTITY_DESTROY, entity=enemy)

        for item_id in enemy.loot:
            if self.inventory.add_item(item_id):
                item = self.inventory.catalog.get_item(item_id)
                self._message(MessageCategory.LOOT, f"Found: {item.name if item else item_id}")

        if enemy.xp_reward:
            self.character.add_xp(enemy.xp_reward)

        self._enemies = [e for e in self._enemies if e.hp > 0]
        self._turn_order.remove(enemy)
        self.world.remove_entity(enemy)

        if not self._enemies:
            self._message(MessageCategory.COMBAT, "All enemies defeated!")
            self.end_combat(True)
