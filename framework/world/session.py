"""
Game session - owns the event bus, the world state and every rules system.

Usage:
    session = GameSession(SessionConfig(seed=42))
    session.start_new_game("Nate", {"wits": 7, "agility": 6})
    session.move_player(0, 1)
    session.interact_nearby()

    # Combat: the host calls update(dt) every frame, or drives the enemy
    # turn directly with session.combat.resolve_enemy_turn()
    session.update(dt)

    session.shutdown()
"""

from __future__ import annotations

import logging
import random
from enum import Enum, auto
from pathlib import Path
from typing import Any, Optional

from engine.core.events import Event, EventBus, GameEvent, MessageCategory, post_message
from engine.resources.database import Database
from framework.battle.system import CombatResolver
from framework.components.character import (
    ATTR_BONUS_POINTS,
    ATTR_DEFAULT,
    ATTRIBUTE_NAMES,
    Attributes,
    PlayerRecord,
)
from framework.components.entity import EntityType, MapEntity
from framework.dialog.system import DialogEngine
from framework.effects.dispatch import ConditionEvaluator, EffectDispatcher
from framework.inventory.items import ItemCatalog
from framework.inventory.ledger import InventoryLedger
from framework.progression.character import CharacterResolver
from framework.progression.quests import ObjectiveType, QuestTracker
from framework.save.manager import SaveManager
from framework.world.map import (
    DatabaseMapProvider,
    FieldOfView,
    MapData,
    MapProvider,
    MapSystem,
    PathFinder,
    get_tile_props,
)
from framework.world.navigation import NEIGHBORS_4, GridPathFinder, RayFieldOfView
from framework.world.state import WorldState


DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "data"

# Attribute points a new character may spend
ATTRIBUTE_BUDGET = len(ATTRIBUTE_NAMES) * ATTR_DEFAULT + ATTR_BONUS_POINTS

# Reputation lost with each ally of a destroyed entity
ALLY_KILL_PENALTY = 15


class GameState(Enum):
    """Top-level mode of the session."""
    MENU = auto()
    CHAR_CREATE = auto()
    PLAYING = auto()
    DIALOG = auto()
    COMBAT = auto()
    INVENTORY = auto()
    PAUSED = auto()
    GAME_OVER = auto()


class SessionConfig:
    """Configuration for a game session."""

    def __init__(
        self,
        data_path: Path | str | None = None,
        save_path: Path | str | None = None,
        seed: Optional[int] = None,
        starting_map: str = "vault42",
        starting_spawn: str = "start",
        starting_caps: int = 50,
        starting_items: Optional[dict[str, int]] = None,
        starting_quest: Optional[str] = "wake_up_call",
        opening_enemy_turn_delay: float = 0.5,
        enemy_turn_delay: float = 0.3,
        autosave_on_map_load: bool = True,
    ):
        self.data_path = Path(data_path) if data_path else DEFAULT_DATA_PATH
        # None disables saving
        self.save_path = Path(save_path) if save_path else None
        self.seed = seed
        self.starting_map = starting_map
        self.starting_spawn = starting_spawn
        self.starting_caps = starting_caps
        self.starting_items = (
            starting_items if starting_items is not None
            else {"vault_suit": 1, "stimpak": 2}
        )
        self.starting_quest = starting_quest
        self.opening_enemy_turn_delay = opening_enemy_turn_delay
        self.enemy_turn_delay = enemy_turn_delay
        self.autosave_on_map_load = autosave_on_map_load


class GameSession:
    """
    Top-level object of the rules engine.

    Builds and wires:
    - The session-owned event bus
    - The content database and item catalog
    - World state, character, inventory, quests, dialog, combat, maps
    - The save service

    and turns domain events into quest progress, reputation fallout and
    game state transitions.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        map_provider: Optional[MapProvider] = None,
        path_finder: Optional[PathFinder] = None,
        field_of_view: Optional[FieldOfView] = None,
    ):
        self.config = config or SessionConfig()
        self.logger = logging.getLogger(__name__)

        self.event_bus = EventBus()
        self.rng = random.Random(self.config.seed)

        # Content
        self.database = Database(self.config.data_path)
        self.database.load_all()
        self.items = ItemCatalog()
        self.items.load(self.database.items)

        # Systems
        self.world = WorldState(self.event_bus)
        self.character = CharacterResolver(self.world, self.event_bus, rng=self.rng)
        self.inventory = InventoryLedger(self.world, self.items, self.character, self.event_bus)
        self.character.armor_defense = self.inventory.armor_defense

        self.effects = EffectDispatcher(self)
        self.conditions = ConditionEvaluator(self)

        self.quests = QuestTracker(
            self.world, self.character, self.inventory, self.event_bus, effects=self.effects,
        )
        self.quests.load(self.database.quests)

        self.dialog = DialogEngine(
            self.character, self.event_bus, effects=self.effects, conditions=self.conditions,
        )
        self.dialog.load(self.database.dialogs)

        self.combat = CombatResolver(
            self.world,
            self.character,
            self.inventory,
            self.event_bus,
            opening_enemy_turn_delay=self.config.opening_enemy_turn_delay,
            enemy_turn_delay=self.config.enemy_turn_delay,
        )

        self.maps = MapSystem(
            map_provider or DatabaseMapProvider(self.database),
            self.database,
            self.world,
            self.character,
            self.inventory,
            self.event_bus,
        )
        self.path_finder = path_finder or GridPathFinder()
        self.field_of_view = field_of_view or RayFieldOfView()
        self.visible: set[tuple[int, int]] = set()

        self.saves: Optional[SaveManager] = None
        if self.config.save_path is not None:
            self.saves = SaveManager(self, self.config.save_path)

        self._state = GameState.MENU
        self._subscribe()

    # -- Wiring -------------------------------------------------------------

    def _subscribe(self) -> None:
        bus = self.event_bus
        # Quest tracking and consequences
        bus.subscribe(GameEvent.MAP_CHANGE, self._on_map_change)
        bus.subscribe(GameEvent.MAP_LOADED, self._on_map_loaded)
        bus.subscribe(GameEvent.ENTITY_INTERACT, self._on_entity_interact)
        bus.subscribe(GameEvent.ENTITY_DESTROY, self._on_entity_destroy)
        bus.subscribe(GameEvent.ITEM_ADD, self._on_item_add)
        bus.subscribe(GameEvent.TILE_INTERACT, self._on_tile_interact)
        # State transitions
        bus.subscribe(GameEvent.DIALOG_START, self._on_dialog_start)
        bus.subscribe(GameEvent.DIALOG_END, self._on_dialog_end)
        bus.subscribe(GameEvent.COMBAT_START, self._on_combat_start)
        bus.subscribe(GameEvent.COMBAT_END, self._on_combat_end)
        bus.subscribe(GameEvent.GAME_OVER, self._on_game_over)

    def shutdown(self) -> None:
        """Tear down every bus subscription."""
        self.event_bus.clear()

    # -- State --------------------------------------------------------------

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def player(self) -> PlayerRecord:
        return self.world.player

    @property
    def current_map(self) -> Optional[MapData]:
        return self.maps.current_map

    def set_state(self, state: GameState) -> None:
        if state == self._state:
            return
        old = self._state
        self._state = state
        self.event_bus.publish(GameEvent.STATE_CHANGE, old=old, new=state)

    def update(self, dt: float) -> None:
        """Advance timers (the pending enemy turn)."""
        self.combat.update(dt)

    # -- New game -----------------------------------------------------------

    def start_new_game(self, name: str, attributes: Optional[dict[str, int]] = None) -> bool:
        """
        Create a character and drop them into the starting map.

        Args:
            name: Character name
            attributes: Attribute scores; missing ones default to 5,
                        values are clamped into 1..10

        Returns:
            False if the allocation spends more than the point budget
        """
        scores = Attributes.from_mapping(attributes or {})
        if scores.total > ATTRIBUTE_BUDGET:
            post_message(
                self.event_bus, MessageCategory.WARNING,
                f"Too many attribute points: {scores.total}/{ATTRIBUTE_BUDGET}.",
            )
            return False

        self.combat.reset()
        self.dialog.reset()
        self.maps.reset()
        self.quests.reset()
        self.world.reset()
        self._state = GameState.CHAR_CREATE

        player = self.world.player
        player.name = name or player.name
        player.attributes = scores
        self.character.recalculate()
        player.refill()
        player.caps = self.config.starting_caps

        for item_id, count in self.config.starting_items.items():
            self.inventory.add_item(item_id, count)

        self.load_map(self.config.starting_map, self.config.starting_spawn)

        if self.config.starting_quest:
            self.quests.start_quest(self.config.starting_quest)

        post_message(
            self.event_bus, MessageCategory.SYSTEM,
            "You slowly open your eyes. The cryo pod hisses, releasing 210 years "
            "of accumulated ice and regret.",
        )
        post_message(
            self.event_bus, MessageCategory.SYSTEM,
            'A tinny voice echoes through the vault: "Good morning! Or afternoon. '
            'Or whatever passes for time when civilization has ended."',
        )
        post_message(
            self.event_bus, MessageCategory.HUMOR,
            "CHRONOS, the vault AI, seems thrilled to have someone to talk to. "
            "You already want to go back to sleep.",
        )

        self.set_state(GameState.PLAYING)
        self.event_bus.publish(GameEvent.GAME_START, player=player)
        return True

    # -- Maps ---------------------------------------------------------------

    def load_map(self, map_id: str, spawn: Optional[str] = None) -> bool:
        """
        Enter a map at a named spawn point.

        Spawn falls back to "start", then (1, 1). The roster of the map
        being left is remembered for the next visit.
        """
        map_data = self.maps.load_map(map_id)
        if map_data is None:
            return False

        world = self.world
        if world.current_map_id:
            self.maps.store_entities(world.current_map_id, world.entities)

        world.current_map_id = map_id
        world.player.map_id = map_id
        x, y = map_data.get_spawn(spawn)
        world.player.position.x = x
        world.player.position.y = y

        world.entities = self.maps.get_entities(map_id)
        for entity in world.entities:
            self.event_bus.publish(GameEvent.ENTITY_SPAWN, entity=entity)

        self._update_fov()
        self.event_bus.publish(GameEvent.MAP_LOADED, map_id=map_id)
        post_message(self.event_bus, MessageCategory.SYSTEM, f"Entered: {map_data.name}")
        return True

    def _update_fov(self) -> None:
        map_data = self.maps.current_map
        if map_data is None or self.field_of_view is None:
            return
        position = self.world.player.position
        self.visible = self.field_of_view.compute(map_data, (position.x, position.y))

    # -- Movement -----------------------------------------------------------

    def move_player(self, dx: int, dy: int) -> bool:
        """
        Step the player by (dx, dy).

        Bumping a door uses it, bumping a hostile starts combat, bumping
        anyone else interacts with them. Stepping on an exit changes map.

        Returns:
            True if the player moved (including onto an exit)
        """
        if self._state != GameState.PLAYING:
            return False
        map_data = self.maps.current_map
        if map_data is None:
            return False

        player = self.world.player
        x = player.position.x + dx
        y = player.position.y + dy
        if not map_data.in_bounds(x, y):
            return False

        props = get_tile_props(map_data.tile_at(x, y))
        if props.interactable and not props.walkable and self.maps.interact_tile(x, y):
            return False

        # Lockers and terminals sit on solid tiles, so blockers come first
        blocker = self.world.blocking_entity_at(x, y)
        if blocker is not None:
            if blocker.hostile:
                self.combat.start_combat(blocker)
            else:
                self.interact(blocker)
            return False

        if not map_data.is_walkable(x, y):
            return False

        map_exit = map_data.exit_at(x, y)
        if map_exit is not None:
            self.event_bus.publish(
                GameEvent.MAP_CHANGE, map_id=map_exit.target_map, spawn=map_exit.target_spawn,
            )
            return True

        player.position.x = x
        player.position.y = y
        self._update_fov()
        self.event_bus.publish(GameEvent.PLAYER_MOVE, x=x, y=y)
        return True

    def travel_to(self, x: int, y: int) -> bool:
        """
        Walk a path to (x, y). Targeting an entity walks next to it and
        interacts. Stops early when a step fails or the mode changes.

        Returns:
            True if the destination (or the entity) was reached
        """
        if self._state != GameState.PLAYING:
            return False
        map_data = self.maps.current_map
        if map_data is None:
            return False

        position = self.world.player.position
        start = (position.x, position.y)
        target = self.world.entity_at(x, y)

        if target is None:
            path = self.path_finder.find_path(map_data, start, (x, y))
        else:
            path = self._path_next_to(map_data, start, (x, y))
            if path is None:
                return False

        if target is None and not path:
            return False

        start_map = self.world.current_map_id
        for step_x, step_y in path:
            position = self.world.player.position
            moved = self.move_player(step_x - position.x, step_y - position.y)
            if not moved or self._state != GameState.PLAYING:
                return False
            if self.world.current_map_id != start_map:
                return True

        if target is not None:
            self.interact(target)
        return True

    def _path_next_to(
        self, map_data: MapData, start: tuple[int, int], goal: tuple[int, int],
    ) -> Optional[list[tuple[int, int]]]:
        """Shortest path to a tile orthogonally adjacent to goal ([] if already there)."""
        best = None
        for dx, dy in NEIGHBORS_4:
            tile = (goal[0] + dx, goal[1] + dy)
            if tile == start:
                return []
            path = self.path_finder.find_path(map_data, start, tile)
            if path and (best is None or len(path) < len(best)):
                best = path
        return best

    # -- Interaction --------------------------------------------------------

    def interact(self, entity: MapEntity) -> None:
        """Talk to, loot or pick up an entity."""
        self.event_bus.publish(GameEvent.ENTITY_INTERACT, entity=entity)

        if entity.dialog_id:
            self.dialog.start_dialog(entity.dialog_id, entity)
        elif entity.type == EntityType.CONTAINER:
            self._open_container(entity)
        elif entity.type == EntityType.ITEM_PICKUP:
            self._pickup_item(entity)
        elif entity.description:
            post_message(self.event_bus, MessageCategory.SYSTEM, entity.description)

    def interact_nearby(self) -> bool:
        """
        Interact with the first entity, then the first interactable object
        tile, found north, south, west or east of the player.
        """
        if self._state != GameState.PLAYING:
            return False

        position = self.world.player.position
        self.event_bus.publish(GameEvent.PLAYER_INTERACT, x=position.x, y=position.y)

        for dx, dy in NEIGHBORS_4:
            entity = self.world.entity_at(position.x + dx, position.y + dy)
            if entity is not None:
                self.interact(entity)
                return True

        map_data = self.maps.current_map
        if map_data is not None and map_data.objects is not None:
            for dx, dy in NEIGHBORS_4:
                x, y = position.x + dx, position.y + dy
                if map_data.in_bounds(x, y) and get_tile_props(map_data.object_at(x, y)).interactable:
                    self.maps.interact_tile(x, y)
                    return True

        post_message(
            self.event_bus, MessageCategory.SYSTEM,
            "Nothing interesting to interact with. Story of your life, really.",
        )
        return False

    def examine(self, x: int, y: int) -> None:
        """Describe whatever is on a tile."""
        map_data = self.maps.current_map
        if map_data is None:
            return

        entity = self.world.entity_at(x, y)
        if entity is not None:
            post_message(
                self.event_bus, MessageCategory.SYSTEM,
                entity.description or f"You see {entity.name}.",
            )
            return

        if map_data.in_bounds(x, y):
            props = get_tile_props(map_data.tile_at(x, y))
            post_message(self.event_bus, MessageCategory.SYSTEM, f"You see: {props.name}")

    def _open_container(self, entity: MapEntity) -> None:
        if not entity.items:
            post_message(
                self.event_bus, MessageCategory.SYSTEM,
                f"The {entity.name} is empty. Someone beat you to it.",
            )
            return

        # Whatever does not fit stays behind
        left = [item_id for item_id in entity.items if not self.inventory.add_item(item_id)]
        if len(left) < len(entity.items):
            post_message(
                self.event_bus, MessageCategory.LOOT,
                f"You search the {entity.name} and find some items.",
            )
        entity.items = left

    def _pickup_item(self, entity: MapEntity) -> None:
        if entity.item_id and self.inventory.add_item(entity.item_id):
            entity.alive = False
            self.world.remove_entity(entity)

    # -- Event handlers -----------------------------------------------------

    def _on_map_change(self, event: Event) -> None:
        self.load_map(event['map_id'], event.get('spawn'))

    def _on_map_loaded(self, event: Event) -> None:
        # Restoring a save reloads its map without arriving there
        if self._state != GameState.MENU:
            self.quests.track(ObjectiveType.GO, event['map_id'])
        if (
            self.config.autosave_on_map_load
            and self.saves is not None
            and self._state == GameState.PLAYING
        ):
            self.saves.autosave()

    def _on_entity_interact(self, event: Event) -> None:
        self.quests.track(ObjectiveType.TALK, event['entity'].id)

    def _on_entity_destroy(self, event: Event) -> None:
        entity = event['entity']
        self.quests.track(ObjectiveType.KILL, entity.id)
        for ally_id in entity.allies:
            self.world.change_reputation(ally_id, -ALLY_KILL_PENALTY)

    def _on_item_add(self, event: Event) -> None:
        self.quests.track(ObjectiveType.FETCH, event['item_id'], event.get('count', 1))

    def _on_tile_interact(self, event: Event) -> None:
        self._update_fov()

    def _on_dialog_start(self, event: Event) -> None:
        self.set_state(GameState.DIALOG)

    def _on_dialog_end(self, event: Event) -> None:
        if self._state == GameState.DIALOG:
            self.set_state(GameState.PLAYING)

    def _on_combat_start(self, event: Event) -> None:
        self.set_state(GameState.COMBAT)

    def _on_combat_end(self, event: Event) -> None:
        if self._state == GameState.COMBAT:
            self.set_state(GameState.PLAYING)

    def _on_game_over(self, event: Event) -> None:
        self.set_state(GameState.GAME_OVER)

    # -- Snapshot -----------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """Full session state as JSON-compatible data."""
        world = self.world
        return {
            'player': world.player.model_dump(mode='json'),
            'flags': dict(world.flags),
            'reputation': dict(world.reputation),
            'quests': self.quests.get_save_data(),
            'inventory': self.inventory.get_save_data(),
            'entities': self.maps.get_entity_states(),
            'current_map': world.current_map_id,
        }

    def restore(self, snapshot: dict[str, Any]) -> None:
        """
        Rebuild the session from snapshot() output.

        The current map is reloaded from its saved roster; nothing is
        re-instanced.

        Raises:
            KeyError, ValueError, TypeError: On malformed snapshots. Every
            section is parsed first, so a failure leaves the session as it was.
        """
        player = PlayerRecord.model_validate(snapshot['player'])
        map_id = snapshot.get('current_map') or player.map_id
        saved_position = (player.position.x, player.position.y)
        flags = dict(snapshot.get('flags', {}))
        reputation = dict(snapshot.get('reputation', {}))
        self.quests.parse_save_data(snapshot.get('quests', {}))
        self.inventory.parse_save_data(snapshot.get('inventory', []))
        self.maps.parse_entity_states(snapshot.get('entities', {}))

        self.combat.reset()
        self.dialog.reset()
        self.maps.reset()

        world = self.world
        world.player = player
        world.flags = flags
        world.reputation = reputation
        world.current_map_id = None
        world.entities = []

        self.quests.load_save_data(snapshot.get('quests', {}))
        self.inventory.load_save_data(snapshot.get('inventory', []))
        self.maps.load_entity_states(snapshot.get('entities', {}))
        self.character.recalculate()

        self._state = GameState.MENU
        if map_id and self.load_map(map_id):
            player.position.x, player.position.y = saved_position
            self._update_fov()
        self.set_state(GameState.PLAYING)
