"""
Map system - tile grids, entity placement, tile interactions.

Maps are stored in the content database as rows of legend characters:

    {
        "id": "vault42",
        "name": "Vault 42 - Cryogenic Wing",
        "ground": ["#####", "#...#", "#####"],
        "objects": ["     ", " C   ", "     "],
        "spawns": {"start": {"x": 1, "y": 1}},
        "exits": [{"x": 2, "y": 2, "target_map": "wastes", "target_spawn": "from_vault"}],
        "entities": [{"id": "chronos_terminal", "x": 3, "y": 1}]
    }

A space is void. Short rows are padded with void.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Optional, Protocol

from pydantic import ValidationError

from engine.core.component import component_from_snapshot
from engine.core.events import EventBus, GameEvent, MessageCategory, post_message
from framework.components.character import GridPosition
from framework.components.entity import EntityType, MapEntity

if TYPE_CHECKING:
    from engine.resources.database import Database
    from framework.inventory.ledger import InventoryLedger
    from framework.progression.character import CharacterResolver
    from framework.world.state import WorldState


LOCKPICK_DIFFICULTY = 40


class TileKind(Enum):
    """Every tile the legend knows."""
    VOID = auto()
    # Floors
    FLOOR_STONE = auto()
    FLOOR_METAL = auto()
    FLOOR_DIRT = auto()
    FLOOR_GRASS = auto()
    FLOOR_SAND = auto()
    FLOOR_WOOD = auto()
    # Walls
    WALL_STONE = auto()
    WALL_METAL = auto()
    WALL_BRICK = auto()
    WALL_WOOD = auto()
    # Doors
    DOOR_CLOSED = auto()
    DOOR_OPEN = auto()
    DOOR_LOCKED = auto()
    # Terrain
    WATER = auto()
    WATER_DEEP = auto()
    TOXIC = auto()
    RUBBLE = auto()
    DEBRIS = auto()
    ROAD = auto()
    ROAD_CRACKED = auto()
    # Furniture
    TABLE = auto()
    CHAIR = auto()
    BED = auto()
    SHELF = auto()
    COUNTER = auto()
    COMPUTER = auto()
    CRYOPOD = auto()
    GENERATOR = auto()
    # Transitions
    STAIRS_UP = auto()
    STAIRS_DOWN = auto()
    EXIT_NORTH = auto()
    EXIT_SOUTH = auto()
    EXIT_EAST = auto()
    EXIT_WEST = auto()
    # Props
    BARREL = auto()
    CRATE = auto()
    LOCKER = auto()
    FENCE = auto()
    FENCE_GATE = auto()
    SIGN = auto()


@dataclass(frozen=True)
class TileProps:
    """Static properties of a tile kind."""
    name: str
    walkable: bool = False
    transparent: bool = True
    interactable: bool = False


TILE_PROPS: dict[TileKind, TileProps] = {
    TileKind.VOID: TileProps("Void", transparent=False),
    TileKind.FLOOR_STONE: TileProps("Stone Floor", walkable=True),
    TileKind.FLOOR_METAL: TileProps("Metal Floor", walkable=True),
    TileKind.FLOOR_DIRT: TileProps("Dirt", walkable=True),
    TileKind.FLOOR_GRASS: TileProps("Dead Grass", walkable=True),
    TileKind.FLOOR_SAND: TileProps("Sand", walkable=True),
    TileKind.FLOOR_WOOD: TileProps("Wood Floor", walkable=True),
    TileKind.WALL_STONE: TileProps("Stone Wall", transparent=False),
    TileKind.WALL_METAL: TileProps("Metal Wall", transparent=False),
    TileKind.WALL_BRICK: TileProps("Brick Wall", transparent=False),
    TileKind.WALL_WOOD: TileProps("Wood Wall", transparent=False),
    TileKind.DOOR_CLOSED: TileProps("Closed Door", transparent=False, interactable=True),
    TileKind.DOOR_OPEN: TileProps("Open Door", walkable=True, interactable=True),
    TileKind.DOOR_LOCKED: TileProps("Locked Door", transparent=False, interactable=True),
    TileKind.WATER: TileProps("Shallow Water"),
    TileKind.WATER_DEEP: TileProps("Deep Water"),
    TileKind.TOXIC: TileProps("Toxic Waste"),
    TileKind.RUBBLE: TileProps("Rubble", walkable=True),
    TileKind.DEBRIS: TileProps("Debris", walkable=True),
    TileKind.ROAD: TileProps("Road", walkable=True),
    TileKind.ROAD_CRACKED: TileProps("Cracked Road", walkable=True),
    TileKind.TABLE: TileProps("Table"),
    TileKind.CHAIR: TileProps("Chair", walkable=True),
    TileKind.BED: TileProps("Bed"),
    TileKind.SHELF: TileProps("Shelf"),
    TileKind.COUNTER: TileProps("Counter"),
    TileKind.COMPUTER: TileProps("Computer Terminal", interactable=True),
    TileKind.CRYOPOD: TileProps("Cryo Pod"),
    TileKind.GENERATOR: TileProps("Generator"),
    TileKind.STAIRS_UP: TileProps("Stairs Up", walkable=True, interactable=True),
    TileKind.STAIRS_DOWN: TileProps("Stairs Down", walkable=True, interactable=True),
    TileKind.EXIT_NORTH: TileProps("Exit", walkable=True, interactable=True),
    TileKind.EXIT_SOUTH: TileProps("Exit", walkable=True, interactable=True),
    TileKind.EXIT_EAST: TileProps("Exit", walkable=True, interactable=True),
    TileKind.EXIT_WEST: TileProps("Exit", walkable=True, interactable=True),
    TileKind.BARREL: TileProps("Barrel", interactable=True),
    TileKind.CRATE: TileProps("Crate", interactable=True),
    TileKind.LOCKER: TileProps("Locker", interactable=True),
    TileKind.FENCE: TileProps("Fence"),
    TileKind.FENCE_GATE: TileProps("Fence Gate", walkable=True, interactable=True),
    TileKind.SIGN: TileProps("Sign", interactable=True),
}

# Legend used by the bundled maps
CHAR_TO_TILE: dict[str, TileKind] = {
    ' ': TileKind.VOID,
    '.': TileKind.FLOOR_STONE,
    ',': TileKind.FLOOR_METAL,
    ':': TileKind.FLOOR_DIRT,
    ';': TileKind.FLOOR_GRASS,
    '~': TileKind.FLOOR_SAND,
    '_': TileKind.FLOOR_WOOD,
    '#': TileKind.WALL_STONE,
    'H': TileKind.WALL_METAL,
    'B': TileKind.WALL_BRICK,
    'W': TileKind.WALL_WOOD,
    '+': TileKind.DOOR_CLOSED,
    '-': TileKind.DOOR_OPEN,
    'L': TileKind.DOOR_LOCKED,
    'w': TileKind.WATER,
    'D': TileKind.WATER_DEEP,
    'T': TileKind.TOXIC,
    'r': TileKind.RUBBLE,
    'd': TileKind.DEBRIS,
    '=': TileKind.ROAD,
    '%': TileKind.ROAD_CRACKED,
    't': TileKind.TABLE,
    'c': TileKind.CHAIR,
    'b': TileKind.BED,
    's': TileKind.SHELF,
    'n': TileKind.COUNTER,
    'P': TileKind.COMPUTER,
    'C': TileKind.CRYOPOD,
    'G': TileKind.GENERATOR,
    '<': TileKind.STAIRS_UP,
    '>': TileKind.STAIRS_DOWN,
    '^': TileKind.EXIT_NORTH,
    'v': TileKind.EXIT_SOUTH,
    '}': TileKind.EXIT_EAST,
    '{': TileKind.EXIT_WEST,
    'o': TileKind.BARREL,
    'x': TileKind.CRATE,
    'K': TileKind.LOCKER,
    'f': TileKind.FENCE,
    'g': TileKind.FENCE_GATE,
    'S': TileKind.SIGN,
}


def get_tile_props(kind: TileKind) -> TileProps:
    return TILE_PROPS.get(kind, TILE_PROPS[TileKind.VOID])


def decode_rows(rows: list[str], width: int, height: int) -> list[list[TileKind]]:
    """Decode legend rows into a height x width grid, padding with void."""
    grid = []
    for y in range(height):
        row = rows[y] if y < len(rows) else ""
        grid.append([
            CHAR_TO_TILE.get(row[x], TileKind.VOID) if x < len(row) else TileKind.VOID
            for x in range(width)
        ])
    return grid


@dataclass(frozen=True)
class SpawnPoint:
    """A named arrival tile."""
    name: str
    x: int
    y: int


@dataclass(frozen=True)
class MapExit:
    """Stepping onto (x, y) travels to another map."""
    x: int
    y: int
    target_map: str
    target_spawn: str = "start"


@dataclass(frozen=True)
class EntityPlacement:
    """An entity definition placed on a tile, with optional field overrides."""
    id: str
    x: int
    y: int
    overrides: dict[str, Any] = field(default_factory=dict)


@dataclass
class MapData:
    """
    A decoded map.

    The grids are mutable: opening a door rewrites its tile.
    """
    id: str
    name: str
    width: int
    height: int
    ground: list[list[TileKind]]
    objects: Optional[list[list[TileKind]]] = None
    spawns: dict[str, SpawnPoint] = field(default_factory=dict)
    exits: list[MapExit] = field(default_factory=list)
    entities: list[EntityPlacement] = field(default_factory=list)
    ambient: Optional[str] = None

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def ground_at(self, x: int, y: int) -> TileKind:
        return self.ground[y][x]

    def object_at(self, x: int, y: int) -> TileKind:
        if self.objects is None:
            return TileKind.VOID
        return self.objects[y][x]

    def tile_at(self, x: int, y: int) -> TileKind:
        """Topmost non-void tile."""
        obj = self.object_at(x, y)
        return obj if obj != TileKind.VOID else self.ground_at(x, y)

    def is_walkable(self, x: int, y: int) -> bool:
        if not self.in_bounds(x, y):
            return False
        if not get_tile_props(self.ground_at(x, y)).walkable:
            return False
        obj = self.object_at(x, y)
        return obj == TileKind.VOID or get_tile_props(obj).walkable

    def is_transparent(self, x: int, y: int) -> bool:
        if not self.in_bounds(x, y):
            return False
        if not get_tile_props(self.ground_at(x, y)).transparent:
            return False
        obj = self.object_at(x, y)
        return obj == TileKind.VOID or get_tile_props(obj).transparent

    def get_spawn(self, name: Optional[str]) -> tuple[int, int]:
        """Resolve a spawn name, falling back to "start", then (1, 1)."""
        spawn = self.spawns.get(name) if name else None
        if spawn is None:
            spawn = self.spawns.get("start")
        if spawn is None:
            return (1, 1)
        return (spawn.x, spawn.y)

    def exit_at(self, x: int, y: int) -> Optional[MapExit]:
        for map_exit in self.exits:
            if map_exit.x == x and map_exit.y == y:
                return map_exit
        return None


class MapProvider(Protocol):
    """Source of decoded maps."""

    def get_map(self, map_id: str) -> Optional[MapData]:
        ...


class PathFinder(Protocol):
    """Returns the tiles from start (exclusive) to goal (inclusive), or [] when unreachable."""

    def find_path(
        self, map_data: MapData, start: tuple[int, int], goal: tuple[int, int],
    ) -> list[tuple[int, int]]:
        ...


class FieldOfView(Protocol):
    """Returns the set of tiles visible from an origin."""

    def compute(self, map_data: MapData, origin: tuple[int, int]) -> set[tuple[int, int]]:
        ...


class DatabaseMapProvider:
    """Decodes the row-of-characters maps held by the content database."""

    def __init__(self, database: Database):
        self.database = database
        self.logger = logging.getLogger(__name__)

    def get_map(self, map_id: str) -> Optional[MapData]:
        data = self.database.get_map(map_id)
        if data is None:
            return None
        try:
            return self._parse_map(map_id, data)
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error(f"Malformed map {map_id!r}: {e}")
            return None

    def _parse_map(self, map_id: str, data: dict[str, Any]) -> MapData:
        ground_rows = data['ground']
        object_rows = data.get('objects')
        width = data.get('width') or max((len(row) for row in ground_rows), default=0)
        height = data.get('height') or len(ground_rows)

        return MapData(
            id=map_id,
            name=data.get('name', map_id),
            width=width,
            height=height,
            ground=decode_rows(ground_rows, width, height),
            objects=decode_rows(object_rows, width, height) if object_rows else None,
            spawns={
                name: SpawnPoint(name, spawn['x'], spawn['y'])
                for name, spawn in data.get('spawns', {}).items()
            },
            exits=[
                MapExit(
                    x=e['x'],
                    y=e['y'],
                    target_map=e['target_map'],
                    target_spawn=e.get('target_spawn', 'start'),
                )
                for e in data.get('exits', [])
            ],
            entities=[
                EntityPlacement(
                    id=p['id'],
                    x=p['x'],
                    y=p['y'],
                    overrides=dict(p.get('overrides', {})),
                )
                for p in data.get('entities', [])
            ],
            ambient=data.get('ambient'),
        )


def build_entity(
    definition: dict[str, Any],
    placement: EntityPlacement,
    map_id: str,
) -> MapEntity:
    """
    Instantiate a live entity from its definition and placement.

    Raises:
        KeyError: Unknown entity type
        pydantic.ValidationError: Malformed definition fields
    """
    fields = {**definition, **placement.overrides}
    fields['id'] = placement.id
    fields['instance_id'] = f"{map_id}_{placement.id}_{placement.x}_{placement.y}"
    fields['position'] = GridPosition(x=placement.x, y=placement.y)
    fields['alive'] = True
    fields['type'] = EntityType[str(fields.get('type', 'npc')).upper()]
    if fields.get('max_hp') is None and fields.get('hp'):
        fields['max_hp'] = fields['hp']
    return MapEntity(**fields)


class MapSystem:
    """
    Owns decoded maps and per-map entity rosters.

    Handles:
    - Map caching (door states persist for the session)
    - Entity instancing from placements
    - Remembering each map's roster between visits
    - Door, lock and terminal tile interactions
    """

    def __init__(
        self,
        provider: MapProvider,
        database: Database,
        world: WorldState,
        character: CharacterResolver,
        inventory: InventoryLedger,
        event_bus: EventBus,
    ):
        self.provider = provider
        self.database = database
        self.world = world
        self.character = character
        self.inventory = inventory
        self.event_bus = event_bus

        self._maps: dict[str, MapData] = {}
        # map_id -> roster left behind on that map
        self._entity_states: dict[str, list[MapEntity]] = {}

        self.logger = logging.getLogger(__name__)

    @property
    def current_map(self) -> Optional[MapData]:
        map_id = self.world.current_map_id
        return self._maps.get(map_id) if map_id else None

    def load_map(self, map_id: str) -> Optional[MapData]:
        """Decode (or fetch from cache) a map. Unknown maps return None."""
        if map_id in self._maps:
            return self._maps[map_id]

        map_data = self.provider.get_map(map_id)
        if map_data is None:
            self.logger.warning(f"Map not found: {map_id}")
            return None

        self._maps[map_id] = map_data
        return map_data

    # -- Entities -----------------------------------------------------------

    def get_entities(self, map_id: str) -> list[MapEntity]:
        """
        Roster for a map: the remembered one when the map was visited
        before, otherwise freshly instanced from its placements.
        """
        if map_id in self._entity_states:
            return self._entity_states[map_id]

        map_data = self.load_map(map_id)
        if map_data is None:
            return []

        entities = []
        for placement in map_data.entities:
            definition = self.database.get_entity(placement.id)
            if definition is None:
                self.logger.warning(f"Entity definition not found: {placement.id}")
                continue
            try:
                entities.append(build_entity(definition, placement, map_id))
            except (KeyError, ValidationError) as e:
                self.logger.error(f"Invalid entity {placement.id!r} on {map_id}: {e}")
        return entities

    def store_entities(self, map_id: str, entities: list[MapEntity]) -> None:
        """Remember a roster so the next visit sees the same state."""
        self._entity_states[map_id] = entities

    def get_entity_states(self) -> dict[str, list[dict[str, Any]]]:
        """Plain-data rosters for every visited map, including the current one."""
        states = dict(self._entity_states)
        if self.world.current_map_id:
            states[self.world.current_map_id] = self.world.entities
        return {
            map_id: [entity.to_snapshot() for entity in entities]
            for map_id, entities in states.items()
        }

    @staticmethod
    def parse_entity_states(data: dict[str, list[dict[str, Any]]]) -> dict[str, list[MapEntity]]:
        return {
            map_id: [component_from_snapshot(entity) for entity in entities]
            for map_id, entities in (data or {}).items()
        }

    def load_entity_states(self, data: dict[str, list[dict[str, Any]]]) -> None:
        self._entity_states = self.parse_entity_states(data)

    def reset(self) -> None:
        """Forget rosters and door states."""
        self._maps.clear()
        self._entity_states.clear()

    # -- Tiles --------------------------------------------------------------

    def interact_tile(self, x: int, y: int) -> bool:
        """
        Use the interactable tile at (x, y), object layer first.

        Returns:
            True if the tile reacted
        """
        map_data = self.current_map
        if map_data is None or not map_data.in_bounds(x, y):
            return False

        grid = None
        kind = TileKind.VOID
        if map_data.objects is not None:
            obj = map_data.objects[y][x]
            if obj != TileKind.VOID and get_tile_props(obj).interactable:
                grid, kind = map_data.objects, obj
        if grid is None:
            ground = map_data.ground[y][x]
            if get_tile_props(ground).interactable:
                grid, kind = map_data.ground, ground
        if grid is None:
            return False

        if kind == TileKind.DOOR_CLOSED:
            self._set_tile(grid, x, y, TileKind.DOOR_OPEN)
            post_message(self.event_bus, MessageCategory.ACTION, "You open the door.")
        elif kind == TileKind.DOOR_OPEN:
            self._set_tile(grid, x, y, TileKind.DOOR_CLOSED)
            post_message(self.event_bus, MessageCategory.ACTION, "You close the door.")
        elif kind == TileKind.DOOR_LOCKED:
            return self._try_unlock(grid, x, y, map_data.id)
        elif kind == TileKind.COMPUTER:
            post_message(
                self.event_bus, MessageCategory.ACTION,
                "The terminal flickers to life. Most of the data is corrupted, but you "
                "can make out someone's browser history. You wish you hadn't.",
            )
        else:
            return False
        return True

    def _try_unlock(self, grid: list[list[TileKind]], x: int, y: int, map_id: str) -> bool:
        if self.inventory.has_item(f"key_{map_id}"):
            self._set_tile(grid, x, y, TileKind.DOOR_OPEN)
            post_message(
                self.event_bus, MessageCategory.ACTION,
                "You unlock the door using your access key.",
            )
            return True

        result = self.character.skill_check("lockpick", LOCKPICK_DIFFICULTY)
        if result.success:
            self._set_tile(grid, x, y, TileKind.DOOR_OPEN)
            post_message(
                self.event_bus, MessageCategory.ACTION,
                f"[Lockpick check passed: {result.roll}/{result.target}] "
                "You work the tumblers with practiced patience. The lock yields.",
            )
            return True

        post_message(
            self.event_bus, MessageCategory.WARNING,
            f"[Lockpick check failed: {result.roll}/{result.target}] "
            "The lock refuses to cooperate. Try hacking the nearby terminal or find a key.",
        )
        return False

    def _set_tile(self, grid: list[list[TileKind]], x: int, y: int, kind: TileKind) -> None:
        grid[y][x] = kind
        self.event_bus.publish(GameEvent.TILE_INTERACT, x=x, y=y, tile=kind)
