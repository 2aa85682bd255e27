"""
World module - maps, world state, the game session.

Provides:
- Map decoding from the content database
- Entity instancing and per-map rosters
- Door, lock and terminal tile interactions
- Flags and reputation
- The GameSession that wires every system together
"""

from framework.world.map import (
    CHAR_TO_TILE,
    TILE_PROPS,
    DatabaseMapProvider,
    EntityPlacement,
    FieldOfView,
    MapData,
    MapExit,
    MapProvider,
    MapSystem,
    PathFinder,
    SpawnPoint,
    TileKind,
    TileProps,
    build_entity,
    decode_rows,
    get_tile_props,
)
from framework.world.navigation import GridPathFinder, RayFieldOfView
from framework.world.state import ReputationTier, WorldState, reputation_tier
from framework.world.session import GameSession, GameState, SessionConfig

__all__ = [
    # Map
    "CHAR_TO_TILE",
    "TILE_PROPS",
    "DatabaseMapProvider",
    "EntityPlacement",
    "FieldOfView",
    "MapData",
    "MapExit",
    "MapProvider",
    "MapSystem",
    "PathFinder",
    "SpawnPoint",
    "TileKind",
    "TileProps",
    "build_entity",
    "decode_rows",
    "get_tile_props",
    # Navigation
    "GridPathFinder",
    "RayFieldOfView",
    # State
    "ReputationTier",
    "WorldState",
    "reputation_tier",
    # Session
    "GameSession",
    "GameState",
    "SessionConfig",
]
