"""
JIT Engine

Infrastructure for the rules engine of a tile-based, turn-based RPG:
typed events, pydantic component records and a schema-validated
content database.

Quick Start:
    from engine.core import EventBus, GameEvent

    bus = EventBus()
    bus.subscribe(GameEvent.PLAYER_MOVE, on_move)
    bus.publish(GameEvent.PLAYER_MOVE, x=3, y=4)
"""

__version__ = "0.1.0"
__author__ = "Developer"

# Re-export core components for convenience
from engine.core import (
    Component,
    register_component,
    EventBus,
    Event,
    GameEvent,
    MessageCategory,
    post_message,
)
from engine.resources import Database

__all__ = [
    # Components
    "Component",
    "register_component",
    # Events
    "EventBus",
    "Event",
    "GameEvent",
    "MessageCategory",
    "post_message",
    # Content
    "Database",
]
