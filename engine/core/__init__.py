"""
Core engine module.

Exports:
- Component, register_component: Component base and registration
- component_from_snapshot: Rebuild a component by type name
- EventBus, Event, GameEvent: Event system
- MessageCategory, post_message: UI message lines
"""

from engine.core.component import (
    Component,
    register_component,
    get_component_type,
    component_from_snapshot,
)
from engine.core.events import (
    EventBus,
    Event,
    EventHandler,
    GameEvent,
    MessageCategory,
    post_message,
)

__all__ = [
    # Components
    "Component",
    "register_component",
    "get_component_type",
    "component_from_snapshot",
    # Events
    "EventBus",
    "Event",
    "EventHandler",
    "GameEvent",
    "MessageCategory",
    "post_message",
]
