"""
Typed event bus for decoupled communication.

Uses Enums for event types to prevent magic strings. Every cross-system
notification in the rules engine (and everything the presentation layer
listens to) flows through one bus owned by the game session.

Usage:
    bus = EventBus()

    # Subscribe
    bus.subscribe(GameEvent.PLAYER_DAMAGE, on_player_damaged)

    # Publish
    bus.publish(GameEvent.PLAYER_DAMAGE, amount=10)

Dispatch is synchronous and re-entrant: an event published from inside a
handler is delivered to its own handlers before the outer publish returns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable
from weakref import WeakMethod, ref


logger = logging.getLogger(__name__)


class GameEvent(Enum):
    """Events published by the rules engine."""
    # Lifecycle
    GAME_START = auto()
    GAME_OVER = auto()
    GAME_SAVE = auto()
    GAME_LOAD = auto()
    STATE_CHANGE = auto()

    # Player
    PLAYER_MOVE = auto()
    PLAYER_INTERACT = auto()
    PLAYER_DAMAGE = auto()
    PLAYER_HEAL = auto()
    PLAYER_DEATH = auto()
    PLAYER_LEVEL_UP = auto()

    # Map
    MAP_CHANGE = auto()
    MAP_LOADED = auto()
    TILE_INTERACT = auto()

    # Entity
    ENTITY_SPAWN = auto()
    ENTITY_DESTROY = auto()
    ENTITY_INTERACT = auto()

    # Combat
    COMBAT_START = auto()
    COMBAT_END = auto()
    COMBAT_TURN = auto()
    COMBAT_ACTION = auto()
    COMBAT_HIT = auto()
    COMBAT_MISS = auto()

    # Dialog
    DIALOG_START = auto()
    DIALOG_END = auto()
    DIALOG_ADVANCE = auto()
    DIALOG_CHOICE = auto()

    # Quest
    QUEST_START = auto()
    QUEST_UPDATE = auto()
    QUEST_COMPLETE = auto()
    QUEST_FAIL = auto()

    # Inventory
    ITEM_ADD = auto()
    ITEM_REMOVE = auto()
    ITEM_USE = auto()
    ITEM_EQUIP = auto()
    ITEM_UNEQUIP = auto()

    # UI / story
    UI_MESSAGE = auto()
    FLAG_SET = auto()
    REPUTATION_CHANGE = auto()


class MessageCategory(Enum):
    """Category tag carried by every UI message."""
    SYSTEM = auto()
    ACTION = auto()
    COMBAT = auto()
    DIALOG = auto()
    QUEST = auto()
    LOOT = auto()
    WARNING = auto()
    HUMOR = auto()


@dataclass
class Event:
    """
    Event data container.

    Attributes:
        type: The event type (Enum member)
        data: Dictionary of event-specific data
        consumed: Whether the event has been handled
    """
    type: Enum
    data: dict[str, Any] = field(default_factory=dict)
    consumed: bool = False

    def consume(self) -> None:
        """Mark event as consumed (stops propagation)."""
        self.consumed = True

    def get(self, key: str, default: Any = None) -> Any:
        """Get event data by key."""
        return self.data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Get event data by key (dict-style)."""
        return self.data[key]


# Type alias for event handlers
EventHandler = Callable[[Event], None]


@dataclass(eq=False)
class _Subscription:
    priority: int
    handler_ref: Any
    one_shot: bool


class EventBus:
    """
    Publish/subscribe channel owned by a game session.

    Features:
    - Typed events (Enum-based)
    - Priority ordering, subscription order within a priority
    - Weak references (auto-cleanup when handlers are deleted)
    - One-shot handlers
    - Event consumption (stops propagation)
    - Re-entrant publishing
    """

    def __init__(self):
        # Map of event type -> ordered subscriptions
        self._handlers: dict[Enum, list[_Subscription]] = {}
        self._depth = 0

    @property
    def is_publishing(self) -> bool:
        """True while any handler is running."""
        return self._depth > 0

    def subscribe(
        self,
        event_type: Enum,
        handler: EventHandler,
        priority: int = 0,
        one_shot: bool = False,
        weak: bool = True,
    ) -> Callable[[], None]:
        """
        Subscribe to an event type.

        Args:
            event_type: The event type to listen for
            handler: Callback function(event: Event)
            priority: Higher priority handlers are called first (default 0)
            one_shot: If True, handler is removed after first call
            weak: If True, use weak reference (handler auto-removed if deleted)

        Returns:
            A callable that removes this subscription
        """
        if weak:
            if hasattr(handler, '__self__'):
                handler_ref = WeakMethod(handler)
            else:
                handler_ref = ref(handler)
        else:
            handler_ref = handler

        subscription = _Subscription(priority, handler_ref, one_shot)
        handlers = self._handlers.setdefault(event_type, [])

        # Insert after every handler of equal or higher priority
        insert_idx = len(handlers)
        for i, existing in enumerate(handlers):
            if priority > existing.priority:
                insert_idx = i
                break
        handlers.insert(insert_idx, subscription)

        def unsubscribe() -> None:
            self._remove(event_type, subscription)

        return unsubscribe

    def unsubscribe(self, event_type: Enum, handler: EventHandler) -> None:
        """
        Unsubscribe from an event type.

        Args:
            event_type: The event type
            handler: The handler to remove
        """
        handlers = self._handlers.get(event_type)
        if not handlers:
            return

        self._handlers[event_type] = [
            s for s in handlers
            if self._get_handler(s.handler_ref) != handler
        ]

    def publish(self, event_type: Enum, **data: Any) -> Event:
        """
        Publish an event.

        Args:
            event_type: The event type
            **data: Event data as keyword arguments

        Returns:
            The Event object (check .consumed to see if it was handled)
        """
        event = Event(type=event_type, data=data)
        self._dispatch(event)
        return event

    def publish_event(self, event: Event) -> None:
        """
        Publish a pre-created event.

        Args:
            event: The event to publish
        """
        self._dispatch(event)

    def has_subscribers(self, event_type: Enum) -> bool:
        """Check whether anything listens for an event type."""
        return bool(self._handlers.get(event_type))

    def clear(self, event_type: Enum | None = None) -> None:
        """
        Clear handlers.

        Args:
            event_type: If specified, only clear handlers for this type.
                       If None, clear all handlers.
        """
        if event_type is None:
            self._handlers.clear()
        elif event_type in self._handlers:
            del self._handlers[event_type]

    def _dispatch(self, event: Event) -> None:
        """Dispatch event to a snapshot of the current handlers."""
        handlers = self._handlers.get(event.type)
        if not handlers:
            return

        self._depth += 1
        try:
            for subscription in list(handlers):
                handler = self._get_handler(subscription.handler_ref)

                if handler is None:
                    # Weak reference was garbage collected
                    self._remove(event.type, subscription)
                    continue

                if subscription.one_shot:
                    if not self._remove(event.type, subscription):
                        # Already fired from a nested publish
                        continue

                try:
                    handler(event)
                except Exception:
                    logger.exception("Error in event handler for %s", event.type)

                if event.consumed:
                    break
        finally:
            self._depth -= 1

    def _remove(self, event_type: Enum, subscription: _Subscription) -> bool:
        handlers = self._handlers.get(event_type)
        if not handlers:
            return False
        for i, existing in enumerate(handlers):
            if existing is subscription:
                handlers.pop(i)
                if not handlers:
                    del self._handlers[event_type]
                return True
        return False

    def _get_handler(self, handler_ref: Any) -> EventHandler | None:
        """Resolve handler from reference."""
        if isinstance(handler_ref, (ref, WeakMethod)):
            return handler_ref()
        return handler_ref


def post_message(bus: EventBus, category: MessageCategory, text: str) -> None:
    """Publish a UI message line."""
    bus.publish(GameEvent.UI_MESSAGE, category=category, text=text)
