"""
Component base class for game records.

Components are pydantic models holding the mutable records of a session
(the player, live map entities, inventory). Systems own the rules; the
few methods a component carries only keep its own fields consistent
(clamping health, spending action points).

Usage:
    @register_component
    class GridPosition(Component):
        x: int = 0
        y: int = 0
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict


class Component(BaseModel):
    """
    Base class for all components.

    Components use Pydantic for:
    - Automatic validation (also on assignment)
    - JSON-compatible dumps for snapshots
    - Type hints
    - Default values
    """

    model_config = ConfigDict(
        # Allow arbitrary types (for references)
        arbitrary_types_allowed=True,
        # Validate on assignment
        validate_assignment=True,
        # Reject unknown fields
        extra='forbid',
    )

    # Class variable: component type name (used for serialization)
    _type_name: ClassVar[str] = ""

    @classmethod
    def get_type_name(cls) -> str:
        """Get the component type name for serialization."""
        return cls._type_name or cls.__name__

    def clone(self) -> Component:
        """Create a deep copy of this component."""
        return self.model_copy(deep=True)

    def to_snapshot(self) -> dict[str, Any]:
        """Dump as a tagged, JSON-compatible dict."""
        return {
            'type': self.get_type_name(),
            'data': self.model_dump(mode='json'),
        }


# Registry of component types for deserialization
_component_registry: dict[str, type[Component]] = {}


def register_component(cls: type[Component]) -> type[Component]:
    """
    Decorator to register a component type.

    Usage:
        @register_component
        class Health(Component):
            current: int
            max: int
    """
    type_name = cls.get_type_name()
    _component_registry[type_name] = cls
    return cls


def get_component_type(type_name: str) -> type[Component] | None:
    """Get component class by type name."""
    return _component_registry.get(type_name)


def component_from_snapshot(snapshot: dict[str, Any]) -> Component:
    """
    Rebuild a component from to_snapshot() output.

    Raises:
        ValueError: If the type name is not registered
    """
    cls = get_component_type(snapshot.get('type', ''))
    if cls is None:
        raise ValueError(f"Unknown component type: {snapshot.get('type')!r}")
    return cls.model_validate(snapshot.get('data', {}))
