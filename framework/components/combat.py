"""
Combat components - damage ranges, turn phases.
"""

from __future__ import annotations

from enum import Enum, auto

from pydantic import Field, model_validator

from engine.core.component import Component, register_component


class CombatPhase(Enum):
    """Which side acts next."""
    IDLE = auto()
    PLAYER_TURN = auto()
    ENEMY_TURN = auto()


@register_component
class DamageRange(Component):
    """
    Inclusive damage roll bounds.

    Attributes:
        min: Lowest damage roll
        max: Highest damage roll
    """
    min: int = Field(default=1, ge=0)
    max: int = Field(default=5, ge=0)

    @model_validator(mode='after')
    def _ordered(self) -> DamageRange:
        if self.max < self.min:
            raise ValueError(f"damage max {self.max} < min {self.min}")
        return self
