"""
Battle module - turn-based combat on the map grid.

Provides:
- Initiative turn order
- Player actions (attack, use item, end turn, flee)
- The enemy turn as a discrete step
- Loot, XP and death handling
"""

from framework.battle.system import (
    AP_COST_MELEE,
    AP_COST_SHOOT,
    AP_COST_USE_ITEM,
    Combatant,
    CombatResolver,
    TurnOrder,
    grid_distance,
    in_range,
)

__all__ = [
    "AP_COST_MELEE",
    "AP_COST_SHOOT",
    "AP_COST_USE_ITEM",
    "Combatant",
    "CombatResolver",
    "TurnOrder",
    "grid_distance",
    "in_range",
]
