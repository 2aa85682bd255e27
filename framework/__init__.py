"""
JIT Framework module.

Provides the game rules built on top of the engine:
- Components (data-only, Pydantic models)
- Effects (tagged-union effects and conditions)
- Progression (attributes, skills, leveling, quests)
- Inventory (items, weight, equipment)
- Dialog (validated conversation graphs)
- Battle (turn-based grid combat)
- World (maps, world state, the game session)
- Save (persistence)
"""
