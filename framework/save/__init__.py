"""
Save module - session persistence.

Provides:
- Save/load of full session snapshots
- Named slots plus an auto-save slot
- Checksum validation
- Slot metadata (player, level, location, time)
"""

from framework.save.manager import (
    AUTO_SAVE_SLOT,
    SaveManager,
    SaveMetadata,
)

__all__ = [
    "AUTO_SAVE_SLOT",
    "SaveManager",
    "SaveMetadata",
]
