"""
Save/Load system - session persistence.

Provides:
- Named save slots, one JSON file each
- Auto-save slot
- Save integrity validation (SHA-256 checksum of the state)
- Slot listing for load menus

Save file layout:
    {
        "version": "1.0",
        "timestamp": "2026-01-01T12:00:00",
        "slot_name": "auto",
        "player_name": "Nate",
        "level": 3,
        "location": "wastes",
        "checksum": "<base64 sha256>",
        "state": {...}    # GameSession.snapshot()
    }
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from engine.core.events import GameEvent, MessageCategory, post_message

if TYPE_CHECKING:
    from framework.world.session import GameSession


AUTO_SAVE_SLOT = "auto"


@dataclass
class SaveMetadata:
    """Metadata about a save file."""
    slot_name: str
    player_name: str
    level: int
    location: str
    timestamp: str


class SaveManager:
    """
    Writes and reads session snapshots.

    Failures never raise: they are logged, reported as a warning message
    and leave the in-memory session untouched.

    Usage:
        saves = SaveManager(session, "saves")
        saves.save("slot1")
        saves.load("slot1")
    """

    VERSION = "1.0"

    def __init__(self, session: GameSession, save_path: Path | str):
        self.session = session
        self.save_path = Path(save_path)
        self.logger = logging.getLogger(__name__)

    @property
    def event_bus(self):
        return self.session.event_bus

    def _get_slot_path(self, slot_name: str) -> Path:
        return self.save_path / f"save_{slot_name}.json"

    # -- Save / load --------------------------------------------------------

    def save(self, slot_name: str = AUTO_SAVE_SLOT) -> bool:
        """
        Save the current session to a slot.

        Returns:
            True if the file was written
        """
        player = self.session.world.player
        state = self.session.snapshot()
        save_data = {
            'version': self.VERSION,
            'timestamp': datetime.now().isoformat(),
            'slot_name': slot_name,
            'player_name': player.name,
            'level': player.level,
            'location': player.map_id or "",
            'checksum': self._calculate_checksum(state),
            'state': state,
        }

        try:
            self.save_path.mkdir(parents=True, exist_ok=True)
            with open(self._get_slot_path(slot_name), 'w', encoding='utf-8') as f:
                json.dump(save_data, f, indent=2)
        except (OSError, ValueError, TypeError) as e:
            self.logger.warning(f"Save to slot {slot_name!r} failed: {e}")
            post_message(
                self.event_bus, MessageCategory.WARNING,
                "Save failed. The disk is full, much like your inventory.",
            )
            return False

        self.event_bus.publish(GameEvent.GAME_SAVE, slot_name=slot_name)
        post_message(
            self.event_bus, MessageCategory.SYSTEM,
            f"Game saved to slot: {slot_name}. Your progress is preserved, "
            "unlike most things in the wasteland.",
        )
        return True

    def load(self, slot_name: str = AUTO_SAVE_SLOT) -> bool:
        """
        Restore the session from a slot after checking version and checksum.

        Returns:
            True if the session was restored
        """
        path = self._get_slot_path(slot_name)
        if not path.exists():
            post_message(self.event_bus, MessageCategory.WARNING, "No save found in that slot.")
            return False

        try:
            with open(path, 'r', encoding='utf-8') as f:
                save_data = json.load(f)

            state = save_data.get('state')
            if save_data.get('version') != self.VERSION or not isinstance(state, dict):
                post_message(
                    self.event_bus, MessageCategory.WARNING,
                    "Save data is corrupted or from an incompatible version.",
                )
                return False

            if save_data.get('checksum') != self._calculate_checksum(state):
                self.logger.warning(f"Checksum mismatch in {path}")
                post_message(
                    self.event_bus, MessageCategory.WARNING,
                    "Save data is corrupted or from an incompatible version.",
                )
                return False

            self.session.restore(state)

        except (OSError, ValueError, TypeError, KeyError) as e:
            self.logger.warning(f"Load from slot {slot_name!r} failed: {e}")
            post_message(
                self.event_bus, MessageCategory.WARNING,
                "Failed to load save. The data is as corrupted as pre-war politics.",
            )
            return False

        self.event_bus.publish(GameEvent.GAME_LOAD, slot_name=slot_name)
        post_message(
            self.event_bus, MessageCategory.SYSTEM,
            f"Game loaded from slot: {slot_name}. Welcome back to the apocalypse.",
        )
        return True

    def autosave(self) -> bool:
        return self.save(AUTO_SAVE_SLOT)

    # -- Slots --------------------------------------------------------------

    def list_slots(self) -> list[SaveMetadata]:
        """Metadata for every readable save, newest first."""
        slots = []
        if not self.save_path.exists():
            return slots

        for path in self.save_path.glob("save_*.json"):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
                slots.append(SaveMetadata(
                    slot_name=data['slot_name'],
                    player_name=data.get('player_name', ''),
                    level=data.get('level', 1),
                    location=data.get('location', ''),
                    timestamp=data.get('timestamp', ''),
                ))
            except (OSError, ValueError, KeyError, TypeError) as e:
                self.logger.warning(f"Skipping unreadable save {path}: {e}")

        slots.sort(key=lambda meta: meta.timestamp, reverse=True)
        return slots

    def has_save(self, slot_name: str = AUTO_SAVE_SLOT) -> bool:
        return self._get_slot_path(slot_name).exists()

    def delete_save(self, slot_name: str) -> bool:
        """Delete a save slot. Returns False if nothing was deleted."""
        path = self._get_slot_path(slot_name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            self.logger.warning(f"Could not delete {path}: {e}")
            return False
        return True

    # -- Checksum -----------------------------------------------------------

    def _calculate_checksum(self, state: dict[str, Any]) -> str:
        """SHA-256 over a canonical JSON dump of the state."""
        json_str = json.dumps(state, sort_keys=True, separators=(',', ':'))
        hash_bytes = hashlib.sha256(json_str.encode('utf-8')).digest()
        return base64.b64encode(hash_bytes).decode('ascii')

    def validate_save(self, slot_name: str) -> Optional[bool]:
        """
        Check a save file's integrity without loading it.

        Returns:
            None if missing, otherwise whether the checksum matches
        """
        path = self._get_slot_path(slot_name)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError):
            return False
        state = data.get('state')
        return isinstance(state, dict) and data.get('checksum') == self._calculate_checksum(state)
