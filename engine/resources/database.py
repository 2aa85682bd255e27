"""
Game Database.

Handles loading and validation of static game content (items, entities,
quests, dialogs, maps). Every record is checked against a JSON schema
before it is accepted.

Layout under the data path:
    schemas/<kind>.schema.json
    database/<category>/*.json   (a list of records or a single record)
"""

import json
import logging
from pathlib import Path
from typing import Any

import jsonschema


# category folder -> schema file
CATEGORIES: dict[str, str] = {
    "items": "item.schema.json",
    "entities": "entity.schema.json",
    "quests": "quest.schema.json",
    "dialogs": "dialog.schema.json",
    "maps": "map.schema.json",
}


class Database:
    """
    Central storage for static game content, keyed by record id.
    """

    def __init__(self, data_path: Path | str):
        self._data_path = Path(data_path)
        self._schemas: dict[str, Any] = {}

        # Data stores
        self.items: dict[str, Any] = {}
        self.entities: dict[str, Any] = {}
        self.quests: dict[str, Any] = {}
        self.dialogs: dict[str, Any] = {}
        self.maps: dict[str, Any] = {}

        self.logger = logging.getLogger(__name__)

    @property
    def data_path(self) -> Path:
        return self._data_path

    def load_all(self) -> None:
        """Load all content from disk."""
        self._load_schemas()

        for folder, schema_name in CATEGORIES.items():
            setattr(self, folder, self._load_category(folder, schema_name))

        self.logger.info(
            f"Loaded {len(self.items)} items, "
            f"{len(self.entities)} entities, "
            f"{len(self.quests)} quests, "
            f"{len(self.dialogs)} dialogs, "
            f"{len(self.maps)} maps."
        )

    def _load_schemas(self) -> None:
        """Load JSON schemas."""
        schema_dir = self._data_path / "schemas"
        if not schema_dir.exists():
            self.logger.warning(f"Schema directory not found: {schema_dir}")
            return

        for schema_file in schema_dir.glob("*.schema.json"):
            try:
                with open(schema_file, 'r', encoding='utf-8') as f:
                    self._schemas[schema_file.name] = json.load(f)
            except (OSError, ValueError) as e:
                self.logger.error(f"Failed to load schema {schema_file}: {e}")

    def _load_category(self, folder: str, schema_name: str) -> dict[str, Any]:
        """Load all JSON files in a category folder."""
        category_dir = self._data_path / "database" / folder
        data_store: dict[str, Any] = {}

        if not category_dir.exists():
            self.logger.warning(f"Data directory not found: {category_dir}")
            return data_store

        schema = self._schemas.get(schema_name)
        if schema is None:
            self.logger.warning(f"No schema found for {folder} ({schema_name})")

        for file_path in sorted(category_dir.glob("*.json")):
            try:
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                self.logger.error(f"Failed to load {file_path}: {e}")
                continue

            # A file holds either a list of records or a single record
            records = data if isinstance(data, list) else [data]
            for record in records:
                if schema is not None:
                    try:
                        jsonschema.validate(instance=record, schema=schema)
                    except jsonschema.ValidationError as e:
                        self.logger.error(f"Validation error in {file_path}: {e.message}")
                        continue
                if isinstance(record, dict) and 'id' in record:
                    if record['id'] in data_store:
                        self.logger.warning(f"Duplicate {folder} id {record['id']!r} in {file_path}")
                    data_store[record['id']] = record

        return data_store

    def get_item(self, item_id: str) -> dict[str, Any] | None:
        return self.items.get(item_id)

    def get_entity(self, entity_id: str) -> dict[str, Any] | None:
        return self.entities.get(entity_id)

    def get_quest(self, quest_id: str) -> dict[str, Any] | None:
        return self.quests.get(quest_id)

    def get_dialog(self, dialog_id: str) -> dict[str, Any] | None:
        return self.dialogs.get(dialog_id)

    def get_map(self, map_id: str) -> dict[str, Any] | None:
        return self.maps.get(map_id)
