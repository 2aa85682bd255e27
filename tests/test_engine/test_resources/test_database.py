import pytest
import json
from pathlib import Path
from engine.resources.database import Database

@pytest.fixture
def mock_db_path(tmp_path):
    # Setup mock directory structure in tmp_path
    schemas = tmp_path / "schemas"
    schemas.mkdir()

    database = tmp_path / "database"
    database.mkdir()
    (database / "items").mkdir()

    # Create valid schema
    item_schema = {
        "type": "object",
        "required": ["id", "value"],
        "properties": {
            "id": {"type": "string"},
            "value": {"type": "integer"}
        }
    }
    with open(schemas / "item.schema.json", "w") as f:
        json.dump(item_schema, f)

    return tmp_path

def test_load_all(mock_db_path):
    # Create valid item
    item_data = [
        {"id": "pipe", "value": 100}
    ]
    with open(mock_db_path / "database" / "items" / "pipe.json", "w") as f:
        json.dump(item_data, f)

    db = Database(mock_db_path)
    db.load_all()

    assert "pipe" in db.items
    assert db.get_item("pipe")["value"] == 100

def test_single_record_file(mock_db_path):
    with open(mock_db_path / "database" / "items" / "single.json", "w") as f:
        json.dump({"id": "single", "value": 1}, f)

    db = Database(mock_db_path)
    db.load_all()

    assert "single" in db.items

def test_validation_error(mock_db_path):
    # Create invalid item (missing value)
    item_data = [
        {"id": "broken"},
        {"id": "fine", "value": 3}
    ]
    with open(mock_db_path / "database" / "items" / "broken.json", "w") as f:
        json.dump(item_data, f)

    db = Database(mock_db_path)
    db.load_all()

    assert "broken" not in db.items  # Skipped due to validation error
    assert "fine" in db.items

def test_malformed_json_is_skipped(mock_db_path):
    (mock_db_path / "database" / "items" / "bad.json").write_text("[{not json")

    db = Database(mock_db_path)
    db.load_all()

    assert db.items == {}

def test_missing_schema(mock_db_path):
    # Without a schema records load unvalidated
    item_data = [{"id": "pipe", "value": "lots"}]
    with open(mock_db_path / "database" / "items" / "pipe.json", "w") as f:
        json.dump(item_data, f)

    (mock_db_path / "schemas" / "item.schema.json").unlink()

    db = Database(mock_db_path)
    db.load_all()

    assert db.items["pipe"]["value"] == "lots"

def test_missing_categories_are_empty(mock_db_path):
    db = Database(mock_db_path)
    db.load_all()

    assert db.quests == {}
    assert db.get_map("vault42") is None

def test_bundled_content(database):
    assert len(database.items) == 24
    assert set(database.maps) == {"vault42", "dustbowl", "wastes"}
    assert set(database.quests) == {
        "wake_up_call", "fresh_air", "water_we_gonna_do",
        "liquid_courage", "pest_control", "doctors_orders",
    }
    assert len(database.dialogs) == 6
    assert database.get_entity("security_bot")["hp"] == 30
    assert database.get_item("stimpak")["effects"][0] == {"type": "heal", "amount": 30}
