import json

import pytest

from engine.core.events import GameEvent
from framework.save.manager import SaveManager
from framework.world.session import GameSession, GameState, SessionConfig


@pytest.fixture
def session(tmp_path):
    """Started session saving into a temporary directory."""
    session = GameSession(SessionConfig(seed=1, save_path=tmp_path / "saves"))
    session.start_new_game("Nate")
    return session


@pytest.fixture
def saves(session):
    return session.saves


def read_slot(saves, slot_name):
    with open(saves.save_path / f"save_{slot_name}.json", encoding="utf-8") as f:
        return json.load(f)


def write_slot(saves, slot_name, data):
    with open(saves.save_path / f"save_{slot_name}.json", "w", encoding="utf-8") as f:
        json.dump(data, f)


def test_save_writes_metadata(saves, session):
    assert saves.save("slot1")

    data = read_slot(saves, "slot1")
    assert data["version"] == SaveManager.VERSION
    assert data["player_name"] == "Nate"
    assert data["level"] == 1
    assert data["location"] == "vault42"
    assert data["state"]["current_map"] == "vault42"


def test_save_and_load_round_trip(saves, session, session_messages):
    loaded = []
    session.event_bus.subscribe(GameEvent.GAME_LOAD, loaded.append, weak=False)
    session.player.position.x = 23
    session.player.position.y = 13
    session.move_player(0, -1)
    session.world.set_flag("met_chronos")
    saves.save("slot1")
    assert session_messages[-1].startswith("Game saved to slot: slot1.")

    session.world.set_flag("spoiled")
    session.inventory.remove_item("pistol_10mm")
    session.load_map("wastes")

    assert saves.load("slot1")

    assert loaded[0]["slot_name"] == "slot1"
    assert session_messages[-1].startswith("Game loaded from slot: slot1.")
    assert session.state == GameState.PLAYING
    assert session.world.current_map_id == "vault42"
    assert (session.player.position.x, session.player.position.y) == (23, 13)
    assert session.world.has_flag("met_chronos")
    assert not session.world.has_flag("spoiled")
    assert session.inventory.has_item("pistol_10mm")
    assert session.world.find_entity("vault_locker_1").items == []


def test_removed_entities_stay_removed(saves, session):
    bot = session.world.find_entity("security_bot")
    session.world.remove_entity(bot)
    saves.save("slot1")

    session.start_new_game("Nate")
    assert session.world.find_entity("security_bot") is not None

    saves.load("slot1")
    assert session.world.find_entity("security_bot") is None


def test_load_missing_slot(saves, session_messages):
    assert not saves.load("nothing_here")
    assert session_messages[-1] == "No save found in that slot."


def test_tampered_save_is_rejected(saves, session, session_messages):
    saves.save("slot1")
    data = read_slot(saves, "slot1")
    data["state"]["player"]["caps"] = 99999
    write_slot(saves, "slot1", data)

    assert not saves.load("slot1")

    assert session.player.caps == 50
    assert session_messages[-1] == "Save data is corrupted or from an incompatible version."
    assert saves.validate_save("slot1") is False


def test_bad_section_leaves_session_untouched(saves, session, session_messages):
    saves.save("slot1")
    data = read_slot(saves, "slot1")
    state = data["state"]
    state["player"]["name"] = "Impostor"
    state["player"]["caps"] = 99999
    state["quests"]["wake_up_call"]["state"] = "BOGUS"
    data["checksum"] = saves._calculate_checksum(state)
    write_slot(saves, "slot1", data)

    assert not saves.load("slot1")

    assert session.player.name == "Nate"
    assert session.player.caps == 50
    assert session.quests.get_quest("wake_up_call") is not None
    assert session.world.current_map_id == "vault42"
    assert session.state == GameState.PLAYING
    assert session_messages[-1].startswith("Failed to load save.")


def test_incompatible_version_is_rejected(saves, session, session_messages):
    saves.save("slot1")
    data = read_slot(saves, "slot1")
    data["version"] = "0.1"
    write_slot(saves, "slot1", data)
    session.world.set_flag("after_save")

    assert not saves.load("slot1")

    assert session.world.has_flag("after_save")
    assert session_messages[-1] == "Save data is corrupted or from an incompatible version."


def test_malformed_save(saves, session_messages):
    saves.save_path.mkdir(parents=True, exist_ok=True)
    (saves.save_path / "save_broken.json").write_text("{not json", encoding="utf-8")

    assert not saves.load("broken")

    assert session_messages[-1].startswith("Failed to load save.")
    assert saves.validate_save("broken") is False


def test_slots(saves, session):
    assert not saves.has_save("slot1")
    assert saves.validate_save("slot1") is None

    saves.save("slot1")
    session.load_map("wastes")
    saves.save("slot2")

    assert saves.has_save("slot1")
    assert saves.validate_save("slot1") is True
    slots = {meta.slot_name: meta for meta in saves.list_slots()}
    assert slots["slot1"].location == "vault42"
    assert slots["slot2"].location == "wastes"
    assert slots["slot2"].player_name == "Nate"

    assert saves.delete_save("slot1")
    assert not saves.has_save("slot1")
    assert not saves.delete_save("slot1")


def test_list_slots_skips_unreadable_files(saves):
    saves.save("slot1")
    (saves.save_path / "save_junk.json").write_text("[]", encoding="utf-8")

    assert [meta.slot_name for meta in saves.list_slots()] == ["slot1"]


def test_list_slots_without_directory(tmp_path, session):
    assert SaveManager(session, tmp_path / "missing").list_slots() == []
