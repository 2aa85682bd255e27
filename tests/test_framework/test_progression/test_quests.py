import pytest

from engine.core.events import GameEvent
from framework.progression.quests import ObjectiveType, QuestDefinitionError, QuestState


def quest_record(**overrides):
    record = {
        "id": "scrap_run",
        "title": "Scrap Run",
        "description": "Collect scrap.",
        "start_stage": "collect",
        "stages": {
            "collect": {
                "description": "Collect scrap metal.",
                "objectives": [
                    {"type": "fetch", "target": "scrap_metal", "count": 3, "description": "Collect scrap"}
                ],
                "on_complete": [{"type": "set_flag", "flag": "scrap_collected"}],
                "next_stage": "deliver",
            },
            "deliver": {
                "objectives": [{"type": "talk", "target": "rusty"}],
            },
        },
        "rewards": {"xp": 40, "caps": 10, "items": ["stimpak"]},
    }
    record.update(overrides)
    return record


@pytest.fixture
def quests(started):
    started.quests.load({"scrap_run": quest_record()})
    return started.quests


def test_undefined_stage_is_rejected(started, caplog):
    broken = quest_record(id="broken", start_stage="nowhere")
    dangling = quest_record(id="dangling")
    dangling["stages"]["deliver"]["next_stage"] = "missing"

    started.quests.load({"broken": broken, "dangling": dangling})

    assert started.quests.get_definition("broken") is None
    assert started.quests.get_definition("dangling") is None
    assert "Invalid quest 'broken'" in caplog.text

    with pytest.raises(QuestDefinitionError):
        started.quests._parse_quest(broken)


def test_start_quest(quests, started, session_messages):
    events = []
    started.event_bus.subscribe(GameEvent.QUEST_START, events.append, weak=False)

    assert quests.start_quest("scrap_run")
    assert not quests.start_quest("scrap_run")
    assert not quests.start_quest("no_such_quest")

    quest = quests.get_quest("scrap_run")
    assert quest.state == QuestState.ACTIVE
    assert quest.current_stage == "collect"
    assert len(events) == 1
    assert "New Quest: Scrap Run - Collect scrap." in session_messages


def test_objective_progress_is_capped(quests):
    quests.start_quest("scrap_run")

    assert quests.update_objective("scrap_run", "fetch", "scrap_metal", 2)
    assert quests.get_quest("scrap_run").objectives[0].current == 2
    assert not quests.update_objective("scrap_run", ObjectiveType.FETCH, "water_chip")


def test_unknown_objective_type(started, caplog):
    assert not started.quests.update_objective("wake_up_call", "explore", "x")

    assert "Unknown objective type: explore" in caplog.text
    assert started.quests.get_quest("wake_up_call").current_stage == "find_terminal"


def test_stage_completion_runs_effects_and_advances(quests, started):
    quests.start_quest("scrap_run")

    quests.update_objective("scrap_run", ObjectiveType.FETCH, "scrap_metal", 5)

    quest = quests.get_quest("scrap_run")
    assert started.world.has_flag("scrap_collected")
    assert quest.current_stage == "deliver"
    assert quest.objectives[0].type == ObjectiveType.TALK
    assert quest.objectives[0].current == 0


def test_final_stage_completes_with_rewards_once(quests, started):
    quests.start_quest("scrap_run")
    quests.advance_quest("scrap_run", "deliver")
    caps = started.player.caps

    quests.track(ObjectiveType.TALK, "rusty")

    assert quests.is_complete("scrap_run")
    assert [q.quest_id for q in quests.get_completed_quests()] == ["scrap_run"]
    assert started.player.caps == caps + 10
    assert started.player.xp == 40
    assert started.inventory.get_item_count("stimpak") == 3

    assert not quests.complete_quest("scrap_run")
    assert started.player.caps == caps + 10


def test_advance_to_unknown_stage(quests):
    quests.start_quest("scrap_run")
    assert not quests.advance_quest("scrap_run", "missing")
    assert not quests.advance_quest("never_started", "deliver")


def test_fail_quest(quests):
    quests.start_quest("scrap_run")

    assert quests.fail_quest("scrap_run")
    assert quests.is_failed("scrap_run")
    assert not quests.fail_quest("scrap_run")
    assert not quests.start_quest("scrap_run")
    assert not quests.update_objective("scrap_run", "fetch", "scrap_metal")


def test_kill_objectives_match_id_prefix(started):
    quests = started.quests
    quests.start_quest("pest_control")
    caps = started.player.caps

    for roach in ("radroach_1", "radroach_2", "mole_rat_1", "radroach_3"):
        quests.track(ObjectiveType.KILL, roach)

    assert quests.is_complete("pest_control")
    assert started.player.caps == caps + 75
    assert started.inventory.get_item_count("stimpak") == 4


def test_wake_up_call_walkthrough(started):
    quests = started.quests
    assert quests.is_active("wake_up_call")

    quests.track(ObjectiveType.TALK, "chronos_terminal")
    assert quests.get_quest("wake_up_call").current_stage == "get_equipped"

    quests.track(ObjectiveType.FETCH, "pistol_10mm")
    assert quests.get_quest("wake_up_call").current_stage == "exit_vault"

    quests.track(ObjectiveType.GO, "wastes")
    assert quests.is_complete("wake_up_call")
    assert quests.is_active("fresh_air")
    assert started.player.level == 2


def test_save_data_round_trip(quests):
    quests.start_quest("scrap_run")
    quests.update_objective("scrap_run", "fetch", "scrap_metal", 2)
    data = quests.get_save_data()

    quests.reset()
    assert quests.get_quest("scrap_run") is None

    quests.load_save_data(data)
    quest = quests.get_quest("scrap_run")
    assert quest.state == QuestState.ACTIVE
    assert quest.objectives[0].current == 2
    assert [q.quest_id for q in quests.get_active_quests()] == ["wake_up_call", "scrap_run"]
