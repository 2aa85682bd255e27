import pytest

from engine.core.events import GameEvent
from framework.components.character import Attributes
from framework.progression.character import (
    CharacterResolver,
    clamp_check,
    derive_skills,
    derive_stats,
    skill_points_for_level,
)
from framework.world.state import WorldState


@pytest.fixture
def character(event_bus, scripted_rng):
    world = WorldState(event_bus)
    resolver = CharacterResolver(world, event_bus, rng=scripted_rng)
    resolver.recalculate()
    world.player.refill()
    return resolver


def test_derived_stats_at_default_attributes():
    stats = derive_stats(Attributes())

    assert stats.max_hp == 70
    assert stats.max_ap == 8
    assert stats.carry_weight == 100
    assert stats.crit_chance == 15
    assert stats.crit_multiplier == 2.0
    assert stats.dodge_chance == 15
    assert stats.melee_damage_bonus == 2
    assert stats.initiative == 10


def test_derived_stats_follow_attributes():
    stats = derive_stats(Attributes(agility=7, toughness=8, strength=3, daring=1, eyes=9))

    assert stats.max_hp == 100
    assert stats.max_ap == 9
    assert stats.carry_weight == 80
    assert stats.crit_chance == 11
    assert stats.crit_multiplier == 1.6
    assert stats.dodge_chance == 23
    assert stats.melee_damage_bonus == 1
    assert stats.initiative == 16


def test_skills_from_attribute_pairs():
    skills = derive_skills(Attributes(wits=8, daring=2), {"barter": 4})

    assert skills["barter"] == 54
    assert skills["firearms"] == 50
    assert skills["hacking"] == 65


def test_from_mapping_clamps_and_defaults():
    attributes = Attributes.from_mapping({"wits": 14, "agility": 0})

    assert attributes.wits == 10
    assert attributes.agility == 1
    assert attributes.strength == 5


def test_clamp_check():
    assert clamp_check(-40) == 5
    assert clamp_check(50) == 50
    assert clamp_check(120) == 95


def test_skill_check_success_and_failure(character, scripted_rng):
    scripted_rng.queue(30, 31)

    passed = character.skill_check("barter", 20)
    failed = character.skill_check("barter", 20)

    assert passed.success and passed.target == 30 and passed.margin == 0
    assert passed.skill_name == "Barter"
    assert not failed.success and failed.roll == 31


def test_skill_check_is_clamped(character, scripted_rng):
    scripted_rng.queue(95, 5)

    easy = character.skill_check("firearms", -100)
    unknown = character.skill_check("basket_weaving", 0)

    assert easy.target == 95 and easy.success
    assert unknown.target == 5 and unknown.success
    assert unknown.skill_name == "basket_weaving"


def test_attribute_check(character):
    assert character.attribute_check("wits", 5)
    assert not character.attribute_check("wits", 6)
    assert not character.attribute_check("charm", 1)


def test_single_level_up(character, event_bus):
    levels = []
    event_bus.subscribe(GameEvent.PLAYER_LEVEL_UP, levels.append, weak=False)

    character.add_xp(100)

    player = character.player
    assert player.level == 2
    assert player.pending_skill_points == 7
    assert levels[0]["level"] == 2 and levels[0]["skill_points"] == 7


def test_multiple_level_ups_from_one_award(character, messages):
    character.player.hp = 10

    character.add_xp(300)

    player = character.player
    assert player.level == 3
    assert player.pending_skill_points == 14
    assert player.hp == player.derived.max_hp
    assert "Gained 300 XP." in messages


def test_skill_points_scale_with_wits():
    assert skill_points_for_level(Attributes(wits=9)) == 9


def test_allocate_skill_points(character, messages):
    assert not character.allocate_skill_points("lockpick", 5)
    assert "Not enough skill points." in messages

    character.player.pending_skill_points = 7
    assert character.allocate_skill_points("lockpick", 5)

    assert character.get_skill("lockpick") == 55
    assert character.player.pending_skill_points == 2


def test_modify_attribute_recalculates(character):
    assert character.modify_attribute("toughness", 2)
    assert character.player.derived.max_hp == 90
    assert character.player.hp == 70

    character.modify_attribute("strength", 20)
    assert character.player.attributes.strength == 10

    assert not character.modify_attribute("charm", 1)


def test_damage_respects_armor_and_minimum(character):
    character.armor_defense = lambda: 5

    assert character.damage_player(12) == 7
    assert character.damage_player(3) == 1
    assert character.player.hp == 62


def test_death_is_published_at_zero_health(character, event_bus):
    deaths = []
    event_bus.subscribe(GameEvent.PLAYER_DEATH, deaths.append, weak=False)

    character.damage_player(500)

    assert character.player.hp == 0
    assert character.player.is_dead
    assert len(deaths) == 1


def test_heal_never_exceeds_max(character):
    character.player.hp = 60

    assert character.heal_player(30) == 10
    assert character.player.hp == 70
