import pytest

from engine.core.events import GameEvent
from framework.battle.system import TurnOrder, grid_distance, in_range
from framework.components import CombatPhase, GridPosition, MapEntity
from framework.components.entity import EntityType
from framework.world.session import GameState


@pytest.fixture
def bot(started):
    """Security bot with the player standing right above it."""
    started.player.position.x = 14
    started.player.position.y = 18
    return started.world.find_entity("security_bot")


@pytest.fixture
def fight(started, bot):
    started.combat.start_combat(bot)
    return started.combat


def test_distance_and_range():
    assert grid_distance(GridPosition(x=0, y=0), GridPosition(x=3, y=4)) == 5
    # Diagonal neighbours are in melee range
    assert in_range(grid_distance(GridPosition(x=0, y=0), GridPosition(x=1, y=1)), 1)
    assert not in_range(2, 1)


def test_turn_order_sorts_by_initiative():
    fast = MapEntity(id="fast", initiative=12)
    slow = MapEntity(id="slow", initiative=2)
    default = MapEntity(id="default")

    order = TurnOrder()
    order.initialize(10, [slow, fast, default])

    assert [c.entity.id if c.entity else "player" for c in order.combatants] == [
        "fast", "player", "default", "slow",
    ]
    assert order.round == 1


def test_player_ties_go_first():
    order = TurnOrder()
    order.initialize(5, [MapEntity(id="even", initiative=5)])

    assert order.first.is_player


def test_start_combat(fight, started, session_messages, bot):
    assert fight.in_combat
    assert fight.is_player_turn
    assert started.state == GameState.COMBAT
    assert started.player.ap == 8
    assert bot.ap == 6
    assert fight.enemies == [bot]


def test_start_messages(started, bot, session_messages):
    started.combat.start_combat(bot)

    assert session_messages[0] == "Combat begins! You face: Malfunctioning Security Bot"
    assert session_messages[1] == (
        'Malfunctioning Security Bot: "HAVE A NICE DAY. COMPLIANCE IS MANDATORY."'
    )


def test_dead_enemies_do_not_start_combat(started, bot):
    bot.alive = False

    assert not started.combat.start_combat(bot)
    assert not started.combat.in_combat


def test_faster_enemy_opens_after_delay(started, bot, dice):
    bot.initiative = 20
    dice.queue(99)
    started.combat.start_combat(bot)
    combat = started.combat

    assert combat.enemy_turn_pending
    combat.update(0.4)
    assert combat.enemy_turn_pending

    combat.update(0.2)
    assert combat.is_player_turn


def test_unarmed_hit(fight, bot, started, dice, session_messages):
    dice.queue(45, 3, 16)

    assert fight.player_attack()

    assert bot.hp == 25
    assert started.player.ap == 5
    assert session_messages[-1] == (
        "You hit Malfunctioning Security Bot with bare fists for 5 damage!"
    )


def test_melee_weapon_uses_its_own_damage(fight, bot, started, dice, session_messages):
    started.inventory.add_item("combat_knife")
    started.inventory.equip_item("combat_knife")
    dice.queue(1, 4, 100)

    assert fight.player_attack()

    assert bot.hp == 26
    assert session_messages[-1] == (
        "You hit Malfunctioning Security Bot with Combat Knife for 4 damage!"
    )


def test_miss(fight, bot, dice, session_messages):
    dice.queue(46)

    assert fight.player_attack(bot)

    assert bot.hp == 30
    assert session_messages[-1].startswith("You miss Malfunctioning Security Bot.")


def test_critical_hit(fight, bot, dice, session_messages):
    dice.queue(10, 3, 15)

    fight.player_attack()

    assert bot.hp == 20
    assert session_messages[-1].endswith("for 10 damage! CRITICAL HIT!")


def test_not_enough_ap(fight, started, session_messages):
    started.player.ap = 2

    assert not fight.player_attack()
    assert session_messages[-1] == "Not enough AP for that attack."


def test_out_of_range(fight, bot, started, session_messages):
    bot.position.y = 25

    assert not fight.player_attack()
    assert session_messages[-1] == "Target is out of range. Move closer or find a bigger gun."
    assert started.player.ap == 8


def test_ranged_attack(fight, bot, started, dice):
    started.inventory.add_item("pistol_10mm")
    started.inventory.equip_item("pistol_10mm")
    bot.position.y = 25
    # firearms 50 - 7 tiles * 5
    dice.queue(15, 12, 99)

    assert fight.player_attack()

    assert bot.hp == 18
    assert started.player.ap == 4


def test_kill_grants_loot_and_xp(fight, bot, started, dice, session_messages):
    destroyed = []
    started.event_bus.subscribe(GameEvent.ENTITY_DESTROY, destroyed.append, weak=False)
    ended = []
    started.event_bus.subscribe(GameEvent.COMBAT_END, ended.append, weak=False)
    bot.hp = 3
    dice.queue(1, 1, 99)

    fight.player_attack()

    assert not bot.alive
    assert destroyed[0]["entity"] is bot
    assert started.inventory.has_item("scrap_metal")
    assert started.inventory.has_item("energy_cell")
    assert started.player.xp == 50
    assert started.world.find_entity("security_bot") is None
    assert ended[0]["victory"] is True
    assert not fight.in_combat
    assert started.state == GameState.PLAYING
    assert started.player.ap == 8
    assert "All enemies defeated!" in session_messages


def test_enemy_turn_attacks_and_returns_control(fight, started, dice):
    turns = []
    started.event_bus.subscribe(GameEvent.COMBAT_TURN, turns.append, weak=False)
    # 55 accuracy - 15 dodge
    dice.queue(40, 8)

    fight.end_player_turn()
    assert fight.phase == CombatPhase.ENEMY_TURN
    assert fight.resolve_enemy_turn()

    assert started.player.hp == 62
    assert fight.is_player_turn
    assert fight.turn_order.round == 2
    assert [t["side"] for t in turns] == ["enemy", "player"]


def test_enemy_turn_runs_from_update(fight, dice):
    dice.queue(99)
    fight.end_player_turn()

    fight.update(0.1)
    assert fight.enemy_turn_pending

    fight.update(0.25)
    assert fight.is_player_turn


def test_enemy_moves_then_attacks(fight, bot, started, dice, session_messages):
    bot.position.y = 20
    dice.queue(99)

    fight.end_player_turn()
    fight.resolve_enemy_turn()

    assert (bot.position.x, bot.position.y) == (14, 19)
    assert "Malfunctioning Security Bot moves closer." in session_messages
    assert session_messages[-1].startswith("Malfunctioning Security Bot misses you.")


def test_player_death_ends_game(fight, started, dice):
    started.player.hp = 1
    dice.queue(1, 8)

    fight.end_player_turn()
    fight.resolve_enemy_turn()

    assert started.player.is_dead
    assert not fight.in_combat
    assert started.state == GameState.GAME_OVER


def test_flee(fight, started, dice, session_messages):
    dice.queue(70)

    assert fight.player_flee()

    assert not fight.in_combat
    assert started.state == GameState.PLAYING
    assert session_messages[-1] == "You bravely run away! Sir Robin would be proud."


def test_failed_flee_passes_turn(fight, dice):
    dice.queue(71)

    assert not fight.player_flee()
    assert fight.enemy_turn_pending


def test_use_item_costs_ap(fight, started):
    started.player.hp = 40

    assert fight.player_use_item("stimpak")
    assert started.player.hp == 70
    assert started.player.ap == 6

    assert not fight.player_use_item("nuka_cola")
    assert started.player.ap == 6


def test_actions_outside_player_turn_are_ignored(started):
    combat = started.combat

    assert not combat.player_attack()
    assert not combat.player_flee()
    assert not combat.end_player_turn()
    assert not combat.resolve_enemy_turn()


def test_new_enemies_join_active_combat(fight, bot, started):
    roach = MapEntity(
        id="radroach_9", type=EntityType.ENEMY, name="Radroach", hp=5, max_ap=4,
        position=GridPosition(x=15, y=18),
    )
    started.world.entities.append(roach)

    assert fight.start_combat(roach)

    assert fight.enemies == [bot, roach]
    assert roach.ap == 4
    assert fight.is_player_turn


def test_clearing_the_wastes_completes_pest_control(started, dice):
    started.quests.start_quest("pest_control")
    started.load_map("wastes")

    for roach_id in ("radroach_1", "radroach_2", "radroach_3"):
        roach = started.world.find_entity(roach_id)
        started.player.position.x = roach.position.x
        started.player.position.y = roach.position.y - 1
        roach.hp = 1
        started.combat.start_combat(roach)
        if started.combat.enemy_turn_pending:
            dice.queue(99)
            started.combat.resolve_enemy_turn()
        dice.queue(1, 1, 99)
        started.combat.player_attack(roach)
        assert not started.combat.in_combat

    assert started.quests.is_complete("pest_control")
    assert started.inventory.get_item_count("radroach_meat") == 2
