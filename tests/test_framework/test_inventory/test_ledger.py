import pytest

from engine.core.events import GameEvent
from framework.components.inventory import EquipmentSlot
from framework.inventory.items import ItemCatalog, ItemCategory


@pytest.fixture
def ledger(started):
    return started.inventory


def test_catalog_parses_bundled_items(database):
    catalog = ItemCatalog()
    catalog.load(database.items)

    pistol = catalog.get_item("pistol_10mm")
    assert len(catalog) == 24
    assert "stimpak" in catalog
    assert pistol.category == ItemCategory.WEAPON
    assert pistol.damage.min == 5 and pistol.damage.max == 12
    assert pistol.equip_slot == EquipmentSlot.WEAPON
    assert not pistol.is_melee
    assert catalog.get_item("wrench").is_melee
    assert len(catalog.get_items_by_category(ItemCategory.ARMOR)) == 3


def test_catalog_skips_invalid_records(caplog):
    catalog = ItemCatalog()
    catalog.load({
        "odd": {"id": "odd", "name": "Odd", "category": "relic"},
        "fine": {"id": "fine", "name": "Fine"},
    })

    assert "odd" not in catalog
    assert catalog.get_item("fine").category == ItemCategory.MISC
    assert "Invalid item 'odd'" in caplog.text


def test_starting_inventory(ledger):
    assert ledger.get_item_count("stimpak") == 2
    assert ledger.has_item("vault_suit")
    assert ledger.get_total_weight() == 3.0


def test_stackable_items_merge(ledger, session_messages):
    assert ledger.add_item("stimpak", 3)

    stacks = [entry for entry, _ in ledger.get_items() if entry.item_id == "stimpak"]
    assert len(stacks) == 1
    assert stacks[0].count == 5
    assert "Picked up: Stimpak x3" in session_messages


def test_non_stackable_items_take_one_entry_each(ledger):
    ledger.add_item("pistol_10mm", 2)

    stacks = [entry for entry, _ in ledger.get_items() if entry.item_id == "pistol_10mm"]
    assert [entry.count for entry in stacks] == [1, 1]


def test_unknown_item_is_rejected(ledger):
    assert not ledger.add_item("plasma_rifle")
    assert not ledger.add_item("stimpak", 0)


def test_weight_limit(ledger, started, session_messages):
    started.player.derived.carry_weight = 10

    assert not ledger.add_item("leather_armor")
    assert not ledger.has_item("leather_armor")
    assert session_messages[-1].startswith("Can't carry that.")

    assert ledger.add_item("combat_knife")
    assert ledger.get_total_weight() <= 10


def test_item_add_event(ledger, started):
    events = []
    started.event_bus.subscribe(GameEvent.ITEM_ADD, events.append, weak=False)

    ledger.add_item("scrap_metal", 2)

    assert events[0]["item_id"] == "scrap_metal"
    assert events[0]["count"] == 2


def test_remove_item(ledger):
    assert ledger.remove_item("stimpak")
    assert ledger.get_item_count("stimpak") == 1

    assert ledger.remove_item("stimpak", 5)
    assert not ledger.has_item("stimpak")
    assert all(entry.item_id != "stimpak" for entry, _ in ledger.get_items())

    assert not ledger.remove_item("stimpak")


def test_use_stimpak(ledger, started, session_messages):
    started.player.hp = 30

    assert ledger.use_item("stimpak")

    assert started.player.hp == 60
    assert ledger.get_item_count("stimpak") == 1
    assert session_messages[-1].startswith("Used Stimpak. Healed 30 HP.")


def test_use_applies_effects_in_order(ledger, started):
    ledger.add_item("dirty_water")

    ledger.use_item("dirty_water")

    assert started.player.hp == 68


def test_buff_changes_attribute(ledger, started):
    ledger.add_item("rad_x")

    ledger.use_item("rad_x")

    assert started.player.attributes.toughness == 7
    assert started.player.derived.max_hp == 90


def test_cannot_use_non_consumables(ledger, session_messages):
    assert not ledger.use_item("vault_suit")
    assert session_messages[-1].startswith("You can't use that.")
    assert not ledger.use_item("nuka_cola")


def test_equip_armor(ledger, started):
    events = []
    started.event_bus.subscribe(GameEvent.ITEM_EQUIP, events.append, weak=False)

    assert ledger.equip_item("vault_suit")

    assert started.player.equipment.armor == "vault_suit"
    assert not ledger.has_item("vault_suit")
    assert ledger.armor_defense() == 2
    # Equipped items carry no weight
    assert ledger.get_total_weight() == 1.0
    assert events[0]["slot"] == EquipmentSlot.ARMOR


def test_equip_swaps_previous_item_back(ledger, started):
    ledger.equip_item("vault_suit")
    ledger.add_item("leather_armor")

    ledger.equip_item("leather_armor")

    assert started.player.equipment.armor == "leather_armor"
    assert ledger.has_item("vault_suit")
    assert started.character.damage_player(10) == 5


def test_equip_requires_holding_an_equippable(ledger, session_messages):
    assert not ledger.equip_item("pistol_10mm")
    assert not ledger.equip_item("stimpak")
    assert "You can't equip that." in session_messages


def test_weapon_slot(ledger):
    ledger.add_item("pistol_10mm")
    assert ledger.weapon is None

    ledger.equip_item("pistol_10mm")

    assert ledger.weapon.id == "pistol_10mm"
    assert ledger.get_equipped(EquipmentSlot.WEAPON).name == ledger.weapon.name


def test_unequip(ledger, started):
    ledger.equip_item("vault_suit")

    assert ledger.unequip_slot("armor")
    assert started.player.equipment.armor is None
    assert ledger.has_item("vault_suit")
    assert not ledger.unequip_slot(EquipmentSlot.ARMOR)


def test_unequip_unknown_slot(ledger, caplog):
    ledger.equip_item("vault_suit")

    assert not ledger.unequip_slot("belt")

    assert "Unknown equipment slot: belt" in caplog.text
    assert ledger.get_equipped(EquipmentSlot.ARMOR) is not None


def test_save_data_round_trip(ledger):
    ledger.add_item("pistol_10mm")
    data = ledger.get_save_data()

    ledger.clear()
    assert ledger.get_items() == []

    ledger.load_save_data(data)
    assert ledger.get_item_count("stimpak") == 2
    assert ledger.has_item("pistol_10mm")
