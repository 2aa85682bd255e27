"""
Inventory ledger - item stacks, equipment slots, weight limit, consumables.

The ledger is the only writer of the player's Inventory and Equipment
records. Every successful mutation leaves the total carried weight at or
below the player's carry capacity.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Union

from engine.core.events import EventBus, GameEvent, MessageCategory, post_message
from framework.components.inventory import EquipmentSlot, Inventory, ItemStack
from framework.inventory.items import (
    BuffItemEffect,
    DamageItemEffect,
    HealItemEffect,
    ItemCatalog,
    ItemCategory,
    ItemDefinition,
    RestoreApItemEffect,
)

if TYPE_CHECKING:
    from framework.progression.character import CharacterResolver
    from framework.world.state import WorldState


class InventoryLedger:
    """
    Owns what the player carries and wears.

    Equipped items are tracked in their slot, not as inventory entries, and
    do not count towards carried weight.
    """

    def __init__(
        self,
        world: WorldState,
        catalog: ItemCatalog,
        character: CharacterResolver,
        event_bus: EventBus,
    ):
        self.world = world
        self.catalog = catalog
        self.character = character
        self.event_bus = event_bus
        self.logger = logging.getLogger(__name__)

    @property
    def inventory(self) -> Inventory:
        return self.world.inventory

    def _message(self, category: MessageCategory, text: str) -> None:
        post_message(self.event_bus, category, text)

    def _reject_weight(self) -> None:
        self._message(
            MessageCategory.WARNING,
            f"Can't carry that. You're already lugging around "
            f"{self.get_total_weight():g} pounds of questionable life choices.",
        )

    def _fits(self, extra_weight: float) -> bool:
        return self.get_total_weight() + extra_weight <= self.world.player.derived.carry_weight

    def _store(self, item: ItemDefinition, count: int) -> None:
        """Put items into entries, merging only stackable items."""
        existing = self.inventory.find(item.id)
        if existing is not None and item.stackable:
            existing.count += count
        elif item.stackable:
            self.inventory.entries.append(ItemStack(item.id, count))
        else:
            for _ in range(count):
                self.inventory.entries.append(ItemStack(item.id, 1))

    # -- Stacks -------------------------------------------------------------

    def add_item(self, item_id: str, count: int = 1) -> bool:
        """
        Add items to the inventory.

        Args:
            item_id: Item definition id
            count: Number of units

        Returns:
            False if the item is unknown or would exceed carry capacity
        """
        item = self.catalog.get_item(item_id)
        if item is None:
            self.logger.warning(f"Item not found: {item_id}")
            return False
        if count <= 0:
            self.logger.warning(f"Refusing to add {count} x {item_id}")
            return False

        if not self._fits(item.weight * count):
            self._reject_weight()
            return False

        self._store(item, count)

        self.event_bus.publish(GameEvent.ITEM_ADD, item_id=item_id, count=count, item=item)
        suffix = f" x{count}" if count > 1 else ""
        self._message(MessageCategory.LOOT, f"Picked up: {item.name}{suffix}")
        return True

    def remove_item(self, item_id: str, count: int = 1) -> bool:
        """
        Remove up to count units, dropping entries that reach zero.

        Returns:
            False if the item is not held
        """
        if count <= 0 or not self.has_item(item_id):
            return False

        remaining = count
        for entry in list(self.inventory.entries):
            if remaining <= 0:
                break
            if entry.item_id != item_id:
                continue
            taken = min(entry.count, remaining)
            entry.count -= taken
            remaining -= taken
            if entry.is_empty:
                self.inventory.entries.remove(entry)

        self.event_bus.publish(GameEvent.ITEM_REMOVE, item_id=item_id, count=count - remaining)
        return True

    def has_item(self, item_id: str, count: int = 1) -> bool:
        return self.inventory.count_item(item_id) >= count

    def get_item_count(self, item_id: str) -> int:
        return self.inventory.count_item(item_id)

    def get_total_weight(self) -> float:
        """Sum of weight x count over all entries. Unknown items weigh nothing."""
        weight = 0.0
        for entry in self.inventory.entries:
            item = self.catalog.get_item(entry.item_id)
            if item is not None:
                weight += item.weight * entry.count
        return round(weight, 3)

    def get_items(self) -> list[tuple[ItemStack, ItemDefinition]]:
        """All held entries paired with their definitions."""
        items = []
        for entry in self.inventory.entries:
            item = self.catalog.get_item(entry.item_id)
            if item is not None:
                items.append((entry, item))
        return items

    # -- Consumables --------------------------------------------------------

    def use_item(self, item_id: str) -> bool:
        """
        Apply a consumable's effects in order, then consume one unit.

        Returns:
            True if the item was used
        """
        item = self.catalog.get_item(item_id)
        if item is None:
            self.logger.warning(f"Item not found: {item_id}")
            return False

        if item.category != ItemCategory.CONSUMABLE:
            self._message(
                MessageCategory.SYSTEM,
                "You can't use that. Well, you could, but it wouldn't be productive.",
            )
            return False

        if not self.has_item(item_id):
            return False

        for effect in item.effects:
            self._apply_effect(item, effect)

        self.remove_item(item_id)
        self.event_bus.publish(GameEvent.ITEM_USE, item_id=item_id, item=item)
        return True

    def _apply_effect(self, item: ItemDefinition, effect: Any) -> None:
        player = self.world.player
        if isinstance(effect, HealItemEffect):
            healed = self.character.heal_player(effect.amount)
            self._message(
                MessageCategory.ACTION,
                f"Used {item.name}. Healed {healed} HP. {item.use_message}".rstrip(),
            )
        elif isinstance(effect, RestoreApItemEffect):
            restored = player.restore_ap(effect.amount)
            self._message(MessageCategory.ACTION, f"Used {item.name}. Restored {restored} AP.")
        elif isinstance(effect, BuffItemEffect):
            if self.character.modify_attribute(effect.attribute, effect.amount):
                self._message(
                    MessageCategory.ACTION,
                    f"Used {item.name}. {effect.attribute} changed by {effect.amount:+d}.",
                )
        elif isinstance(effect, DamageItemEffect):
            self.character.damage_player(effect.amount)
            self._message(
                MessageCategory.WARNING,
                f"Used {item.name}. Took {effect.amount} damage. "
                f"{item.use_message or 'Why did you do that?'}",
            )
        else:
            raise TypeError(f"Unhandled item effect: {effect!r}")

    # -- Equipment ----------------------------------------------------------

    def get_equipped(self, slot: EquipmentSlot) -> Optional[ItemDefinition]:
        item_id = self.world.player.equipment.get(slot)
        return self.catalog.get_item(item_id) if item_id else None

    @property
    def weapon(self) -> Optional[ItemDefinition]:
        return self.get_equipped(EquipmentSlot.WEAPON)

    def armor_defense(self) -> int:
        """Flat damage reduction from equipped armor."""
        armor = self.get_equipped(EquipmentSlot.ARMOR)
        return armor.defense if armor else 0

    def equip_item(self, item_id: str) -> bool:
        """
        Move a held weapon or armor into its slot.

        Whatever occupied the slot goes back into the inventory first.

        Returns:
            True if equipped
        """
        item = self.catalog.get_item(item_id)
        if item is None:
            self.logger.warning(f"Item not found: {item_id}")
            return False
        if not self.has_item(item_id):
            return False

        slot = item.equip_slot
        if slot is None:
            self._message(MessageCategory.SYSTEM, "You can't equip that.")
            return False

        equipment = self.world.player.equipment
        previous = self.catalog.get_item(equipment.get(slot)) if equipment.get(slot) else None
        if previous is not None and not self._fits(previous.weight - item.weight):
            self._reject_weight()
            return False

        self.remove_item(item_id)
        if previous is not None:
            self._store(previous, 1)
            self.event_bus.publish(GameEvent.ITEM_UNEQUIP, item_id=previous.id, slot=slot)
        equipment.set(slot, item_id)

        self._message(MessageCategory.ACTION, f"Equipped: {item.name}")
        self.event_bus.publish(GameEvent.ITEM_EQUIP, item_id=item_id, slot=slot, item=item)
        return True

    def unequip_slot(self, slot: Union[EquipmentSlot, str]) -> bool:
        """
        Return the item in a slot to the inventory and clear the slot.

        Returns:
            False if the slot is empty or the item no longer fits
        """
        if isinstance(slot, str):
            try:
                slot = EquipmentSlot[slot.upper()]
            except KeyError:
                self.logger.warning(f"Unknown equipment slot: {slot}")
                return False

        equipment = self.world.player.equipment
        item_id = equipment.get(slot)
        if item_id is None:
            return False

        item = self.catalog.get_item(item_id)
        if item is None:
            self.logger.warning(f"Equipped item not found: {item_id}")
            equipment.set(slot, None)
            return False
        if not self._fits(item.weight):
            self._reject_weight()
            return False

        equipment.set(slot, None)
        self._store(item, 1)
        self._message(MessageCategory.ACTION, f"Unequipped: {item.name}")
        self.event_bus.publish(GameEvent.ITEM_UNEQUIP, item_id=item_id, slot=slot)
        return True

    # -- Persistence --------------------------------------------------------

    def get_save_data(self) -> list[dict[str, Any]]:
        return [{'item_id': e.item_id, 'count': e.count} for e in self.inventory.entries]

    @staticmethod
    def parse_save_data(data: list[dict[str, Any]]) -> list[ItemStack]:
        return [
            ItemStack(entry['item_id'], entry['count'])
            for entry in data or []
            if entry.get('count', 0) > 0
        ]

    def load_save_data(self, data: list[dict[str, Any]]) -> None:
        self.inventory.entries = self.parse_save_data(data)

    def clear(self) -> None:
        self.inventory.entries = []
