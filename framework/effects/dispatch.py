"""
Effect dispatch and condition evaluation.

These are the only places that interpret effect and condition variants.
Quest stages and dialog nodes/responses both route through them.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from engine.core.events import GameEvent, MessageCategory, post_message
from framework.effects.conditions import (
    AttributeCondition,
    CapsCondition,
    Condition,
    FlagCondition,
    ItemCondition,
    NoFlagCondition,
    QuestActiveCondition,
    QuestCompleteCondition,
    ReputationCondition,
    ReputationMaxCondition,
    SkillCondition,
)
from framework.effects.effects import (
    AdvanceQuestEffect,
    ChangeReputationEffect,
    CompleteQuestEffect,
    DamageEffect,
    Effect,
    FailQuestEffect,
    GiveCapsEffect,
    GiveItemEffect,
    GiveXpEffect,
    HealEffect,
    MessageEffect,
    RemoveItemEffect,
    SetFlagEffect,
    SetReputationEffect,
    StartCombatEffect,
    StartQuestEffect,
    TakeCapsEffect,
    TeleportEffect,
)

if TYPE_CHECKING:
    from framework.world.session import GameSession


def message_category(name: str | None, default: MessageCategory) -> MessageCategory:
    """Resolve a category name from content, falling back to a default."""
    if not name:
        return default
    try:
        return MessageCategory[name.upper()]
    except KeyError:
        return default


class EffectDispatcher:
    """
    Applies effects against a game session.

    Missing quests, items or entities referenced by an effect are handled
    by the owning system (logged warning, no-op).
    """

    def __init__(self, session: GameSession):
        self.session = session
        self.logger = logging.getLogger(__name__)

    def apply_all(
        self,
        effects: Iterable[Effect],
        message_category: MessageCategory = MessageCategory.SYSTEM,
    ) -> None:
        """Apply effects in order."""
        for effect in effects:
            self.apply(effect, message_category)

    def apply(
        self,
        effect: Effect,
        default_category: MessageCategory = MessageCategory.SYSTEM,
    ) -> None:
        """
        Apply a single effect.

        Args:
            effect: Any effect variant
            default_category: Category for message effects that name none

        Raises:
            TypeError: If the variant is not handled here
        """
        session = self.session
        world = session.world
        bus = session.event_bus

        if isinstance(effect, SetFlagEffect):
            world.set_flag(effect.flag, effect.value)

        elif isinstance(effect, GiveItemEffect):
            if session.inventory.add_item(effect.item, effect.count):
                item = session.items.get_item(effect.item)
                post_message(bus, MessageCategory.LOOT, f"Received: {item.name if item else effect.item}")

        elif isinstance(effect, RemoveItemEffect):
            session.inventory.remove_item(effect.item, effect.count)

        elif isinstance(effect, GiveCapsEffect):
            world.player.add_caps(effect.amount)
            post_message(bus, MessageCategory.LOOT, f"Received {effect.amount} caps.")

        elif isinstance(effect, TakeCapsEffect):
            world.player.take_caps(effect.amount)
            post_message(bus, MessageCategory.SYSTEM, f"Lost {effect.amount} caps.")

        elif isinstance(effect, GiveXpEffect):
            session.character.add_xp(effect.amount)

        elif isinstance(effect, StartQuestEffect):
            session.quests.start_quest(effect.quest)

        elif isinstance(effect, AdvanceQuestEffect):
            session.quests.advance_quest(effect.quest, effect.stage)

        elif isinstance(effect, CompleteQuestEffect):
            session.quests.complete_quest(effect.quest)

        elif isinstance(effect, FailQuestEffect):
            session.quests.fail_quest(effect.quest)

        elif isinstance(effect, HealEffect):
            session.character.heal_player(effect.amount)

        elif isinstance(effect, DamageEffect):
            session.character.damage_player(effect.amount)

        elif isinstance(effect, MessageEffect):
            post_message(bus, message_category(effect.category, default_category), effect.text)

        elif isinstance(effect, StartCombatEffect):
            enemy = world.find_entity(effect.enemy_id)
            if enemy is None:
                self.logger.warning(f"Combat target not on map: {effect.enemy_id}")
                return
            session.dialog.end_dialog()
            session.combat.start_combat(enemy)

        elif isinstance(effect, TeleportEffect):
            bus.publish(GameEvent.MAP_CHANGE, map_id=effect.map, spawn=effect.spawn)

        elif isinstance(effect, ChangeReputationEffect):
            world.change_reputation(effect.npc_id, effect.amount)

        elif isinstance(effect, SetReputationEffect):
            world.set_reputation(effect.npc_id, effect.value)

        else:
            raise TypeError(f"Unhandled effect: {effect!r}")


class ConditionEvaluator:
    """
    Evaluates gating conditions against a game session.

    Unknown attribute, skill and reputation ids read as 0.
    """

    def __init__(self, session: GameSession):
        self.session = session

    def check_all(self, conditions: Iterable[Condition]) -> bool:
        """True when every condition holds (vacuously true when empty)."""
        return all(self.check(condition) for condition in conditions)

    def check(self, condition: Condition) -> bool:
        """
        Evaluate a single condition.

        Raises:
            TypeError: If the variant is not handled here
        """
        session = self.session
        world = session.world
        player = world.player

        if isinstance(condition, FlagCondition):
            if 'value' in condition.model_fields_set:
                return world.get_flag(condition.flag) == condition.value
            return world.has_flag(condition.flag)

        if isinstance(condition, NoFlagCondition):
            return not world.has_flag(condition.flag)

        if isinstance(condition, AttributeCondition):
            return session.character.attribute_check(condition.attribute, condition.min)

        if isinstance(condition, SkillCondition):
            return session.character.get_skill(condition.skill) >= condition.min

        if isinstance(condition, ItemCondition):
            return session.inventory.has_item(condition.item, condition.count)

        if isinstance(condition, QuestActiveCondition):
            return session.quests.is_active(condition.quest)

        if isinstance(condition, QuestCompleteCondition):
            return session.quests.is_complete(condition.quest)

        if isinstance(condition, CapsCondition):
            return player.caps >= condition.min

        if isinstance(condition, ReputationCondition):
            return world.get_reputation(condition.npc_id) >= condition.min

        if isinstance(condition, ReputationMaxCondition):
            return world.get_reputation(condition.npc_id) <= condition.max

        raise TypeError(f"Unhandled condition: {condition!r}")
