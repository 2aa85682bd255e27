"""
Effects and conditions shared by quests and dialogs.
"""

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
    parse_effects,
)
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
    parse_conditions,
)
from framework.effects.dispatch import (
    ConditionEvaluator,
    EffectDispatcher,
    message_category,
)

__all__ = [
    # Effects
    "Effect",
    "SetFlagEffect",
    "GiveItemEffect",
    "RemoveItemEffect",
    "GiveCapsEffect",
    "TakeCapsEffect",
    "GiveXpEffect",
    "StartQuestEffect",
    "AdvanceQuestEffect",
    "CompleteQuestEffect",
    "FailQuestEffect",
    "HealEffect",
    "DamageEffect",
    "MessageEffect",
    "StartCombatEffect",
    "TeleportEffect",
    "ChangeReputationEffect",
    "SetReputationEffect",
    "parse_effects",
    # Conditions
    "Condition",
    "FlagCondition",
    "NoFlagCondition",
    "AttributeCondition",
    "SkillCondition",
    "ItemCondition",
    "QuestActiveCondition",
    "QuestCompleteCondition",
    "CapsCondition",
    "ReputationCondition",
    "ReputationMaxCondition",
    "parse_conditions",
    # Dispatch
    "EffectDispatcher",
    "ConditionEvaluator",
    "message_category",
]
