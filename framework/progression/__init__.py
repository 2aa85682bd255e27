"""
Progression module - character stats, leveling, quests.

Provides:
- Derived stat and skill formulas
- Skill and attribute checks
- Experience and level-ups
- Quest tracking and objectives
"""

from framework.progression.character import (
    MAX_LEVEL,
    SKILL_FORMULAS,
    XP_PER_LEVEL,
    CharacterResolver,
    SkillCheckResult,
    SkillFormula,
    clamp_check,
    derive_skills,
    derive_stats,
)
from framework.progression.quests import (
    ObjectiveDefinition,
    ObjectiveType,
    QuestDefinition,
    QuestDefinitionError,
    QuestInstance,
    QuestObjective,
    QuestReward,
    QuestStage,
    QuestState,
    QuestTracker,
)

__all__ = [
    # Character
    "MAX_LEVEL",
    "SKILL_FORMULAS",
    "XP_PER_LEVEL",
    "CharacterResolver",
    "SkillCheckResult",
    "SkillFormula",
    "clamp_check",
    "derive_skills",
    "derive_stats",
    # Quests
    "ObjectiveDefinition",
    "ObjectiveType",
    "QuestDefinition",
    "QuestDefinitionError",
    "QuestInstance",
    "QuestObjective",
    "QuestReward",
    "QuestStage",
    "QuestState",
    "QuestTracker",
]
