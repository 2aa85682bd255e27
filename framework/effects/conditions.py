"""
Condition variants gating dialog responses.

A response is available only when every one of its conditions holds:

    {"type": "attribute", "attribute": "wits", "min": 7}
    {"type": "reputation_max", "npc_id": "scarlett", "max": -20}
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _ConditionBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')


class FlagCondition(_ConditionBase):
    """Truthiness of a flag, or equality when a value is given."""
    type: Literal["flag"] = "flag"
    flag: str
    value: Optional[Any] = None


class NoFlagCondition(_ConditionBase):
    type: Literal["no_flag"] = "no_flag"
    flag: str


class AttributeCondition(_ConditionBase):
    type: Literal["attribute"] = "attribute"
    attribute: str
    min: int


class SkillCondition(_ConditionBase):
    type: Literal["skill"] = "skill"
    skill: str
    min: int


class ItemCondition(_ConditionBase):
    type: Literal["item"] = "item"
    item: str
    count: int = Field(default=1, ge=1)


class QuestActiveCondition(_ConditionBase):
    type: Literal["quest"] = "quest"
    quest: str


class QuestCompleteCondition(_ConditionBase):
    type: Literal["quest_complete"] = "quest_complete"
    quest: str


class CapsCondition(_ConditionBase):
    type: Literal["caps"] = "caps"
    min: int


class ReputationCondition(_ConditionBase):
    type: Literal["reputation"] = "reputation"
    npc_id: str
    min: int


class ReputationMaxCondition(_ConditionBase):
    type: Literal["reputation_max"] = "reputation_max"
    npc_id: str
    max: int


Condition = Annotated[
    Union[
        FlagCondition,
        NoFlagCondition,
        AttributeCondition,
        SkillCondition,
        ItemCondition,
        QuestActiveCondition,
        QuestCompleteCondition,
        CapsCondition,
        ReputationCondition,
        ReputationMaxCondition,
    ],
    Field(discriminator="type"),
]

_condition_list_adapter = TypeAdapter(list[Condition])


def parse_conditions(data: Optional[list[dict[str, Any]]]) -> tuple[Condition, ...]:
    """
    Validate raw condition dicts.

    Raises:
        pydantic.ValidationError: On an unknown tag or malformed payload
    """
    return tuple(_condition_list_adapter.validate_python(data or []))
