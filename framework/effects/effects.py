"""
Effect variants.

Every effect that quest stages, dialog nodes and dialog responses can
trigger is one of these models, selected by its ``type`` tag:

    {"type": "set_flag", "flag": "met_scarlett"}
    {"type": "give_xp", "amount": 25}
    {"type": "change_reputation", "npc_id": "scarlett", "amount": 10}
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _EffectBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra='forbid')


class SetFlagEffect(_EffectBase):
    type: Literal["set_flag"] = "set_flag"
    flag: str
    value: Any = True


class GiveItemEffect(_EffectBase):
    type: Literal["give_item"] = "give_item"
    item: str
    count: int = Field(default=1, ge=1)


class RemoveItemEffect(_EffectBase):
    type: Literal["remove_item"] = "remove_item"
    item: str
    count: int = Field(default=1, ge=1)


class GiveCapsEffect(_EffectBase):
    type: Literal["give_caps"] = "give_caps"
    amount: int = Field(ge=0)


class TakeCapsEffect(_EffectBase):
    type: Literal["take_caps"] = "take_caps"
    amount: int = Field(ge=0)


class GiveXpEffect(_EffectBase):
    type: Literal["give_xp"] = "give_xp"
    amount: int = Field(ge=0)


class StartQuestEffect(_EffectBase):
    type: Literal["start_quest"] = "start_quest"
    quest: str


class AdvanceQuestEffect(_EffectBase):
    type: Literal["advance_quest"] = "advance_quest"
    quest: str
    stage: str


class CompleteQuestEffect(_EffectBase):
    type: Literal["complete_quest"] = "complete_quest"
    quest: str


class FailQuestEffect(_EffectBase):
    type: Literal["fail_quest"] = "fail_quest"
    quest: str


class HealEffect(_EffectBase):
    type: Literal["heal"] = "heal"
    amount: int


class DamageEffect(_EffectBase):
    type: Literal["damage"] = "damage"
    amount: int


class MessageEffect(_EffectBase):
    """UI text. Without a category the caller's default is used."""
    type: Literal["message"] = "message"
    text: str
    category: Optional[str] = None


class StartCombatEffect(_EffectBase):
    """Ends any open dialog and engages a map entity by definition id."""
    type: Literal["start_combat"] = "start_combat"
    enemy_id: str


class TeleportEffect(_EffectBase):
    type: Literal["teleport"] = "teleport"
    map: str
    spawn: str = "start"


class ChangeReputationEffect(_EffectBase):
    type: Literal["change_reputation"] = "change_reputation"
    npc_id: str
    amount: int


class SetReputationEffect(_EffectBase):
    type: Literal["set_reputation"] = "set_reputation"
    npc_id: str
    value: int


Effect = Annotated[
    Union[
        SetFlagEffect,
        GiveItemEffect,
        RemoveItemEffect,
        GiveCapsEffect,
        TakeCapsEffect,
        GiveXpEffect,
        StartQuestEffect,
        AdvanceQuestEffect,
        CompleteQuestEffect,
        FailQuestEffect,
        HealEffect,
        DamageEffect,
        MessageEffect,
        StartCombatEffect,
        TeleportEffect,
        ChangeReputationEffect,
        SetReputationEffect,
    ],
    Field(discriminator="type"),
]

_effect_list_adapter = TypeAdapter(list[Effect])


def parse_effects(data: Optional[list[dict[str, Any]]]) -> tuple[Effect, ...]:
    """
    Validate raw effect dicts.

    Raises:
        pydantic.ValidationError: On an unknown tag or malformed payload
    """
    return tuple(_effect_list_adapter.validate_python(data or []))
