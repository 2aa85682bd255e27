"""
Dialog system - branching conversations with gated responses and
skill checks.

State machine: closed -> open(node) -> open(next node) -> ... -> closed
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from pydantic import ValidationError

from engine.core.events import EventBus, GameEvent, MessageCategory, post_message
from framework.components.dialog import DialogSession, ResponseView
from framework.dialog.graph import (
    DialogGraph,
    DialogResponse,
    DialogValidationError,
    parse_dialog,
)
from framework.effects.conditions import AttributeCondition, SkillCondition

if TYPE_CHECKING:
    from framework.components.entity import MapEntity
    from framework.effects.dispatch import ConditionEvaluator, EffectDispatcher
    from framework.progression.character import CharacterResolver


def check_label(response: DialogResponse) -> Optional[str]:
    """
    Short tag for a checked or gated response.

    "[barter 20]" for an inline skill check, "[wits 7+]" or
    "[speech 40+]" for the first attribute/skill condition.
    """
    if response.skill_check is not None:
        return f"[{response.skill_check.skill} {response.skill_check.difficulty}]"
    for condition in response.conditions:
        if isinstance(condition, AttributeCondition):
            return f"[{condition.attribute} {condition.min}+]"
        if isinstance(condition, SkillCondition):
            return f"[{condition.skill} {condition.min}+]"
    return None


class DialogEngine:
    """
    Walks dialog graphs.

    Handles:
    - Loading and validating dialog graphs
    - Node on-enter effects
    - Response availability and check labels
    - Inline skill checks
    """

    def __init__(
        self,
        character: CharacterResolver,
        event_bus: EventBus,
        effects: Optional[EffectDispatcher] = None,
        conditions: Optional[ConditionEvaluator] = None,
    ):
        self.character = character
        self.event_bus = event_bus
        self.effects = effects
        self.conditions = conditions

        # Dialog cache
        self._dialogs: dict[str, DialogGraph] = {}

        # Current state
        self._session: Optional[DialogSession] = None
        self._graph: Optional[DialogGraph] = None

        self.logger = logging.getLogger(__name__)

    @property
    def session(self) -> Optional[DialogSession]:
        return self._session

    @property
    def is_active(self) -> bool:
        return self._session is not None

    # -- Definitions --------------------------------------------------------

    def load(self, records: dict[str, dict[str, Any]]) -> None:
        """Parse and validate raw dialog records (as loaded by the Database)."""
        for dialog_id, data in records.items():
            try:
                self.register_dialog(parse_dialog(data, dialog_id))
            except (DialogValidationError, ValidationError, KeyError) as e:
                self.logger.error(f"Invalid dialog {dialog_id!r}: {e}")

    def register_dialog(self, graph: DialogGraph) -> None:
        self._dialogs[graph.id] = graph

    def get_dialog(self, dialog_id: str) -> Optional[DialogGraph]:
        return self._dialogs.get(dialog_id)

    # -- Conversation -------------------------------------------------------

    def start_dialog(self, dialog_id: str, speaker: Optional[MapEntity] = None) -> bool:
        """
        Open a dialog at its start node.

        Returns:
            False if the dialog is unknown
        """
        graph = self._dialogs.get(dialog_id)
        if graph is None:
            self.logger.warning(f"Dialog not found: {dialog_id}")
            return False

        self._graph = graph
        start = graph.nodes[graph.start_node]
        self._session = DialogSession(dialog_id=dialog_id, node=start, speaker=speaker)

        self.event_bus.publish(GameEvent.DIALOG_START, dialog_id=dialog_id, speaker=speaker)
        self.go_to_node(graph.start_node)
        return True

    def go_to_node(self, node_id: str) -> None:
        """
        Show a node: apply its on-enter effects, then rebuild the visible
        responses. An unknown node ends the conversation.
        """
        if self._session is None or self._graph is None:
            return

        node = self._graph.get_node(node_id)
        if node is None:
            self.logger.warning(f"Dialog node not found: {self._graph.id}.{node_id}")
            self.end_dialog()
            return

        self._session.node = node
        self._session.responses = []

        if node.on_enter:
            self._apply_effects(node.on_enter)
            if self._session is None:
                # An effect closed the conversation (e.g. combat started)
                return

        self._session.responses = [
            ResponseView(
                index=index,
                text=response.text,
                available=self._check_conditions(response),
                check_label=check_label(response),
                response=response,
            )
            for index, response in enumerate(node.responses)
        ]

        self.event_bus.publish(
            GameEvent.DIALOG_ADVANCE,
            dialog_id=self._session.dialog_id,
            node=node,
            speaker=self._session.speaker,
        )

    def select_response(self, index: int) -> bool:
        """
        Choose a visible response.

        Out-of-range and unavailable selections are ignored.

        Returns:
            True if the response was taken
        """
        session = self._session
        if session is None or not (0 <= index < len(session.responses)):
            return False

        view = session.responses[index]
        if not view.available:
            return False

        response = view.response
        next_node = response.next_node
        apply_effects = True

        check = response.skill_check
        if check is not None:
            result = self.character.skill_check(check.skill, check.difficulty)
            if result.success:
                post_message(
                    self.event_bus, MessageCategory.ACTION,
                    f"[{result.skill_name} check passed: {result.roll}/{result.target}]",
                )
                next_node = check.success_node or next_node
            else:
                post_message(
                    self.event_bus, MessageCategory.WARNING,
                    f"[{result.skill_name} check failed: {result.roll}/{result.target}]",
                )
                # Effects belong to the success branch
                apply_effects = False
                next_node = check.fail_node or next_node

        if apply_effects:
            self._apply_effects(response.effects)

        if self._session is not None:
            if next_node:
                self.go_to_node(next_node)
            else:
                self.end_dialog()

        self.event_bus.publish(
            GameEvent.DIALOG_CHOICE, dialog_id=session.dialog_id, index=index, response=response,
        )
        return True

    def end_dialog(self) -> None:
        """Close the conversation. No-op when none is open."""
        if self._session is None:
            return

        dialog_id = self._session.dialog_id
        self._session = None
        self._graph = None
        self.event_bus.publish(GameEvent.DIALOG_END, dialog_id=dialog_id)

    def reset(self) -> None:
        """Drop any open conversation without publishing."""
        self._session = None
        self._graph = None

    # -- Helpers ------------------------------------------------------------

    def _check_conditions(self, response: DialogResponse) -> bool:
        if not response.conditions or self.conditions is None:
            return True
        return self.conditions.check_all(response.conditions)

    def _apply_effects(self, effects) -> None:
        if effects and self.effects is not None:
            self.effects.apply_all(effects, MessageCategory.SYSTEM)
