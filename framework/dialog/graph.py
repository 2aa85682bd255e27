"""
Dialog graphs - immutable, validated conversation trees.

Dialog JSON format:
    {
        "id": "chronos_intro",
        "start_node": "greeting",
        "nodes": {
            "greeting": {
                "speaker": "CHRONOS",
                "text": "You're awake!",
                "on_enter": [{"type": "set_flag", "flag": "met_chronos"}],
                "responses": [
                    {"text": "Who are you?", "next_node": "who_are_you"},
                    {
                        "text": "What's it worth to you?",
                        "skill_check": {
                            "skill": "barter", "difficulty": 20,
                            "success_node": "deal", "fail_node": "no_deal"
                        }
                    }
                ]
            }
        }
    }

Every node reference is checked when the graph is built, so a graph that
exists can always be walked.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from framework.effects.conditions import Condition, parse_conditions
from framework.effects.effects import Effect, parse_effects


class DialogValidationError(ValueError):
    """A dialog graph references a node it does not define."""


@dataclass(frozen=True)
class SkillCheck:
    """Inline skill check on a response."""
    skill: str
    difficulty: int
    success_node: Optional[str] = None
    fail_node: Optional[str] = None


@dataclass(frozen=True)
class DialogResponse:
    """
    A player response option.

    Attributes:
        text: What the player says
        conditions: All must hold for the option to be selectable
        effects: Applied when chosen (success branch only when checked)
        next_node: Node to show next; None ends the conversation
        skill_check: Optional inline check
    """
    text: str
    conditions: tuple[Condition, ...] = ()
    effects: tuple[Effect, ...] = ()
    next_node: Optional[str] = None
    skill_check: Optional[SkillCheck] = None


@dataclass(frozen=True)
class DialogNode:
    """A single dialog node."""
    id: str
    speaker: str = ""
    text: str = ""
    on_enter: tuple[Effect, ...] = ()
    responses: tuple[DialogResponse, ...] = ()

    @property
    def is_terminal(self) -> bool:
        return not self.responses


@dataclass(frozen=True)
class DialogGraph:
    """A complete dialog."""
    id: str
    start_node: str
    nodes: dict[str, DialogNode]

    def get_node(self, node_id: str) -> Optional[DialogNode]:
        """Get a dialog node by ID."""
        return self.nodes.get(node_id)

    def validate(self) -> None:
        """
        Check that the start node and every referenced node exist.

        Raises:
            DialogValidationError: Naming the first dangling reference
        """
        if self.start_node not in self.nodes:
            raise DialogValidationError(
                f"Dialog {self.id!r}: start node {self.start_node!r} not defined"
            )

        for node in self.nodes.values():
            for index, response in enumerate(node.responses):
                targets = [response.next_node]
                if response.skill_check is not None:
                    targets += [response.skill_check.success_node, response.skill_check.fail_node]
                for target in targets:
                    if target is not None and target not in self.nodes:
                        raise DialogValidationError(
                            f"Dialog {self.id!r}: response {index} of node {node.id!r} "
                            f"leads to undefined node {target!r}"
                        )


def _parse_response(data: dict[str, Any]) -> DialogResponse:
    check = data.get('skill_check')
    return DialogResponse(
        text=data['text'],
        conditions=parse_conditions(data.get('conditions')),
        effects=parse_effects(data.get('effects')),
        next_node=data.get('next_node'),
        skill_check=SkillCheck(
            skill=check['skill'],
            difficulty=check.get('difficulty', 0),
            success_node=check.get('success_node'),
            fail_node=check.get('fail_node'),
        ) if check else None,
    )


def parse_dialog(data: dict[str, Any], dialog_id: Optional[str] = None) -> DialogGraph:
    """
    Build and validate a dialog graph from JSON data.

    Raises:
        DialogValidationError: On dangling node references
        pydantic.ValidationError: On malformed effects or conditions
    """
    dialog_id = dialog_id or data.get('id', '')
    nodes = {}
    for node_id, node_data in data.get('nodes', {}).items():
        nodes[node_id] = DialogNode(
            id=node_id,
            speaker=node_data.get('speaker', ''),
            text=node_data.get('text', ''),
            on_enter=parse_effects(node_data.get('on_enter')),
            responses=tuple(_parse_response(r) for r in node_data.get('responses', [])),
        )

    graph = DialogGraph(
        id=dialog_id,
        start_node=data.get('start_node', 'start'),
        nodes=nodes,
    )
    graph.validate()
    return graph
