"""
Dialog components - the open conversation and its visible responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from framework.dialog.graph import DialogNode, DialogResponse
    from framework.components.entity import MapEntity


@dataclass
class ResponseView:
    """
    A response option as currently shown to the player.

    Attributes:
        index: Position in the node's response list
        text: Text the player says
        available: Whether every gating condition holds right now
        check_label: Short tag such as "[wits 7+]" or "[barter 20]"
        response: The underlying response definition
    """
    index: int
    text: str
    available: bool
    check_label: Optional[str]
    response: DialogResponse


@dataclass
class DialogSession:
    """
    An open conversation. Exists only between start and end of a dialog.

    Attributes:
        dialog_id: ID of the active dialog graph
        node: Node currently displayed
        speaker: Entity being talked to (None for scripted dialogs)
        responses: Responses of the current node, with availability
    """
    dialog_id: str
    node: DialogNode
    speaker: Optional[MapEntity] = None
    responses: list[ResponseView] = field(default_factory=list)

    @property
    def node_id(self) -> str:
        return self.node.id

    @property
    def speaker_name(self) -> str:
        if self.node.speaker:
            return self.node.speaker
        return self.speaker.name if self.speaker else ""

    @property
    def text(self) -> str:
        return self.node.text

    def available_responses(self) -> list[ResponseView]:
        return [r for r in self.responses if r.available]
