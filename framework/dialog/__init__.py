"""
Dialog module - branching conversations.

Provides:
- Validated dialog graphs
- Response gating and check labels
- Inline skill checks
"""

from framework.dialog.graph import (
    DialogGraph,
    DialogNode,
    DialogResponse,
    DialogValidationError,
    SkillCheck,
    parse_dialog,
)
from framework.dialog.system import DialogEngine, check_label

__all__ = [
    "DialogGraph",
    "DialogNode",
    "DialogResponse",
    "DialogValidationError",
    "SkillCheck",
    "parse_dialog",
    "DialogEngine",
    "check_label",
]
