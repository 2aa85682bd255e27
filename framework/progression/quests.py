"""
Quest system - stage-based objectives, completion triggers, rewards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Optional

from pydantic import ValidationError

from engine.core.events import EventBus, GameEvent, MessageCategory, post_message
from framework.effects.effects import Effect, parse_effects

if TYPE_CHECKING:
    from framework.effects.dispatch import EffectDispatcher
    from framework.inventory.ledger import InventoryLedger
    from framework.progression.character import CharacterResolver
    from framework.world.state import WorldState


class QuestState(Enum):
    """Quest instance state. COMPLETED and FAILED are terminal."""
    ACTIVE = auto()
    COMPLETED = auto()
    FAILED = auto()


class ObjectiveType(Enum):
    """Types of quest objectives."""
    TALK = auto()         # Interact with an entity
    FETCH = auto()        # Acquire an item
    KILL = auto()         # Destroy entities (target is an id prefix)
    GO = auto()           # Enter a map


@dataclass(frozen=True)
class ObjectiveDefinition:
    """Objective template inside a stage."""
    type: ObjectiveType
    target: str
    count: int = 1
    description: str = ""


@dataclass(frozen=True)
class QuestStage:
    """A named phase of a quest."""
    id: str
    description: str = ""
    objectives: tuple[ObjectiveDefinition, ...] = ()
    on_complete: tuple[Effect, ...] = ()
    next_stage: Optional[str] = None


@dataclass(frozen=True)
class QuestReward:
    """Rewards granted once on completion."""
    xp: int = 0
    caps: int = 0
    items: tuple[str, ...] = ()


@dataclass(frozen=True)
class QuestDefinition:
    """Immutable quest template."""
    id: str
    title: str
    description: str
    start_stage: str
    stages: dict[str, QuestStage]
    rewards: QuestReward = field(default_factory=QuestReward)
    complete_message: str = ""


@dataclass
class QuestObjective:
    """
    A live objective.

    Attributes:
        type: Objective type
        target: Entity, item or map id (id prefix for kills)
        count: Required count
        description: Progress label
        current: Progress so far, never above count
    """
    type: ObjectiveType
    target: str
    count: int = 1
    description: str = ""
    current: int = 0

    @property
    def is_complete(self) -> bool:
        return self.current >= self.count

    @property
    def progress(self) -> float:
        """Get progress as a fraction."""
        if self.count <= 0:
            return 1.0
        return min(1.0, self.current / self.count)

    @classmethod
    def from_definition(cls, definition: ObjectiveDefinition) -> QuestObjective:
        return cls(
            type=definition.type,
            target=definition.target,
            count=definition.count,
            description=definition.description,
        )


@dataclass
class QuestInstance:
    """A started quest."""
    quest_id: str
    state: QuestState = QuestState.ACTIVE
    current_stage: str = ""
    objectives: list[QuestObjective] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.state == QuestState.ACTIVE


class QuestDefinitionError(ValueError):
    """A quest references a stage it does not define."""


class QuestTracker:
    """
    Tracks quest instances and drives their state machine:
    inactive -> active -> completed | failed.
    """

    def __init__(
        self,
        world: WorldState,
        character: CharacterResolver,
        inventory: InventoryLedger,
        event_bus: EventBus,
        effects: Optional[EffectDispatcher] = None,
    ):
        self.world = world
        self.character = character
        self.inventory = inventory
        self.event_bus = event_bus
        self.effects = effects

        # Quest templates
        self._definitions: dict[str, QuestDefinition] = {}

        # Started quests, in start order
        self._quests: dict[str, QuestInstance] = {}

        self.logger = logging.getLogger(__name__)

    # -- Definitions --------------------------------------------------------

    def load(self, records: dict[str, dict[str, Any]]) -> None:
        """Parse raw quest records (as loaded by the Database)."""
        for quest_id, data in records.items():
            try:
                self.register_quest(self._parse_quest(data))
            except (KeyError, ValueError, ValidationError) as e:
                self.logger.error(f"Invalid quest {quest_id!r}: {e}")

    def _parse_quest(self, data: dict) -> QuestDefinition:
        """Parse a quest from JSON data."""
        stages = {}
        for stage_id, stage_data in data['stages'].items():
            stages[stage_id] = QuestStage(
                id=stage_id,
                description=stage_data.get('description', ''),
                objectives=tuple(
                    ObjectiveDefinition(
                        type=ObjectiveType[obj['type'].upper()],
                        target=obj['target'],
                        count=obj.get('count', 1),
                        description=obj.get('description', ''),
                    )
                    for obj in stage_data.get('objectives', [])
                ),
                on_complete=parse_effects(stage_data.get('on_complete')),
                next_stage=stage_data.get('next_stage'),
            )

        start_stage = data['start_stage']
        if start_stage not in stages:
            raise QuestDefinitionError(f"start stage {start_stage!r} not defined")
        for stage in stages.values():
            if stage.next_stage is not None and stage.next_stage not in stages:
                raise QuestDefinitionError(
                    f"stage {stage.id!r} continues to undefined stage {stage.next_stage!r}"
                )

        rewards = data.get('rewards', {})
        return QuestDefinition(
            id=data['id'],
            title=data['title'],
            description=data.get('description', ''),
            start_stage=start_stage,
            stages=stages,
            rewards=QuestReward(
                xp=rewards.get('xp', 0),
                caps=rewards.get('caps', 0),
                items=tuple(rewards.get('items', [])),
            ),
            complete_message=data.get('complete_message', ''),
        )

    def register_quest(self, quest: QuestDefinition) -> None:
        self._definitions[quest.id] = quest

    def get_definition(self, quest_id: str) -> Optional[QuestDefinition]:
        return self._definitions.get(quest_id)

    def get_quest(self, quest_id: str) -> Optional[QuestInstance]:
        return self._quests.get(quest_id)

    # -- State machine ------------------------------------------------------

    def start_quest(self, quest_id: str) -> bool:
        """
        Start a quest at its start stage.

        No-op if the quest was ever started, including completed or
        failed quests.

        Returns:
            True if a new instance was created
        """
        if quest_id in self._quests:
            return False

        definition = self._definitions.get(quest_id)
        if definition is None:
            self.logger.warning(f"Quest not found: {quest_id}")
            return False

        stage = definition.stages[definition.start_stage]
        self._quests[quest_id] = QuestInstance(
            quest_id=quest_id,
            current_stage=stage.id,
            objectives=[QuestObjective.from_definition(o) for o in stage.objectives],
        )

        self.event_bus.publish(GameEvent.QUEST_START, quest_id=quest_id, quest=definition)
        post_message(
            self.event_bus, MessageCategory.QUEST,
            f"New Quest: {definition.title} - {definition.description}",
        )
        return True

    def update_objective(
        self,
        quest_id: str,
        objective_type: ObjectiveType | str,
        target: str,
        count: int = 1,
    ) -> bool:
        """
        Advance the first matching objective that still has capacity.

        Returns:
            True if an objective changed
        """
        if isinstance(objective_type, str):
            try:
                objective_type = ObjectiveType[objective_type.upper()]
            except KeyError:
                self.logger.warning(f"Unknown objective type: {objective_type}")
                return False

        quest = self._quests.get(quest_id)
        if quest is None or not quest.is_active:
            return False

        for objective in quest.objectives:
            if (
                objective.type == objective_type
                and objective.target == target
                and objective.current < objective.count
            ):
                objective.current = min(objective.current + count, objective.count)
                self.event_bus.publish(
                    GameEvent.QUEST_UPDATE, quest_id=quest_id, objective=objective,
                )
                if objective.description:
                    post_message(
                        self.event_bus, MessageCategory.QUEST,
                        f"Quest Updated: {objective.description} "
                        f"({objective.current}/{objective.count})",
                    )
                self._check_stage_complete(quest_id)
                return True

        return False

    def advance_quest(self, quest_id: str, stage_id: str) -> bool:
        """Replace the active objectives with a stage's, reset to zero."""
        quest = self._quests.get(quest_id)
        if quest is None or not quest.is_active:
            return False

        definition = self._definitions.get(quest_id)
        stage = definition.stages.get(stage_id) if definition else None
        if stage is None:
            self.logger.warning(f"Quest stage not found: {quest_id}.{stage_id}")
            return False

        quest.current_stage = stage_id
        quest.objectives = [QuestObjective.from_definition(o) for o in stage.objectives]

        self.event_bus.publish(GameEvent.QUEST_UPDATE, quest_id=quest_id, stage=stage_id)
        if stage.description:
            post_message(self.event_bus, MessageCategory.QUEST, f"Quest Updated: {stage.description}")
        return True

    def complete_quest(self, quest_id: str) -> bool:
        """
        Complete a quest and grant its rewards once.

        Returns:
            False if the quest was never started or is already completed
        """
        quest = self._quests.get(quest_id)
        if quest is None or quest.state == QuestState.COMPLETED:
            return False

        definition = self._definitions[quest_id]
        quest.state = QuestState.COMPLETED

        rewards = definition.rewards
        if rewards.xp:
            self.character.add_xp(rewards.xp)
        if rewards.caps:
            self.world.player.add_caps(rewards.caps)
            post_message(self.event_bus, MessageCategory.LOOT, f"Received {rewards.caps} caps.")
        for item_id in rewards.items:
            self.inventory.add_item(item_id)

        self.event_bus.publish(GameEvent.QUEST_COMPLETE, quest_id=quest_id, quest=definition)
        post_message(
            self.event_bus, MessageCategory.QUEST,
            f"Quest Complete: {definition.title}! {definition.complete_message}".rstrip(),
        )
        return True

    def fail_quest(self, quest_id: str) -> bool:
        """Mark a started quest as failed."""
        quest = self._quests.get(quest_id)
        if quest is None or quest.state == QuestState.FAILED:
            return False

        quest.state = QuestState.FAILED
        definition = self._definitions.get(quest_id)

        self.event_bus.publish(GameEvent.QUEST_FAIL, quest_id=quest_id)
        post_message(
            self.event_bus, MessageCategory.WARNING,
            f"Quest Failed: {definition.title if definition else quest_id}",
        )
        return True

    def _check_stage_complete(self, quest_id: str) -> None:
        quest = self._quests[quest_id]
        if not all(o.is_complete for o in quest.objectives):
            return

        definition = self._definitions[quest_id]
        stage = definition.stages.get(quest.current_stage)
        if stage is None:
            return

        if stage.on_complete and self.effects is not None:
            self.effects.apply_all(stage.on_complete, MessageCategory.QUEST)

        if stage.next_stage:
            self.advance_quest(quest_id, stage.next_stage)
        else:
            self.complete_quest(quest_id)

    # -- Event-driven tracking ----------------------------------------------

    def track(self, objective_type: ObjectiveType, target: str, count: int = 1) -> None:
        """
        Feed a game event into every active quest.

        Kill objectives match when the destroyed entity's id starts with
        the objective target, so "radroach" counts "radroach_1".
        """
        for quest_id in [q.quest_id for q in self.get_active_quests()]:
            quest = self._quests[quest_id]
            targets = []
            for objective in quest.objectives:
                if objective.type != objective_type:
                    continue
                if objective_type == ObjectiveType.KILL:
                    matched = target.startswith(objective.target)
                else:
                    matched = objective.target == target
                if matched and objective.target not in targets:
                    targets.append(objective.target)

            for objective_target in targets:
                self.update_objective(quest_id, objective_type, objective_target, count)

    # -- Queries ------------------------------------------------------------

    def is_active(self, quest_id: str) -> bool:
        quest = self._quests.get(quest_id)
        return quest is not None and quest.state == QuestState.ACTIVE

    def is_complete(self, quest_id: str) -> bool:
        quest = self._quests.get(quest_id)
        return quest is not None and quest.state == QuestState.COMPLETED

    def is_failed(self, quest_id: str) -> bool:
        quest = self._quests.get(quest_id)
        return quest is not None and quest.state == QuestState.FAILED

    def get_active_quests(self) -> list[QuestInstance]:
        return [q for q in self._quests.values() if q.state == QuestState.ACTIVE]

    def get_completed_quests(self) -> list[QuestInstance]:
        return [q for q in self._quests.values() if q.state == QuestState.COMPLETED]

    # -- Persistence --------------------------------------------------------

    def reset(self) -> None:
        self._quests.clear()

    def get_save_data(self) -> dict[str, Any]:
        """Get quest data for saving."""
        return {
            quest_id: {
                'state': quest.state.name,
                'current_stage': quest.current_stage,
                'objectives': [
                    {
                        'type': o.type.name,
                        'target': o.target,
                        'count': o.count,
                        'description': o.description,
                        'current': o.current,
                    }
                    for o in quest.objectives
                ],
            }
            for quest_id, quest in self._quests.items()
        }

    @staticmethod
    def parse_save_data(data: dict[str, Any]) -> dict[str, QuestInstance]:
        """
        Build quest instances from save data without touching the log.

        Raises:
            KeyError: On unknown quest states or objective types
        """
        return {
            quest_id: QuestInstance(
                quest_id=quest_id,
                state=QuestState[quest_data['state']],
                current_stage=quest_data.get('current_stage', ''),
                objectives=[
                    QuestObjective(
                        type=ObjectiveType[o['type']],
                        target=o['target'],
                        count=o.get('count', 1),
                        description=o.get('description', ''),
                        current=o.get('current', 0),
                    )
                    for o in quest_data.get('objectives', [])
                ],
            )
            for quest_id, quest_data in (data or {}).items()
        }

    def load_save_data(self, data: dict[str, Any]) -> None:
        """Load quest data from save."""
        self._quests = self.parse_save_data(data)
