import os
import random
import sys

import pytest

# Ensure engine modules can be imported
sys.path.append(os.getcwd())


class ScriptedRandom(random.Random):
    """
    Random source whose randint() returns queued values first.

    Everything else (choice, shuffle) behaves like a seeded Random.
    """

    def __init__(self, *rolls):
        super().__init__(0)
        self.rolls = list(rolls)

    def queue(self, *rolls):
        self.rolls.extend(rolls)

    def randint(self, a, b):
        if self.rolls:
            return self.rolls.pop(0)
        return super().randint(a, b)


@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from engine.core.events import EventBus
    return EventBus()


@pytest.fixture
def messages(event_bus):
    """Texts of every UI message published on the event_bus fixture."""
    from engine.core.events import GameEvent

    received = []

    def on_message(event):
        received.append(event['text'])

    event_bus.subscribe(GameEvent.UI_MESSAGE, on_message, weak=False)
    return received


@pytest.fixture
def scripted_rng():
    return ScriptedRandom()


@pytest.fixture
def database():
    """The bundled content pack."""
    from engine.resources.database import Database
    from framework.world.session import DEFAULT_DATA_PATH

    db = Database(DEFAULT_DATA_PATH)
    db.load_all()
    return db


@pytest.fixture
def session():
    """Session over the bundled content, saving disabled, not yet started."""
    from framework.world.session import GameSession, SessionConfig
    return GameSession(SessionConfig(seed=1, save_path=None))


@pytest.fixture
def started(session):
    """Session after a default new game."""
    session.start_new_game("Nate")
    return session


@pytest.fixture
def session_messages(session):
    """Texts of every UI message published on the session's bus."""
    from engine.core.events import GameEvent

    received = []

    def on_message(event):
        received.append(event['text'])

    session.event_bus.subscribe(GameEvent.UI_MESSAGE, on_message, weak=False)
    return received


@pytest.fixture
def dice(session):
    """
    Swap the session's dice for a ScriptedRandom and return it; queue
    rolls with dice.queue(...).
    """
    rng = ScriptedRandom()
    session.rng = rng
    session.character.rng = rng
    return rng
