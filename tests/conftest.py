"""Root-level pytest fixtures for all tests.

Provides shared fixtures:
- The packaged connector registry
- Fresh sessions and dialogue state machines
- A scripted classifier that replays prepared intents
- A recording pipeline observer
"""

import asyncio
from typing import Optional

import pytest

from flow_architect.orchestrator.dialogue.state_machine import DialogueStateMachine
from flow_architect.orchestrator.models.conversation import ClassificationContext
from flow_architect.orchestrator.models.intent import Intent, Unrecognized
from flow_architect.orchestrator.models.pipeline import GraphSnapshot
from flow_architect.services.connector_registry import (
    DEFAULT_CATALOG_PATH,
    ConnectorRegistry,
)
from flow_architect.services.session import Session


class ScriptedClassifier:
    """Deterministic classifier that returns queued intents in order.

    Once the script runs out every utterance is ``Unrecognized``.
    """

    def __init__(
        self,
        intents: Optional[list[Intent]] = None,
        delays: Optional[list[float]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.intents = list(intents or [])
        self.delays = list(delays or [])
        self.error = error
        self.calls: list[tuple[ClassificationContext, str]] = []

    def queue(self, *intents: Intent) -> None:
        self.intents.extend(intents)

    async def classify(self, context: ClassificationContext, utterance: str) -> Intent:
        self.calls.append((context, utterance))
        delay = self.delays.pop(0) if self.delays else 0.0
        if delay:
            await asyncio.sleep(delay)
        if self.error is not None:
            raise self.error
        if not self.intents:
            return Unrecognized(raw_text=utterance)
        return self.intents.pop(0)


class RecordingObserver:
    """Pipeline observer that records every notification."""

    def __init__(self) -> None:
        self.snapshots: list[GraphSnapshot] = []
        self.questions: list[str] = []

    def on_graph_changed(self, snapshot: GraphSnapshot) -> None:
        self.snapshots.append(snapshot)

    def on_question_asked(self, text: str) -> None:
        self.questions.append(text)


@pytest.fixture(scope="session")
def registry() -> ConnectorRegistry:
    """Registry loaded from the packaged catalog (read-only, shared)."""
    return ConnectorRegistry.from_catalog_file(DEFAULT_CATALOG_PATH)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()


@pytest.fixture
def session(observer: RecordingObserver) -> Session:
    """Fresh session with a recording observer attached."""
    s = Session("test-session")
    s.emitter.add_observer(observer)
    return s


@pytest.fixture
def machine(session: Session, registry: ConnectorRegistry) -> DialogueStateMachine:
    return DialogueStateMachine(session, registry)


@pytest.fixture
def scripted():
    """Factory for scripted classifiers."""
    def _make(*intents: Intent, delays=None, error=None) -> ScriptedClassifier:
        return ScriptedClassifier(list(intents), delays=delays, error=error)

    return _make
