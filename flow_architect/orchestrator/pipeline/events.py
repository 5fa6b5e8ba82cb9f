"""Observer pattern for pipeline change events.

Provides the PipelineEventObserver protocol and PipelineEventEmitter class
for pushing graph snapshots and clarifying questions to a renderer.

Callbacks are synchronous: the graph is mutated on the conversational path
between classification calls, and observers only read the snapshot they
are handed.
"""

import logging
from typing import Protocol

from flow_architect.orchestrator.models.pipeline import GraphSnapshot

logger = logging.getLogger(__name__)


class PipelineEventObserver(Protocol):
    """Observer protocol for pipeline events.

    Implementations subscribe via PipelineEventEmitter to redraw a canvas,
    update a UI, or record activity.
    """

    def on_graph_changed(self, snapshot: GraphSnapshot) -> None:
        """Called after every committed graph mutation.

        Args:
            snapshot: Immutable view of the graph after the mutation.
        """
        ...

    def on_question_asked(self, text: str) -> None:
        """Called after every clarifying question.

        Args:
            text: Question text as appended to the conversation.
        """
        ...


class PipelineEventEmitter:
    """Emits pipeline events to registered observers.

    Exceptions from individual observers are caught and logged to prevent
    one broken observer from stopping event delivery to others.
    """

    def __init__(self) -> None:
        """Initialize emitter with empty observer list."""
        self._observers: list[PipelineEventObserver] = []

    def add_observer(self, observer: PipelineEventObserver) -> None:
        """Register an observer to receive pipeline events.

        Args:
            observer: Observer implementing PipelineEventObserver protocol.
        """
        self._observers.append(observer)

    def remove_observer(self, observer: PipelineEventObserver) -> None:
        """Unregister an observer.

        Args:
            observer: Observer to remove from notification list.
        """
        self._observers.remove(observer)

    def emit_graph_changed(self, snapshot: GraphSnapshot) -> None:
        """Emit graph changed event to all observers.

        Args:
            snapshot: Graph snapshot after the mutation.
        """
        for observer in list(self._observers):
            try:
                observer.on_graph_changed(snapshot)
            except Exception as e:
                logger.error(
                    "Observer %s failed on_graph_changed: %s",
                    type(observer).__name__,
                    e,
                )

    def emit_question_asked(self, text: str) -> None:
        """Emit question asked event to all observers.

        Args:
            text: Clarifying question text.
        """
        for observer in list(self._observers):
            try:
                observer.on_question_asked(text)
            except Exception as e:
                logger.error(
                    "Observer %s failed on_question_asked: %s",
                    type(observer).__name__,
                    e,
                )
