"""Pipeline chat sessions and their lifecycle.

A session owns one conversation: its append-only turn log, its pipeline
graph, the dialogue state and the single pending clarification. Sessions
are memory-resident and discarded on reset; nothing is persisted.

Example:
    mgr = SessionManager()
    session = mgr.get_or_create_session("conv-123")
    session.add_turn(Speaker.USER, "Connect Shopify to BigQuery")
    mgr.reset_session("conv-123")
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from flow_architect.orchestrator.models.connector import Connector
from flow_architect.orchestrator.models.conversation import (
    ConversationTurn,
    DialogueState,
    Speaker,
)
from flow_architect.orchestrator.models.elicitation import ClarifyingQuestion, PendingSlot
from flow_architect.orchestrator.pipeline.events import PipelineEventEmitter
from flow_architect.orchestrator.pipeline.graph import PipelineGraph

logger = logging.getLogger(__name__)


class Session:
    """A single pipeline-design conversation.

    Attributes:
        session_id: Unique conversation identifier.
        turns: Append-only conversation log.
        created_at: When the session was created.
        emitter: Publishes graph changes and questions to observers.
        graph: The session's pipeline graph.
        state: Current dialogue state.
        pending_slot: The single outstanding clarification, if any.
        current_question: Question that created ``pending_slot`` (re-asked
            verbatim when an answer cannot be applied).
        last_mentioned_connector: Connector named most recently.
        deferred_destination: Destination named before any source existed.
        transform_step_resolved: Whether the user is done with transforms.
        asked_optional: (node id, field key) pairs already asked once.
        sequence: Number of the latest submitted user message.
        in_flight: Classification task for the latest message, if running.
    """

    def __init__(self, session_id: str, emitter: Optional[PipelineEventEmitter] = None) -> None:
        """Initialize a new session.

        Args:
            session_id: Unique conversation identifier.
            emitter: Event emitter to publish on. A fresh one when omitted.
        """
        self.session_id = session_id
        self.turns: list[ConversationTurn] = []
        self.created_at = datetime.now(timezone.utc)
        self.emitter = emitter or PipelineEventEmitter()
        self.graph = PipelineGraph(self.emitter)
        self.state = DialogueState.AWAITING_SOURCE
        self.pending_slot: Optional[PendingSlot] = None
        self.current_question: Optional[ClarifyingQuestion] = None
        self.last_mentioned_connector: Optional[str] = None
        self.deferred_destination: Optional[Connector] = None
        self.transform_step_resolved = False
        self.asked_optional: set[tuple[str, str]] = set()
        self.sequence = 0
        self.in_flight: asyncio.Task[Any] | None = None

    def add_turn(self, speaker: Speaker, text: str) -> ConversationTurn:
        """Append a turn to the conversation log.

        Args:
            speaker: Who said it.
            text: Message text.

        Returns:
            The appended turn.
        """
        turn = ConversationTurn(speaker=speaker, text=text)
        self.turns.append(turn)
        return turn

    def recent_turns(self, limit: int) -> list[ConversationTurn]:
        """Last ``limit`` turns, oldest first."""
        if limit <= 0:
            return []
        return list(self.turns[-limit:])


class SessionManager:
    """Manages pipeline chat sessions keyed by conversation ID.

    Single-process, single event loop.

    Attributes:
        _sessions: Dict of session_id -> Session.
    """

    def __init__(self) -> None:
        """Initialize with no active sessions."""
        self._sessions: dict[str, Session] = {}

    def get_session(self, session_id: str) -> Session | None:
        """Get a session without auto-creating. Returns None if not found."""
        return self._sessions.get(session_id)

    def get_or_create_session(self, session_id: str) -> Session:
        """Get an existing session or create a new one.

        Args:
            session_id: Unique conversation identifier.

        Returns:
            The Session for this conversation.
        """
        if session_id not in self._sessions:
            self._sessions[session_id] = Session(session_id)
            logger.info("Created new pipeline session: %s", session_id)
        return self._sessions[session_id]

    async def cancel_in_flight(self, session_id: str) -> None:
        """Cancel and await a session's in-flight classification, if any."""
        session = self._sessions.get(session_id)
        if session is None or session.in_flight is None:
            return
        task = session.in_flight
        session.in_flight = None
        if task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(
                "Error while cancelling classification for session %s: %s",
                session_id,
                e,
            )

    def remove_session(self, session_id: str) -> None:
        """Remove a session from tracking. Idempotent."""
        session = self._sessions.pop(session_id, None)
        if session is not None:
            if session.in_flight is not None and not session.in_flight.done():
                session.in_flight.cancel()
            logger.info("Removed pipeline session: %s", session_id)

    def reset_session(self, session_id: str) -> Session:
        """Discard a session and start a fresh one under the same ID.

        Observers registered on the old session's emitter carry over.
        """
        old = self._sessions.get(session_id)
        emitter = old.emitter if old is not None else None
        self.remove_session(session_id)
        session = Session(session_id, emitter)
        self._sessions[session_id] = session
        logger.info("Reset pipeline session: %s", session_id)
        return session

    def list_sessions(self) -> list[str]:
        return list(self._sessions.keys())
