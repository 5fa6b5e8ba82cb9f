"""Shared conversation handling service.

Routes one user message through classification and the dialogue state
machine. Owns the only suspension point in a turn (the classification
request) and the rules around it:

- Each message gets the next sequence number for its session.
- A new message cancels the previous message's in-flight classification.
- A result for a message that is no longer the latest is discarded.
- The request is bounded by a timeout; timeouts and transport errors fall
  back to the rule-based classifier and the reply is marked degraded.
"""

import asyncio
import logging
from typing import Optional

from flow_architect.errors import (
    ClassificationTimeoutError,
    ClassificationTransportError,
    GraphInvariantViolation,
)
from flow_architect.orchestrator.dialogue.state_machine import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    DialogueStateMachine,
)
from flow_architect.orchestrator.models.conversation import (
    ClassificationContext,
    DialogueOutcome,
    Speaker,
)
from flow_architect.orchestrator.models.intent import Intent
from flow_architect.orchestrator.nl_engine.fallback_parser import RuleBasedClassifier
from flow_architect.orchestrator.nl_engine.intent_classifier import Classifier
from flow_architect.services.connector_registry import ConnectorRegistry
from flow_architect.services.session import Session

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_CONTEXT_TURNS = 10


def build_classification_context(
    session: Session,
    registry: ConnectorRegistry,
    context_turns: int = DEFAULT_CONTEXT_TURNS,
) -> ClassificationContext:
    """Snapshot what the classifier needs to know about a session.

    Args:
        session: Session being classified for.
        registry: Connector catalog.
        context_turns: Size of the recent-conversation window.

    Returns:
        Immutable classification context.
    """
    return ClassificationContext(
        turns=session.recent_turns(context_turns),
        state=session.state,
        pending_slot=session.pending_slot,
        last_mentioned_connector=session.last_mentioned_connector,
        known_connectors=registry.names(),
        known_transforms=[t.name for t in registry.transforms()],
    )


class ConversationHandler:
    """Processes user messages for one session.

    Example:
        handler = ConversationHandler(session, registry, LLMIntentClassifier())
        outcome = await handler.handle_message("Connect Shopify to BigQuery")
        if outcome is not None:
            print(outcome.message)
    """

    def __init__(
        self,
        session: Session,
        registry: ConnectorRegistry,
        classifier: Classifier,
        fallback: Optional[Classifier] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        context_turns: int = DEFAULT_CONTEXT_TURNS,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        ask_optional_fields: bool = True,
    ) -> None:
        """Initialize the handler.

        Args:
            session: Session to drive.
            registry: Connector catalog.
            classifier: Primary classifier.
            fallback: Used when the primary classifier fails. Defaults to a
                ``RuleBasedClassifier`` over ``registry``.
            timeout_seconds: Bound on one classification request.
            context_turns: Conversation window sent to the classifier.
            confidence_threshold: Passed to the state machine.
            ask_optional_fields: Passed to the state machine.
        """
        self._session = session
        self._registry = registry
        self._classifier = classifier
        self._fallback = fallback or RuleBasedClassifier(registry)
        self._timeout = timeout_seconds
        self._context_turns = context_turns
        self._machine = DialogueStateMachine(
            session,
            registry,
            confidence_threshold=confidence_threshold,
            ask_optional_fields=ask_optional_fields,
        )

    @property
    def session(self) -> Session:
        return self._session

    async def handle_message(self, text: str) -> Optional[DialogueOutcome]:
        """Classify and apply one user message.

        Args:
            text: User message.

        Returns:
            The dialogue outcome, or None when a newer message superseded
            this one before its classification finished.

        Raises:
            GraphInvariantViolation: On a graph logic error.
        """
        session = self._session
        session.sequence += 1
        sequence = session.sequence

        previous = session.in_flight
        if previous is not None and not previous.done():
            logger.info("Cancelling classification superseded by message %d", sequence)
            previous.cancel()

        context = build_classification_context(session, self._registry, self._context_turns)
        session.add_turn(Speaker.USER, text)

        task = asyncio.ensure_future(self._classify(context, text))
        session.in_flight = task
        degraded = False
        try:
            intent = await task
        except asyncio.CancelledError:
            if sequence != session.sequence:
                logger.info("Message %d in session %s superseded", sequence, session.session_id)
                return None
            raise
        except ClassificationTransportError as e:
            logger.warning(
                "Classification unavailable for session %s (%s), using rule-based fallback",
                session.session_id,
                e.error_code,
            )
            intent = await self._fallback.classify(context, text)
            degraded = True
        finally:
            if session.in_flight is task:
                session.in_flight = None

        if sequence != session.sequence:
            logger.info("Discarding stale classification for message %d", sequence)
            return None

        try:
            return self._machine.apply(intent, utterance=text, degraded=degraded)
        except GraphInvariantViolation:
            logger.exception("Graph invariant violated in session %s", session.session_id)
            raise

    async def _classify(self, context: ClassificationContext, text: str) -> Intent:
        try:
            return await asyncio.wait_for(
                self._classifier.classify(context, text),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise ClassificationTimeoutError(self._timeout) from e
