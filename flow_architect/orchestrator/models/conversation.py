"""Conversation models: turns, dialogue states, classifier context, outcomes."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from flow_architect.orchestrator.models.elicitation import ClarifyingQuestion, PendingSlot


class Speaker(str, Enum):
    """Who produced a conversation turn."""

    USER = "user"
    SYSTEM = "system"


class ConversationTurn(BaseModel):
    """One message in the append-only conversation log."""

    model_config = ConfigDict(frozen=True)

    speaker: Speaker
    text: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DialogueState(str, Enum):
    """States of the dialogue state machine.

    ``AWAITING_FIELD_CLARIFICATION`` is always paired with a FIELD
    ``PendingSlot`` naming the field key.
    """

    AWAITING_SOURCE = "awaiting_source"
    AWAITING_TRANSFORM = "awaiting_transform"
    AWAITING_DESTINATION = "awaiting_destination"
    AWAITING_FIELD_CLARIFICATION = "awaiting_field_clarification"
    COMPLETE = "complete"


class ClassificationContext(BaseModel):
    """Everything the classifier sees besides the latest utterance.

    Attributes:
        turns: Recent conversation turns, oldest first.
        state: Current dialogue state.
        pending_slot: Outstanding clarification, if any.
        last_mentioned_connector: Connector named most recently.
        known_connectors: Catalog names in catalog order.
        known_transforms: Built-in transform names.
    """

    model_config = ConfigDict(frozen=True)

    turns: list[ConversationTurn] = Field(default_factory=list)
    state: DialogueState = DialogueState.AWAITING_SOURCE
    pending_slot: Optional[PendingSlot] = None
    last_mentioned_connector: Optional[str] = None
    known_connectors: list[str] = Field(default_factory=list)
    known_transforms: list[str] = Field(default_factory=list)


class DialogueOutcome(BaseModel):
    """Result of applying one intent to the session.

    Attributes:
        state: Dialogue state after the transition.
        message: System turn text appended to the log.
        question: Clarifying question asked, if the turn ended with one.
        graph_changed: Whether the pipeline graph was mutated.
        degraded: Whether the fallback classifier produced the intent.
    """

    state: DialogueState
    message: str
    question: Optional[ClarifyingQuestion] = None
    graph_changed: bool = False
    degraded: bool = False
