"""Elicitation models for clarifying questions and pending slots.

When the dialogue cannot apply an utterance it asks one question and
records what it is waiting for as a ``PendingSlot``. At most one slot is
outstanding at a time.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from flow_architect.orchestrator.models.intent import NodeRole


class SlotKind(str, Enum):
    """What kind of answer the pending question expects."""

    FIELD = "field"
    ROLE = "role"
    CONNECTOR_CONFIRMATION = "connector_confirmation"


class PendingSlot(BaseModel):
    """The single outstanding clarification.

    Attributes:
        kind: Expected answer type.
        node_id: Node whose field is being collected (FIELD slots).
        field_key: Field being collected (FIELD slots).
        optional: Whether the field may be skipped (FIELD slots).
        connector_name: Connector the question is about (ROLE and
            CONNECTOR_CONFIRMATION slots).
        role: Role the connector would take (CONNECTOR_CONFIRMATION slots).
    """

    model_config = ConfigDict(frozen=True)

    kind: SlotKind
    node_id: Optional[str] = None
    field_key: Optional[str] = None
    optional: bool = False
    connector_name: Optional[str] = None
    role: Optional[NodeRole] = None


class ElicitationOption(BaseModel):
    """A single suggested answer for a clarifying question.

    Attributes:
        id: Unique identifier (e.g., "source", "cleanse")
        label: Display label (e.g., "Source")
        description: Short explanation
        value: Associated value if different from id
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Unique option identifier")
    label: str = Field(..., description="Display label for the option")
    description: str = Field(default="", description="Explanation of the option")
    value: Any = Field(default=None, description="Associated value if different from id")


class ClarifyingQuestion(BaseModel):
    """A question the system asks to fill one slot.

    Attributes:
        id: Question identifier (e.g., "source_name", "field:storeDomain")
        header: Short section header (e.g., "Source")
        question: The question text shown in chat
        options: Suggested answers, may be empty
        allow_free_text: Whether answers outside the options are accepted
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Question identifier")
    header: str = Field(..., description="Section header for the question")
    question: str = Field(..., description="The question text")
    options: list[ElicitationOption] = Field(default_factory=list)
    allow_free_text: bool = Field(default=True)
