"""Pydantic models shared across the orchestrator."""

from flow_architect.orchestrator.models.connector import (
    BuiltinTransform,
    Connector,
    ConnectorCategory,
    ConnectorCredentials,
    ConnectorRole,
    ConnectorRoles,
    DummyTransformMarker,
)
from flow_architect.orchestrator.models.intent import (
    INTENT_ADAPTER,
    CompoundIntent,
    Confirmation,
    ConnectorSelection,
    FieldAnswer,
    Intent,
    NodeRole,
    RoleClarification,
    SimpleIntent,
    SkipRequest,
    TransformSelection,
    Unrecognized,
)
from flow_architect.orchestrator.models.elicitation import (
    ClarifyingQuestion,
    ElicitationOption,
    PendingSlot,
    SlotKind,
)
from flow_architect.orchestrator.models.conversation import (
    ClassificationContext,
    ConversationTurn,
    DialogueOutcome,
    DialogueState,
    Speaker,
)
from flow_architect.orchestrator.models.pipeline import (
    GraphSnapshot,
    NodeStatus,
    PipelineEdge,
    PipelineNode,
)

__all__ = [
    # Connector models
    "ConnectorCategory",
    "ConnectorRole",
    "ConnectorRoles",
    "ConnectorCredentials",
    "Connector",
    "BuiltinTransform",
    "DummyTransformMarker",
    # Intent models
    "NodeRole",
    "RoleClarification",
    "ConnectorSelection",
    "TransformSelection",
    "FieldAnswer",
    "SkipRequest",
    "Confirmation",
    "Unrecognized",
    "CompoundIntent",
    "SimpleIntent",
    "Intent",
    "INTENT_ADAPTER",
    # Elicitation models
    "SlotKind",
    "PendingSlot",
    "ElicitationOption",
    "ClarifyingQuestion",
    # Conversation models
    "Speaker",
    "ConversationTurn",
    "DialogueState",
    "ClassificationContext",
    "DialogueOutcome",
    # Pipeline models
    "NodeStatus",
    "PipelineNode",
    "PipelineEdge",
    "GraphSnapshot",
]
