"""Intent models for chat utterances.

An intent is the structured reading of one user utterance. The
classification service answers with a JSON object whose ``intent`` field
selects the variant; the remaining camelCase fields map onto the model
attributes below.

Intents are produced fresh per turn and never persisted.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from flow_architect.orchestrator.models.connector import ConnectorRole


class NodeRole(str, Enum):
    """Role of a node within the pipeline chain."""

    SOURCE = "source"
    TRANSFORM = "transform"
    DESTINATION = "destination"


def _lower_role(value: object) -> object:
    if isinstance(value, str):
        return value.strip().lower()
    return value


class _IntentBase(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class RoleClarification(_IntentBase):
    """User states which end of the pipeline a connector belongs to.

    Typically a short answer ("source") resolved against the connector
    mentioned last.
    """

    intent: Literal["role_clarification"] = "role_clarification"
    connector_name: str = Field(..., alias="connectorName", min_length=1)
    role: ConnectorRole
    confidence: float = Field(..., ge=0.0, le=1.0)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value: object) -> object:
        return _lower_role(value)


class ConnectorSelection(_IntentBase):
    """User picks a connector for a role."""

    intent: Literal["connector_selection"] = "connector_selection"
    role: NodeRole
    connector_name: str = Field(..., alias="connectorName", min_length=1)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value: object) -> object:
        return _lower_role(value)


class TransformSelection(_IntentBase):
    """User asks for a transform step.

    Attributes:
        transform_name: Transform the user named ("Cleanse", "kk", ...).
        placeholder: True when the user explicitly asked for an unspecified
            transform step.
    """

    intent: Literal["transform_selection"] = "transform_selection"
    transform_name: str = Field(..., alias="transformName")
    placeholder: bool = False


class FieldAnswer(_IntentBase):
    """User supplies a value for a connector field.

    ``role`` optionally targets a node when the field key is ambiguous.
    An empty ``value`` means "I want to change this field".
    """

    intent: Literal["field_answer"] = "field_answer"
    field_key: str = Field(..., alias="fieldKey", min_length=1)
    value: str = ""
    role: Optional[NodeRole] = None

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value: object) -> object:
        return _lower_role(value)

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, value: object) -> object:
        # Models sometimes answer numbers for ports, ids, etc.
        if value is None:
            return ""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class SkipRequest(_IntentBase):
    """User skips the current optional step."""

    intent: Literal["skip"] = "skip"


class Confirmation(_IntentBase):
    """Yes/no answer to a pending confirmation question."""

    intent: Literal["confirmation"] = "confirmation"
    accepted: bool


class Unrecognized(_IntentBase):
    """Utterance could not be read as any other intent."""

    intent: Literal["unrecognized"] = "unrecognized"
    raw_text: str = Field(default="", alias="rawText")


SimpleIntent = Annotated[
    Union[
        RoleClarification,
        ConnectorSelection,
        TransformSelection,
        FieldAnswer,
        SkipRequest,
        Confirmation,
        Unrecognized,
    ],
    Field(discriminator="intent"),
]


class CompoundIntent(_IntentBase):
    """Several intents found in one utterance, applied in order.

    "Connect Shopify to BigQuery" carries a source and a destination
    selection at once.
    """

    intent: Literal["compound"] = "compound"
    intents: list[SimpleIntent] = Field(..., min_length=1)


Intent = Annotated[
    Union[
        RoleClarification,
        ConnectorSelection,
        TransformSelection,
        FieldAnswer,
        SkipRequest,
        Confirmation,
        Unrecognized,
        CompoundIntent,
    ],
    Field(discriminator="intent"),
]

INTENT_ADAPTER: TypeAdapter[Intent] = TypeAdapter(Intent)

# Variants whose confidence is gated by the dialogue layer
GATED_INTENTS = (RoleClarification, ConnectorSelection)


def intent_connector_names(intent: BaseModel) -> list[str]:
    """Return connector names referenced by an intent, in order.

    Args:
        intent: Any intent variant.

    Returns:
        Connector names (possibly empty). Transform selections are not
        connector references.
    """
    if isinstance(intent, ConnectorSelection) and intent.role == NodeRole.TRANSFORM:
        return []
    if isinstance(intent, (RoleClarification, ConnectorSelection)):
        return [intent.connector_name]
    if isinstance(intent, CompoundIntent):
        names: list[str] = []
        for sub in intent.intents:
            names.extend(intent_connector_names(sub))
        return names
    return []
