"""Question templates and acknowledgement wording for the pipeline dialogue.

Every System turn is built here: the clarifying questions the state
machine asks (each a ``ClarifyingQuestion``) and the acknowledgements it
gives after applying an intent. Secret field values are masked before
they are echoed.

Templates cover:
- Source, transform and destination selection
- Role disambiguation and role incompatibility
- Custom (non-catalog) connector confirmation
- Mandatory and optional field collection
"""


from flow_architect.orchestrator.models.connector import ConnectorRole
from flow_architect.orchestrator.models.elicitation import (
    ClarifyingQuestion,
    ElicitationOption,
)
from flow_architect.orchestrator.models.intent import NodeRole
from flow_architect.utils.redaction import mask_field_value

# Human names for chain positions, used in acknowledgements
NODE_ROLE_NAMES: dict[NodeRole, str] = {
    NodeRole.SOURCE: "source system",
    NodeRole.TRANSFORM: "transformation",
    NodeRole.DESTINATION: "destination system",
}

FIELD_DESCRIPTIONS: dict[str, str] = {
    "baseUrl": "base URL",
    "loginUrl": "login URL",
    "baseUrl/loginUrl": "base or login URL",
    "host": "host address",
    "host/account": "host address or account",
    "endpoint": "API endpoint",
    "endpoint/host": "endpoint or host",
    "endpoint/bucket": "endpoint or bucket",
    "user": "username",
    "username": "username",
    "password": "password",
    "password or key": "password or key",
    "apiKey": "API key",
    "apiKey/token": "API key or token",
    "accessToken/apiKey": "access token or API key",
    "token": "access token",
    "token/password": "token or password",
    "clientId": "client ID",
    "clientSecret": "client secret",
    "storeDomain": "store domain",
    "database/schema": "database or schema",
    "broker/endpoint": "broker address",
    "topic/stream": "topic or stream",
    "index/collection": "index or collection",
    "accountId": "account ID",
    "apiVersion": "API version",
    "path/prefix": "path or prefix",
    "tls/sasl": "TLS/SASL settings",
}

FIELD_EXAMPLES: dict[str, str] = {
    "baseUrl": "https://yourcompany.salesforce.com",
    "loginUrl": "https://yourcompany.salesforce.com",
    "baseUrl/loginUrl": "https://yourcompany.salesforce.com",
    "host": "database.example.com",
    "host/account": "database.example.com",
    "endpoint": "https://api.example.com",
    "user": "john@company.com",
    "username": "john@company.com",
    "email": "john@company.com",
    "apiKey": "sk-1234567890abcdef",
    "token": "abc123def456",
    "clientId": "3MVG9...",
    "storeDomain": "mystore.myshopify.com",
}

SKIP_HINT = "(Optional - you can type 'skip' to continue)"

DEGRADED_NOTICE = "I'm having a little trouble understanding right now, so I'm matching your message more literally."

COMPLETION_MESSAGE = (
    "Perfect! Your data flow is complete. Is there anything else you'd like to adjust?"
)


def describe_field(field_key: str) -> str:
    return FIELD_DESCRIPTIONS.get(field_key, field_key)


def _with_example(text: str, field_key: str) -> str:
    example = FIELD_EXAMPLES.get(field_key)
    return f"{text} (e.g., {example})" if example else text


def _system_options(examples: list[str]) -> list[ElicitationOption]:
    return [ElicitationOption(id=name.lower(), label=name) for name in examples]


# ---------------------------------------------------------------------------
# Questions
# ---------------------------------------------------------------------------


def source_question(examples: list[str]) -> ClarifyingQuestion:
    """Ask which system data comes from."""
    shown = ", ".join(examples[:3])
    return ClarifyingQuestion(
        id="source_name",
        header="Source",
        question=f"What system do you want to get data from? For example: {shown}, etc.",
        options=_system_options(examples[:3]),
    )


def transform_question(transform_names: list[str]) -> ClarifyingQuestion:
    """Ask whether a transform step is needed. Skippable."""
    shown = ", ".join(transform_names[:3])
    return ClarifyingQuestion(
        id="transform_name",
        header="Transform",
        question=(
            f"What type of data transformation do you need? For example: {shown}, etc. "
            f"{SKIP_HINT}"
        ),
        options=[ElicitationOption(id=name.lower(), label=name) for name in transform_names]
        + [ElicitationOption(id="skip", label="Skip", description="No transformation step")],
    )


def more_transforms_question() -> ClarifyingQuestion:
    return ClarifyingQuestion(
        id="transform_more",
        header="Transform",
        question=f"Would you like another transformation step, or shall we pick the destination? {SKIP_HINT}",
        options=[ElicitationOption(id="skip", label="Skip", description="Continue to the destination")],
    )


def destination_question(examples: list[str]) -> ClarifyingQuestion:
    """Ask where the data should go."""
    shown = ", ".join(examples[:3])
    return ClarifyingQuestion(
        id="destination_name",
        header="Destination",
        question=f"Where do you want to send the data? For example: {shown}, etc.",
        options=_system_options(examples[:3]),
    )


def role_question(connector_name: str) -> ClarifyingQuestion:
    """Ask which end of the pipeline a mentioned connector belongs to."""
    return ClarifyingQuestion(
        id="role",
        header="Role",
        question=f"Should {connector_name} be your source or your destination?",
        options=[
            ElicitationOption(id="source", label="Source", description="Read data from it"),
            ElicitationOption(id="destination", label="Destination", description="Send data to it"),
        ],
        allow_free_text=False,
    )


def role_incompatible_question(
    connector_name: str,
    requested: NodeRole,
    supported: list[ConnectorRole],
    follow_up: ClarifyingQuestion,
) -> ClarifyingQuestion:
    """Explain that a connector cannot take a role, then re-ask."""
    allowed = " or ".join(role.value for role in supported) or "any role"
    return ClarifyingQuestion(
        id=follow_up.id,
        header=follow_up.header,
        question=(
            f"{connector_name} can only be used as a {allowed}, not as a {requested.value}. "
            f"{follow_up.question}"
        ),
        options=follow_up.options,
    )


def custom_connector_question(connector_name: str, role: NodeRole) -> ClarifyingQuestion:
    """Offer to use a name that is not in the catalog."""
    return ClarifyingQuestion(
        id="custom_connector",
        header="Custom connector",
        question=(
            f"I couldn't find \"{connector_name}\" in the connector catalog. "
            f"Should I add it as a custom {role.value}? (yes/no)"
        ),
        options=[
            ElicitationOption(id="yes", label="Yes", value=True),
            ElicitationOption(id="no", label="No", value=False),
        ],
        allow_free_text=False,
    )


def mandatory_field_question(
    system_name: str,
    field_key: str,
    position: int,
    total: int,
) -> ClarifyingQuestion:
    """Ask for a required field, with the node's required-field progress."""
    text = f"What's your {system_name} {describe_field(field_key)}? ({position}/{total} required fields)"
    return ClarifyingQuestion(
        id=f"field:{field_key}",
        header=system_name,
        question=_with_example(text, field_key),
    )


def optional_field_question(system_name: str, field_key: str) -> ClarifyingQuestion:
    text = f"What's your {system_name} {describe_field(field_key)}? {SKIP_HINT}"
    return ClarifyingQuestion(
        id=f"field:{field_key}",
        header=system_name,
        question=_with_example(text, field_key),
        options=[ElicitationOption(id="skip", label="Skip")],
    )


def prefixed(prefix: str, question: ClarifyingQuestion) -> ClarifyingQuestion:
    """Same question with a short explanation in front (validation errors, re-asks)."""
    return question.model_copy(update={"question": f"{prefix} {question.question}"})


def generic_question(complete: bool = False) -> ClarifyingQuestion:
    """Open prompt used when there is nothing more specific to ask."""
    if complete:
        return ClarifyingQuestion(
            id="adjust",
            header="Pipeline",
            question="Your data flow is complete. Is there anything you'd like to adjust?",
        )
    return ClarifyingQuestion(
        id="generic",
        header="Pipeline",
        question=(
            "Tell me which systems to connect, "
            "for example \"Connect Shopify to BigQuery\"."
        ),
    )


# ---------------------------------------------------------------------------
# Acknowledgements
# ---------------------------------------------------------------------------


def node_selected_ack(connector_name: str, role: NodeRole) -> str:
    if role == NodeRole.TRANSFORM:
        return f"Perfect! I've added {connector_name} as a {NODE_ROLE_NAMES[role]} step."
    return f"Perfect! I've set {connector_name} as your {NODE_ROLE_NAMES[role]}."


def node_replaced_ack(old_name: str, new_name: str, role: NodeRole) -> str:
    return f"Got it! Your {NODE_ROLE_NAMES[role]} is now {new_name} instead of {old_name}."


def placeholder_transform_ack() -> str:
    return "Perfect! I've added a transformation step; you can fill in the details later."


def deferred_destination_ack(connector_name: str) -> str:
    return f"Noted, {connector_name} will be your {NODE_ROLE_NAMES[NodeRole.DESTINATION]}. First we need a source."


def field_ack(field_key: str, value: str) -> str:
    return f"Got it! {describe_field(field_key)} set to {mask_field_value(field_key, value)}."


def field_unchanged_ack(field_key: str) -> str:
    return f"{describe_field(field_key)} already has that value."


def field_skipped_ack(field_key: str) -> str:
    return f"Skipped {describe_field(field_key)}."


def node_complete_ack(role: NodeRole, completed: int, total: int) -> str:
    return (
        f"Excellent! Your {NODE_ROLE_NAMES[role]} is fully configured "
        f"with {completed}/{total} fields completed."
    )


def custom_declined_ack(connector_name: str) -> str:
    return f"Okay, I won't add {connector_name}."


def transform_skipped_ack() -> str:
    return "No transformation step, then."
