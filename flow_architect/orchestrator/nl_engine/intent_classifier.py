"""Intent classifier for pipeline chat utterances.

Turns one utterance plus the running conversation context into a
structured ``Intent`` with a single Claude Messages API request. The model
answers with a JSON object; anything that cannot be read as an intent
becomes ``Unrecognized`` so the dialogue always receives a well-formed
intent. Transport failures are raised as typed
``ClassificationTransportError`` subclasses for the caller to recover from.

The classifier only reports confidence. Thresholds are dialogue policy and
live in the state machine.
"""

import json
import logging
import re
from typing import Optional, Protocol

import anthropic
from anthropic import AsyncAnthropic
from pydantic import ValidationError

from flow_architect.errors import (
    ClassificationAuthError,
    ClassificationNetworkError,
    ClassificationParseError,
    ClassificationQuotaError,
    ClassificationRateLimitError,
    ClassificationTransportError,
)
from flow_architect.orchestrator.models.conversation import ClassificationContext, Speaker
from flow_architect.orchestrator.models.intent import INTENT_ADAPTER, Intent, Unrecognized
from flow_architect.orchestrator.nl_engine.config import DEFAULT_MAX_TOKENS, get_model
from flow_architect.utils.redaction import sanitize_error_message

logger = logging.getLogger(__name__)

# Greedy: from the first "{" to the last "}" so nested objects survive
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

_BILLING_MARKERS = ("quota", "billing", "credit balance", "insufficient credit", "payment required")


class Classifier(Protocol):
    """Anything that can read an utterance as an intent."""

    async def classify(self, context: ClassificationContext, utterance: str) -> Intent:
        """Classify one utterance.

        Args:
            context: Conversation window, dialogue state and catalog names.
            utterance: Latest user message.

        Returns:
            A well-formed intent, possibly ``Unrecognized``.

        Raises:
            ClassificationTransportError: If the classification service
                could not be reached or refused the request.
        """
        ...


def map_transport_error(error: anthropic.APIError) -> ClassificationTransportError:
    """Map an Anthropic SDK error onto the classification error taxonomy.

    Args:
        error: Exception raised by the SDK.

    Returns:
        Auth, rate-limit, quota or network error (never raised here).
    """
    details = sanitize_error_message(str(error)) or type(error).__name__
    lowered = details.lower()

    if isinstance(error, anthropic.APIStatusError):
        if error.status_code == 402 or any(marker in lowered for marker in _BILLING_MARKERS):
            return ClassificationQuotaError(details)
    if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return ClassificationAuthError(details)
    if isinstance(error, anthropic.RateLimitError):
        return ClassificationRateLimitError(details)
    return ClassificationNetworkError(details)


def _format_pending_slot(context: ClassificationContext) -> str:
    slot = context.pending_slot
    if slot is None:
        return "none"
    if slot.field_key:
        optional = " (optional, may be skipped)" if slot.optional else ""
        return f"{slot.kind.value}: fieldKey={slot.field_key}{optional}"
    parts = [slot.kind.value]
    if slot.connector_name:
        parts.append(f"connectorName={slot.connector_name}")
    if slot.role:
        parts.append(f"role={slot.role.value}")
    return ", ".join(parts)


def build_system_prompt(context: ClassificationContext) -> str:
    """Build the system prompt describing the intent schema and context.

    Args:
        context: Classification context.

    Returns:
        System prompt text.
    """
    connectors = ", ".join(context.known_connectors) or "(none loaded)"
    transforms = ", ".join(context.known_transforms) or "(none)"
    last_mentioned = context.last_mentioned_connector or "none"

    return f"""You read chat messages from a user designing a data pipeline \
(one source, optional transforms, one destination) and classify each message \
as exactly one JSON object.

CURRENT CONTEXT:
- Dialogue state: {context.state.value}
- Waiting for: {_format_pending_slot(context)}
- Last mentioned connector: {last_mentioned}

KNOWN CONNECTORS (catalog order):
{connectors}

BUILT-IN TRANSFORMS:
{transforms}

INTENTS (field names are exact):
- {{"intent": "connector_selection", "role": "source"|"transform"|"destination", "connectorName": str, "confidence": 0..1}}
- {{"intent": "role_clarification", "connectorName": str, "role": "source"|"destination", "confidence": 0..1}}
  Use this for short answers like "source" that refer to the last mentioned connector.
- {{"intent": "transform_selection", "transformName": str, "placeholder": bool}}
  placeholder=true when the user wants a transform step without saying which one ("kk", "some transform", "later").
- {{"intent": "field_answer", "fieldKey": str, "value": str, "role": "source"|"transform"|"destination"|null}}
  fieldKey must be the key being waited for unless the user clearly names another field.
- {{"intent": "skip"}}
- {{"intent": "confirmation", "accepted": bool}}
- {{"intent": "compound", "intents": [...]}}
  Only when one message carries several of the intents above, e.g. "Connect Shopify to BigQuery".
- {{"intent": "unrecognized", "rawText": str}}

INSTRUCTIONS:
1. Prefer connector names exactly as listed; keep unknown names as the user wrote them.
2. Never guess a role the user did not express; lower confidence instead.
3. Answer with the JSON object only, no prose."""


def build_user_prompt(context: ClassificationContext, utterance: str) -> str:
    """Embed the recent conversation window and the latest message."""
    lines = []
    for turn in context.turns:
        speaker = "User" if turn.speaker == Speaker.USER else "System"
        lines.append(f"{speaker}: {turn.text}")
    transcript = "\n".join(lines) if lines else "(no earlier messages)"
    return (
        f"Recent conversation:\n{transcript}\n\n"
        f"Classify this message:\n\"{utterance}\""
    )


def parse_intent_payload(text: str, utterance: str) -> Intent:
    """Read model output as an intent.

    Args:
        text: Raw model text, possibly wrapped in prose or code fences.
        utterance: The classified user message.

    Returns:
        The parsed intent, or ``Unrecognized`` carrying ``utterance`` when
        the output is empty, not JSON, or does not match an intent shape.
    """
    try:
        match = _JSON_OBJECT.search(text or "")
        if match is None:
            raise ClassificationParseError("no JSON object in model output")
        try:
            payload = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise ClassificationParseError(f"invalid JSON: {e.msg}") from e
        try:
            intent = INTENT_ADAPTER.validate_python(payload)
        except ValidationError as e:
            raise ClassificationParseError(f"schema mismatch: {e.error_count()} error(s)") from e
    except ClassificationParseError as e:
        logger.warning("%s", e)
        return Unrecognized(raw_text=utterance)

    if isinstance(intent, Unrecognized):
        return Unrecognized(raw_text=utterance)
    return intent


class LLMIntentClassifier:
    """Classifier backed by the Claude Messages API.

    Example:
        classifier = LLMIntentClassifier()
        intent = await classifier.classify(context, "Connect Shopify to BigQuery")
    """

    def __init__(
        self,
        client: Optional[AsyncAnthropic] = None,
        model: Optional[str] = None,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        """Initialize the classifier.

        Args:
            client: Anthropic client. Created on first use when omitted.
            model: Model id. Defaults to ``get_model()``.
            max_tokens: Response token limit.
        """
        self._client = client
        self._model = model or get_model()
        self._max_tokens = max_tokens

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic()
        return self._client

    async def classify(self, context: ClassificationContext, utterance: str) -> Intent:
        """Classify one utterance with a single Messages API request.

        Args:
            context: Conversation window, dialogue state and catalog names.
            utterance: Latest user message.

        Returns:
            Parsed intent, or ``Unrecognized`` for unusable model output.

        Raises:
            ClassificationTransportError: Auth, rate-limit, quota or
                network failure talking to the API.
        """
        try:
            response = await self._get_client().messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=0,
                system=build_system_prompt(context),
                messages=[{"role": "user", "content": build_user_prompt(context, utterance)}],
            )
        except anthropic.APIError as e:
            error = map_transport_error(e)
            logger.warning("Classification request failed: %s", error)
            raise error from e

        text = "".join(
            block.text for block in (response.content or []) if getattr(block, "type", None) == "text"
        )
        intent = parse_intent_payload(text, utterance)
        logger.debug("Classified utterance as %s", intent.intent)
        return intent
