"""Rule-based fallback classifier.

Used only when the classification service is unavailable. Recognizes the
literal role words "source" and "destination", catalog connector names and
aliases appearing in the utterance, skip words, yes/no answers, built-in
transform names and placeholder words. While a field is pending, any reply
that is not a skip answers that field. Built-in transform names count only
while a transform is expected. Connector intents carry a fixed confidence
of 0.6; anything else is ``Unrecognized``.
"""

import re
from typing import Optional

from flow_architect.orchestrator.models.connector import Connector, ConnectorRole
from flow_architect.orchestrator.models.conversation import ClassificationContext, DialogueState
from flow_architect.orchestrator.models.elicitation import SlotKind
from flow_architect.orchestrator.models.intent import (
    CompoundIntent,
    Confirmation,
    ConnectorSelection,
    FieldAnswer,
    Intent,
    NodeRole,
    RoleClarification,
    SkipRequest,
    TransformSelection,
    Unrecognized,
)
from flow_architect.services.connector_categories import PLACEHOLDER_TRANSFORM_WORDS
from flow_architect.services.connector_registry import ConnectorRegistry

FALLBACK_CONFIDENCE = 0.6

_SOURCE_TOKEN = re.compile(r"\bsource\b", re.IGNORECASE)
_DESTINATION_TOKEN = re.compile(r"\b(destination|dest)\b", re.IGNORECASE)
_DIRECTION_TOKEN = re.compile(r"\b(to|into)\b", re.IGNORECASE)
_WORD = re.compile(r"[a-z0-9/&.'-]+")

_YES = frozenset({"yes", "y", "yeah", "yep", "sure", "ok", "okay", "confirm", "please do", "go ahead"})
_NO = frozenset({"no", "n", "nope", "cancel", "don't", "do not"})

_SKIP_PHRASE = re.compile(
    r"skip(\s+(it|this|that|this one|this field|this step|for now))?(\s+please)?"
)
_SKIP_COMMANDS = frozenset({
    "skip", "no", "none", "pass", "next", "continue", "not needed",
    "not required", "leave empty", "ignore", "n/a", "no transform",
    "no transformation", "no transforms",
})


def _normalize(text: str) -> str:
    return text.strip().lower().rstrip(".!?")


def _word_pattern(term: str) -> re.Pattern[str]:
    return re.compile(rf"(?<!\w){re.escape(term.lower())}(?!\w)")


def is_skip_command(text: str) -> bool:
    """True for short replies that skip the current optional step."""
    normalized = _normalize(text)
    return normalized in _SKIP_COMMANDS or _SKIP_PHRASE.fullmatch(normalized) is not None


class RuleBasedClassifier:
    """Deterministic classifier over the connector registry.

    Example:
        fallback = RuleBasedClassifier(ConnectorRegistry.get_instance())
        intent = await fallback.classify(context, "Shopify is the source")
    """

    def __init__(self, registry: ConnectorRegistry) -> None:
        self._registry = registry

    async def classify(self, context: ClassificationContext, utterance: str) -> Intent:
        return self.classify_sync(context, utterance)

    def classify_sync(self, context: ClassificationContext, utterance: str) -> Intent:
        """Apply the rules in order; the first one that matches wins."""
        text = utterance.strip()
        normalized = _normalize(text)
        slot = context.pending_slot

        if slot is not None and slot.kind == SlotKind.CONNECTOR_CONFIRMATION:
            if normalized in _YES:
                return Confirmation(accepted=True)
            if normalized in _NO:
                return Confirmation(accepted=False)

        if is_skip_command(text):
            return SkipRequest()

        if slot is not None and slot.kind == SlotKind.FIELD and slot.field_key and text:
            return FieldAnswer(field_key=slot.field_key, value=text)

        connector_intent = self._connector_intent(context, text)
        if connector_intent is not None:
            return connector_intent

        transform_intent = self._transform_intent(context, normalized)
        if transform_intent is not None:
            return transform_intent

        return Unrecognized(raw_text=utterance)

    def _connector_intent(self, context: ClassificationContext, text: str) -> Optional[Intent]:
        mentions = self._registry.find_mentions(text)
        says_source = bool(_SOURCE_TOKEN.search(text))
        says_destination = bool(_DESTINATION_TOKEN.search(text))

        if len(mentions) >= 2 and _DIRECTION_TOKEN.search(text):
            return CompoundIntent(intents=[
                self._selection(NodeRole.SOURCE, mentions[0]),
                self._selection(NodeRole.DESTINATION, mentions[1]),
            ])

        if len(mentions) == 1:
            connector = mentions[0]
            if says_source and not says_destination:
                return self._selection(NodeRole.SOURCE, connector)
            if says_destination and not says_source:
                return self._selection(NodeRole.DESTINATION, connector)
            if not says_source and not says_destination:
                if context.state == DialogueState.AWAITING_SOURCE:
                    return self._selection(NodeRole.SOURCE, connector)
                if context.state == DialogueState.AWAITING_DESTINATION:
                    return self._selection(NodeRole.DESTINATION, connector)
            return None

        if not mentions and context.last_mentioned_connector and says_source != says_destination:
            role = ConnectorRole.SOURCE if says_source else ConnectorRole.DESTINATION
            return RoleClarification(
                connector_name=context.last_mentioned_connector,
                role=role,
                confidence=FALLBACK_CONFIDENCE,
            )
        return None

    def _transform_intent(
        self,
        context: ClassificationContext,
        normalized: str,
    ) -> Optional[TransformSelection]:
        if context.state != DialogueState.AWAITING_TRANSFORM:
            return None
        for transform in self._registry.transforms():
            if _word_pattern(transform.name).search(normalized):
                return TransformSelection(transform_name=transform.name)

        words = set(_WORD.findall(normalized))
        if words & PLACEHOLDER_TRANSFORM_WORDS:
            return TransformSelection(transform_name=normalized, placeholder=True)
        return None

    @staticmethod
    def _selection(role: NodeRole, connector: Connector) -> ConnectorSelection:
        return ConnectorSelection(
            role=role,
            connector_name=connector.name,
            confidence=FALLBACK_CONFIDENCE,
        )
