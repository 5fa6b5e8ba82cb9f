"""Dialogue state machine: decides what each intent does to the pipeline.

Given the session's pipeline draft and the latest intent, the state
machine either applies the intent to the graph and acknowledges it, or
asks one clarifying question without touching the graph. Every call to
``apply`` appends exactly one System turn to the session log.

States:
    AWAITING_SOURCE -> AWAITING_TRANSFORM -> AWAITING_DESTINATION
    -> AWAITING_FIELD_CLARIFICATION(field) -> COMPLETE

``COMPLETE`` is re-enterable: editing a field from there moves back into
field clarification. The next state is always derived from the graph, so
any intent may arrive in any state.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from flow_architect.orchestrator.models.connector import (
    BuiltinTransform,
    Connector,
    ConnectorRole,
    DummyTransformMarker,
)
from flow_architect.orchestrator.models.conversation import (
    DialogueOutcome,
    DialogueState,
    Speaker,
)
from flow_architect.orchestrator.models.elicitation import (
    ClarifyingQuestion,
    PendingSlot,
    SlotKind,
)
from flow_architect.orchestrator.models.intent import (
    GATED_INTENTS,
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
    intent_connector_names,
)
from flow_architect.orchestrator.models.pipeline import GraphSnapshot, NodeStatus, PipelineNode
from flow_architect.orchestrator.nl_engine import elicitation
from flow_architect.services.connector_categories import PLACEHOLDER_TRANSFORM_WORDS
from flow_architect.services.connector_registry import ConnectorRegistry
from flow_architect.services.session import Session

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE_THRESHOLD = 0.5

# Shown first in "for example" prompts when present in the catalog
_SOURCE_EXAMPLES = ("Shopify", "Salesforce", "Google BigQuery")
_DESTINATION_EXAMPLES = ("Google BigQuery", "Snowflake", "Amazon S3")


def _alternatives(field_key: str) -> list[str]:
    parts = [p.strip() for p in field_key.replace(" or ", "/").split("/")]
    return [p.lower() for p in parts if p]


def validate_field_value(field_key: str, value: str) -> Optional[str]:
    """Check a field value against simple format rules.

    A rule applies only when every alternative in the key needs it:
    ``baseUrl/loginUrl`` must be a URL, ``baseUrl or host`` need not be.

    Args:
        field_key: Connector field key.
        value: Value supplied by the user.

    Returns:
        Reason the value is invalid, or None if it is acceptable.
    """
    parts = _alternatives(field_key)
    stripped = value.strip()
    if parts and all("url" in p for p in parts):
        if not stripped.lower().startswith(("http://", "https://")):
            return f"The {elicitation.describe_field(field_key)} must start with http:// or https://."
    if parts and all("email" in p for p in parts):
        if "@" not in stripped:
            return f"The {elicitation.describe_field(field_key)} must be an email address."
    return None


def _same_field(expected: str, given: str) -> bool:
    """True if ``given`` names ``expected`` or one of its alternatives."""
    wanted = given.strip().lower()
    return wanted == expected.lower() or wanted in _alternatives(expected)


def _is_placeholder_name(name: str) -> bool:
    words = name.lower().replace("-", " ").split()
    return bool(words) and all(w in PLACEHOLDER_TRANSFORM_WORDS for w in words)


@dataclass
class _Step:
    """Where the dialogue goes next when nothing blocks it."""

    state: DialogueState
    slot: Optional[PendingSlot] = None
    question: Optional[ClarifyingQuestion] = None


@dataclass
class _Turn:
    """Accumulates the effects of one ``apply`` call."""

    previous_slot: Optional[PendingSlot]
    previous_question: Optional[ClarifyingQuestion]
    utterance: str = ""
    acks: list[str] = field(default_factory=list)
    question: Optional[ClarifyingQuestion] = None
    graph_changed: bool = False


class DialogueStateMachine:
    """Applies intents to one session.

    Example:
        machine = DialogueStateMachine(session, registry)
        outcome = machine.apply(intent, utterance="Connect Shopify to BigQuery")
    """

    def __init__(
        self,
        session: Session,
        registry: ConnectorRegistry,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        ask_optional_fields: bool = True,
    ) -> None:
        """Initialize the state machine.

        Args:
            session: Session whose graph and dialogue state are driven.
            registry: Connector catalog used to resolve names.
            confidence_threshold: Role and connector intents scoring below
                this are treated as unrecognized.
            ask_optional_fields: Whether optional connector fields are asked
                (once each) after the mandatory ones.
        """
        self._session = session
        self._registry = registry
        self._threshold = confidence_threshold
        self._ask_optional = ask_optional_fields

    @property
    def state(self) -> DialogueState:
        return self._session.state

    def apply(self, intent: Intent, utterance: str = "", degraded: bool = False) -> DialogueOutcome:
        """Apply one intent and append one System turn.

        Args:
            intent: Classified intent for the latest user message.
            utterance: The user message itself.
            degraded: True when the rule-based fallback produced ``intent``.

        Returns:
            The resulting state, message and whether the graph changed.

        Raises:
            GraphInvariantViolation: Only on a logic error; never swallowed.
        """
        session = self._session
        turn = _Turn(
            previous_slot=session.pending_slot,
            previous_question=session.current_question,
            utterance=utterance,
        )
        session.pending_slot = None
        session.current_question = None
        version_before = session.graph.version

        self._remember_mentions(intent, utterance)

        intents = intent.intents if isinstance(intent, CompoundIntent) else [intent]
        for sub in intents:
            self._dispatch(self._gate(sub, utterance), turn)

        if turn.question is None:
            self._advance(turn)

        turn.graph_changed = session.graph.version != version_before
        message = self._compose(turn, degraded)
        session.add_turn(Speaker.SYSTEM, message)
        if turn.question is not None:
            session.emitter.emit_question_asked(turn.question.question)

        logger.info(
            "Applied %s in session %s -> %s (graph changed: %s)",
            intent.intent, session.session_id, session.state.value, turn.graph_changed,
        )
        return DialogueOutcome(
            state=session.state,
            message=message,
            question=turn.question,
            graph_changed=turn.graph_changed,
            degraded=degraded,
        )

    # ------------------------------------------------------------------
    # dispatch
    # ------------------------------------------------------------------

    def _gate(self, intent: Intent, utterance: str) -> Intent:
        if isinstance(intent, GATED_INTENTS) and intent.confidence < self._threshold:
            logger.debug("Confidence %.2f below %.2f, treating as unrecognized", intent.confidence, self._threshold)
            return Unrecognized(raw_text=utterance)
        return intent

    def _dispatch(self, intent: Intent, turn: _Turn) -> None:
        if isinstance(intent, ConnectorSelection):
            if intent.role == NodeRole.TRANSFORM:
                self._add_transform(intent.connector_name, False, turn)
            else:
                self._select_connector(intent.connector_name, intent.role, turn)
        elif isinstance(intent, RoleClarification):
            self._select_connector(intent.connector_name, NodeRole(intent.role.value), turn)
        elif isinstance(intent, TransformSelection):
            self._add_transform(intent.transform_name, intent.placeholder, turn)
        elif isinstance(intent, FieldAnswer):
            self._answer_field(intent, turn)
        elif isinstance(intent, SkipRequest):
            self._skip(turn)
        elif isinstance(intent, Confirmation):
            self._confirm(intent, turn)
        else:
            self._not_understood(turn)

    def _remember_mentions(self, intent: Intent, utterance: str) -> None:
        # Field values such as login URLs often contain connector names
        mentions = []
        if utterance and not isinstance(intent, FieldAnswer):
            mentions = self._registry.find_mentions(utterance)
        if mentions:
            self._session.last_mentioned_connector = mentions[-1].name
        names = intent_connector_names(intent)
        if names:
            resolved = self._registry.resolve(names[-1])
            self._session.last_mentioned_connector = resolved.name if resolved else names[-1]

    # ------------------------------------------------------------------
    # connectors
    # ------------------------------------------------------------------

    def _select_connector(self, name: str, role: NodeRole, turn: _Turn) -> None:
        connector = self._registry.resolve(name)
        if connector is None:
            self._ask(
                turn,
                elicitation.custom_connector_question(name, role),
                PendingSlot(kind=SlotKind.CONNECTOR_CONFIRMATION, connector_name=name, role=role),
            )
            return
        self._place_connector(connector, role, turn)

    def _place_connector(self, connector: Connector, role: NodeRole, turn: _Turn) -> None:
        session = self._session
        graph = session.graph

        if not connector.supports(ConnectorRole(role.value)):
            follow_up = self._question_for_role(role)
            self._ask(
                turn,
                elicitation.role_incompatible_question(
                    connector.name, role, connector.supported_roles, follow_up
                ),
                None,
                reference=follow_up,
            )
            return

        snapshot = graph.snapshot()
        existing = snapshot.source if role == NodeRole.SOURCE else snapshot.destination
        if existing is not None:
            if existing.connector == connector:
                turn.acks.append(f"{connector.name} is already your {elicitation.NODE_ROLE_NAMES[role]}.")
                return
            graph.replace_connector(existing.id, connector)
            session.asked_optional = {pair for pair in session.asked_optional if pair[0] != existing.id}
            turn.acks.append(elicitation.node_replaced_ack(existing.name, connector.name, role))
            return

        if role == NodeRole.DESTINATION and snapshot.source is None:
            session.deferred_destination = connector
            turn.acks.append(elicitation.deferred_destination_ack(connector.name))
            return

        graph.add_node(role, connector)
        turn.acks.append(elicitation.node_selected_ack(connector.name, role))

        if role == NodeRole.DESTINATION:
            session.transform_step_resolved = True
        elif session.deferred_destination is not None:
            deferred = session.deferred_destination
            session.deferred_destination = None
            self._place_connector(deferred, NodeRole.DESTINATION, turn)

    def _add_transform(self, name: str, placeholder: bool, turn: _Turn) -> None:
        session = self._session
        if session.graph.snapshot().source is None:
            turn.acks.append("Let's pick a source before adding transformations.")
            return

        backing: BuiltinTransform | DummyTransformMarker | Connector | None
        backing = self._registry.lookup_transform(name, partial=not placeholder)
        if backing is None and (placeholder or _is_placeholder_name(name)):
            backing = DummyTransformMarker()
        if backing is None:
            backing = self._registry.resolve(name)
        if backing is None:
            current = self._next_step().question or elicitation.transform_question(self._transform_names())
            self._ask(
                turn,
                elicitation.prefixed(f"I don't know a transformation called \"{name}\".", current),
                None,
                reference=current,
            )
            return

        session.graph.add_node(NodeRole.TRANSFORM, backing)
        if isinstance(backing, DummyTransformMarker):
            turn.acks.append(elicitation.placeholder_transform_ack())
        else:
            turn.acks.append(elicitation.node_selected_ack(backing.name, NodeRole.TRANSFORM))

    def _confirm(self, intent: Confirmation, turn: _Turn) -> None:
        slot = turn.previous_slot
        if slot is None or slot.kind != SlotKind.CONNECTOR_CONFIRMATION or not slot.connector_name:
            if self._session.state == DialogueState.COMPLETE:
                return
            self._not_understood(turn)
            return

        if not intent.accepted:
            turn.acks.append(elicitation.custom_declined_ack(slot.connector_name))
            return

        connector = self._registry.custom_connector(slot.connector_name)
        self._session.last_mentioned_connector = connector.name
        role = slot.role or NodeRole.SOURCE
        if role == NodeRole.TRANSFORM:
            self._add_transform(connector.name, False, turn)
        else:
            self._place_connector(connector, role, turn)

    # ------------------------------------------------------------------
    # fields
    # ------------------------------------------------------------------

    def _answer_field(self, intent: FieldAnswer, turn: _Turn) -> None:
        slot = turn.previous_slot
        if slot is not None and slot.kind == SlotKind.FIELD and slot.field_key and slot.node_id:
            if not _same_field(slot.field_key, intent.field_key) or not intent.value.strip():
                self._reask(turn)
                return
            self._set_field(slot.node_id, slot.field_key, intent.value, turn)
            return

        target = self._find_field_owner(intent)
        if target is None:
            self._not_understood(turn)
            return
        node, field_key = target

        if not intent.value.strip():
            self._session.graph.clear_field(node.id, field_key)
            optional = field_key in node.optional_fields
            self._session.asked_optional.add((node.id, field_key))
            self._ask(
                turn,
                self._field_question(self._session.graph.snapshot().node(node.id), field_key, optional),
                PendingSlot(kind=SlotKind.FIELD, node_id=node.id, field_key=field_key, optional=optional),
                DialogueState.AWAITING_FIELD_CLARIFICATION,
            )
            return
        self._set_field(node.id, field_key, intent.value, turn)

    def _set_field(self, node_id: str, field_key: str, value: str, turn: _Turn) -> None:
        value = value.strip()
        reason = validate_field_value(field_key, value)
        if reason is not None:
            self._reask(turn, prefix=reason)
            return

        graph = self._session.graph
        before = graph.snapshot().node(node_id)
        changed = graph.set_field(node_id, field_key, value)
        if not changed:
            turn.acks.append(elicitation.field_unchanged_ack(field_key))
            return
        turn.acks.append(elicitation.field_ack(field_key, value))

        after = graph.snapshot().node(node_id)
        if before.status != NodeStatus.COMPLETE and after.status == NodeStatus.COMPLETE:
            total = len(after.mandatory_fields)
            turn.acks.append(elicitation.node_complete_ack(after.role, total, total))

    def _find_field_owner(self, intent: FieldAnswer) -> Optional[tuple[PipelineNode, str]]:
        wanted = intent.field_key.casefold()
        for node in self._session.graph.snapshot().nodes:
            if intent.role is not None and node.role != intent.role:
                continue
            for key in node.configurable_fields:
                if key.casefold() == wanted:
                    return node, key
        return None

    def _skip(self, turn: _Turn) -> None:
        slot = turn.previous_slot
        if slot is not None and slot.kind == SlotKind.FIELD and slot.field_key:
            if slot.optional:
                turn.acks.append(elicitation.field_skipped_ack(slot.field_key))
            else:
                self._reask(turn, prefix=f"The {elicitation.describe_field(slot.field_key)} is required.")
            return

        if self._session.state == DialogueState.AWAITING_TRANSFORM:
            self._session.transform_step_resolved = True
            if not self._session.graph.snapshot().transforms:
                turn.acks.append(elicitation.transform_skipped_ack())
            return

        if slot is not None and slot.kind == SlotKind.CONNECTOR_CONFIRMATION and slot.connector_name:
            turn.acks.append(elicitation.custom_declined_ack(slot.connector_name))
            return

        if self._session.state == DialogueState.COMPLETE:
            return
        self._not_understood(turn)

    # ------------------------------------------------------------------
    # questions
    # ------------------------------------------------------------------

    def _not_understood(self, turn: _Turn) -> None:
        """No mutation: re-ask what is outstanding or ask about the last connector."""
        session = self._session
        last = session.last_mentioned_connector
        if turn.previous_slot is not None and turn.previous_question is not None:
            self._reask(turn, prefix=self._sorry(last))
            return

        snapshot = session.graph.snapshot()
        placed = {n.name for n in snapshot.nodes}
        if session.deferred_destination is not None:
            placed.add(session.deferred_destination.name)
        if last and last not in placed:
            self._ask(
                turn,
                elicitation.role_question(last),
                PendingSlot(kind=SlotKind.ROLE, connector_name=last),
            )
            return

        step = self._next_step()
        current = step.question or elicitation.generic_question(
            complete=step.state == DialogueState.COMPLETE
        )
        self._ask(
            turn,
            elicitation.prefixed(self._sorry(last), current),
            step.slot,
            state=step.state,
            reference=current,
        )

    @staticmethod
    def _sorry(last_mentioned: Optional[str]) -> str:
        if last_mentioned:
            return f"Sorry, I didn't catch that about {last_mentioned}."
        return "Sorry, I didn't catch that."

    def _reask(self, turn: _Turn, prefix: Optional[str] = None) -> None:
        """Ask the outstanding question again, keeping its slot."""
        question = turn.previous_question
        slot = turn.previous_slot
        if question is None:
            step = self._next_step()
            question, slot = step.question, step.slot
        if question is None:
            question = elicitation.generic_question()
        shown = elicitation.prefixed(prefix, question) if prefix else question
        self._ask(turn, shown, slot, reference=question)

    def _ask(
        self,
        turn: _Turn,
        question: ClarifyingQuestion,
        slot: Optional[PendingSlot],
        state: Optional[DialogueState] = None,
        reference: Optional[ClarifyingQuestion] = None,
    ) -> None:
        """End the turn with a question instead of advancing.

        Args:
            turn: Current turn.
            question: Question as shown to the user.
            slot: What the answer will fill, if anything.
            state: State to enter. Derived from the slot and graph when omitted.
            reference: Unprefixed question kept for later re-asks.
        """
        session = self._session
        session.current_question = reference or question
        session.pending_slot = slot
        if state is not None:
            session.state = state
        elif slot is not None and slot.kind == SlotKind.FIELD:
            session.state = DialogueState.AWAITING_FIELD_CLARIFICATION
        else:
            session.state = self._next_step().state
        turn.question = question

    def _advance(self, turn: _Turn) -> None:
        step = self._next_step()
        session = self._session
        if step.slot is not None and step.slot.optional and step.slot.node_id and step.slot.field_key:
            session.asked_optional.add((step.slot.node_id, step.slot.field_key))
        session.state = step.state
        session.pending_slot = step.slot
        session.current_question = step.question
        turn.question = step.question

    def _next_step(self) -> _Step:
        session = self._session
        snapshot = session.graph.snapshot()
        if snapshot.source is None:
            return _Step(
                DialogueState.AWAITING_SOURCE,
                question=elicitation.source_question(self._examples(ConnectorRole.SOURCE)),
            )
        if snapshot.destination is None:
            if not session.transform_step_resolved:
                question = (
                    elicitation.more_transforms_question()
                    if snapshot.transforms
                    else elicitation.transform_question(self._transform_names())
                )
                return _Step(DialogueState.AWAITING_TRANSFORM, question=question)
            return _Step(
                DialogueState.AWAITING_DESTINATION,
                question=elicitation.destination_question(self._examples(ConnectorRole.DESTINATION)),
            )

        pending = self._next_field(snapshot)
        if pending is None:
            return _Step(DialogueState.COMPLETE)
        node, field_key, optional = pending
        return _Step(
            DialogueState.AWAITING_FIELD_CLARIFICATION,
            slot=PendingSlot(kind=SlotKind.FIELD, node_id=node.id, field_key=field_key, optional=optional),
            question=self._field_question(node, field_key, optional),
        )

    def _next_field(self, snapshot: GraphSnapshot) -> Optional[tuple[PipelineNode, str, bool]]:
        """Next field to ask: chain order, a node's mandatory fields before its optional ones."""
        for node in snapshot.nodes:
            if not isinstance(node.connector, Connector):
                continue
            missing = node.missing_mandatory_fields()
            if missing:
                return node, missing[0], False
            if not self._ask_optional:
                continue
            for key in node.optional_fields:
                if key in node.configured_fields or (node.id, key) in self._session.asked_optional:
                    continue
                return node, key, True
        return None

    def _field_question(self, node: PipelineNode, field_key: str, optional: bool) -> ClarifyingQuestion:
        if optional:
            return elicitation.optional_field_question(node.name, field_key)
        total = len(node.mandatory_fields)
        position = total - len(node.missing_mandatory_fields()) + 1
        return elicitation.mandatory_field_question(node.name, field_key, min(position, total), total)

    def _question_for_role(self, role: NodeRole) -> ClarifyingQuestion:
        if role == NodeRole.SOURCE:
            return elicitation.source_question(self._examples(ConnectorRole.SOURCE))
        return elicitation.destination_question(self._examples(ConnectorRole.DESTINATION))

    def _examples(self, role: ConnectorRole) -> list[str]:
        preferred = _SOURCE_EXAMPLES if role == ConnectorRole.SOURCE else _DESTINATION_EXAMPLES
        names = [n for n in preferred if self._registry.lookup(n) is not None]
        for connector in self._registry.all():
            if len(names) >= 3:
                break
            if connector.supports(role) and connector.name not in names:
                names.append(connector.name)
        return names

    def _transform_names(self) -> list[str]:
        return [t.name for t in self._registry.transforms()]

    # ------------------------------------------------------------------
    # message
    # ------------------------------------------------------------------

    def _compose(self, turn: _Turn, degraded: bool) -> str:
        parts = list(turn.acks)
        if turn.question is not None:
            parts.append(turn.question.question)
        elif self._session.state == DialogueState.COMPLETE:
            parts.append(elicitation.COMPLETION_MESSAGE)
        if degraded:
            parts.insert(0, elicitation.DEGRADED_NOTICE)
        return " ".join(parts)
