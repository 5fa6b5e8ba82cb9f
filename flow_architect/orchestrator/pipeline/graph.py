"""Pipeline graph builder.

Owns the canonical node and edge sets of one session's pipeline. Every
mutation is applied to a staged copy, validated, and only then committed;
a failed mutation raises ``GraphInvariantViolation`` and leaves the graph
untouched. Each committed mutation bumps the version and publishes a
snapshot.

Invariants checked on every mutation:
    - at most one source and one destination
    - linear and acyclic; once source and destination both exist every
      node lies on the single source-to-destination chain
    - no destination without a source
    - node ids unique and never reused
    - nodes without a backing connector hold no configured fields
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from flow_architect.errors import GraphInvariant, GraphInvariantViolation
from flow_architect.orchestrator.models.connector import Connector
from flow_architect.orchestrator.models.intent import NodeRole
from flow_architect.orchestrator.models.pipeline import (
    GraphSnapshot,
    NodeBacking,
    PipelineEdge,
    PipelineNode,
)
from flow_architect.orchestrator.pipeline.events import PipelineEventEmitter
from flow_architect.utils.redaction import mask_field_value

logger = logging.getLogger(__name__)


@dataclass
class _Staged:
    """Mutable working copy of the graph used to validate a mutation."""

    nodes: dict[str, PipelineNode]
    edges: list[PipelineEdge] = field(default_factory=list)

    def inbound(self, node_id: str) -> list[PipelineEdge]:
        return [e for e in self.edges if e.to_node_id == node_id]

    def outbound(self, node_id: str) -> list[PipelineEdge]:
        return [e for e in self.edges if e.from_node_id == node_id]

    def with_role(self, role: NodeRole) -> list[PipelineNode]:
        return [n for n in self.nodes.values() if n.role == role]

    def chain(self) -> list[str]:
        """Node ids in chain order; unreachable nodes trail in insertion order."""
        heads = [nid for nid in self.nodes if not self.inbound(nid)]
        # The source, when present, leads the chain
        heads.sort(key=lambda nid: self.nodes[nid].role != NodeRole.SOURCE)
        order: list[str] = []
        for head in heads:
            current: Optional[str] = head
            while current is not None and current not in order:
                order.append(current)
                out = self.outbound(current)
                current = out[0].to_node_id if out else None
        order.extend(nid for nid in self.nodes if nid not in order)
        return order


class PipelineGraph:
    """Linear pipeline graph: source, zero or more transforms, destination.

    Only the dialogue state machine mutates the graph; everything else
    reads snapshots.
    """

    def __init__(self, emitter: Optional[PipelineEventEmitter] = None) -> None:
        """Initialize an empty graph.

        Args:
            emitter: Receives a snapshot after every committed mutation.
        """
        self._nodes: dict[str, PipelineNode] = {}
        self._edges: list[PipelineEdge] = []
        self._version = 0
        self._counters: dict[NodeRole, int] = {role: 0 for role in NodeRole}
        self._issued_ids: set[str] = set()
        self._emitter = emitter

    @property
    def version(self) -> int:
        return self._version

    def add_node(self, role: NodeRole, backing: NodeBacking) -> str:
        """Add a node and connect it to its predecessor.

        Sources lead the chain, destinations close it, and a transform added
        after the destination is inserted just before it.

        Args:
            role: Chain position of the new node.
            backing: Connector, built-in transform or placeholder marker.

        Returns:
            The new node's id.

        Raises:
            GraphInvariantViolation: If the node would break an invariant.
            ValueError: If a source or destination is not backed by a connector.
        """
        if role != NodeRole.TRANSFORM and not isinstance(backing, Connector):
            raise ValueError(f"{role.value} nodes must be backed by a connector")

        node_id = f"{role.value}-{self._counters[role] + 1}"
        if node_id in self._issued_ids:
            raise GraphInvariantViolation(
                GraphInvariant.STABLE_UNIQUE_IDS,
                f"node id {node_id} was already issued",
            )

        staged = self._stage()
        chain = staged.chain()
        node = PipelineNode(id=node_id, role=role, connector=backing)
        staged.nodes[node_id] = node

        dest_id = self._destination_id()
        if role == NodeRole.SOURCE:
            if chain:
                staged.edges.append(PipelineEdge(from_node_id=node_id, to_node_id=chain[0]))
        elif role == NodeRole.TRANSFORM and dest_id is not None:
            for edge in staged.inbound(dest_id):
                staged.edges.remove(edge)
                staged.edges.append(PipelineEdge(from_node_id=edge.from_node_id, to_node_id=node_id))
            staged.edges.append(PipelineEdge(from_node_id=node_id, to_node_id=dest_id))
        elif chain:
            staged.edges.append(PipelineEdge(from_node_id=chain[-1], to_node_id=node_id))

        self._validate(staged)
        self._counters[role] += 1
        self._issued_ids.add(node_id)
        self._commit(staged)
        logger.info("Added %s node %s (%s)", role.value, node_id, backing.name)
        return node_id

    def connect(self, from_id: str, to_id: str) -> None:
        """Add a directed edge between two existing nodes.

        Connecting an already connected pair is a no-op.

        Raises:
            GraphInvariantViolation: If the edge breaks linearity.
        """
        edge = PipelineEdge(from_node_id=from_id, to_node_id=to_id)
        if edge in self._edges:
            return
        staged = self._stage()
        staged.edges.append(edge)
        self._validate(staged)
        self._commit(staged)

    def set_field(self, node_id: str, key: str, value: str) -> bool:
        """Set one configured field on a node.

        Args:
            node_id: Target node.
            key: Field key.
            value: Field value.

        Returns:
            True if the graph changed; False when the field already held
            ``value`` (no version bump, no notification).

        Raises:
            KeyError: If the node does not exist.
            GraphInvariantViolation: If the node cannot hold fields.
        """
        node = self._nodes[node_id]
        if node.configured_fields.get(key) == value:
            return False
        staged = self._stage()
        fields = dict(node.configured_fields)
        fields[key] = value
        staged.nodes[node_id] = node.model_copy(update={"configured_fields": fields})
        self._validate(staged)
        self._commit(staged)
        logger.info("Set %s.%s = %s", node_id, key, mask_field_value(key, value))
        return True

    def clear_field(self, node_id: str, key: str) -> bool:
        """Remove a configured field so it is asked again.

        Returns:
            True if the field was set and has been removed.
        """
        node = self._nodes[node_id]
        if key not in node.configured_fields:
            return False
        staged = self._stage()
        fields = {k: v for k, v in node.configured_fields.items() if k != key}
        staged.nodes[node_id] = node.model_copy(update={"configured_fields": fields})
        self._validate(staged)
        self._commit(staged)
        return True

    def replace_connector(self, node_id: str, backing: NodeBacking) -> bool:
        """Swap the backing of a node, keeping its id and resetting its fields.

        Returns:
            True if the backing changed.

        Raises:
            KeyError: If the node does not exist.
            ValueError: If a source or destination would lose its connector.
        """
        node = self._nodes[node_id]
        if node.role != NodeRole.TRANSFORM and not isinstance(backing, Connector):
            raise ValueError(f"{node.role.value} nodes must be backed by a connector")
        if node.connector == backing:
            return False
        staged = self._stage()
        staged.nodes[node_id] = PipelineNode(id=node_id, role=node.role, connector=backing)
        self._validate(staged)
        self._commit(staged)
        logger.info("Replaced %s connector: %s -> %s", node_id, node.name, backing.name)
        return True

    def snapshot(self) -> GraphSnapshot:
        """Immutable view of the current graph, nodes and edges in chain order."""
        staged = self._stage()
        order = staged.chain()
        position = {nid: i for i, nid in enumerate(order)}
        edges = sorted(self._edges, key=lambda e: position[e.from_node_id])
        nodes = tuple(
            n.model_copy(update={"configured_fields": dict(n.configured_fields)})
            for n in (self._nodes[nid] for nid in order)
        )
        return GraphSnapshot(version=self._version, nodes=nodes, edges=tuple(edges))

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------

    def _destination_id(self) -> Optional[str]:
        for node in self._nodes.values():
            if node.role == NodeRole.DESTINATION:
                return node.id
        return None

    def _stage(self) -> _Staged:
        return _Staged(nodes=dict(self._nodes), edges=list(self._edges))

    def _commit(self, staged: _Staged) -> None:
        self._nodes = staged.nodes
        self._edges = staged.edges
        self._version += 1
        if self._emitter is not None:
            self._emitter.emit_graph_changed(self.snapshot())

    @staticmethod
    def _validate(staged: _Staged) -> None:
        sources = staged.with_role(NodeRole.SOURCE)
        destinations = staged.with_role(NodeRole.DESTINATION)

        if len(sources) > 1 or len(destinations) > 1:
            role = "source" if len(sources) > 1 else "destination"
            raise GraphInvariantViolation(
                GraphInvariant.SINGLE_ENDPOINT_ROLE,
                f"graph would have more than one {role}",
            )

        if destinations and not sources:
            raise GraphInvariantViolation(
                GraphInvariant.SOURCE_BEFORE_DESTINATION,
                "a destination cannot be added before a source",
            )

        for edge in staged.edges:
            if edge.from_node_id not in staged.nodes or edge.to_node_id not in staged.nodes:
                raise GraphInvariantViolation(
                    GraphInvariant.LINEAR_ACYCLIC,
                    f"edge {edge.from_node_id}->{edge.to_node_id} references an unknown node",
                )
            if edge.from_node_id == edge.to_node_id:
                raise GraphInvariantViolation(
                    GraphInvariant.LINEAR_ACYCLIC,
                    f"self-loop on {edge.from_node_id}",
                )

        for node_id, node in staged.nodes.items():
            inbound = len(staged.inbound(node_id))
            outbound = len(staged.outbound(node_id))
            if inbound > 1 or outbound > 1:
                raise GraphInvariantViolation(
                    GraphInvariant.LINEAR_ACYCLIC,
                    f"{node_id} would branch ({inbound} in, {outbound} out)",
                )
            if node.role == NodeRole.SOURCE and inbound:
                raise GraphInvariantViolation(
                    GraphInvariant.LINEAR_ACYCLIC,
                    f"source {node_id} cannot have an inbound edge",
                )
            if node.role == NodeRole.DESTINATION and outbound:
                raise GraphInvariantViolation(
                    GraphInvariant.LINEAR_ACYCLIC,
                    f"destination {node_id} cannot have an outbound edge",
                )
            if not isinstance(node.connector, Connector) and node.configured_fields:
                raise GraphInvariantViolation(
                    GraphInvariant.PLACEHOLDER_HAS_NO_FIELDS,
                    f"{node_id} ({node.name}) has no configurable fields",
                )

        # With in/out degree <= 1, nodes unreachable from any head sit on a cycle
        reachable: set[str] = set()
        for head in (nid for nid in staged.nodes if not staged.inbound(nid)):
            current: Optional[str] = head
            while current is not None and current not in reachable:
                reachable.add(current)
                out = staged.outbound(current)
                current = out[0].to_node_id if out else None
        if len(reachable) != len(staged.nodes):
            raise GraphInvariantViolation(GraphInvariant.LINEAR_ACYCLIC, "graph would contain a cycle")

        if sources and destinations:
            walked: list[str] = []
            current = sources[0].id
            while current is not None:
                walked.append(current)
                out = staged.outbound(current)
                current = out[0].to_node_id if out else None
            if walked[-1] != destinations[0].id or len(walked) != len(staged.nodes):
                raise GraphInvariantViolation(
                    GraphInvariant.LINEAR_ACYCLIC,
                    "every node must lie on the chain from source to destination",
                )
