"""Pipeline graph models: nodes, edges and the immutable graph snapshot.

The snapshot is the only view of the graph handed to observers. Nodes are
listed in chain order (source, transforms, destination).
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from flow_architect.orchestrator.models.connector import (
    BuiltinTransform,
    Connector,
    DummyTransformMarker,
)
from flow_architect.orchestrator.models.intent import NodeRole

NodeBacking = Union[Connector, BuiltinTransform, DummyTransformMarker]


class NodeStatus(str, Enum):
    """Configuration progress of a node."""

    PENDING = "pending"
    PARTIAL = "partial"
    COMPLETE = "complete"


class PipelineNode(BaseModel):
    """One step of the pipeline.

    Attributes:
        id: Session-stable id, used by renderers as a key.
        role: Position in the chain.
        connector: Backing connector, built-in transform or placeholder.
        configured_fields: Field key to value.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    role: NodeRole
    connector: NodeBacking
    configured_fields: dict[str, str] = Field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.connector.name

    @property
    def is_placeholder(self) -> bool:
        return isinstance(self.connector, DummyTransformMarker)

    @property
    def mandatory_fields(self) -> tuple[str, ...]:
        if isinstance(self.connector, Connector):
            return self.connector.credentials.mandatory
        return ()

    @property
    def optional_fields(self) -> tuple[str, ...]:
        if isinstance(self.connector, Connector):
            return self.connector.credentials.optional
        return ()

    @property
    def configurable_fields(self) -> tuple[str, ...]:
        """Every field the node exposes. Empty for transforms without a connector."""
        if isinstance(self.connector, Connector):
            return self.connector.credentials.all_fields
        return ()

    def missing_mandatory_fields(self) -> list[str]:
        return [k for k in self.mandatory_fields if not self.configured_fields.get(k)]

    @property
    def status(self) -> NodeStatus:
        if self.is_placeholder:
            return NodeStatus.PENDING
        if isinstance(self.connector, BuiltinTransform):
            return NodeStatus.COMPLETE
        mandatory = self.mandatory_fields
        filled = len(mandatory) - len(self.missing_mandatory_fields())
        if filled == len(mandatory):
            return NodeStatus.COMPLETE
        if filled == 0:
            return NodeStatus.PENDING
        return NodeStatus.PARTIAL


class PipelineEdge(BaseModel):
    """Directed edge between two nodes."""

    model_config = ConfigDict(frozen=True)

    from_node_id: str
    to_node_id: str


class GraphSnapshot(BaseModel):
    """Immutable view of the pipeline graph at one version.

    Attributes:
        version: Incremented on every committed mutation.
        nodes: Nodes in chain order.
        edges: Edges in chain order.
    """

    model_config = ConfigDict(frozen=True)

    version: int = 0
    nodes: tuple[PipelineNode, ...] = ()
    edges: tuple[PipelineEdge, ...] = ()

    def node(self, node_id: str) -> Optional[PipelineNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def _first_with_role(self, role: NodeRole) -> Optional[PipelineNode]:
        for node in self.nodes:
            if node.role == role:
                return node
        return None

    @property
    def source(self) -> Optional[PipelineNode]:
        return self._first_with_role(NodeRole.SOURCE)

    @property
    def destination(self) -> Optional[PipelineNode]:
        return self._first_with_role(NodeRole.DESTINATION)

    @property
    def transforms(self) -> list[PipelineNode]:
        return [n for n in self.nodes if n.role == NodeRole.TRANSFORM]

    @property
    def is_linear_complete(self) -> bool:
        return self.source is not None and self.destination is not None

    @property
    def progress(self) -> tuple[int, int]:
        """Filled versus total mandatory fields across connector nodes."""
        total = sum(len(n.mandatory_fields) for n in self.nodes)
        missing = sum(len(n.missing_mandatory_fields()) for n in self.nodes)
        return total - missing, total
