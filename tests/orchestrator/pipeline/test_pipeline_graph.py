"""Tests for the pipeline graph builder and its invariants."""

import random

import pytest

from flow_architect.errors import GraphInvariant, GraphInvariantViolation
from flow_architect.orchestrator.models.connector import BuiltinTransform, DummyTransformMarker
from flow_architect.orchestrator.models.intent import NodeRole
from flow_architect.orchestrator.models.pipeline import NodeStatus, PipelineEdge
from flow_architect.orchestrator.pipeline.events import PipelineEventEmitter
from flow_architect.orchestrator.pipeline.graph import PipelineGraph


@pytest.fixture
def emitter(observer):
    e = PipelineEventEmitter()
    e.add_observer(observer)
    return e


@pytest.fixture
def graph(emitter):
    return PipelineGraph(emitter)


@pytest.fixture
def shopify(registry):
    return registry.lookup("Shopify")


@pytest.fixture
def bigquery(registry):
    return registry.lookup("Google BigQuery")


def _chain(snapshot):
    return [n.id for n in snapshot.nodes]


def _edges(snapshot):
    return [(e.from_node_id, e.to_node_id) for e in snapshot.edges]


class TestAddNode:

    def test_source_then_destination(self, graph, shopify, bigquery):
        source_id = graph.add_node(NodeRole.SOURCE, shopify)
        dest_id = graph.add_node(NodeRole.DESTINATION, bigquery)

        snapshot = graph.snapshot()
        assert (source_id, dest_id) == ("source-1", "destination-1")
        assert _edges(snapshot) == [("source-1", "destination-1")]
        assert snapshot.version == 2
        assert snapshot.is_linear_complete

    def test_destination_before_source_rejected(self, graph, bigquery, observer):
        with pytest.raises(GraphInvariantViolation) as exc_info:
            graph.add_node(NodeRole.DESTINATION, bigquery)
        assert exc_info.value.invariant == GraphInvariant.SOURCE_BEFORE_DESTINATION
        assert graph.version == 0
        assert graph.snapshot().nodes == ()
        assert observer.snapshots == []

    def test_second_source_rejected(self, graph, shopify, registry):
        graph.add_node(NodeRole.SOURCE, shopify)
        with pytest.raises(GraphInvariantViolation) as exc_info:
            graph.add_node(NodeRole.SOURCE, registry.lookup("Salesforce"))
        assert exc_info.value.error_code == "E-3001"
        assert graph.version == 1

    def test_second_destination_rejected(self, graph, shopify, bigquery, registry):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.add_node(NodeRole.DESTINATION, bigquery)
        with pytest.raises(GraphInvariantViolation):
            graph.add_node(NodeRole.DESTINATION, registry.lookup("Snowflake"))
        assert [n.name for n in graph.snapshot().nodes] == ["Shopify", "Google BigQuery"]

    def test_transform_inserted_before_destination(self, graph, shopify, bigquery):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.add_node(NodeRole.DESTINATION, bigquery)
        transform_id = graph.add_node(NodeRole.TRANSFORM, BuiltinTransform(name="Cleanse"))

        snapshot = graph.snapshot()
        assert _chain(snapshot) == ["source-1", transform_id, "destination-1"]
        assert _edges(snapshot) == [("source-1", transform_id), (transform_id, "destination-1")]

    def test_transforms_keep_insertion_order(self, graph, shopify, bigquery):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.add_node(NodeRole.TRANSFORM, BuiltinTransform(name="Cleanse"))
        graph.add_node(NodeRole.TRANSFORM, DummyTransformMarker())
        graph.add_node(NodeRole.DESTINATION, bigquery)

        assert _chain(graph.snapshot()) == ["source-1", "transform-1", "transform-2", "destination-1"]

    def test_endpoint_requires_connector(self, graph):
        with pytest.raises(ValueError):
            graph.add_node(NodeRole.SOURCE, BuiltinTransform(name="Cleanse"))

    def test_failed_add_does_not_consume_id(self, graph, shopify, bigquery):
        with pytest.raises(GraphInvariantViolation):
            graph.add_node(NodeRole.DESTINATION, bigquery)
        graph.add_node(NodeRole.SOURCE, shopify)
        assert graph.add_node(NodeRole.DESTINATION, bigquery) == "destination-1"


class TestConnect:

    def test_existing_edge_is_noop(self, graph, shopify, bigquery):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.add_node(NodeRole.DESTINATION, bigquery)
        graph.connect("source-1", "destination-1")
        assert graph.version == 2

    def test_backward_edge_rejected(self, graph, shopify, bigquery):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.add_node(NodeRole.DESTINATION, bigquery)
        with pytest.raises(GraphInvariantViolation) as exc_info:
            graph.connect("destination-1", "source-1")
        assert exc_info.value.invariant == GraphInvariant.LINEAR_ACYCLIC
        assert graph.version == 2

    def test_unknown_node_rejected(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        with pytest.raises(GraphInvariantViolation):
            graph.connect("source-1", "transform-9")


class TestFields:

    def test_set_field_bumps_version_and_notifies(self, graph, shopify, observer):
        graph.add_node(NodeRole.SOURCE, shopify)
        assert graph.set_field("source-1", "storeDomain", "a.myshopify.com") is True

        snapshot = observer.snapshots[-1]
        assert snapshot.version == 2
        assert snapshot.source.configured_fields == {"storeDomain": "a.myshopify.com"}
        assert snapshot.source.status == NodeStatus.PARTIAL

    def test_same_value_is_idempotent(self, graph, shopify, observer):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.set_field("source-1", "storeDomain", "a.myshopify.com")
        assert graph.set_field("source-1", "storeDomain", "a.myshopify.com") is False
        assert graph.version == 2
        assert len(observer.snapshots) == 2

    def test_all_mandatory_fields_complete_node(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        for key in shopify.credentials.mandatory:
            graph.set_field("source-1", key, "value-1234")
        assert graph.snapshot().source.status == NodeStatus.COMPLETE

    def test_transform_without_connector_holds_no_fields(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.add_node(NodeRole.TRANSFORM, DummyTransformMarker())
        with pytest.raises(GraphInvariantViolation) as exc_info:
            graph.set_field("transform-1", "anything", "x")
        assert exc_info.value.invariant == GraphInvariant.PLACEHOLDER_HAS_NO_FIELDS
        assert graph.snapshot().node("transform-1").configured_fields == {}

    def test_configurable_fields(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.add_node(NodeRole.TRANSFORM, DummyTransformMarker())
        source, transform = graph.snapshot().nodes
        assert source.configurable_fields == ("storeDomain", "apiKey/token", "apiVersion")
        assert source.configurable_fields == shopify.credentials.all_fields
        assert transform.configurable_fields == ()

    def test_unknown_node(self, graph):
        with pytest.raises(KeyError):
            graph.set_field("source-1", "storeDomain", "x")

    def test_clear_field(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.set_field("source-1", "storeDomain", "a.myshopify.com")
        assert graph.clear_field("source-1", "storeDomain") is True
        assert graph.clear_field("source-1", "storeDomain") is False
        assert graph.snapshot().source.configured_fields == {}

    def test_snapshot_is_detached(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.set_field("source-1", "storeDomain", "a.myshopify.com")
        snapshot = graph.snapshot()
        snapshot.source.configured_fields["storeDomain"] = "tampered"
        assert graph.snapshot().source.configured_fields["storeDomain"] == "a.myshopify.com"


class TestReplaceConnector:

    def test_keeps_id_and_resets_fields(self, graph, shopify, registry):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.set_field("source-1", "storeDomain", "a.myshopify.com")
        assert graph.replace_connector("source-1", registry.lookup("Magento")) is True

        node = graph.snapshot().source
        assert node.id == "source-1"
        assert node.name == "Magento"
        assert node.configured_fields == {}

    def test_same_connector_is_noop(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        assert graph.replace_connector("source-1", shopify) is False
        assert graph.version == 1

    def test_placeholder_upgraded_in_place(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        graph.add_node(NodeRole.TRANSFORM, DummyTransformMarker())
        graph.replace_connector("transform-1", BuiltinTransform(name="Cleanse"))
        node = graph.snapshot().node("transform-1")
        assert node.name == "Cleanse"
        assert node.status == NodeStatus.COMPLETE

    def test_endpoint_keeps_connector(self, graph, shopify):
        graph.add_node(NodeRole.SOURCE, shopify)
        with pytest.raises(ValueError):
            graph.replace_connector("source-1", DummyTransformMarker())


def test_random_mutations_preserve_invariants(registry):
    """Seeded random mutation sequences never leave a malformed graph."""
    rng = random.Random(42)
    connectors = [registry.lookup(name) for name in ("Shopify", "Google BigQuery", "Snowflake", "Kafka")]
    transforms = [BuiltinTransform(name="Cleanse"), DummyTransformMarker()]

    for _ in range(50):
        graph = PipelineGraph()
        issued: set[str] = set()
        for _ in range(12):
            before = graph.snapshot()
            op = rng.choice(["source", "destination", "transform", "connect", "field"])
            try:
                if op == "source":
                    issued.add(graph.add_node(NodeRole.SOURCE, rng.choice(connectors)))
                elif op == "destination":
                    issued.add(graph.add_node(NodeRole.DESTINATION, rng.choice(connectors)))
                elif op == "transform":
                    issued.add(graph.add_node(NodeRole.TRANSFORM, rng.choice(transforms)))
                elif op == "connect" and before.nodes:
                    a, b = rng.choice(before.nodes), rng.choice(before.nodes)
                    graph.connect(a.id, b.id)
                elif op == "field" and before.nodes:
                    graph.set_field(rng.choice(before.nodes).id, "host", "db.example.com")
            except GraphInvariantViolation:
                after = graph.snapshot()
                assert after == before

            snapshot = graph.snapshot()
            roles = [n.role for n in snapshot.nodes]
            assert roles.count(NodeRole.SOURCE) <= 1
            assert roles.count(NodeRole.DESTINATION) <= 1
            if NodeRole.DESTINATION in roles:
                assert NodeRole.SOURCE in roles
                assert roles[-1] == NodeRole.DESTINATION
            if NodeRole.SOURCE in roles:
                assert roles[0] == NodeRole.SOURCE
            if snapshot.nodes:
                chain = _chain(snapshot)
                assert list(snapshot.edges) == [
                    PipelineEdge(from_node_id=a, to_node_id=b) for a, b in zip(chain, chain[1:])
                ]
            assert {n.id for n in snapshot.nodes} == issued
            for node in snapshot.nodes:
                if node.role == NodeRole.TRANSFORM:
                    assert node.configured_fields == {}
