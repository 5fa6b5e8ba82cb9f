"""Tests for intent models and the classifier wire format."""

import pytest
from pydantic import ValidationError

from flow_architect.orchestrator.models.connector import ConnectorRole
from flow_architect.orchestrator.models.intent import (
    INTENT_ADAPTER,
    CompoundIntent,
    Confirmation,
    ConnectorSelection,
    FieldAnswer,
    NodeRole,
    RoleClarification,
    SkipRequest,
    TransformSelection,
    Unrecognized,
    intent_connector_names,
)


class TestWireFormat:
    """Parsing classifier JSON payloads by their ``intent`` tag."""

    def test_role_clarification(self):
        intent = INTENT_ADAPTER.validate_python({
            "intent": "role_clarification",
            "connectorName": "Snowflake",
            "role": "Source",
            "confidence": 0.95,
        })
        assert isinstance(intent, RoleClarification)
        assert intent.role == ConnectorRole.SOURCE
        assert intent.connector_name == "Snowflake"

    def test_connector_selection_defaults_to_full_confidence(self):
        intent = INTENT_ADAPTER.validate_python({
            "intent": "connector_selection",
            "role": "destination",
            "connectorName": "BigQuery",
        })
        assert isinstance(intent, ConnectorSelection)
        assert intent.role == NodeRole.DESTINATION
        assert intent.confidence == 1.0

    def test_field_answer_coerces_numbers(self):
        intent = INTENT_ADAPTER.validate_python({"intent": "field_answer", "fieldKey": "port", "value": 5432})
        assert isinstance(intent, FieldAnswer)
        assert intent.value == "5432"

    def test_field_answer_null_value_is_empty(self):
        intent = INTENT_ADAPTER.validate_python({"intent": "field_answer", "fieldKey": "user", "value": None})
        assert intent.value == ""

    def test_compound(self):
        intent = INTENT_ADAPTER.validate_python({
            "intent": "compound",
            "intents": [
                {"intent": "connector_selection", "role": "source", "connectorName": "Shopify"},
                {"intent": "connector_selection", "role": "destination", "connectorName": "BigQuery"},
            ],
        })
        assert isinstance(intent, CompoundIntent)
        assert [i.connector_name for i in intent.intents] == ["Shopify", "BigQuery"]

    def test_simple_variants(self):
        assert isinstance(INTENT_ADAPTER.validate_python({"intent": "skip"}), SkipRequest)
        assert INTENT_ADAPTER.validate_python({"intent": "confirmation", "accepted": True}) == Confirmation(accepted=True)
        parsed = INTENT_ADAPTER.validate_python({"intent": "transform_selection", "transformName": "kk", "placeholder": True})
        assert parsed == TransformSelection(transform_name="kk", placeholder=True)

    def test_unknown_tag_rejected(self):
        with pytest.raises(ValidationError):
            INTENT_ADAPTER.validate_python({"intent": "shipping", "connectorName": "x"})

    def test_confidence_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            INTENT_ADAPTER.validate_python({
                "intent": "role_clarification",
                "connectorName": "Snowflake",
                "role": "source",
                "confidence": 1.5,
            })

    def test_transform_is_not_a_connector_role(self):
        with pytest.raises(ValidationError):
            RoleClarification(connector_name="Snowflake", role="transform", confidence=0.9)

    def test_compound_cannot_nest(self):
        with pytest.raises(ValidationError):
            INTENT_ADAPTER.validate_python({
                "intent": "compound",
                "intents": [{"intent": "compound", "intents": [{"intent": "skip"}]}],
            })

    def test_intents_are_frozen(self):
        intent = SkipRequest()
        with pytest.raises(ValidationError):
            intent.intent = "other"


class TestIntentConnectorNames:

    def test_names_in_order(self):
        intent = CompoundIntent(intents=[
            ConnectorSelection(role=NodeRole.SOURCE, connector_name="Shopify"),
            SkipRequest(),
            RoleClarification(connector_name="Snowflake", role=ConnectorRole.DESTINATION, confidence=0.9),
        ])
        assert intent_connector_names(intent) == ["Shopify", "Snowflake"]

    def test_transform_selection_is_not_a_connector(self):
        intent = ConnectorSelection(role=NodeRole.TRANSFORM, connector_name="Cleanse")
        assert intent_connector_names(intent) == []

    def test_no_names(self):
        assert intent_connector_names(Unrecognized(raw_text="hm")) == []
