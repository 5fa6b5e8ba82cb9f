"""Tests for question templates and acknowledgements."""

from flow_architect.orchestrator.models.connector import ConnectorRole
from flow_architect.orchestrator.models.intent import NodeRole
from flow_architect.orchestrator.nl_engine.elicitation import (
    SKIP_HINT,
    custom_connector_question,
    describe_field,
    destination_question,
    field_ack,
    mandatory_field_question,
    node_complete_ack,
    node_selected_ack,
    optional_field_question,
    prefixed,
    role_incompatible_question,
    role_question,
    source_question,
    transform_question,
)


class TestQuestions:

    def test_source_question_lists_three_examples(self):
        question = source_question(["Google BigQuery", "Amazon S3", "Salesforce", "Shopify"])
        assert "Google BigQuery, Amazon S3, Salesforce, etc." in question.question
        assert [o.label for o in question.options] == ["Google BigQuery", "Amazon S3", "Salesforce"]

    def test_destination_question(self):
        question = destination_question(["Snowflake"])
        assert question.id == "destination_name"
        assert question.question.startswith("Where do you want to send the data?")

    def test_transform_question_offers_skip(self):
        question = transform_question(["Map & Validate", "Cleanse"])
        assert SKIP_HINT in question.question
        assert question.options[-1].id == "skip"

    def test_role_question_is_closed(self):
        question = role_question("Snowflake")
        assert question.question == "Should Snowflake be your source or your destination?"
        assert not question.allow_free_text
        assert {o.id for o in question.options} == {"source", "destination"}

    def test_mandatory_field_progress(self):
        question = mandatory_field_question("Shopify", "storeDomain", 1, 2)
        assert question.id == "field:storeDomain"
        assert "(1/2 required fields)" in question.question
        assert "mystore.myshopify.com" in question.question

    def test_optional_field_is_skippable(self):
        question = optional_field_question("Salesforce", "instance")
        assert SKIP_HINT in question.question
        assert question.options[0].id == "skip"

    def test_role_incompatible_explains_and_reasks(self):
        follow_up = source_question(["Shopify"])
        question = role_incompatible_question("Open AI", NodeRole.SOURCE, [ConnectorRole.DESTINATION], follow_up)
        assert question.id == follow_up.id
        assert question.question.startswith("Open AI can only be used as a destination, not as a source.")
        assert follow_up.question in question.question

    def test_custom_connector_question(self):
        question = custom_connector_question("Acme Ledger", NodeRole.DESTINATION)
        assert "Acme Ledger" in question.question
        assert "custom destination" in question.question

    def test_prefixed_keeps_identity(self):
        question = prefixed("That doesn't look like a URL.", role_question("Kafka"))
        assert question.id == "role"
        assert question.question.startswith("That doesn't look like a URL. Should Kafka")


class TestAcknowledgements:

    def test_node_selected(self):
        assert node_selected_ack("Shopify", NodeRole.SOURCE) == "Perfect! I've set Shopify as your source system."
        assert "transformation step" in node_selected_ack("Cleanse", NodeRole.TRANSFORM)

    def test_field_ack_masks_secrets(self):
        ack = field_ack("apiKey/token", "shpat_1234567890")
        assert "shpat_1234567890" not in ack
        assert "***7890" in ack

    def test_field_ack_plain_value(self):
        assert field_ack("storeDomain", "a.myshopify.com") == "Got it! store domain set to a.myshopify.com."

    def test_node_complete_counts(self):
        assert "with 2/2 fields completed" in node_complete_ack(NodeRole.SOURCE, 2, 2)

    def test_describe_unknown_field(self):
        assert describe_field("warehouse") == "warehouse"
