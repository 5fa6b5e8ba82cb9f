"""Conversation-to-pipeline orchestration.

Subpackages:
    models: Pydantic models for connectors, intents, questions and graphs.
    nl_engine: Intent classification and question wording.
    dialogue: The dialogue state machine.
    pipeline: The pipeline graph and its change events.
"""
