"""Service layer for flow-architect.

Provides the connector catalog, chat sessions and the message handler
that ties classification to the dialogue state machine.
"""
