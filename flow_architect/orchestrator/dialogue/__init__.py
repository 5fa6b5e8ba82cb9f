"""Dialogue state machine."""
