"""Error code registry with E-XXXX format codes.

This module defines the error code system for flow-architect, organizing
errors into categories:
- E-1xxx: Classification service transport errors
- E-2xxx: Classification output errors
- E-3xxx: Pipeline graph invariant violations
- E-4xxx: Catalog and configuration errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    TRANSPORT = "transport"  # E-1xxx: Classification service transport errors
    CLASSIFICATION = "classification"  # E-2xxx: Classification output errors
    GRAPH = "graph"  # E-3xxx: Pipeline graph invariant violations
    CATALOG = "catalog"  # E-4xxx: Catalog and configuration errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action the operator should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str  # E-XXXX format
    category: ErrorCategory
    title: str  # Short title for display
    message_template: str  # Message with {placeholders}
    remediation: str  # Action operator should take
    is_retryable: bool = False  # Can be retried without user action


# Error registry - all defined error codes
ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Transport errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.TRANSPORT,
        title="Classifier Authentication Failed",
        message_template="The classification service rejected the credentials: {details}",
        remediation="Check ANTHROPIC_API_KEY and that the key has access to the configured model.",
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.TRANSPORT,
        title="Classifier Rate Limited",
        message_template="The classification service is rate limiting requests: {details}",
        remediation="Wait a moment before sending the next message.",
        is_retryable=True,
    ),
    "E-1003": ErrorCode(
        code="E-1003",
        category=ErrorCategory.TRANSPORT,
        title="Classifier Quota Exhausted",
        message_template="The classification service quota or billing limit was reached: {details}",
        remediation="Check the provider account's billing status and usage limits.",
    ),
    "E-1004": ErrorCode(
        code="E-1004",
        category=ErrorCategory.TRANSPORT,
        title="Classifier Unreachable",
        message_template="Could not reach the classification service: {details}",
        remediation="Check network connectivity. Basic keyword matching is used meanwhile.",
        is_retryable=True,
    ),
    "E-1005": ErrorCode(
        code="E-1005",
        category=ErrorCategory.TRANSPORT,
        title="Classifier Timeout",
        message_template="The classification service did not answer within {timeout}s.",
        remediation="Increase classifier.timeout_seconds or retry later.",
        is_retryable=True,
    ),
    # Classification output errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.CLASSIFICATION,
        title="Malformed Classifier Output",
        message_template="Classifier output could not be read as an intent: {details}",
        remediation="No action needed. The utterance is treated as unrecognized.",
    ),
    # Graph invariant violations (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.GRAPH,
        title="Duplicate Endpoint Role",
        message_template="Pipeline already has a {role} node.",
        remediation="This is a logic error in the dialogue layer. Report it with the session transcript.",
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.GRAPH,
        title="Pipeline Not Linear",
        message_template="Edge set is not a single acyclic chain: {details}",
        remediation="This is a logic error in the dialogue layer. Report it with the session transcript.",
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.GRAPH,
        title="Destination Before Source",
        message_template="A destination cannot be added before a source exists.",
        remediation="This is a logic error in the dialogue layer. Report it with the session transcript.",
    ),
    "E-3004": ErrorCode(
        code="E-3004",
        category=ErrorCategory.GRAPH,
        title="Node Identity Conflict",
        message_template="Node id '{node_id}' is unknown or already issued.",
        remediation="This is a logic error in the dialogue layer. Report it with the session transcript.",
    ),
    "E-3005": ErrorCode(
        code="E-3005",
        category=ErrorCategory.GRAPH,
        title="Placeholder Has Fields",
        message_template="Placeholder transform '{node_id}' cannot hold configured fields.",
        remediation="This is a logic error in the dialogue layer. Report it with the session transcript.",
    ),
    # Catalog errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.CATALOG,
        title="Catalog Load Failed",
        message_template="Could not load connector catalog {path}: {details}",
        remediation="Regenerate the catalog file or point catalog.path at a valid file.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category.

    Args:
        category: The error category to filter by.

    Returns:
        List of ErrorCode objects in the specified category.
    """
    return [e for e in ERROR_REGISTRY.values() if e.category == category]


def format_error_message(code: str, **context: object) -> str:
    """Render an error's message template with context values.

    Missing placeholders are left as-is rather than raising.

    Args:
        code: Error code in E-XXXX format.
        **context: Values for the template placeholders.

    Returns:
        Formatted message prefixed with the code, or the bare code if unknown.
    """
    error = get_error(code)
    if error is None:
        return code

    class _Defaults(dict):
        def __missing__(self, key: str) -> str:
            return "{" + key + "}"

    return f"{code}: {error.message_template.format_map(_Defaults(context))}"
