"""Typed domain exceptions for the conversation-to-pipeline compiler.

Each exception carries an ``error_code`` from the error registry so callers
can log a stable code and look up remediation text.

Usage:
    # In the classifier
    raise ClassificationRateLimitError("429 from provider")

    # In the conversation handler
    try:
        intent = await classifier.classify(context, utterance)
    except ClassificationTransportError as e:
        logger.warning("%s, falling back", e.error_code)
"""

from enum import Enum

from flow_architect.errors.registry import format_error_message


class DomainError(Exception):
    """Base exception for all domain errors."""

    error_code: str = ""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class CatalogLoadError(DomainError):
    """The connector catalog file is missing or unreadable."""

    error_code = "E-4001"

    def __init__(self, path: str, details: str) -> None:
        super().__init__(format_error_message(self.error_code, path=path, details=details))
        self.path = path
        self.details = details


# ---------------------------------------------------------------------------
# Classification errors
# ---------------------------------------------------------------------------


class ClassificationError(DomainError):
    """Base class for failures talking to or reading from the classifier."""

    def __init__(self, details: str) -> None:
        super().__init__(format_error_message(self.error_code, details=details))
        self.details = details


class ClassificationTransportError(ClassificationError):
    """The classification request did not produce a usable response."""

    error_code = "E-1004"


class ClassificationAuthError(ClassificationTransportError):
    """Provider rejected the API key (401/403)."""

    error_code = "E-1001"


class ClassificationRateLimitError(ClassificationTransportError):
    """Provider is throttling requests (429)."""

    error_code = "E-1002"


class ClassificationQuotaError(ClassificationTransportError):
    """Provider quota or billing limit exhausted."""

    error_code = "E-1003"


class ClassificationNetworkError(ClassificationTransportError):
    """Connection failure or unexpected provider status."""

    error_code = "E-1004"


class ClassificationTimeoutError(ClassificationNetworkError):
    """Bounded wait on the classification call expired."""

    error_code = "E-1005"

    def __init__(self, timeout: float) -> None:
        DomainError.__init__(self, format_error_message(self.error_code, timeout=timeout))
        self.details = f"timed out after {timeout}s"
        self.timeout = timeout


class ClassificationParseError(ClassificationError):
    """Classifier answered, but not with a valid intent payload."""

    error_code = "E-2001"


# ---------------------------------------------------------------------------
# Graph errors
# ---------------------------------------------------------------------------


class GraphInvariant(str, Enum):
    """Pipeline graph invariants, each mapped to an error code."""

    SINGLE_ENDPOINT_ROLE = "E-3001"
    LINEAR_ACYCLIC = "E-3002"
    SOURCE_BEFORE_DESTINATION = "E-3003"
    STABLE_UNIQUE_IDS = "E-3004"
    PLACEHOLDER_HAS_NO_FIELDS = "E-3005"


class GraphInvariantViolation(DomainError):
    """A graph mutation would break an invariant. The graph is left unchanged.

    Attributes:
        invariant: Which invariant the mutation violated.
        error_code: Registry code for the invariant.
    """

    def __init__(self, invariant: GraphInvariant, message: str) -> None:
        super().__init__(f"{invariant.value}: {message}")
        self.invariant = invariant
        self.error_code = invariant.value
