"""Error handling framework for flow-architect.

This package provides:
- Error code registry with E-XXXX format codes
- Typed domain exceptions carrying those codes

Error categories:
- E-1xxx: Classification service transport errors
- E-2xxx: Classification output errors
- E-3xxx: Pipeline graph invariant violations
- E-4xxx: Catalog and configuration errors
"""

from flow_architect.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    format_error_message,
    get_error,
    get_errors_by_category,
)
from flow_architect.errors.domain import (
    CatalogLoadError,
    ClassificationAuthError,
    ClassificationError,
    ClassificationNetworkError,
    ClassificationParseError,
    ClassificationQuotaError,
    ClassificationRateLimitError,
    ClassificationTimeoutError,
    ClassificationTransportError,
    DomainError,
    GraphInvariant,
    GraphInvariantViolation,
)

__all__ = [
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    "get_errors_by_category",
    "format_error_message",
    # Domain exceptions
    "DomainError",
    "CatalogLoadError",
    "ClassificationError",
    "ClassificationTransportError",
    "ClassificationAuthError",
    "ClassificationRateLimitError",
    "ClassificationQuotaError",
    "ClassificationNetworkError",
    "ClassificationTimeoutError",
    "ClassificationParseError",
    "GraphInvariant",
    "GraphInvariantViolation",
]
