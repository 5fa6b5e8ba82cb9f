"""Unit tests for flow_architect/errors.

Tests verify:
- Every code is registered with the right category
- Messages render from templates
- Domain exceptions carry their codes
"""

import pytest

from flow_architect.errors import (
    CatalogLoadError,
    ClassificationAuthError,
    ClassificationNetworkError,
    ClassificationParseError,
    ClassificationQuotaError,
    ClassificationRateLimitError,
    ClassificationTimeoutError,
    ClassificationTransportError,
    ErrorCategory,
    GraphInvariant,
    GraphInvariantViolation,
    format_error_message,
    get_error,
    get_errors_by_category,
)


@pytest.mark.parametrize(
    "code,category",
    [
        ("E-1001", ErrorCategory.TRANSPORT),
        ("E-1002", ErrorCategory.TRANSPORT),
        ("E-1003", ErrorCategory.TRANSPORT),
        ("E-1004", ErrorCategory.TRANSPORT),
        ("E-1005", ErrorCategory.TRANSPORT),
        ("E-2001", ErrorCategory.CLASSIFICATION),
        ("E-3001", ErrorCategory.GRAPH),
        ("E-3002", ErrorCategory.GRAPH),
        ("E-3003", ErrorCategory.GRAPH),
        ("E-3004", ErrorCategory.GRAPH),
        ("E-3005", ErrorCategory.GRAPH),
        ("E-4001", ErrorCategory.CATALOG),
    ],
)
def test_error_codes_registered(code, category):
    """All error codes must be registered under their category."""
    error = get_error(code)
    assert error is not None, f"{code} not found in registry"
    assert error.code == code
    assert error.category == category
    assert error.remediation


class TestFormatErrorMessage:
    """Tests for message template rendering."""

    def test_fills_placeholders(self):
        message = format_error_message("E-1001", details="invalid x-api-key")
        assert message.startswith("E-1001: ")
        assert "invalid x-api-key" in message

    def test_missing_placeholder_left_as_is(self):
        message = format_error_message("E-4001", path="/tmp/c.json")
        assert "/tmp/c.json" in message
        assert "{details}" in message

    def test_unknown_code_returns_code(self):
        assert format_error_message("E-9999", details="x") == "E-9999"

    def test_category_filter(self):
        graph_codes = {e.code for e in get_errors_by_category(ErrorCategory.GRAPH)}
        assert graph_codes == {"E-3001", "E-3002", "E-3003", "E-3004", "E-3005"}


class TestDomainExceptions:
    """Tests for typed exceptions and their codes."""

    @pytest.mark.parametrize(
        "exc_type,code",
        [
            (ClassificationAuthError, "E-1001"),
            (ClassificationRateLimitError, "E-1002"),
            (ClassificationQuotaError, "E-1003"),
            (ClassificationNetworkError, "E-1004"),
        ],
    )
    def test_transport_errors_are_distinct(self, exc_type, code):
        error = exc_type("boom")
        assert isinstance(error, ClassificationTransportError)
        assert error.error_code == code
        assert error.details == "boom"
        assert str(error).startswith(code)

    def test_timeout_is_network_error(self):
        error = ClassificationTimeoutError(2.5)
        assert isinstance(error, ClassificationNetworkError)
        assert error.error_code == "E-1005"
        assert error.timeout == 2.5
        assert "2.5s" in str(error)

    def test_parse_error_is_not_transport(self):
        error = ClassificationParseError("no JSON object in model output")
        assert not isinstance(error, ClassificationTransportError)
        assert error.error_code == "E-2001"

    def test_catalog_load_error(self):
        error = CatalogLoadError("/missing.json", "No such file")
        assert error.error_code == "E-4001"
        assert error.path == "/missing.json"
        assert "/missing.json" in str(error)

    def test_graph_violation_carries_invariant(self):
        error = GraphInvariantViolation(GraphInvariant.SOURCE_BEFORE_DESTINATION, "no source yet")
        assert error.invariant == GraphInvariant.SOURCE_BEFORE_DESTINATION
        assert error.error_code == "E-3003"
        assert str(error) == "E-3003: no source yet"
