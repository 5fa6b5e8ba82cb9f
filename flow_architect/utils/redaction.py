"""Secret redaction utility for safe logging and chat acknowledgements.

Connector fields such as ``password or key`` or ``apiKey/token`` carry
credentials. Everything that echoes configured field values (log lines,
acknowledgement messages, CLI tables) goes through this module. Uses
case-insensitive substring matching for sensitive key detection.
"""

import re

# Substring patterns matched case-insensitively against field keys
_DEFAULT_SENSITIVE_PATTERNS = frozenset({
    "secret", "token", "password", "apikey", "api_key", "key",
    "credential", "auth", "authorization",
})

# Keys whose entire value is redacted (regardless of content type)
_CONTAINER_KEYS = frozenset({"credentials", "headers"})

_REDACTED = "***REDACTED***"


def _is_sensitive_key(key: str, sensitive_patterns: frozenset[str]) -> bool:
    """Check if a key matches any sensitive pattern (case-insensitive substring).

    Args:
        key: Dict key to check.
        sensitive_patterns: Patterns to match against.

    Returns:
        True if the key matches any sensitive pattern.
    """
    key_lower = key.lower()
    return any(pattern in key_lower for pattern in sensitive_patterns)


def is_sensitive_field(key: str) -> bool:
    """Return True if a connector field key holds a secret."""
    return _is_sensitive_key(key, _DEFAULT_SENSITIVE_PATTERNS)


def mask_field_value(key: str, value: str) -> str:
    """Mask a field value for display, keeping the last 4 chars of long secrets.

    Args:
        key: Connector field key.
        value: Raw value supplied by the user.

    Returns:
        The value unchanged for non-sensitive keys, otherwise a masked form.
    """
    if not is_sensitive_field(key):
        return value
    if len(value) > 8:
        return "***" + value[-4:]
    return "***"


def redact_for_logging(
    obj: dict,
    sensitive_patterns: frozenset[str] = _DEFAULT_SENSITIVE_PATTERNS,
) -> dict:
    """Redact sensitive values from a dict for safe logging.

    Args:
        obj: Dict to redact (not mutated, a copy is returned).
        sensitive_patterns: Substring patterns whose matching keys' values
            should be replaced. Matching is case-insensitive.

    Returns:
        New dict with sensitive values replaced by '***REDACTED***'.
        Handles nested dicts, lists of dicts, and container keys recursively.
    """
    result = {}
    for key, value in obj.items():
        key_lower = key.lower()
        if key_lower in _CONTAINER_KEYS:
            result[key] = _REDACTED
        elif _is_sensitive_key(key, sensitive_patterns):
            result[key] = _REDACTED
        elif isinstance(value, dict):
            result[key] = redact_for_logging(value, sensitive_patterns)
        elif isinstance(value, list):
            result[key] = [
                redact_for_logging(item, sensitive_patterns) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value
    return result


# Patterns for detecting sensitive values in free-text provider error messages.
# Handles: Authorization: Bearer <token>, x-api-key: <key>, sk-ant-... keys,
# "key": "value" and key=value.
_SENSITIVE_KEYWORDS = (
    r"secret|token|password|api_key|apikey|x-api-key|authorization|credential"
)
_SENSITIVE_VALUE_PATTERNS = re.compile(
    r"(?i)"
    r"(?:"
    # Pattern 1: Authorization: Bearer <token>
    r"Authorization\s*:\s*Bearer\s+\S+"
    r"|"
    # Pattern 2: provider key literals
    r"sk-[a-z0-9_-]{8,}"
    r"|"
    # Pattern 3: JSON-style "key": "value" or "key":"value"
    r'"(?:' + _SENSITIVE_KEYWORDS + r')"\s*:\s*"[^"]*"'
    r"|"
    # Pattern 4: key=value (unquoted, consumes until whitespace/end)
    r"(?:" + _SENSITIVE_KEYWORDS + r")\s*[=:]\s*\S+"
    r")",
)


def sanitize_error_message(msg: str | None, max_length: int = 500) -> str | None:
    """Sanitize a provider error message for logging.

    Redacts sensitive-looking key=value pairs and truncates to max_length.

    Args:
        msg: Error message to sanitize (None passes through).
        max_length: Maximum length of the sanitized message.

    Returns:
        Sanitized and truncated message, or None.
    """
    if msg is None:
        return None
    sanitized = _SENSITIVE_VALUE_PATTERNS.sub(_REDACTED, msg)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length - 3] + "..."
    return sanitized
