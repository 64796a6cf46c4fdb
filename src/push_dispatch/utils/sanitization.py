"""Secret sanitization utilities for logging and error messages.

This module removes sensitive information (server API keys, credentials,
tokens embedded in URLs) from strings and structured data before they are
logged or shown in error messages.

Providers register their own URL/header patterns at import time through
:func:`register_sanitization_pattern` so that this module stays
provider-agnostic.

Examples:
    >>> sanitize_url("Authorization: key=AIzaSyExample")
    'Authorization: key=<REDACTED>'

    >>> sanitize_value({"server_api_key": "AIzaSyExample", "retries": 3})
    {'server_api_key': '<REDACTED>', 'retries': 3}
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing_extensions import TypeIs

# Redaction marker for sanitized values
REDACTED = "<REDACTED>"

# Legacy gateway authorization scheme: "Authorization: key=<secret>"
_AUTH_KEY_PATTERN = re.compile(
    r"(\bkey=)([^\s,;&\"']+)",
)

# Bearer credentials in header dumps
_BEARER_PATTERN = re.compile(
    r"(\bBearer\s+)([^\s,;\"']+)",
    re.IGNORECASE,
)

# Pattern for URLs with tokens in path segments
_GENERIC_TOKEN_IN_PATH = re.compile(
    r"(/(?:token|api[-_]?key|auth|secret|bearer)[=/])([^/?#]+)",
    re.IGNORECASE,
)

# Pattern for URLs with tokens in query parameters
_GENERIC_TOKEN_IN_QUERY = re.compile(
    r"([?&](?:token|api[-_]?key|auth|secret|bearer)=)([^&]+)",
    re.IGNORECASE,
)

# Sensitive field name patterns (case-insensitive)
_SENSITIVE_FIELD_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in [
        r".*api[-_]?key.*",
        r"^key$",
        r".*secret.*",
        r".*password.*",
        r".*credential.*",
        r".*authorization.*",
        r".*bearer.*",
    ]
]

# Patterns contributed by providers, applied before the generic ones
_registered_patterns: list[tuple[re.Pattern[str], str]] = []


def register_sanitization_pattern(pattern: re.Pattern[str], replacement: str) -> None:
    """Register a provider-specific redaction pattern.

    Registering the same pattern twice is a no-op.

    Args:
        pattern: Compiled regular expression matching the secret
        replacement: Replacement template passed to ``pattern.sub``
    """
    entry = (pattern, replacement)
    if entry not in _registered_patterns:
        _registered_patterns.append(entry)


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name indicates sensitive data.

    Args:
        field_name: The field name to check (e.g., "server_api_key")

    Returns:
        True if the field name matches sensitive patterns

    Examples:
        >>> is_sensitive_field("server_api_key")
        True
        >>> is_sensitive_field("collapse_key")
        False
    """
    return any(pattern.match(field_name) for pattern in _SENSITIVE_FIELD_PATTERNS)


def sanitize_url(url: str) -> str:
    """Sanitize secrets from URLs and header-like strings.

    The structure of the string is preserved so that scheme, host and path
    remain useful for debugging while secret values are replaced by the
    REDACTED marker.

    Args:
        url: The URL (or arbitrary text) to sanitize

    Returns:
        Sanitized text

    Examples:
        >>> sanitize_url("https://api.example.com/data?token=secret123")
        'https://api.example.com/data?token=<REDACTED>'
    """
    if not url:
        return url

    sanitized = url
    for pattern, replacement in _registered_patterns:
        sanitized = pattern.sub(replacement, sanitized)

    sanitized = _AUTH_KEY_PATTERN.sub(rf"\1{REDACTED}", sanitized)
    sanitized = _BEARER_PATTERN.sub(rf"\1{REDACTED}", sanitized)
    sanitized = _GENERIC_TOKEN_IN_PATH.sub(rf"\1{REDACTED}", sanitized)
    sanitized = _GENERIC_TOKEN_IN_QUERY.sub(rf"\1{REDACTED}", sanitized)

    return sanitized


def _is_primitive(value: object) -> TypeIs[str | int | float | bool | None]:
    return isinstance(value, (str, int, float, bool, type(None)))


def _is_mapping(value: object) -> TypeIs[Mapping[str, object]]:
    return isinstance(value, Mapping)


def _is_sequence(value: object) -> TypeIs[Sequence[object]]:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def sanitize_value(
    value: object,
    *,
    field_name: str | None = None,
) -> object:
    """Recursively sanitize sensitive values from structured data.

    Walks nested dicts, lists and tuples and redacts values based on
    field name patterns and on secrets embedded in string values.

    Args:
        value: The value to sanitize (can be any type)
        field_name: Optional field name for context-aware sanitization

    Returns:
        Sanitized value with secrets replaced by REDACTED marker
    """
    if field_name and is_sensitive_field(field_name):
        return REDACTED

    if _is_primitive(value):
        if type(value) is str:
            return sanitize_url(value)
        return value

    if _is_mapping(value):
        return {key: sanitize_value(val, field_name=str(key)) for key, val in value.items()}

    if _is_sequence(value):
        sanitized_items: list[object] = [sanitize_value(item) for item in value]
        if isinstance(value, tuple):
            return tuple(sanitized_items)
        return sanitized_items

    # Unknown objects are rendered and scrubbed as text
    return sanitize_url(str(value))


def sanitize_exception(exc: BaseException) -> str:
    """Sanitize exception messages to remove sensitive information.

    Examples:
        >>> sanitize_exception(ValueError("bad header key=AIzaSecret"))
        'ValueError: bad header key=<REDACTED>'
    """
    return f"{type(exc).__name__}: {sanitize_url(str(exc))}"


def sanitize_args(args: tuple[object, ...]) -> tuple[object, ...]:
    """Sanitize a tuple of logging arguments."""
    return tuple(sanitize_value(arg) for arg in args)


def sanitize_mapping(
    data: Mapping[str, object],
) -> dict[str, object]:
    """Sanitize a mapping (e.g., logging extra dict) for safe output."""
    return {key: sanitize_value(val, field_name=key) for key, val in data.items()}
