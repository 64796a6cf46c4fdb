"""Shared utility modules for common operations.

This package provides provider-agnostic helpers for:
- HTTP transport (aiohttp-backed HTTPClient implementation)
- Logging setup with correlation IDs and secret redaction
- Secret sanitization for log output and error messages
"""

from push_dispatch.utils.sanitization import (
    REDACTED,
    is_sensitive_field,
    register_sanitization_pattern,
    sanitize_args,
    sanitize_exception,
    sanitize_mapping,
    sanitize_url,
    sanitize_value,
)

__all__ = [
    "REDACTED",
    "is_sensitive_field",
    "register_sanitization_pattern",
    "sanitize_args",
    "sanitize_exception",
    "sanitize_mapping",
    "sanitize_url",
    "sanitize_value",
]
