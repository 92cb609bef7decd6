"""Sanitizer library — strips sensitive fields from audit payloads.

Public API:
    - sanitize: Depth-capped, non-mutating redaction of nested payloads
    - is_sensitive_key: Case-insensitive sensitive key check
    - REDACTED / MAX_DEPTH_EXCEEDED: Marker values
"""

from audit_trail.lib.sanitizer.redact import (
    DEFAULT_MAX_DEPTH,
    MAX_DEPTH_EXCEEDED,
    REDACTED,
    SENSITIVE_FIELDS,
    is_sensitive_key,
    sanitize,
)

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "MAX_DEPTH_EXCEEDED",
    "REDACTED",
    "SENSITIVE_FIELDS",
    "is_sensitive_key",
    "sanitize",
]
