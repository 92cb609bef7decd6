"""Recursive redaction of sensitive fields in arbitrary JSON-like payloads.

Audit payloads come straight from request bodies and model diffs, so any of
them may carry a password, token or card number by accident.  Keys are
matched case-insensitively by substring (``accessToken`` and ``passwordHash``
are both caught).  Recursion is capped so deeply nested or cyclic input
terminates with a marker instead of exhausting the stack.
"""

import copy
from typing import Any

from loguru import logger

REDACTED = "[REDACTED]"
MAX_DEPTH_EXCEEDED = "[MAX_DEPTH_EXCEEDED]"
DEFAULT_MAX_DEPTH = 10

SENSITIVE_FIELDS: tuple[str, ...] = (
    "password",
    "passwordhash",
    "token",
    "secret",
    "apikey",
    "api_key",
    "creditcard",
    "credit_card",
    "cardnumber",
    "cvv",
    "ssn",
    "twofactorsecret",
    "twofactorbackupcodes",
    "authorization",
    "cookie",
)


def is_sensitive_key(key: object, sensitive_fields: tuple[str, ...] = SENSITIVE_FIELDS) -> bool:
    """Return True if a mapping key names a sensitive field.

    Args:
        key: Mapping key; non-string keys are compared by their ``str()``.
        sensitive_fields: Lowercase field names matched as substrings.

    Returns:
        Whether the key should have its value redacted.
    """
    lowered = str(key).lower()
    return any(field in lowered for field in sensitive_fields)


def _sanitize_node(value: Any, depth: int, max_depth: int, sensitive_fields: tuple[str, ...]) -> Any:
    if isinstance(value, dict | list | tuple | set | frozenset) and depth > max_depth:
        return MAX_DEPTH_EXCEEDED

    if isinstance(value, dict):
        result: dict[Any, Any] = {}
        for key, item in value.items():
            if is_sensitive_key(key, sensitive_fields):
                result[key] = REDACTED
            else:
                result[key] = _sanitize_node(item, depth + 1, max_depth, sensitive_fields)
        return result

    if isinstance(value, list | tuple | set | frozenset):
        return [_sanitize_node(item, depth + 1, max_depth, sensitive_fields) for item in value]

    return value


def sanitize(
    payload: Any,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    sensitive_fields: tuple[str, ...] = SENSITIVE_FIELDS,
) -> Any:
    """Return a sanitized copy of ``payload``.

    Sensitive keys are replaced by ``[REDACTED]`` and containers nested deeper
    than ``max_depth`` become ``[MAX_DEPTH_EXCEEDED]``.  The caller's object is
    never modified.  Tuples and sets come back as lists so the result is
    JSON-shaped.

    Args:
        payload: Any JSON-like value, possibly cyclic.
        max_depth: Deepest container level that is still walked.
        sensitive_fields: Lowercase field names matched as key substrings.

    Returns:
        The sanitized value, or None when ``payload`` is None.
    """
    if payload is None:
        return None

    try:
        cloned = copy.deepcopy(payload)
    except Exception as e:
        # The walk below builds new containers, so the original still is not mutated
        logger.debug(f"Payload could not be cloned, sanitizing original: {e}")
        cloned = payload

    return _sanitize_node(cloned, 0, max_depth, sensitive_fields)
