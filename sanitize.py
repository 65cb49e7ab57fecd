"""Scrubbing of user-supplied submission payloads."""

import re
from typing import Any

SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
JS_SCHEME_RE = re.compile(r"javascript:", re.IGNORECASE)
EVENT_HANDLER_RE = re.compile(r"on\w+\s*=", re.IGNORECASE)
ANGLE_RE = re.compile(r"[<>]")


def sanitize_string(value: str) -> str:
    value = SCRIPT_RE.sub("", value.strip())
    value = JS_SCHEME_RE.sub("", value)
    value = EVENT_HANDLER_RE.sub("", value)
    return ANGLE_RE.sub("", value)


def sanitize_input(obj: Any) -> Any:
    """Recursively clean strings, list items and dict keys/values.

    Non-string scalars (numbers, booleans, None) pass through untouched.
    """
    if isinstance(obj, str):
        return sanitize_string(obj)
    if isinstance(obj, list):
        return [sanitize_input(item) for item in obj]
    if isinstance(obj, dict):
        return {sanitize_input(k): sanitize_input(v) for k, v in obj.items()}
    return obj
