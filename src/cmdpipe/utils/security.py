"""
Helpers for keeping secrets out of logs and console output.
"""

from typing import Any, Dict

# Configuration keys whose values must never be printed
SENSITIVE_FIELDS = {
    "password",
    "passwd",
    "secret",
    "token",
    "private_key",
}


def mask_sensitive_value(value: str) -> str:
    """
    Mask a sensitive value, showing only the first character for short strings
    or first three characters for longer strings.

    Args:
        value: Value to mask

    Returns:
        str: Masked value
    """
    if not value:
        return ""
    if len(value) <= 3:
        return value[0] + "*" * (len(value) - 1)
    return value[:3] + "*" * 5


def is_sensitive_field(field_name: str) -> bool:
    """Check if a field name corresponds to sensitive data."""
    return any(sensitive in field_name.lower() for sensitive in SENSITIVE_FIELDS)


def mask_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a (nested) mapping with sensitive values masked."""
    masked: Dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, dict):
            masked[key] = mask_sensitive_data(value)
        elif isinstance(value, str) and is_sensitive_field(str(key)):
            masked[key] = mask_sensitive_value(value)
        else:
            masked[key] = value
    return masked
