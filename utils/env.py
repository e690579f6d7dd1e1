"""
Environment variable helpers with whitespace sanitization.

Every setting in config.py goes through these so that stray spaces in a
.env file or a deployment dashboard never turn into broken colors, sizes or
rate-limit strings.
"""
import os
from typing import Optional


def get_env_str(name: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Read a stripped string environment variable.

    Unset and whitespace-only values both count as missing.

    Raises:
        ValueError: If required=True and the value is missing or empty

    Examples:
        >>> get_env_str("SECRET_KEY", required=True)
        >>> get_env_str("GENERATE_RATE_LIMIT", default="60/minute")
    """
    raw = os.getenv(name)
    value = raw.strip() if raw is not None else ""
    if value:
        return value

    if required:
        problem = "is not set" if raw is None else "is empty (or whitespace-only)"
        raise ValueError(
            f"Required environment variable '{name}' {problem}. "
            f"Please set it in your .env file or environment."
        )
    return default


def get_env_bool(name: str, default: bool = False) -> bool:
    """
    Read a boolean environment variable.

    Truthy values: "1", "true", "yes", "on" (case-insensitive).
    Anything else that is set counts as False; unset or empty gives default.
    """
    value = get_env_str(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def get_env_int(name: str, default: int) -> int:
    """
    Read an integer environment variable.

    Raises:
        ValueError: If the variable is set but is not an integer
    """
    value = get_env_str(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable '{name}' must be an integer. Got: {value!r}")
