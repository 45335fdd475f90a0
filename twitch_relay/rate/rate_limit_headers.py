"""Header parsing utilities for Helix rate limiting.

Separated from the scheduler to allow isolated testing and reuse.
"""

from __future__ import annotations

from collections.abc import Mapping


def _get_ci(headers: Mapping[str, str], name: str) -> str | None:
    # Case-insensitive access attempt
    value = headers.get(name) or headers.get(name.lower()) or headers.get(name.upper())
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


def parse_reset_epoch(headers: Mapping[str, str]) -> float | None:
    """Return the ``Ratelimit-Reset`` epoch seconds, or None if absent/invalid."""
    raw = _get_ci(headers, "Ratelimit-Reset")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


__all__ = ["parse_reset_epoch"]
