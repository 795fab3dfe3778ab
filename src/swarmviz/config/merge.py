"""Deep merge for layered configuration.

Layers are applied in order; a later layer wins, except that ``None`` never
clears a value set by an earlier layer.
"""

from __future__ import annotations

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict with ``override`` applied on top of ``base``.

    - Nested dicts merge recursively
    - Lists and scalars are replaced wholesale
    - ``None`` in ``override`` is skipped
    """
    merged = dict(base)
    for key, value in override.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def merge_configs(*layers: dict[str, Any]) -> dict[str, Any]:
    """Fold config layers left to right (system, user, project, env)."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer)
    return merged
