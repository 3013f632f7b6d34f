"""Cascading merge of configuration layers.

Layers are plain dicts loaded from YAML. Later layers win, nested sections
merge key by key, and a ``None`` in a later layer leaves the earlier value
in place so a partial file can't blank out a setting.
"""

from __future__ import annotations

from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` updated with ``override`` without mutating either.

    - dict + dict recurses
    - lists (``search_dirs``) are replaced, never concatenated
    - ``None`` values in ``override`` are skipped
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
    """Fold config layers from lowest to highest priority."""
    merged: dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged = deep_merge(merged, layer)
    return merged
