"""Structural comparison of decoded GraphQL JSON responses."""

from __future__ import annotations

import json
from typing import Any, Union

JSONInput = Union[str, bytes, dict, list]


def _decode(value: JSONInput) -> Any:
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def compare_responses(a: JSONInput, b: JSONInput) -> tuple[bool, str]:
    """
    Compare two responses for equality.

    Returns (True, "") when equal, otherwise (False, description of the
    first difference found, with its path).
    """
    try:
        a_data = _decode(a)
    except ValueError as e:
        return False, f"failed to unmarshal response A: {e}"
    try:
        b_data = _decode(b)
    except ValueError as e:
        return False, f"failed to unmarshal response B: {e}"

    return _compare_values(a_data, b_data, "")


def _compare_values(a: Any, b: Any, path: str) -> tuple[bool, str]:
    if isinstance(a, dict):
        if not isinstance(b, dict):
            return False, f"type mismatch at {path}: map vs {type(b).__name__}"
        return _compare_maps(a, b, path)

    if isinstance(a, list):
        if not isinstance(b, list):
            return False, f"type mismatch at {path}: array vs {type(b).__name__}"
        return _compare_arrays(a, b, path)

    # bool is an int subclass; keep true and 1 apart
    if a != b or isinstance(a, bool) != isinstance(b, bool):
        return False, f"value mismatch at {path}: {a!r} vs {b!r}"
    return True, ""


def _compare_maps(a: dict, b: dict, path: str) -> tuple[bool, str]:
    for key, a_val in a.items():
        new_path = f"{path}.{key}" if path else key
        if key not in b:
            return False, f"missing key at {new_path}"
        equal, diff = _compare_values(a_val, b[key], new_path)
        if not equal:
            return False, diff

    for key in b:
        if key not in a:
            new_path = f"{path}.{key}" if path else key
            return False, f"extra key at {new_path}"

    return True, ""


def _compare_arrays(a: list, b: list, path: str) -> tuple[bool, str]:
    if len(a) != len(b):
        return False, f"array length mismatch at {path}: {len(a)} vs {len(b)}"

    for i, (a_val, b_val) in enumerate(zip(a, b)):
        equal, diff = _compare_values(a_val, b_val, f"{path}[{i}]")
        if not equal:
            return False, diff

    return True, ""
