"""
Access-tiered recursive content filter.

The portfolio document is plain JSON: mappings, sequences and scalars. Any
mapping may carry an ``access`` level (default 0) and a ``type`` tag.

Rules, applied bottom-up:
- A requester at the blocked level sees nothing (``None``).
- A mapping whose ``access`` exceeds the requester's level is dropped with
  everything under it.
- A mapping tagged ``type: "access"`` is authorization metadata and is
  always dropped.
- Dropped values are omitted from their parent (keys removed, list items
  removed), never replaced by null.
- In a sequence, items sharing a ``type`` tag (other than ``"project"``) are
  collapsed to the one with the highest ``access``. The first occurrence wins
  ties, untagged and project items keep their order and come first, and group
  winners follow in the order each type first appeared.

The function is pure; it is called both when answering a request and again
inside queued tasks.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from folio.config import (
    ACCESS_METADATA_TYPE,
    BLOCKED_LEVEL,
    FILTER_MAX_DEPTH,
    FILTER_MAX_NODES,
    UNGROUPED_TYPE,
)


class ContentTooComplexError(ValueError):
    """Raised when a document exceeds the depth or node-count guard."""


class _Budget:
    __slots__ = ("remaining",)

    def __init__(self, max_nodes: int) -> None:
        self.remaining = max_nodes

    def spend(self) -> None:
        self.remaining -= 1
        if self.remaining < 0:
            raise ContentTooComplexError("Content document has too many nodes")


def node_access(node: Mapping[str, Any]) -> float:
    """
    Minimum level required to see a mapping node.

    Missing or null means 0. Numeric strings are parsed. Anything else is
    unreadable and treated as unreachable so the node is never shown.
    """
    value = node.get("access")
    if value is None:
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return math.inf
    return math.inf


def node_type(node: Any) -> str | None:
    """The node's ``type`` tag, or None for non-mappings and untagged mappings."""
    if not isinstance(node, Mapping):
        return None
    value = node.get("type")
    if isinstance(value, str) and value:
        return value
    return None


def filter_content(
    node: Any,
    level: int,
    *,
    max_depth: int = FILTER_MAX_DEPTH,
    max_nodes: int = FILTER_MAX_NODES,
) -> Any | None:
    """
    Return the part of ``node`` visible at ``level``, or None if nothing is.

    Args:
        node: JSON-like document (dicts, lists, scalars)
        level: Requester's access level
        max_depth: Nesting limit before ContentTooComplexError
        max_nodes: Visited-node limit before ContentTooComplexError

    Returns:
        A new filtered document; the input is not modified.
    """
    if level <= BLOCKED_LEVEL:
        return None
    return _filter(node, level, 0, max_depth, _Budget(max_nodes))


def _filter(node: Any, level: int, depth: int, max_depth: int, budget: _Budget) -> Any | None:
    budget.spend()
    if depth > max_depth:
        raise ContentTooComplexError(f"Content nesting exceeds maximum depth of {max_depth}")

    if isinstance(node, Mapping):
        return _filter_mapping(node, level, depth, max_depth, budget)

    if isinstance(node, Sequence) and not isinstance(node, (str, bytes, bytearray)):
        return _filter_sequence(node, level, depth, max_depth, budget)

    return node


def _filter_mapping(
    node: Mapping[Any, Any], level: int, depth: int, max_depth: int, budget: _Budget
) -> dict[Any, Any] | None:
    if node_access(node) > level:
        return None
    if node_type(node) == ACCESS_METADATA_TYPE:
        return None

    result: dict[Any, Any] = {}
    for key, value in node.items():
        filtered = _filter(value, level, depth + 1, max_depth, budget)
        if filtered is not None:
            result[key] = filtered
    return result


def _filter_sequence(
    node: Sequence[Any], level: int, depth: int, max_depth: int, budget: _Budget
) -> list[Any]:
    kept: list[Any] = []
    winners: dict[str, Any] = {}

    for item in node:
        filtered = _filter(item, level, depth + 1, max_depth, budget)
        if filtered is None:
            continue

        tag = node_type(filtered)
        if tag is None or tag == UNGROUPED_TYPE:
            kept.append(filtered)
            continue

        best = winners.get(tag)
        if best is None or node_access(filtered) > node_access(best):
            winners[tag] = filtered

    return kept + list(winners.values())
