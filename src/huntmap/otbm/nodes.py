"""Typed node tree produced by the OTBM front-ends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from huntmap.models import NodeKind


@dataclass
class MapNode:
    """One node of a decoded map container.

    ``problem`` is set when the node could not be decoded cleanly; consumers
    decide whether that is fatal.
    """

    kind: int
    attributes: dict[str, Any] = field(default_factory=dict)
    children: list["MapNode"] = field(default_factory=list)
    problem: str | None = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def walk(self) -> Iterator["MapNode"]:
        """Yield this node and its descendants depth-first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def map_data_nodes(self) -> list["MapNode"]:
        """Return the map-data nodes that hold the feature list."""
        if self.kind == NodeKind.MAP_DATA:
            return [self]
        return [child for child in self.children if child.kind == NodeKind.MAP_DATA]
