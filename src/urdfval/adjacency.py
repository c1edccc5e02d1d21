"""Structural adjacency between robot parts.

Adjacent parts (parent/child, siblings, or an ancestor within
``max_depth`` levels) are expected to touch and are exempt from
self-collision reporting. The ancestor walk stops after ``walk_limit``
steps; relations deeper than that count as non-adjacent.
"""

from __future__ import annotations

from typing import Mapping

DEFAULT_MAX_DEPTH = 2
DEFAULT_WALK_LIMIT = 10


class AdjacencyClassifier:
    def __init__(
        self,
        parents: Mapping[str, str | None],
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        walk_limit: int = DEFAULT_WALK_LIMIT,
    ) -> None:
        self._parents = parents
        self.max_depth = max_depth
        self.walk_limit = walk_limit

    def parent(self, part: str) -> str | None:
        return self._parents.get(part)

    def are_adjacent(self, a: str, b: str) -> bool:
        parent_a = self.parent(a)
        parent_b = self.parent(b)

        if parent_a == b or parent_b == a:
            return True
        if parent_a is not None and parent_a == parent_b:
            return True

        depth = self.hierarchy_distance(a, b)
        if depth is None:
            depth = self.hierarchy_distance(b, a)
        return depth is not None and depth <= self.max_depth

    def hierarchy_distance(self, descendant: str, ancestor: str) -> int | None:
        """Levels from ``descendant`` up to ``ancestor``, or None if not found."""
        depth = 0
        current: str | None = descendant
        while current is not None and current != ancestor:
            current = self.parent(current)
            depth += 1
            if depth > self.walk_limit:
                break
        return depth if current == ancestor else None
