# File: fragplan/core/assembly/assembly.py
# Version: v0.1.0
"""
Assembly state used by the path search.

Nodes live once in a start-sorted arena (a plain list owned by the
builder); an assembly only stores arena indexes, ordered by decreasing
distance from the end of the target (new nodes are prepended). Extending
an assembly always returns a new value, so branches can share prefixes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, List, Sequence, Tuple

from fragplan.core.models.node import Node


@dataclass(frozen=True)
class Assembly:
    nodes:      Tuple[int, ...]          # arena indexes, head first
    cost:       float = 0.0              # cumulative junction cost
    synths:     int = 0                  # synthetic fragments needed
    unique_ids: FrozenSet[str] = field(default_factory=frozenset)
    complete:   bool = False

    @property
    def head(self) -> int:
        return self.nodes[0]

    @property
    def last(self) -> int:
        return self.nodes[-1]

    def count(self) -> int:
        """Real nodes plus synthetic fragments."""
        return len(self.nodes) + self.synths

    def contains(self, node: Node) -> bool:
        return node.unique_id in self.unique_ids

    def resolve(self, arena: Sequence[Node]) -> List[Node]:
        return [arena[i] for i in self.nodes]


def single(index: int, node: Node) -> Assembly:
    """Assembly holding only `node` (the piece nearest the end)."""
    return Assembly(nodes=(index,), unique_ids=frozenset((node.unique_id,)))
