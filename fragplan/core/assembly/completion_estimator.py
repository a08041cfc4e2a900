# File: fragplan/core/assembly/completion_estimator.py
# Version: v0.1.0
"""
Minimum number of pieces from each node to the end of the search window.

For every node (sorted by start) this is the fewest building fragments,
real plus synthetic, needed to get from it to a "sink" just past
2 x target length. Nodes that cannot possibly fit in an assembly within
the fragment budget are pruned before the combinatorial search.

The memo table is indexed by node position and filled iteratively from the
last node back to the first, so it is complete before anyone reads it and
can be shared read-only afterwards.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from fragplan.core.assembly.junction_cost import synthesis_piece_count
from fragplan.core.models.node import Node

log = logging.getLogger(__name__)

SINK_ID = "__sink__"


class CompletionEstimator:
    def __init__(self, nodes: Iterable[Node], target_length: int, max_synth_length: int):
        if target_length <= 0:
            raise ValueError(f"target length must be positive, got {target_length}")
        self.nodes: List[Node] = sorted(nodes, key=lambda n: n.start)
        self.target_length = target_length
        self.max_synth_length = max_synth_length
        self.last_bp = 2 * target_length

        self.sink = Node(
            id=SINK_ID,
            sequence="",
            unique_id=SINK_ID,
            start=self.last_bp + 1,
            end=self.last_bp + 1,
        )
        self._position: Dict[Node, int] = {n: i for i, n in enumerate(self.nodes)}
        self._table: Optional[List[int]] = None

        # number of per-node evaluations performed while filling the table
        self.evaluations = 0

    def table(self) -> List[int]:
        """Per-position minimum piece counts (sink excluded)."""
        if self._table is None:
            self._table = self._fill()
        return self._table

    def min_pieces(self, node: Node) -> int:
        return self.table()[self._position[node]]

    def as_mapping(self) -> Dict[Node, int]:
        table = self.table()
        return {n: table[i] for i, n in enumerate(self.nodes)}

    def _fill(self) -> List[int]:
        ordered = self.nodes + [self.sink]
        dists = [0] * len(ordered)

        for i in range(len(ordered) - 1, -1, -1):
            self.evaluations += 1
            node = ordered[i]
            if node.end >= self.last_bp:
                dists[i] = 1
                continue

            best = None
            for j in range(i + 1, len(ordered)):
                cand = 1 + synthesis_piece_count(node, ordered[j], self.max_synth_length) + dists[j]
                if best is None or cand < best:
                    best = cand
            dists[i] = best

        return dists[:-1]


def distance_to_end(nodes: Iterable[Node], target_length: int, max_synth_length: int) -> Dict[Node, int]:
    """Map each node to the minimum number of pieces needed to reach the end."""
    return CompletionEstimator(nodes, target_length, max_synth_length).as_mapping()


def prune_nodes(estimator: CompletionEstimator, max_count: int) -> List[Node]:
    """
    Keep nodes whose minimum piece count fits the fragment budget. Nodes
    starting after the first bp of the search window get one piece less.
    """
    table = estimator.table()
    first_bp = estimator.target_length

    kept: List[Node] = []
    for node, dist in zip(estimator.nodes, table):
        if node.start < first_bp:
            if dist <= max_count:
                kept.append(node)
        elif dist + 1 <= max_count:
            kept.append(node)

    log.info("Pruned %d of %d node(s) beyond a %d-fragment budget",
             len(estimator.nodes) - len(kept), len(estimator.nodes), max_count)
    return kept
