# File: fragplan/core/assembly/junction_cost.py
# Version: v0.1.0
"""
Cost model for joining two nodes, `a` upstream of `b`.

- Gap of at most PCR_MAX_GAP bp: close it with PCR primer tails (cheap).
  With more than `min_homology` bp of existing overlap the primers are plain
  ~20 bp primers; otherwise each primer carries part of a homology arm.
- Larger gap: synthesize the bridge, split into pieces of at most
  `max_synth_length` bp.

The acquisition cost of `b` is charged on the junction that brings it in.
"""

from __future__ import annotations

import math
from typing import Callable, List, Sequence

from fragplan.core.models.node import Node

# largest gap (bp) closed by PCR tail extension
PCR_MAX_GAP = 5

# two primers of ~20 bp
PRIMER_PAIR_BP = 40


def distance(a: Node, b: Node) -> int:
    """bp between the end of `a` and the start of `b`; negative when they overlap."""
    return b.start - a.end


def synthesis_piece_count(a: Node, b: Node, max_synth_length: int) -> int:
    """Number of synthetic fragments needed to bridge `a` -> `b`."""
    dist = distance(a, b)
    if dist <= PCR_MAX_GAP:
        return 0
    return int(math.ceil(max(1, dist) / float(max_synth_length)))


def junction_cost(
    a: Node,
    b: Node,
    min_homology: int,
    pcr_bp_cost: float,
    synth_cost: Callable[[int], float],
) -> float:
    """$ needed to get from `a` to `b`, by PCR or by synthesis."""
    dist = distance(a, b)

    if dist <= PCR_MAX_GAP:
        if dist < -min_homology:
            # enough existing overlap already
            return PRIMER_PAIR_BP * pcr_bp_cost + b.acquisition_cost
        # primers have to add the homology arms
        return (PRIMER_PAIR_BP + min_homology) * pcr_bp_cost + b.acquisition_cost

    # bridge bp plus homology with both neighbours
    return synth_cost(min_homology + dist) + b.acquisition_cost


def reach(nodes: Sequence[Node], i: int, min_homology: int, synth_budget: int) -> List[int]:
    """
    Indexes of nodes after `nodes[i]` (start-sorted) that it can be joined to:
    every node overlapping it by at least `min_homology`, plus up to
    `synth_budget` nodes that would need synthesis. Scanning stops at the
    first node that is neither.
    """
    n = nodes[i]
    reachable: List[int] = []
    j = i
    while True:
        j += 1
        if j >= len(nodes):
            return reachable

        if distance(n, nodes[j]) <= -min_homology:
            reachable.append(j)
        elif synth_budget > 0:
            synth_budget -= 1
            reachable.append(j)
        else:
            break
    return reachable
