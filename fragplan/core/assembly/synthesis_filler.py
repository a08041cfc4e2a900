# File: fragplan/core/assembly/synthesis_filler.py
# Version: v0.1.0
"""
Synthetic fragments that bridge a gap between two nodes.

Each piece is at least the vendor minimum, covers its share of the gap and
carries `min_homology` bp of homology on both sides. Pieces are cut from the
target (read circularly, so gaps across the origin work) starting
`min_homology` bp before the end of the upstream node; neighbouring pieces
overlap by exactly `min_homology` bp.
"""

from __future__ import annotations

import math
from typing import Callable, List

from fragplan.core.assembly.junction_cost import distance, synthesis_piece_count
from fragplan.core.models.fragment import Fragment, FragmentKind
from fragplan.core.models.node import Node


def circular_slice(seq: str, start: int, end: int) -> str:
    """seq[start:end] on the infinitely repeated circular sequence."""
    L = len(seq)
    if L == 0 or end <= start:
        return ""
    offset = start % L
    reps = (offset + (end - start)) // L + 1
    return (seq * reps)[offset : offset + (end - start)]


def synthesize(
    a: Node,
    b: Node,
    target_seq: str,
    min_homology: int,
    min_synth_length: int,
    max_synth_length: int,
    synth_cost: Callable[[int], float],
) -> List[Fragment]:
    """Synthetic fragments bridging `a` -> `b`; empty when PCR can close the gap."""
    count = synthesis_piece_count(a, b, max_synth_length)
    if count == 0:
        return []

    body = max(min_synth_length, int(math.ceil(distance(a, b) / float(count))))
    piece_len = body + 2 * min_homology
    step = body + min_homology

    frags: List[Fragment] = []
    for k in range(count):
        start = a.end - min_homology + k * step
        seq = circular_slice(target_seq, start, start + piece_len).upper()
        frags.append(
            Fragment(
                id=f"{a.id}-synthetic-{k + 1}",
                sequence=seq,
                source_id="",
                kind=FragmentKind.SYNTHETIC,
                cost=synth_cost(len(seq)) + a.acquisition_cost,
            )
        )
    return frags
