# File: fragplan/core/models/node.py
# Version: v0.1.0

"""
Candidate building pieces derived from filtered matches.

A node keeps the match interval on the tripled target plus a wraparound-safe
identity: `unique_id` = (start mod target length) + source id. The same
physical match seen at two tripled offsets shares a unique id, which is how
the search recognises that an assembly has closed the circle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List

from fragplan.core.models.fragment import Fragment, FragmentKind
from fragplan.core.models.match import Match

CostLookup = Callable[[str], float]


@dataclass(frozen=True)
class Node:
    id:               str     # source id in the database
    sequence:         str
    unique_id:        str     # start % target_length + id
    start:            int     # start on the tripled target
    end:              int     # end on the tripled target (exclusive)
    acquisition_cost: float = 0.0

    @property
    def length(self) -> int:
        return self.end - self.start

    def fragment(self) -> Fragment:
        return Fragment(
            id=self.id,
            sequence=self.sequence,
            source_id=self.id,
            kind=FragmentKind.PCR,
            cost=self.acquisition_cost,
        )


def source_cost_lookup(costs: Dict[str, float]) -> CostLookup:
    """
    Resolve the acquisition cost of a source by keyword. A source whose
    lowercase id contains a keyword (e.g. "addgene") costs that amount;
    anything else is free to amplify.
    """
    table = {str(k).lower(): float(v) for k, v in (costs or {}).items()}

    def lookup(source_id: str) -> float:
        sid = (source_id or "").lower()
        for keyword, cost in table.items():
            if keyword and keyword in sid:
                return cost
        return 0.0

    return lookup


def new_node(match: Match, target_length: int, cost_lookup: CostLookup) -> Node:
    return Node(
        id=match.source_id,
        sequence=match.sequence.upper(),
        unique_id=f"{match.start % target_length}{match.source_id}",
        start=match.start,
        end=match.end,
        acquisition_cost=float(cost_lookup(match.source_id)),
    )


def build_nodes(
    matches: Iterable[Match],
    target_length: int,
    cost_lookup: CostLookup,
) -> List[Node]:
    """Map each match 1:1 onto a node, keeping the input order."""
    if target_length <= 0:
        raise ValueError(f"target length must be positive, got {target_length}")
    return [new_node(m, target_length, cost_lookup) for m in matches]
