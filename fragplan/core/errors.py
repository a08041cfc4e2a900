# File: fragplan/core/errors.py
# Version: v0.1.0
"""
Failure kinds surfaced by the build planner.

Filtering and cost-model stages are pure and never raise for valid input,
so only search failures and junction / external-tool failures live here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class PlanError(RuntimeError):
    pass


@dataclass(frozen=True)
class PartialState:
    """Closest state reached by a failed search (diagnostics only)."""
    cost: float
    fragment_count: int
    covered_bp: int


class NoUsableMatchesError(PlanError):
    def __init__(self, target_id: str, min_match: int):
        self.target_id = target_id
        self.min_match = min_match
        super().__init__(
            f"[{target_id}] no matches of at least {min_match} bp left after filtering"
        )


class NoFeasibleAssemblyError(PlanError):
    def __init__(self, max_count: int, best_partial: Optional[PartialState] = None, target_id: str = ""):
        self.max_count = max_count
        self.best_partial = best_partial
        self.target_id = target_id
        msg = f"no complete assembly within {max_count} fragments"
        if target_id:
            msg = f"[{target_id}] {msg}"
        if best_partial is not None:
            msg += (
                f"; closest partial: {best_partial.fragment_count} fragment(s), "
                f"{best_partial.covered_bp} bp covered, cost {best_partial.cost:.2f}"
            )
        super().__init__(msg)


class PrimerPenaltyExceededError(PlanError):
    def __init__(self, node_id: str, pair_penalty: float, max_penalty: float):
        self.node_id = node_id
        self.pair_penalty = pair_penalty
        self.max_penalty = max_penalty
        super().__init__(
            f"[{node_id}] primer pair penalty {pair_penalty:.3f} exceeds maximum {max_penalty:.3f}"
        )


class OffTargetMismatchError(PlanError):
    def __init__(self, node_id: str, primer_seq: str, mismatch: Any = None):
        self.node_id = node_id
        self.primer_seq = primer_seq
        self.mismatch = mismatch
        where = ""
        if mismatch is not None:
            where = f" at {getattr(mismatch, 'start', '?')}..{getattr(mismatch, 'end', '?')} ({getattr(mismatch, 'sequence', '')})"
        super().__init__(f"[{node_id}] primer {primer_seq} binds off-target{where}")


class ExternalToolFailure(PlanError):
    def __init__(self, tool: str, node_id: str, cause: str):
        self.tool = tool
        self.node_id = node_id
        self.cause = cause
        super().__init__(f"{tool} failed for {node_id or '-'}: {cause}")
