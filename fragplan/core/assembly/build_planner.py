# File: fragplan/core/assembly/build_planner.py
# Version: v0.1.0
"""
Build planner: from raw matches to one ordered list of fragments.

Stages (each one a pure function of the previous stage's output):
  filter_matches -> build_nodes -> CompletionEstimator/prune_nodes
  -> AssemblyBuilder.search -> per-node primers + mismatch scan + synthesis

Candidate assemblies are tried cheapest first. An assembly whose primers
exceed the pair-penalty limit or bind off-target is abandoned and the next
one is tried; external tool failures are surfaced immediately.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from fragplan.config.config_assembly import AssemblyConfig
from fragplan.core.assembly.assembly import Assembly
from fragplan.core.assembly.assembly_builder import AssemblyBuilder, rank_key
from fragplan.core.assembly.completion_estimator import CompletionEstimator, prune_nodes
from fragplan.core.assembly.match_filter import filter_matches
from fragplan.core.assembly.synthesis_filler import circular_slice, synthesize
from fragplan.core.errors import (
    NoFeasibleAssemblyError,
    NoUsableMatchesError,
    OffTargetMismatchError,
    PrimerPenaltyExceededError,
)
from fragplan.core.models.fragment import Fragment, FragmentKind
from fragplan.core.models.match import Match
from fragplan.core.models.node import Node, build_nodes, source_cost_lookup
from fragplan.core.primer.offtarget import MismatchScanner
from fragplan.core.primer.primer_planner import PrimerPlanner


@dataclass(frozen=True)
class BuildPlan:
    target_id: str
    target_seq: str
    fragments: Tuple[Fragment, ...]
    assembly: Optional[Assembly] = None
    nodes: Tuple[Node, ...] = ()

    @property
    def cost(self) -> float:
        return sum(f.cost for f in self.fragments)

    @property
    def fragment_count(self) -> int:
        return len(self.fragments)


def _shift(node: Node, delta: int) -> Node:
    return replace(node, start=node.start + delta, end=node.end + delta)


def _align(node: Node, ref: Node, L: int, upstream: bool) -> Node:
    """
    Copy of `node` moved by whole periods so it sits within one period
    upstream of `ref` (start in [ref.start - L, ref.start)) or downstream
    (start in (ref.start, ref.start + L]).
    """
    if upstream:
        periods = math.floor((ref.start - 1 - node.start) / float(L))
    else:
        periods = math.ceil((ref.start + 1 - node.start) / float(L))
    return _shift(node, int(periods) * L) if periods else node


class BuildPlanner:
    def __init__(
        self,
        config: AssemblyConfig,
        primer_planner: PrimerPlanner,
        mismatch_scanner: Optional[MismatchScanner] = None,
        workers: int = 1,
        allow_full_synthesis: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.cfg = config
        self.primer_planner = primer_planner
        self.mismatch_scanner = mismatch_scanner
        self.workers = max(1, int(workers))
        self.allow_full_synthesis = allow_full_synthesis
        self.log = logger or logging.getLogger(__name__)

    # --------------------- Public API ---------------------

    def candidates(self, target_id: str, target_seq: str, matches: Sequence[Match]) -> Tuple[List[Node], List[Assembly]]:
        """Search stages only: node arena and complete assemblies, cheapest first."""
        L = len(target_seq)
        frags = self.cfg.fragments

        filtered = filter_matches(matches, frags.min_match)
        self.log.info("[%s] %d of %d match(es) kept after filtering", target_id, len(filtered), len(matches))
        if not filtered:
            raise NoUsableMatchesError(target_id, frags.min_match)

        nodes = build_nodes(filtered, L, source_cost_lookup(self.cfg.sources))

        estimator = CompletionEstimator(nodes, L, self.cfg.synthesis.max_length)
        estimator.table()  # complete before the search reads it
        kept = prune_nodes(estimator, frags.max_count)

        builder = AssemblyBuilder(kept, L, self.cfg, workers=self.workers, logger=self.log)
        try:
            assemblies = builder.search()
        except NoFeasibleAssemblyError as err:
            raise NoFeasibleAssemblyError(err.max_count, err.best_partial, target_id) from None
        return builder.nodes, assemblies

    def plan(self, target_id: str, target_seq: str, matches: Sequence[Match]) -> BuildPlan:
        target_seq = target_seq.upper()
        try:
            arena, assemblies = self.candidates(target_id, target_seq, matches)
        except NoUsableMatchesError:
            if not self.allow_full_synthesis:
                raise
            self.log.warning("[%s] no usable matches; planning the whole target by synthesis", target_id)
            return self.full_synthesis(target_id, target_seq)

        ranked = sorted(assemblies, key=rank_key)
        last_err: Optional[Exception] = None
        for rank, assembly in enumerate(ranked, start=1):
            try:
                plan = self.materialize(target_id, target_seq, arena, assembly)
            except (PrimerPenaltyExceededError, OffTargetMismatchError) as err:
                self.log.warning("[%s] assembly %d/%d rejected: %s", target_id, rank, len(assemblies), err)
                last_err = err
                continue
            self.log.info(
                "[%s] plan: %d fragment(s), $%.2f (assembly %d/%d)",
                target_id, plan.fragment_count, plan.cost, rank, len(assemblies),
            )
            return plan

        assert last_err is not None
        raise last_err

    # --------------------- Materialization ---------------------

    def ring(self, arena: Sequence[Node], assembly: Assembly, target_length: int) -> List[Node]:
        """Nodes of the circle in build order, starting nearest the origin."""
        nodes = assembly.resolve(arena)
        first = min(range(len(nodes)), key=lambda i: (nodes[i].start % target_length, i))
        return nodes[first:] + nodes[:first]

    def materialize(self, target_id: str, target_seq: str, arena: Sequence[Node], assembly: Assembly) -> BuildPlan:
        L = len(target_seq)
        ring = self.ring(arena, assembly, L)
        k = len(ring)

        def neighbours(i: int) -> Tuple[Node, Node]:
            node = ring[i]
            return (
                _align(ring[i - 1], node, L, upstream=True),
                _align(ring[(i + 1) % k], node, L, upstream=False),
            )

        def build(i: int) -> List[Fragment]:
            node = ring[i]
            last, nxt = neighbours(i)
            out = [self._node_fragment(node, last, nxt, target_seq, L)]
            out.extend(
                synthesize(
                    node, nxt, target_seq,
                    self.cfg.fragments.min_homology,
                    self.cfg.synthesis.min_length,
                    self.cfg.synthesis.max_length,
                    self.cfg.synth_cost,
                )
            )
            return out

        with ThreadPoolExecutor(max_workers=min(self.workers, k)) as exe:
            per_node = list(exe.map(build, range(k)))

        fragments = tuple(f for group in per_node for f in group)
        return BuildPlan(target_id, target_seq, fragments, assembly, tuple(ring))

    def _node_fragment(self, node: Node, last: Node, nxt: Node, target_seq: str, L: int) -> Fragment:
        if node.length >= L:
            # the whole target already exists in this source
            return replace(node.fragment(), kind=FragmentKind.EXISTING)

        design = self.primer_planner.design(last, node, nxt, target_seq)
        if self.mismatch_scanner is not None:
            for primer in (design.forward, design.reverse):
                result = self.mismatch_scanner.scan(primer.seq, node.id)
                if result.has_mismatch:
                    raise OffTargetMismatchError(node.id, primer.seq, result.mismatch)

        primer_bp = len(design.forward.seq) + len(design.reverse.seq)
        return Fragment(
            id=node.id,
            sequence=design.product,
            source_id=node.id,
            kind=FragmentKind.PCR,
            cost=primer_bp * self.cfg.pcr.bp_cost + node.acquisition_cost,
            primers=(design.forward, design.reverse),
        )

    def full_synthesis(self, target_id: str, target_seq: str) -> BuildPlan:
        """Split the whole circular target into overlapping synthetic pieces."""
        L = len(target_seq)
        syn = self.cfg.synthesis
        h = self.cfg.fragments.min_homology

        count = int(math.ceil(L / float(syn.max_length)))
        if count > self.cfg.fragments.max_count:
            raise NoFeasibleAssemblyError(self.cfg.fragments.max_count, None, target_id)

        step = int(math.ceil(L / float(count)))
        piece_len = max(syn.min_length, step + h)
        fragments = []
        for k in range(count):
            seq = circular_slice(target_seq, k * step, k * step + piece_len)
            fragments.append(
                Fragment(
                    id=f"{target_id}-synthetic-{k + 1}",
                    sequence=seq,
                    source_id="",
                    kind=FragmentKind.SYNTHETIC,
                    cost=self.cfg.synth_cost(len(seq)),
                )
            )
        return BuildPlan(target_id, target_seq, tuple(fragments))
