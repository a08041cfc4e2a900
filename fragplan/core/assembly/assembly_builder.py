# File: fragplan/core/assembly/assembly_builder.py
# Version: v0.1.0
"""
Path-construction search for complete circular assemblies.

Assemblies grow from the downstream end. A partial assembly whose head is
node `h` is extended with every node `p` that can reach `h` (see
`junction_cost.reach`): `p` is prepended, the junction `p -> h` is charged
and its synthetic pieces counted. The assembly is complete when `p` has the
same unique id as the assembly's last node, i.e. the path has wrapped once
around the circular target. Any extension that would exceed the fragment
budget is rejected.

Rounds of extension are independent per partial assembly, so each round is
fanned out over a bounded thread pool. Rotations of the same circle are
collapsed to one assembly.

The reach scan stops at the first node that is neither overlap- nor
synthesis-reachable; this is a heuristic, not a guaranteed-optimal search.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from fragplan.config.config_assembly import AssemblyConfig
from fragplan.core.assembly.assembly import Assembly, single
from fragplan.core.assembly.junction_cost import junction_cost, reach, synthesis_piece_count
from fragplan.core.errors import NoFeasibleAssemblyError, PartialState
from fragplan.core.models.node import Node

Expansion = Tuple[List[Assembly], List[Assembly]]


class AssemblyBuilder:
    def __init__(
        self,
        nodes: Iterable[Node],
        target_length: int,
        config: AssemblyConfig,
        workers: int = 1,
        chunk_size: int = 64,
        logger: Optional[logging.Logger] = None,
    ):
        self.nodes: List[Node] = sorted(nodes, key=lambda n: n.start)
        self.target_length = target_length
        self.cfg = config
        self.max_count = config.fragments.max_count
        self.min_homology = config.fragments.min_homology
        self.max_synth_length = config.synthesis.max_length
        self.workers = max(1, int(workers))
        self.chunk_size = max(1, int(chunk_size))
        self.log = logger or logging.getLogger(__name__)

        # forward reach per node, then inverted: who can be prepended to whom
        synth_budget = max(0, self.max_count - 1)
        self._reach: List[List[int]] = [
            reach(self.nodes, i, self.min_homology, synth_budget) for i in range(len(self.nodes))
        ]
        self._preds: List[List[int]] = [[] for _ in self.nodes]
        for i, targets in enumerate(self._reach):
            for j in targets:
                self._preds[j].append(i)

        self.best_partial: Optional[PartialState] = None

    # --------------------- State transitions ---------------------

    def start(self, index: int) -> Assembly:
        return single(index, self.nodes[index])

    def candidates(self, state: Assembly) -> List[int]:
        """Arena indexes of nodes that can be prepended to `state`'s head."""
        return self._preds[state.head]

    def extend(self, state: Assembly, index: int) -> Optional[Assembly]:
        """
        Prepend node `index` to `state`. Returns the new (possibly complete)
        assembly, or None when the extension is invalid.
        """
        cand = self.nodes[index]
        head = self.nodes[state.head]
        last = self.nodes[state.last]

        synths = synthesis_piece_count(cand, head, self.max_synth_length)
        cost = junction_cost(cand, head, self.min_homology, self.cfg.pcr.bp_cost, self.cfg.synth_cost)

        if cand.unique_id == last.unique_id:
            # `cand` is `last` one period upstream: the circle is closed
            if last.start - cand.start != self.target_length:
                return None
            if state.count() + synths > self.max_count:
                return None
            return Assembly(
                nodes=state.nodes,
                cost=state.cost + cost,
                synths=state.synths + synths,
                unique_ids=state.unique_ids,
                complete=True,
            )

        if state.contains(cand):
            return None

        if state.count() + synths + 1 > self.max_count:
            return None

        return Assembly(
            nodes=(index,) + state.nodes,
            cost=state.cost + cost,
            synths=state.synths + synths,
            unique_ids=state.unique_ids | {cand.unique_id},
        )

    def _expand(self, state: Assembly) -> Expansion:
        partial: List[Assembly] = []
        done: List[Assembly] = []
        for index in self.candidates(state):
            new = self.extend(state, index)
            if new is None:
                continue
            if new.complete:
                done.append(new)
            else:
                partial.append(new)
        return partial, done

    def _expand_chunk(self, chunk: Sequence[Assembly]) -> List[Expansion]:
        return [self._expand(s) for s in chunk]

    def _expand_all(self, frontier: List[Assembly]) -> List[Expansion]:
        if self.workers <= 1 or len(frontier) <= self.chunk_size:
            return self._expand_chunk(frontier)
        chunks = [frontier[i : i + self.chunk_size] for i in range(0, len(frontier), self.chunk_size)]
        out: List[Expansion] = []
        with ThreadPoolExecutor(max_workers=self.workers) as exe:
            for res in exe.map(self._expand_chunk, chunks):
                out.extend(res)
        return out

    # --------------------- Public API ---------------------

    def search(self) -> List[Assembly]:
        """
        Every complete assembly within the fragment budget, one per circle,
        ordered cheapest first. Raises NoFeasibleAssemblyError when none.
        """
        first_bp = self.target_length
        frontier = [self.start(i) for i, n in enumerate(self.nodes) if n.start >= first_bp]
        complete: Dict[FrozenSet[str], Assembly] = {}
        self.best_partial = None
        rounds = 0

        while frontier:
            rounds += 1
            self._track_partial(frontier)
            next_frontier: List[Assembly] = []
            for partial, done in self._expand_all(frontier):
                next_frontier.extend(partial)
                for a in done:
                    prev = complete.get(a.unique_ids)
                    if prev is None or rank_key(a) < rank_key(prev):
                        complete[a.unique_ids] = a
            self.log.debug("Search round %d: %d partial, %d complete", rounds, len(next_frontier), len(complete))
            frontier = next_frontier

        if not complete:
            raise NoFeasibleAssemblyError(self.max_count, self.best_partial)

        found = sorted(complete.values(), key=rank_key)
        self.log.info(
            "Found %d complete assembl%s from %d node(s); cheapest $%.2f with %d fragment(s)",
            len(found), "y" if len(found) == 1 else "ies", len(self.nodes), found[0].cost, found[0].count(),
        )
        return found

    def _track_partial(self, frontier: Sequence[Assembly]) -> None:
        for state in frontier:
            covered = self.nodes[state.last].end - self.nodes[state.head].start
            best = self.best_partial
            if (
                best is None
                or covered > best.covered_bp
                or (covered == best.covered_bp and state.cost < best.cost)
            ):
                self.best_partial = PartialState(cost=state.cost, fragment_count=state.count(), covered_bp=covered)


def rank_key(a: Assembly) -> Tuple[float, int]:
    """Lowest cost first, then fewest fragments."""
    return (a.cost, a.count())
