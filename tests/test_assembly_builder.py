# File: tests/test_assembly_builder.py
# Version: v0.1.0

"""
Path-construction search over the tiled three-source target.

Checks:
- The PCR-only circle A-B-C is found once, with three junction costs.
- Every result honours the fragment budget and closes the circle.
- Threaded expansion returns the same assemblies as the serial one.
- A hopeless node set raises NoFeasibleAssemblyError with a partial state.
"""

from __future__ import annotations

import math
from dataclasses import replace

import pytest

from fragplan.core.assembly.assembly_builder import AssemblyBuilder, rank_key
from fragplan.core.assembly.completion_estimator import CompletionEstimator, prune_nodes
from fragplan.core.assembly.junction_cost import synthesis_piece_count
from fragplan.core.errors import NoFeasibleAssemblyError
from fragplan.core.models.node import Node

from scenario import TARGET_LENGTH, random_target, scenario_config, tiled_nodes


def _builder(workers: int = 1, chunk_size: int = 64, max_count: int = 6, prune: bool = True) -> AssemblyBuilder:
    cfg = scenario_config(max_count=max_count)
    target = random_target()
    nodes = tiled_nodes(target)
    if prune:
        est = CompletionEstimator(nodes, len(target), cfg.synthesis.max_length)
        nodes = prune_nodes(est, cfg.fragments.max_count)
    return AssemblyBuilder(nodes, len(target), cfg, workers=workers, chunk_size=chunk_size)


def _index(builder: AssemblyBuilder, sid: str, start: int) -> int:
    for i, n in enumerate(builder.nodes):
        if n.id == sid and n.start == start:
            return i
    raise KeyError((sid, start))


def test_pcr_only_circle_is_cheapest():
    builder = _builder()
    found = builder.search()
    best = min(found, key=rank_key)
    assert best is found[0]

    assert best.complete
    assert len(best.nodes) == 3
    assert best.synths == 0
    assert math.isclose(best.cost, 3 * (40 + 20) * 0.6)
    assert {n.id for n in best.resolve(builder.nodes)} == {"A", "B", "C"}

    pcr_only = [a for a in found if a.synths == 0]
    assert len(pcr_only) == 1


def test_budget_and_circular_coverage():
    builder = _builder()
    L = TARGET_LENGTH
    max_synth = builder.max_synth_length
    for a in builder.search():
        assert a.count() <= builder.max_count
        nodes = a.resolve(builder.nodes)
        closing = replace(nodes[-1], start=nodes[-1].start - L, end=nodes[-1].end - L)
        chain = [closing] + nodes
        pieces = sum(synthesis_piece_count(x, y, max_synth) for x, y in zip(chain, chain[1:]))
        assert pieces == a.synths


def test_one_assembly_per_circle():
    found = _builder().search()
    keys = [a.unique_ids for a in found]
    assert len(keys) == len(set(keys))


def test_threaded_search_matches_serial():
    serial = _builder().search()
    threaded = _builder(workers=4, chunk_size=1).search()
    key = lambda a: (round(a.cost, 6), a.synths, a.unique_ids)
    assert {key(a) for a in serial} == {key(a) for a in threaded}


def test_extend_rejects_repeated_unique_id():
    builder = _builder()
    c2 = _index(builder, "C", 2666)
    b2 = _index(builder, "B", 2333)
    b1 = _index(builder, "B", 1333)
    c1 = _index(builder, "C", 1666)

    state = builder.extend(builder.start(c2), b2)
    assert state is not None and not state.complete
    assert state.contains(builder.nodes[b1])
    assert builder.extend(state, b1) is None

    # the same source one period upstream closes the circle
    closed = builder.extend(builder.start(c2), c1)
    assert closed is not None and closed.complete
    assert closed.synths == 2
    assert closed.nodes == (c2,)

    # two periods upstream would wrap the target twice
    a1 = _index(builder, "A", 1000)
    c0 = _index(builder, "C", 666)
    long_way = builder.extend(builder.start(c2), a1)
    assert long_way is not None and long_way.synths == 3
    assert builder.extend(long_way, c0) is None


def test_extension_over_budget_rejected():
    builder = _builder(max_count=2, prune=False)
    c2 = _index(builder, "C", 2666)
    a2 = _index(builder, "A", 2000)
    # A2 -> C2 needs one synthetic piece: 1 + 1 + 1 > 2
    assert builder.extend(builder.start(c2), a2) is None


def test_no_feasible_assembly():
    cfg = scenario_config(max_count=2)
    nodes = [
        Node(id="A", sequence="A" * 100, unique_id="0A", start=k * 1000, end=k * 1000 + 100)
        for k in range(3)
    ]
    builder = AssemblyBuilder(nodes, 1000, cfg)
    with pytest.raises(NoFeasibleAssemblyError) as ei:
        builder.search()
    err = ei.value
    assert err.max_count == 2
    assert err.best_partial is not None
    assert err.best_partial.fragment_count == 1
    assert err.best_partial.covered_bp == 100
