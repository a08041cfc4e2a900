# File: tests/test_junction_cost.py
# Version: v0.1.0

"""
Junction cost model: PCR vs synthesis threshold, piece counts, pricing and reach.
"""

from __future__ import annotations

import math

from fragplan.config.config_assembly import load_assembly_config
from fragplan.core.assembly.junction_cost import (
    distance,
    junction_cost,
    reach,
    synthesis_piece_count,
)
from fragplan.core.models.node import Node


def node(nid: str, start: int, end: int, cost: float = 0.0) -> Node:
    return Node(id=nid, sequence="A" * (end - start), unique_id=f"{start}{nid}",
                start=start, end=end, acquisition_cost=cost)


def test_distance_sign():
    a = node("a", 0, 100)
    assert distance(a, node("b", 80, 200)) == -20
    assert distance(a, node("c", 110, 200)) == 10


def test_no_synthesis_up_to_five_bp():
    a = node("a", 0, 100)
    for d in range(-60, 6):
        assert synthesis_piece_count(a, node("b", 100 + d, 400 + d), 500) == 0
    assert synthesis_piece_count(a, node("b", 106, 400), 500) == 1


def test_exact_multiples_of_max_synth_length():
    a = node("a", 0, 100)
    for k in range(1, 5):
        b = node("b", 100 + k * 500, 200 + k * 500)
        assert synthesis_piece_count(a, b, 500) == k
        b_plus = node("b", 101 + k * 500, 201 + k * 500)
        assert synthesis_piece_count(a, b_plus, 500) == k + 1


def test_pcr_costs():
    a = node("a", 0, 100)
    synth = lambda n: 1000.0

    # more than min_homology of overlap: plain primers
    assert math.isclose(junction_cost(a, node("b", 70, 300), 20, 0.6, synth), 40 * 0.6)
    # exactly min_homology of overlap still needs homology tails
    assert math.isclose(junction_cost(a, node("b", 80, 300), 20, 0.6, synth), 60 * 0.6)
    # small gap closed by primer tails; incoming node's fee is charged
    assert math.isclose(junction_cost(a, node("b", 105, 300, cost=65.0), 20, 0.6, synth), 60 * 0.6 + 65.0)


def test_synthesis_cost_includes_homology():
    a = node("a", 0, 100)
    b = node("b", 200, 300, cost=5.0)
    assert math.isclose(junction_cost(a, b, 20, 0.6, lambda n: 0.1 * n), 0.1 * 120 + 5.0)


def test_cost_non_decreasing_in_synthesis_regime():
    cfg = load_assembly_config()
    a = node("a", 0, 100)
    prev = None
    for d in range(6, 4000, 13):
        b = node("b", 100 + d, 200 + d)
        c = junction_cost(a, b, cfg.fragments.min_homology, cfg.pcr.bp_cost, cfg.synth_cost)
        if prev is not None:
            assert c >= prev
        prev = c


def test_reach_stops_at_first_miss():
    nodes = [
        node("a", 0, 100),
        node("b", 50, 150),     # overlaps a by 50
        node("c", 75, 250),     # overlaps a by 25
        node("d", 300, 400),    # needs synthesis
        node("e", 500, 600),    # needs synthesis
        node("f", 700, 800),
    ]
    assert reach(nodes, 0, 20, 0) == [1, 2]
    assert reach(nodes, 0, 20, 2) == [1, 2, 3, 4]
    assert reach(nodes, 5, 20, 3) == []
