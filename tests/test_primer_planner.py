# File: tests/test_primer_planner.py
# Version: v0.1.0
"""
Unit tests for the primer3 boundary:
- homology shared across a PCR junction
- primer3 settings (sizes widened by tails, capped; included region)
- Boulder-IO parsing and result parsing
- pair-penalty enforcement (primer3 replaced by a canned result)
- bindings calls run in a child process and are killed after the timeout
"""

from __future__ import annotations

import time

import pytest

from fragplan.core.errors import ExternalToolFailure, PrimerPenaltyExceededError
from fragplan.core.models.node import Node
from fragplan.core.primer.primer_planner import PrimerPlanner, parse_boulder, to_boulder

from scenario import random_target, scenario_config


def node(nid: str, start: int, end: int) -> Node:
    return Node(id=nid, sequence="", unique_id=f"{start % 1000}{nid}", start=start, end=end)


class CannedPrimerPlanner(PrimerPlanner):
    """primer3 replaced by a fixed result map."""

    def __init__(self, config, results):
        super().__init__(config)
        self.results = results
        self.seen = []

    def run(self, settings, node_id):
        self.seen.append(settings)
        return dict(self.results)


def _results(left_pos: int, right_pos: int, pair_penalty: float = 1.5):
    return {
        "PRIMER_LEFT_0_SEQUENCE": "acgtacgtacgtacgtacgt",
        "PRIMER_RIGHT_0_SEQUENCE": "TTTTCCCCGGGGAAAATTTT",
        "PRIMER_LEFT_0": (left_pos, 20),
        "PRIMER_RIGHT_0": (right_pos, 20),
        "PRIMER_LEFT_0_TM": 60.1,
        "PRIMER_RIGHT_0_TM": "59.8",
        "PRIMER_LEFT_0_GC_PERCENT": 50.0,
        "PRIMER_RIGHT_0_GC_PERCENT": 50.0,
        "PRIMER_LEFT_0_PENALTY": 0.4,
        "PRIMER_RIGHT_0_PENALTY": 0.6,
        "PRIMER_PAIR_0_PENALTY": pair_penalty,
    }


def test_bp_to_share():
    planner = PrimerPlanner(scenario_config())
    left = node("l", 0, 100)
    assert planner.bp_to_share(left, node("r", 102, 200)) == 2 + 10
    assert planner.bp_to_share(left, node("r", 50, 200)) == 0      # ample overlap
    assert planner.bp_to_share(left, node("r", 90, 200)) == 0      # -10 + 10
    assert planner.bp_to_share(left, node("r", 600, 900)) == 0     # bridged by synthesis


def test_settings_widen_sizes_and_cap():
    target = random_target()
    planner = PrimerPlanner(scenario_config())
    s = planner.settings_for(node("c", 666, 998), node("a", 1000, 1331), node("b", 1333, 1664), target)

    # 12 bp tail + 2, capped at 36 - 23
    assert (s["PRIMER_MIN_SIZE"], s["PRIMER_OPT_SIZE"], s["PRIMER_MAX_SIZE"]) == (31, 33, 36)
    assert s["SEQUENCE_INCLUDED_REGION"] == "1988,355"
    assert s["PRIMER_PRODUCT_SIZE_RANGE"] == "345-365"
    assert s["SEQUENCE_TEMPLATE"] == target * 3
    assert s["PRIMER_TASK"] == "pick_cloning_primers"
    assert s["SEQUENCE_ID"] == "a"


def test_settings_without_tails():
    target = random_target()
    planner = PrimerPlanner(scenario_config())
    s = planner.settings_for(node("c", 900, 1050), node("a", 1000, 1331), node("b", 1300, 1700), target)
    assert (s["PRIMER_MIN_SIZE"], s["PRIMER_OPT_SIZE"], s["PRIMER_MAX_SIZE"]) == (18, 20, 23)
    assert s["SEQUENCE_INCLUDED_REGION"] == "1000,331"


def test_boulder_round_trip_of_settings():
    text = to_boulder({"SEQUENCE_ID": "a", "PRIMER_TASK": "pick_cloning_primers"})
    assert text.endswith("\n=\n")
    assert parse_boulder(text + "PRIMER_LEFT_0=10,20\n") == {
        "SEQUENCE_ID": "a",
        "PRIMER_TASK": "pick_cloning_primers",
        "PRIMER_LEFT_0": "10,20",
    }


def test_parse_results():
    template = random_target(300)
    design = PrimerPlanner.parse(_results(10, 59), template, "a")
    assert design.forward.seq == "ACGTACGTACGTACGTACGT"
    assert design.forward.strand is True
    assert design.reverse.strand is False
    assert design.reverse.tm == pytest.approx(59.8)
    assert design.forward.pair_penalty == pytest.approx(1.5)
    assert design.product == template[10:60]


def test_parse_boulder_positions():
    template = random_target(300)
    res = {k: str(v) if not isinstance(v, tuple) else f"{v[0]},{v[1]}" for k, v in _results(5, 100).items()}
    design = PrimerPlanner.parse(res, template, "a")
    assert design.product == template[5:101]


def test_parse_failures():
    with pytest.raises(ExternalToolFailure):
        PrimerPlanner.parse({"PRIMER_ERROR": "SEQUENCE_INCLUDED_REGION too long"}, "ACGT", "a")
    missing = _results(10, 59)
    del missing["PRIMER_RIGHT_0_SEQUENCE"]
    with pytest.raises(ExternalToolFailure) as ei:
        PrimerPlanner.parse(missing, "A" * 100, "a")
    assert ei.value.tool == "primer3"
    assert ei.value.node_id == "a"


def test_design_enforces_pair_penalty():
    target = random_target()
    args = (node("c", 666, 998), node("a", 1000, 1331), node("b", 1333, 1664), target)

    ok = CannedPrimerPlanner(scenario_config(), _results(1990, 2340, pair_penalty=2.0))
    design = ok.design(*args)
    assert design.product == (target * 3)[1990:2341]
    assert len(ok.seen) == 1

    bad = CannedPrimerPlanner(scenario_config(), _results(1990, 2340, pair_penalty=99.0))
    with pytest.raises(PrimerPenaltyExceededError) as ei:
        bad.design(*args)
    assert ei.value.node_id == "a"
    assert ei.value.max_penalty == 30.0


def test_unknown_backend():
    with pytest.raises(ValueError):
        PrimerPlanner(scenario_config(), backend="web")


def test_parse_computes_missing_gc():
    template = random_target(300)
    res = _results(10, 59)
    del res["PRIMER_LEFT_0_GC_PERCENT"]
    design = PrimerPlanner.parse(res, template, "a")
    assert design.forward.gc == pytest.approx(50.0)     # ACGT x 5
    res["PRIMER_RIGHT_0_SEQUENCE"] = "GGGGCCCCGGGGAAAATTTT"
    del res["PRIMER_RIGHT_0_GC_PERCENT"]
    assert PrimerPlanner.parse(res, template, "a").reverse.gc == pytest.approx(60.0)


# module-level so a spawned child can unpickle them

def _slow_design(seq_args, global_args):
    time.sleep(30)
    return {}


def _canned_design(seq_args, global_args):
    region = seq_args["SEQUENCE_INCLUDED_REGION"]
    return _results(region[0], region[0] + region[1] - 1)


class SlowBindingsPlanner(PrimerPlanner):
    design_fn = staticmethod(_slow_design)


class CannedBindingsPlanner(PrimerPlanner):
    design_fn = staticmethod(_canned_design)


def test_bindings_call_is_killed_after_timeout():
    target = random_target()
    planner = SlowBindingsPlanner(scenario_config(), timeout=0.5, retries=0)
    started = time.monotonic()
    with pytest.raises(ExternalToolFailure) as ei:
        planner.design(node("c", 666, 998), node("a", 1000, 1331), node("b", 1333, 1664), target)
    assert time.monotonic() - started < 20
    assert ei.value.tool == "primer3"
    assert ei.value.node_id == "a"
    assert "timed out" in ei.value.cause


def test_bindings_result_comes_back_from_child():
    target = random_target()
    args = (node("c", 666, 998), node("a", 1000, 1331), node("b", 1333, 1664), target)
    in_child = CannedBindingsPlanner(scenario_config(), timeout=60.0).design(*args)
    in_process = CannedBindingsPlanner(scenario_config(), timeout=None).design(*args)
    assert in_child == in_process
    assert in_child.forward.seq == "ACGTACGTACGTACGTACGT"
