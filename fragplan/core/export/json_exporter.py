# File: fragplan/core/export/json_exporter.py
# Version: v0.1.0

"""
Export a build plan to a clean JSON file.
"""

import json
from pathlib import Path
from typing import Any, Dict

from fragplan.core.assembly.build_planner import BuildPlan
from fragplan.core.models.fragment import Fragment, Primer


def _primer(p: Primer) -> Dict[str, Any]:
    return {
        "seq":          p.seq,
        "strand":       "+" if p.strand else "-",
        "tm":           round(p.tm, 3),
        "gc":           round(p.gc, 3),
        "penalty":      round(p.penalty, 4),
        "pair_penalty": round(p.pair_penalty, 4),
    }


def _fragment(f: Fragment) -> Dict[str, Any]:
    return {
        "id":        f.id,
        "kind":      f.kind.value,
        "source_id": f.source_id,
        "length":    f.length,
        "cost":      round(f.cost, 4),
        "sequence":  f.sequence,
        "primers":   [_primer(p) for p in f.primers],
    }


def plan_to_dict(plan: BuildPlan) -> Dict[str, Any]:
    search: Dict[str, Any] = {}
    if plan.assembly is not None:
        search = {
            "estimated_cost": round(plan.assembly.cost, 4),
            "node_count":     len(plan.assembly.nodes),
            "synthetic_count": plan.assembly.synths,
        }
    return {
        "target_id":     plan.target_id,
        "length":        len(plan.target_seq),
        "cost":          round(plan.cost, 4),
        "fragment_count": plan.fragment_count,
        "search":        search,
        "fragments":     [_fragment(f) for f in plan.fragments],
    }


def export_plan_to_json(plan: BuildPlan, json_path: Path) -> Dict[str, Any]:
    """Write the plan to JSON and return the payload."""
    data = plan_to_dict(plan)
    Path(json_path).write_text(json.dumps(data, indent=2), encoding="utf-8")
    return data
