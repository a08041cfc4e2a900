# File: fragplan/core/export/csv_exporter.py
# Version: v0.1.0
"""
CSV export: one row per fragment, in assembly order.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, List

from fragplan.core.assembly.build_planner import BuildPlan
from fragplan.core.models.fragment import Fragment

CSV_HEADERS = [
    "target_id",
    "fragment_id",
    "kind",
    "source_id",
    "length",
    "cost",
    "primer_fwd",
    "primer_rev",
    "sequence",
]


def _row(frag: Fragment, target_id: str) -> Dict[str, str]:
    fwd = frag.primer(forward=True)
    rev = frag.primer(forward=False)
    return {
        "target_id": str(target_id),
        "fragment_id": frag.id,
        "kind": frag.kind.value,
        "source_id": frag.source_id,
        "length": str(frag.length),
        "cost": f"{frag.cost:.2f}",
        "primer_fwd": fwd.seq if fwd else "",
        "primer_rev": rev.seq if rev else "",
        "sequence": frag.sequence,
    }


def export_plan_to_csv(plan: BuildPlan, csv_path: Path) -> Path:
    rows: List[Dict[str, str]] = [_row(f, plan.target_id) for f in plan.fragments]
    with Path(csv_path).open("w", newline="", encoding="utf-8") as fh:
        w = csv.DictWriter(fh, fieldnames=CSV_HEADERS)
        w.writeheader()
        w.writerows(rows)
    return Path(csv_path)
