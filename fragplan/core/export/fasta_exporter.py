# File: fragplan/core/export/fasta_exporter.py
# Version: v0.1.0

"""
FASTA export for build plans: one record per fragment, plus primers.
"""

from pathlib import Path
from typing import List

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from fragplan.core.assembly.build_planner import BuildPlan


def _fragment_records(plan: BuildPlan) -> List[SeqRecord]:
    records: List[SeqRecord] = []
    for i, frag in enumerate(plan.fragments, start=1):
        rid = f"{plan.target_id}_{i}_{frag.id}"
        desc = f"kind={frag.kind.value} length={frag.length} cost={frag.cost:.2f}"
        records.append(SeqRecord(Seq(frag.sequence), id=rid, description=desc))
    return records


def export_plan_to_fasta(plan: BuildPlan, fasta_path: Path) -> None:
    """
    Write every fragment of the plan as a FASTA record.
    ID: <target_id>_<order>_<fragment_id>
    """
    SeqIO.write(_fragment_records(plan), str(fasta_path), "fasta")


def export_primers_to_fasta(plan: BuildPlan, fasta_path: Path) -> int:
    """
    Export only the PCR primers (5'->3', as ordered). Returns the record count.
    ID: <fragment_id>_<F|R>
    """
    records: List[SeqRecord] = []
    for frag in plan.fragments:
        for primer in frag.primers:
            tag = "F" if primer.strand else "R"
            desc = f"tm={primer.tm:.1f} gc={primer.gc:.1f} penalty={primer.penalty:.3f}"
            records.append(SeqRecord(Seq(primer.seq), id=f"{frag.id}_{tag}", description=desc))
    if records:
        SeqIO.write(records, str(fasta_path), "fasta")
    return len(records)
