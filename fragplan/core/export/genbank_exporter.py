# File: fragplan/core/export/genbank_exporter.py
# Version: v0.1.0
"""
GenBank exporter for annotated circular records.

Biopython refuses to write GenBank without `molecule_type`, so every record
gets molecule_type='DNA' and topology='circular' unless already set.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from Bio import SeqIO
from Bio.SeqRecord import SeqRecord


def export_records_to_genbank(records: Iterable[SeqRecord], out_path: Path | str) -> int:
    """Write `records` to one GenBank file; returns the number written."""
    out = []
    for rec in records:
        rec.annotations.setdefault("molecule_type", "DNA")
        rec.annotations.setdefault("topology", "circular")
        rec.annotations.setdefault("data_file_division", "UNC")
        out.append(rec)

    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    return SeqIO.write(out, str(p), "genbank")
