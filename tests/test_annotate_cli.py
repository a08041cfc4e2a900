# File: tests/test_annotate_cli.py
# Version: v0.1.0

"""
Annotate CLI on a pre-computed match table (no BLAST needed).
"""

from __future__ import annotations

import pytest
from Bio import SeqIO

from fragplan.cli.annotate_cli import main

from scenario import random_target


def _inputs(tmp_path):
    target = random_target()
    tripled = target * 3
    fasta = tmp_path / "plasmids.fasta"
    fasta.write_text(f">p1\n{target}\n", encoding="utf-8")
    rows = [("pUC_ori", 1100, 1400), ("lacZ_alpha", 1150, 1250), ("T7_terminator", 1500, 1600), ("AmpR", 1900, 2050)]
    table = tmp_path / "matches.tsv"
    table.write_text(
        "source_id\tstart\tend\tsequence\n"
        + "".join(f"{s}\t{a}\t{b}\t{tripled[a:b]}\n" for s, a, b in rows),
        encoding="utf-8",
    )
    return fasta, table


def test_annotate_writes_genbank(tmp_path):
    fasta, table = _inputs(tmp_path)
    out = tmp_path / "out" / "p1.gb"

    with pytest.raises(SystemExit) as ei:
        main(["-i", str(fasta), "-o", str(out), "--matches", str(table), "-x", "terminator", "--log", "DEBUG"])
    assert ei.value.code == 0

    rec = SeqIO.read(str(out), "genbank")
    assert rec.id == "p1"
    assert rec.annotations["topology"] == "circular"
    assert [f.qualifiers["label"][0] for f in rec.features] == ["pUC_ori", "AmpR"]


def test_annotate_enclosed_and_default_output(tmp_path):
    fasta, table = _inputs(tmp_path)

    with pytest.raises(SystemExit) as ei:
        main(["--in", str(fasta), "--matches", str(table), "--enclosed"])
    assert ei.value.code == 0

    rec = SeqIO.read(str(tmp_path / "plasmids.gb"), "genbank")
    labels = [f.qualifiers["label"][0] for f in rec.features]
    assert labels == ["pUC_ori", "lacZ_alpha", "T7_terminator", "AmpR"]


def test_annotate_bad_identity(tmp_path):
    fasta, table = _inputs(tmp_path)
    with pytest.raises(SystemExit) as ei:
        main(["-i", str(fasta), "--matches", str(table), "-t", "0"])
    assert ei.value.code == 2


def test_annotate_bad_table_fails(tmp_path):
    fasta, _ = _inputs(tmp_path)
    table = tmp_path / "bad.tsv"
    table.write_text("source_id\tstart\nA\t0\n", encoding="utf-8")
    with pytest.raises(SystemExit) as ei:
        main(["-i", str(fasta), "--matches", str(table), "-o", str(tmp_path / "x.gb")])
    assert ei.value.code == 1
    assert not (tmp_path / "x.gb").exists()
