# File: tests/test_plan_cli.py
# Version: v0.1.0

"""
CLI smoke test (no external tools: whole-target synthesis path).
"""

from __future__ import annotations

import json

import pytest

from fragplan.cli.plan_cli import main

from scenario import random_target


def test_cli_full_synthesis(tmp_path):
    target = random_target()
    fasta = tmp_path / "targets.fasta"
    fasta.write_text(f">t1\n{target}\n", encoding="utf-8")
    matches = tmp_path / "matches.tsv"
    matches.write_text("source_id\tstart\tend\tsequence\nA\t0\t20\t" + target[:20] + "\n", encoding="utf-8")
    outdir = tmp_path / "out"

    with pytest.raises(SystemExit) as ei:
        main([
            "--fasta", str(fasta),
            "--matches", str(matches),
            "--outdir", str(outdir),
            "--allow-full-synthesis",
            "--log-level", "DEBUG",
        ])
    assert ei.value.code == 0

    for suffix in ("_plan.fasta", "_plan.csv", "_plan.json"):
        assert (outdir / f"t1{suffix}").exists()
    data = json.loads((outdir / "t1_plan.json").read_text(encoding="utf-8"))
    # default synthesis max_length (3000 bp) covers the 1000 bp target in one piece
    assert data["fragment_count"] == 1
    assert data["fragments"][0]["kind"] == "Synthetic"
    # no PCR fragments, so no primer file
    assert not (outdir / "t1_primers.fasta").exists()


def test_cli_failure_exit_code(tmp_path):
    fasta = tmp_path / "targets.fasta"
    fasta.write_text(">t1\n" + random_target() + "\n", encoding="utf-8")
    matches = tmp_path / "matches.tsv"
    matches.write_text("source_id\tstart\tend\tsequence\n", encoding="utf-8")

    with pytest.raises(SystemExit) as ei:
        main(["--fasta", str(fasta), "--matches", str(matches), "--outdir", str(tmp_path / "out"), "--log", "ERROR"])
    assert ei.value.code == 1


@pytest.mark.parametrize(
    "table",
    [
        "source_id\tstart\tsequence\nA\t0\tACGT\n",             # no end column
        "source_id\tstart\tend\tsequence\nA\tzero\t20\tACGT\n",  # non-integer start
    ],
)
def test_cli_bad_match_table_fails_record(tmp_path, caplog, table):
    fasta = tmp_path / "targets.fasta"
    fasta.write_text(">t1\n" + random_target() + "\n>t2\n" + random_target(seed=5) + "\n", encoding="utf-8")
    matches = tmp_path / "matches.tsv"
    matches.write_text(table, encoding="utf-8")

    with caplog.at_level("ERROR"):
        with pytest.raises(SystemExit) as ei:
            main(["--fasta", str(fasta), "--matches", str(matches), "--outdir", str(tmp_path / "out")])
    assert ei.value.code == 1
    failed = [r.getMessage() for r in caplog.records if "Failed" in r.getMessage()]
    assert len(failed) == 2
