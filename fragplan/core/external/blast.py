# File: fragplan/core/external/blast.py
# Version: v0.1.0
"""
Sequence matcher and source fetchers backed by BLAST+ (or plain files).

- BlastMatcher: BLAST the tripled target against a database of sources and
  return every hit as a Match (0-based, end-exclusive, on the tripled target).
  No hits is an empty list, not an error.
- read_match_table: load a pre-computed match list (TSV or CSV with columns
  source_id, start, end, sequence) for offline planning.
- TableMatcher: the same table behind the matcher interface.
- BlastSourceFetcher / FastaSourceFetcher: full sequence of a source entry,
  used by the mismatch scanner.
"""

from __future__ import annotations

import csv
import logging
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from Bio import SeqIO

from fragplan.core.errors import ExternalToolFailure
from fragplan.core.external.runner import run_tool
from fragplan.core.models.match import Match

log = logging.getLogger(__name__)

BLAST_OUTFMT = "6 sseqid qstart qend sseq"


def parse_blast_tabular(text: str) -> List[Match]:
    """Parse `-outfmt "6 sseqid qstart qend sseq"` rows into matches."""
    out: List[Match] = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        cols = line.split("\t")
        if len(cols) < 4:
            raise ValueError(f"line {line_no}: expected 4 tab-separated columns, got {len(cols)}")
        source_id, qstart, qend, sseq = cols[0], int(cols[1]), int(cols[2]), cols[3]
        lo, hi = min(qstart, qend), max(qstart, qend)
        out.append(Match(source_id=source_id, sequence=sseq.replace("-", ""), start=lo - 1, end=hi))
    return out


def read_match_table(path: Path | str, target_id: Optional[str] = None) -> List[Match]:
    """
    Rows carrying a `target_id` column are kept only for that target when
    `target_id` is given; tables without the column apply to every target.
    """
    p = Path(path)
    delimiter = "," if p.suffix.lower() == ".csv" else "\t"
    out: List[Match] = []
    with p.open("r", newline="", encoding="utf-8") as fh:
        for row in csv.DictReader(fh, delimiter=delimiter):
            if target_id is not None and row.get("target_id") not in (None, "", target_id):
                continue
            try:
                out.append(
                    Match(
                        source_id=str(row["source_id"]).strip(),
                        sequence=str(row.get("sequence") or "").strip(),
                        start=int(row["start"]),
                        end=int(row["end"]),
                    )
                )
            except KeyError as ke:
                raise KeyError(f"Missing required column in match table {p}: {ke!s}") from None
    return out


class TableMatcher:
    """Matches for each target read from a pre-computed table."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def match(self, target_id: str, target_seq: str) -> List[Match]:
        return read_match_table(self.path, target_id)


class BlastMatcher:
    def __init__(
        self,
        db: Path | str,
        blastn: str = "blastn",
        timeout: Optional[float] = 300.0,
        retries: int = 1,
        perc_identity: int = 100,
    ):
        if not 0 < perc_identity <= 100:
            raise ValueError(f"percent identity must be in (0, 100], got {perc_identity}")
        self.db = str(db)
        self.blastn = blastn
        self.perc_identity = perc_identity
        self.timeout = timeout
        self.retries = retries

    def match(self, target_id: str, target_seq: str) -> List[Match]:
        tripled = target_seq.upper() * 3
        with tempfile.TemporaryDirectory() as tmpdir:
            query = Path(tmpdir) / "query.fa"
            query.write_text(f">{target_id}\n{tripled}\n", encoding="utf-8")
            stdout = run_tool(
                "blastn",
                [
                    self.blastn,
                    "-task", "blastn",
                    "-db", self.db,
                    "-query", str(query),
                    "-outfmt", BLAST_OUTFMT,
                    "-perc_identity", str(self.perc_identity),
                    "-ungapped",
                ],
                node_id=target_id,
                timeout=self.timeout,
                retries=self.retries,
            )
        try:
            matches = parse_blast_tabular(stdout)
        except ValueError as exc:
            raise ExternalToolFailure("blastn", target_id, f"unparseable output: {exc}") from exc
        log.info("BLAST: %d match(es) for %s against %s", len(matches), target_id, self.db)
        return matches


class BlastSourceFetcher:
    def __init__(self, db: Path | str, blastdbcmd: str = "blastdbcmd", timeout: Optional[float] = 60.0, retries: int = 1):
        self.db = str(db)
        self.blastdbcmd = blastdbcmd
        self.timeout = timeout
        self.retries = retries

    def __call__(self, source_id: str) -> str:
        stdout = run_tool(
            "blastdbcmd",
            [self.blastdbcmd, "-db", self.db, "-entry", source_id, "-outfmt", "%s"],
            node_id=source_id,
            timeout=self.timeout,
            retries=self.retries,
        )
        seq = "".join(stdout.split()).upper()
        if not seq:
            raise ExternalToolFailure("blastdbcmd", source_id, "empty sequence returned")
        return seq


class FastaSourceFetcher:
    def __init__(self, fasta_path: Path | str):
        self._seqs: Dict[str, str] = {
            rec.id: str(rec.seq).upper() for rec in SeqIO.parse(str(fasta_path), "fasta")
        }

    def __call__(self, source_id: str) -> str:
        seq = self._seqs.get(source_id)
        if seq is None:
            raise ExternalToolFailure("fasta", source_id, "source not found")
        return seq
