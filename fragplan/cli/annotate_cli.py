# File: fragplan/cli/annotate_cli.py
# Version: v0.1.0

"""
Command-line interface for annotating circular sequences with database
sources.

Every record of the input FASTA is matched against a local BLAST database
(--blast-db, at the --identity threshold) or a pre-computed table
(--matches); the hits become GenBank features written to --out.
"""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from Bio import SeqIO

from fragplan.core.annotate.feature_annotator import FeatureAnnotator, parse_keywords
from fragplan.core.config import Settings
from fragplan.core.errors import PlanError
from fragplan.core.export.genbank_exporter import export_records_to_genbank
from fragplan.core.external.blast import BlastMatcher, TableMatcher

LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Annotate circular sequences with features from a source database")
    p.add_argument("--in", "-i", dest="fasta", required=True, type=Path, help="Input FASTA with one or more sequences")
    p.add_argument("--out", "-o", dest="out", type=Path, help="Output GenBank file (default: <input>.gb)")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--blast-db", dest="blast_db", type=Path, help="BLAST database of features")
    src.add_argument("--matches", type=Path, help="Pre-computed match table (TSV/CSV: source_id,start,end,sequence)")
    p.add_argument("--exclude", "-x", default="", help="Keywords for excluding features (comma or space separated)")
    p.add_argument("--identity", "-t", type=int, default=100, help="Match %%-identity threshold (see 'blastn -help')")
    p.add_argument("--enclosed", "-c", action="store_true", help="Also annotate features enclosed in others")
    # Accept BOTH --log-level and legacy --log (they map to the same dest)
    p.add_argument("--log-level", dest="log_level", default=None, choices=LEVELS,
                   help="Logging level (default: FRAGPLAN_LOG_LEVEL or INFO)")
    p.add_argument("--log", dest="log_level", choices=LEVELS, help=argparse.SUPPRESS)
    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not 0 < args.identity <= 100:
        parser.error(f"--identity must be in 1..100, got {args.identity}")
    settings = Settings()

    level = args.log_level or settings.LOG_LEVEL.upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))
    log = logging.getLogger("annotate_cli")

    out_path = args.out or args.fasta.with_suffix(".gb")
    keywords = parse_keywords(args.exclude)

    # Startup banner
    log.info("=== %s %s annotate ===", settings.APP_NAME, settings.APP_VERSION)
    log.info("IN=%s | OUT=%s | BLAST_DB=%s | MATCHES=%s | IDENTITY=%d | EXCLUDE=%s | ENCLOSED=%s | LOG=%s",
             str(args.fasta), str(out_path),
             str(args.blast_db) if args.blast_db else "None",
             str(args.matches) if args.matches else "None",
             args.identity, ",".join(keywords) or "None", args.enclosed, level)

    if args.blast_db:
        matcher = BlastMatcher(
            args.blast_db, settings.BLASTN,
            timeout=settings.EXTERNAL_TIMEOUT_S, retries=settings.EXTERNAL_RETRIES,
            perc_identity=args.identity,
        )
    else:
        if args.identity != 100:
            log.warning("--identity only applies to BLAST searches; the match table is used as is")
        matcher = TableMatcher(args.matches)

    annotator = FeatureAnnotator(matcher, exclude=keywords, include_enclosed=args.enclosed, logger=log)

    annotated = []
    n_fail = 0
    for rec in SeqIO.parse(str(args.fasta), "fasta"):
        log.info("Processing %s (%d bp)", rec.id, len(rec.seq))
        try:
            out = annotator.annotate(rec)
        except (PlanError, KeyError, ValueError) as e:
            log.error("✗ Failed %s: %s", rec.id, e)
            n_fail += 1
            continue
        log.info("✓ Annotated %s: %d feature(s)", rec.id, len(out.features))
        annotated.append(out)

    if annotated:
        export_records_to_genbank(annotated, out_path)
        log.info("Wrote %d record(s) to %s", len(annotated), out_path)

    log.info("Done: %d annotated, %d failed", len(annotated), n_fail)
    if n_fail > 0:
        raise SystemExit(1)
    raise SystemExit(0)


if __name__ == "__main__":
    main()
