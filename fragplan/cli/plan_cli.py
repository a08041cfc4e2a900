# File: fragplan/cli/plan_cli.py
# Version: v0.1.0

"""
Command-line interface for circular build planning.

Plans every record of the input FASTA and writes, per record:
  <id>_plan.fasta, <id>_plan.csv, <id>_plan.json (+ <id>_primers.fasta)

Matches come either from a pre-computed table (--matches) or from a local
BLAST database (--blast-db). Off-target primer checks read parent sources
from the BLAST database or from --sources FASTA; without either they are
skipped.
"""

import argparse
import logging
from pathlib import Path
from typing import Callable, List, Optional

from Bio import SeqIO

from fragplan.config.config_assembly import load_assembly_config
from fragplan.core.assembly.build_planner import BuildPlanner
from fragplan.core.config import Settings
from fragplan.core.errors import PlanError
from fragplan.core.export.csv_exporter import export_plan_to_csv
from fragplan.core.export.fasta_exporter import export_plan_to_fasta, export_primers_to_fasta
from fragplan.core.export.json_exporter import export_plan_to_json
from fragplan.core.external.blast import (
    BlastMatcher,
    BlastSourceFetcher,
    FastaSourceFetcher,
    TableMatcher,
)
from fragplan.core.primer.offtarget import MismatchScanner
from fragplan.core.primer.primer_planner import PrimerPlanner

LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Plan the cheapest build of circular DNA targets")
    p.add_argument("--fasta", required=True, type=Path, help="Input FASTA with one or more targets")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--matches", type=Path, help="Pre-computed match table (TSV/CSV: source_id,start,end,sequence)")
    src.add_argument("--blast-db", dest="blast_db", type=Path, help="BLAST database of candidate sources")
    p.add_argument("--sources", type=Path, help="FASTA of source sequences for off-target checks")
    p.add_argument("--config", type=Path, help="assembly.json (default: FRAGPLAN_ASSEMBLY_CONFIG_PATH or bundled)")
    p.add_argument("--outdir", required=True, type=Path, help="Output directory")
    p.add_argument("--workers", type=int, default=None, help="Bounded pool size (default: from settings)")
    p.add_argument("--allow-full-synthesis", dest="allow_full_synthesis", action="store_true",
                   help="Synthesize the whole target when no usable match remains")
    # Accept BOTH --log-level and legacy --log (they map to the same dest)
    p.add_argument("--log-level", dest="log_level", default=None, choices=LEVELS,
                   help="Logging level (default: FRAGPLAN_LOG_LEVEL or INFO)")
    p.add_argument("--log", dest="log_level", choices=LEVELS, help=argparse.SUPPRESS)
    return p


def _source_fetcher(args, settings: Settings) -> Optional[Callable[[str], str]]:
    if args.sources:
        return FastaSourceFetcher(args.sources)
    if args.blast_db:
        return BlastSourceFetcher(
            args.blast_db, settings.BLASTDBCMD,
            timeout=settings.EXTERNAL_TIMEOUT_S, retries=settings.EXTERNAL_RETRIES,
        )
    return None


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = Settings()

    level = args.log_level or settings.LOG_LEVEL.upper()
    logging.basicConfig(level=getattr(logging, level, logging.INFO))
    log = logging.getLogger("plan_cli")

    # Startup banner
    log.info("=== %s %s plan ===", settings.APP_NAME, settings.APP_VERSION)
    log.info("FASTA=%s | MATCHES=%s | BLAST_DB=%s | CONFIG=%s | OUTDIR=%s | LOG=%s",
             str(args.fasta), str(args.matches) if args.matches else "None",
             str(args.blast_db) if args.blast_db else "None",
             str(args.config) if args.config else "None", str(args.outdir), level)

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    cfg = load_assembly_config(args.config or settings.ASSEMBLY_CONFIG_PATH)
    workers = args.workers if args.workers and args.workers > 0 else settings.resolved_workers()

    primer_planner = PrimerPlanner(
        cfg,
        backend=settings.PRIMER3_BACKEND,
        primer3_core=settings.PRIMER3_CORE,
        primer3_config_dir=settings.PRIMER3_CONFIG_DIR,
        timeout=settings.EXTERNAL_TIMEOUT_S,
        retries=settings.EXTERNAL_RETRIES,
    )
    fetcher = _source_fetcher(args, settings)
    scanner = None
    if fetcher is not None:
        scanner = MismatchScanner(
            fetcher,
            window=cfg.pcr.offtarget_window,
            max_mismatches=cfg.pcr.offtarget_max_mismatches,
            max_ectopic_tm=cfg.pcr.max_ectopic_tm,
        )
    else:
        log.warning("No source sequences available; off-target primer checks are skipped")

    planner = BuildPlanner(
        cfg, primer_planner, scanner,
        workers=workers, allow_full_synthesis=args.allow_full_synthesis, logger=log,
    )

    if args.blast_db:
        matcher = BlastMatcher(
            args.blast_db, settings.BLASTN,
            timeout=settings.EXTERNAL_TIMEOUT_S, retries=settings.EXTERNAL_RETRIES,
        )
    else:
        matcher = TableMatcher(args.matches)

    n_ok = 0
    n_fail = 0

    for rec in SeqIO.parse(str(args.fasta), "fasta"):
        target_id = rec.id
        target_seq = str(rec.seq).upper()
        log.info("Processing %s (%d bp)", target_id, len(target_seq))

        try:
            matches = matcher.match(target_id, target_seq)
            plan = planner.plan(target_id, target_seq, matches)

            export_plan_to_fasta(plan, outdir / f"{target_id}_plan.fasta")
            export_plan_to_csv(plan, outdir / f"{target_id}_plan.csv")
            export_plan_to_json(plan, outdir / f"{target_id}_plan.json")
            export_primers_to_fasta(plan, outdir / f"{target_id}_primers.fasta")

            log.info("✓ Completed %s: %d fragment(s), $%.2f", target_id, plan.fragment_count, plan.cost)
            n_ok += 1
        except (PlanError, KeyError, ValueError) as e:
            # bad match-table rows fail this record only
            log.error("✗ Failed %s: %s", target_id, e)
            n_fail += 1

    log.info("Done: %d planned, %d failed", n_ok, n_fail)
    if n_fail > 0:
        raise SystemExit(1)
    raise SystemExit(0)


if __name__ == "__main__":
    main()
