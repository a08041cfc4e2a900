# File: fragplan/core/primer/offtarget.py
# Version: v0.1.0
"""
Ectopic binding scan for primers against their parent source.

Approach:
- Ungapped sliding comparison of the primer's 3' window vs. the source and
  its reverse complement (the source is read circularly).
- Windows with at most `max_mismatches` mismatches are binding sites. The
  best one is the intended site; any other whose Tm reaches
  `max_ectopic_tm` is an off-target that invalidates the primer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from fragplan.core.models.match import Match
from fragplan.core.primer.thermodynamics import revcomp, tm_nearest_neighbor


@dataclass(frozen=True)
class BindingSite:
    strand: str       # '+' or '-'
    pos: int          # start on that strand
    seq: str
    mismatches: int


@dataclass(frozen=True)
class MismatchResult:
    has_mismatch: bool
    mismatch: Optional[Match] = None


def binding_sites(query: str, subject: str, max_mismatches: int, strand: str = "+") -> List[BindingSite]:
    p = query.upper()
    s = subject.upper()
    n = len(p)
    if n == 0 or len(s) < n:
        return []
    out: List[BindingSite] = []
    for start in range(0, len(s) - n + 1):
        window = s[start : start + n]
        mism = 0
        for i in range(n):
            if p[i] != window[i]:
                mism += 1
                if mism > max_mismatches:
                    break
        if mism <= max_mismatches:
            out.append(BindingSite(strand, start, window, mism))
    return out


class MismatchScanner:
    def __init__(
        self,
        fetch_source: Callable[[str], str],
        window: int = 18,
        max_mismatches: int = 1,
        max_ectopic_tm: float = 55.0,
    ):
        self.fetch_source = fetch_source
        self.window = window
        self.max_mismatches = max_mismatches
        self.max_ectopic_tm = max_ectopic_tm

    def scan(self, primer_seq: str, source_id: str) -> MismatchResult:
        subject = self.fetch_source(source_id).upper()
        query = primer_seq.upper()[-self.window:]
        if not subject or not query:
            return MismatchResult(False)

        # wrap around the origin of circular sources
        circular = subject + subject[: len(query) - 1]
        sites = binding_sites(query, circular, self.max_mismatches, "+")
        sites += binding_sites(query, revcomp(circular), self.max_mismatches, "-")
        if len(sites) <= 1:
            return MismatchResult(False)

        sites.sort(key=lambda s: s.mismatches)
        for site in sites[1:]:
            if tm_nearest_neighbor(site.seq) >= self.max_ectopic_tm:
                return MismatchResult(
                    True,
                    Match(source_id=source_id, sequence=site.seq, start=site.pos, end=site.pos + len(site.seq)),
                )
        return MismatchResult(False)
