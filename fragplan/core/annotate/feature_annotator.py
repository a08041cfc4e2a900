# File: fragplan/core/annotate/feature_annotator.py
# Version: v0.1.0
"""
Annotate a circular sequence with the database sources it contains.

Hits come from the same matcher used for planning (a BLAST of the tripled
sequence, or a pre-computed table on the tripled coordinates). Each hit is
folded back onto one period, so a source found in several copies becomes
one feature and a hit across the origin becomes a two-part location.

Filters, in order:
- sources whose id contains an excluded keyword (case-insensitive);
- unless enclosed features are wanted, hits lying inside a larger hit. This
  is the interval sweep that properizes matches for planning, run over three
  copies so that enclosure across the origin is seen too.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from Bio.Seq import Seq
from Bio.SeqFeature import CompoundLocation, FeatureLocation, SeqFeature
from Bio.SeqRecord import SeqRecord

from fragplan.core.assembly.match_filter import filter_matches
from fragplan.core.models.match import Match

FEATURE_TYPE = "misc_feature"


@dataclass(frozen=True)
class Hit:
    source_id: str
    offset: int     # 0-based start on the circular sequence
    length: int


def parse_keywords(raw: Optional[str]) -> List[str]:
    """Comma or whitespace separated keywords, lowercased."""
    if not raw:
        return []
    return [k.lower() for k in raw.replace(",", " ").split() if k]


def fold_matches(matches: Iterable[Match], target_length: int) -> List[Hit]:
    L = target_length
    seen = set()
    hits: List[Hit] = []
    for m in matches:
        length = min(m.length, L)
        if length <= 0:
            continue
        hit = Hit(m.source_id, m.start % L, length)
        if hit not in seen:
            seen.add(hit)
            hits.append(hit)
    hits.sort(key=lambda h: (h.offset, -h.length, h.source_id))
    return hits


def exclude_hits(hits: Sequence[Hit], keywords: Sequence[str]) -> List[Hit]:
    if not keywords:
        return list(hits)
    return [h for h in hits if not any(k in h.source_id.lower() for k in keywords)]


def drop_enclosed(hits: Sequence[Hit], target_length: int) -> List[Hit]:
    L = target_length
    placed = [
        Match(h.source_id, "", h.offset + k * L, h.offset + k * L + h.length)
        for h in hits
        for k in range(3)
    ]
    survivors = {
        (m.source_id, m.start - L, m.length)
        for m in filter_matches(placed, 1)
        if L <= m.start < 2 * L
    }
    return [h for h in hits if (h.source_id, h.offset, h.length) in survivors]


def hit_location(hit: Hit, target_length: int):
    end = hit.offset + hit.length
    if end <= target_length:
        return FeatureLocation(hit.offset, end)
    return CompoundLocation([
        FeatureLocation(hit.offset, target_length),
        FeatureLocation(0, end - target_length),
    ])


class FeatureAnnotator:
    """
    `matcher` is anything with `match(target_id, target_seq) -> List[Match]`
    (BlastMatcher, TableMatcher).
    """

    def __init__(
        self,
        matcher,
        exclude: Sequence[str] = (),
        include_enclosed: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.matcher = matcher
        self.exclude = [k.lower() for k in exclude]
        self.include_enclosed = include_enclosed
        self.log = logger or logging.getLogger(__name__)

    def hits(self, target_id: str, target_seq: str) -> List[Hit]:
        L = len(target_seq)
        if L == 0:
            raise ValueError(f"{target_id}: empty sequence")
        matches = self.matcher.match(target_id, target_seq)
        hits = fold_matches(matches, L)
        kept = exclude_hits(hits, self.exclude)
        n_excluded = len(hits) - len(kept)
        if not self.include_enclosed:
            kept = drop_enclosed(kept, L)
        self.log.info(
            "[%s] %d feature(s) from %d match(es) (%d excluded by keyword, %d enclosed dropped)",
            target_id, len(kept), len(matches), n_excluded, len(hits) - n_excluded - len(kept),
        )
        return kept

    def features(self, target_id: str, target_seq: str) -> List[SeqFeature]:
        L = len(target_seq)
        return [
            SeqFeature(location=hit_location(h, L), type=FEATURE_TYPE, qualifiers={"label": [h.source_id]})
            for h in self.hits(target_id, target_seq)
        ]

    def annotate(self, record: SeqRecord) -> SeqRecord:
        seq = str(record.seq).upper()
        return SeqRecord(
            Seq(seq),
            id=record.id,
            name=record.id[:16],
            description=record.description or ".",
            features=self.features(record.id, seq),
        )
