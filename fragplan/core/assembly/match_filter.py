# File: fragplan/core/assembly/match_filter.py
# Version: v0.1.0
"""
"Properize" raw matches before they become building nodes.

- Matches shorter than the minimum usable length are dropped.
- A match fully contained in a larger one (or sharing its end with a longer
  one that starts no later) is dropped: the larger match covers more of the
  target and is almost always the better building piece.

The result is sorted by start and filtering it again returns it unchanged.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from fragplan.core.models.match import Match

log = logging.getLogger(__name__)


def filter_matches(matches: Iterable[Match], min_match_length: int) -> List[Match]:
    large_enough = [m for m in matches if m.length >= min_match_length]

    # by start; longer first on equal starts
    large_enough.sort(key=lambda m: (m.start, -m.length))

    properized: List[Match] = []
    for m in large_enough:
        if not properized or m.end > properized[-1].end:
            properized.append(m)

    log.debug(
        "filter_matches: %d large enough (>= %d bp), %d kept",
        len(large_enough), min_match_length, len(properized),
    )
    return properized
