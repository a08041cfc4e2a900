# File: fragplan/core/models/match.py
# Version: v0.1.0

"""
Raw sequence match reported by the external matcher.

Coordinates are 0-based, end-exclusive, on the tripled target sequence so
that matches across the origin of a circular target are plain intervals.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Match:
    """
    One alignment of a database source against the (tripled) target.
    """
    source_id:  str        # entry id in the source database
    sequence:   str        # matched sequence
    start:      int        # start on the tripled target
    end:        int        # end on the tripled target (exclusive)

    @property
    def length(self) -> int:
        return self.end - self.start
