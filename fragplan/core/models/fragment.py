# File: fragplan/core/models/fragment.py
# Version: v0.1.0

"""
Output units of a finished build plan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class FragmentKind(str, Enum):
    EXISTING = "Existing"
    PCR = "PCR"
    SYNTHETIC = "Synthetic"


@dataclass(frozen=True)
class Primer:
    """One primer as reported by primer3."""
    seq:          str
    strand:       bool       # True for the forward (left) primer
    tm:           float
    gc:           float
    penalty:      float
    pair_penalty: float


@dataclass(frozen=True)
class Fragment:
    """
    A piece of DNA to order or amplify. Immutable once emitted.
    """
    id:        str
    sequence:  str
    source_id: str
    kind:      FragmentKind
    cost:      float = 0.0
    primers:   Tuple[Primer, ...] = field(default_factory=tuple)

    @property
    def length(self) -> int:
        return len(self.sequence)

    def primer(self, forward: bool) -> Optional[Primer]:
        for p in self.primers:
            if p.strand == forward:
                return p
        return None
