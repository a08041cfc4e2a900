# File: fragplan/core/primer/parameters.py
# Version: v0.1.0
"""
Pydantic model for primer3 parameters used when amplifying a building node.

Sizes are the defaults for a node that needs no homology tail. When a node
has to add homology to a neighbour, the planner widens min/opt/max by the
tail length, but never beyond `primerMaxTotalSize`.

Usage:
    from fragplan.core.primer.parameters import Primer3Parameters
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, conint


class Primer3Parameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Annealing-region sizes
    primerMinSize: conint(ge=6) = Field(18, description="PRIMER_MIN_SIZE without homology tail")
    primerOptSize: conint(ge=6) = Field(20, description="PRIMER_OPT_SIZE without homology tail")
    primerMaxSize: conint(ge=6) = Field(23, description="PRIMER_MAX_SIZE without homology tail")

    # primer3 refuses primers longer than 36 bp
    primerMaxTotalSize: conint(ge=6, le=36) = Field(36, description="Hard cap on primer length incl. tail")

    primerNumReturn: conint(ge=1) = Field(1, description="PRIMER_NUM_RETURN")
    primerTask: str = Field("pick_cloning_primers", description="PRIMER_TASK")
    primerPickAnyway: bool = Field(True, description="PRIMER_PICK_ANYWAY")

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        if not (self.primerMinSize <= self.primerOptSize <= self.primerMaxSize):
            raise ValueError("primer sizes must satisfy min <= opt <= max")
        if self.primerMaxSize > self.primerMaxTotalSize:
            raise ValueError("primerMaxSize must be <= primerMaxTotalSize")
