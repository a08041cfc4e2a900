# File: fragplan/config/config_assembly.py
# Version: v0.1.0

"""
Assembly configuration loader (attribute-access "view" objects).

One immutable `AssemblyConfig` is built per run and passed explicitly to
every stage (filter, node builder, cost model, estimator, search, filler).

Example JSON:

{
  "fragments": {"min_match": 35, "max_count": 6, "min_homology": 20},
  "synthesis": {
    "min_length": 125,
    "max_length": 3000,
    "cost": {
      "500":  {"fixed": true,  "cost": 89.0},
      "750":  {"fixed": true,  "cost": 129.0},
      "3000": {"fixed": false, "cost": 0.18}
    }
  },
  "pcr": {"bp_cost": 0.6, "max_pair_penalty": 30.0, "max_ectopic_tm": 55.0},
  "sources": {"addgene": 65.0},
  "primer3": {"primerMinSize": 18, "primerOptSize": 20, "primerMaxSize": 23}
}
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple

from fragplan.core.primer.parameters import Primer3Parameters


# --------------------------
# Section views
# --------------------------

@dataclass(frozen=True)
class FragmentsView:
    min_match: int        # Fragments.MinMatch
    max_count: int        # Fragments.MaxCount
    min_homology: int     # Fragments.MinHomology

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FragmentsView":
        view = cls(
            min_match=int(d.get("min_match", 35)),
            max_count=int(d.get("max_count", 6)),
            min_homology=int(d.get("min_homology", 20)),
        )
        if view.min_match <= 0:
            raise ValueError(f"fragments.min_match must be > 0, got {view.min_match}")
        if view.max_count < 1:
            raise ValueError(f"fragments.max_count must be >= 1, got {view.max_count}")
        if view.min_homology < 0:
            raise ValueError(f"fragments.min_homology must be >= 0, got {view.min_homology}")
        return view


@dataclass(frozen=True)
class SynthCostStep:
    max_length: int
    fixed: bool
    cost: float


@dataclass(frozen=True)
class SynthesisView:
    min_length: int
    max_length: int
    # sorted by max_length ascending
    cost_table: Tuple[SynthCostStep, ...]

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SynthesisView":
        raw_cost = d.get("cost") or {"500": {"fixed": True, "cost": 89.0}, "3000": {"fixed": False, "cost": 0.18}}
        steps = []
        for k, v in raw_cost.items():
            steps.append(SynthCostStep(max_length=int(k), fixed=bool(v.get("fixed", False)), cost=float(v["cost"])))
        steps.sort(key=lambda s: s.max_length)

        view = cls(
            min_length=int(d.get("min_length", 125)),
            max_length=int(d.get("max_length", 3000)),
            cost_table=tuple(steps),
        )
        if view.min_length <= 0 or view.max_length <= 0 or view.min_length > view.max_length:
            raise ValueError(f"invalid synthesis bounds: {view.min_length}..{view.max_length}")
        return view

    def cost(self, length: int) -> float:
        """Price of synthesizing `length` bp (step table: fixed or per-bp)."""
        step = self.cost_table[-1]
        for s in self.cost_table:
            if length <= s.max_length:
                step = s
                break
        if step.fixed:
            return step.cost
        return step.cost * float(length)


@dataclass(frozen=True)
class PCRView:
    bp_cost: float            # PCR.BPCost, $ per primer bp
    max_pair_penalty: float   # PCR.MaxPairPenalty
    max_ectopic_tm: float     # Tm at which an off-target site invalidates a primer
    offtarget_window: int     # 3' bases scanned for ectopic binding
    offtarget_max_mismatches: int

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PCRView":
        return cls(
            bp_cost=float(d.get("bp_cost", 0.6)),
            max_pair_penalty=float(d.get("max_pair_penalty", 30.0)),
            max_ectopic_tm=float(d.get("max_ectopic_tm", 55.0)),
            offtarget_window=int(d.get("offtarget_window", 18)),
            offtarget_max_mismatches=int(d.get("offtarget_max_mismatches", 1)),
        )


# --------------------------
# Top-level config
# --------------------------

@dataclass(frozen=True)
class AssemblyConfig:
    fragments: FragmentsView
    synthesis: SynthesisView
    pcr: PCRView
    sources: Dict[str, float] = field(default_factory=dict)
    primer3: Primer3Parameters = field(default_factory=Primer3Parameters)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssemblyConfig":
        return cls(
            fragments=FragmentsView.from_dict(dict(data.get("fragments", {}))),
            synthesis=SynthesisView.from_dict(dict(data.get("synthesis", {}))),
            pcr=PCRView.from_dict(dict(data.get("pcr", {}))),
            sources={str(k): float(v) for k, v in dict(data.get("sources", {})).items()},
            primer3=Primer3Parameters.model_validate(dict(data.get("primer3", {}))),
        )

    @classmethod
    def from_json_file(cls, path: str) -> "AssemblyConfig":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    # ---- Shortcuts used by the cost model ----

    def synth_cost(self, length: int) -> float:
        return self.synthesis.cost(length)


DEFAULT_CONFIG_PATH = Path(__file__).with_name("assembly.json")


def load_assembly_config(path=None) -> AssemblyConfig:
    """Load the assembly JSON; the bundled `assembly.json` when `path` is None."""
    return AssemblyConfig.from_json_file(str(path if path is not None else DEFAULT_CONFIG_PATH))


__all__ = [
    "AssemblyConfig",
    "DEFAULT_CONFIG_PATH",
    "FragmentsView",
    "PCRView",
    "SynthCostStep",
    "SynthesisView",
    "load_assembly_config",
]
