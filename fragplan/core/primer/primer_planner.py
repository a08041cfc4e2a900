# File: fragplan/core/primer/primer_planner.py
# Version: v0.1.0
"""
primer3 boundary: primers that amplify one node of a chosen assembly.

What this file does
-------------------
- Works out how much homology the node's primers must add towards its
  upstream and downstream neighbours. When a junction is bridged by PCR and
  the existing overlap is below `min_homology`, this node adds the gap plus
  half the homology; the neighbour adds the rest.
- Widens primer sizes by that tail (capped at primerMaxTotalSize) and writes
  a Boulder-IO settings map over the tripled template with the included
  region pinned to the node (task `pick_cloning_primers`).
- Runs primer3 through the primer3-py bindings in a spawned child process,
  or as `primer3_core` through the external runner. Either way a call that
  outlives `timeout` is killed, retried `retries` times and then surfaced
  as ExternalToolFailure. With `timeout=None` the bindings run in-process.
- Parses the first pair (GC% computed from the sequence when primer3 leaves
  it out) and rejects pairs whose penalty exceeds `pcr.max_pair_penalty`.

Coordinates
-----------
- Node coordinates are 0-based, end-exclusive, on the tripled target.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import primer3

from fragplan.config.config_assembly import AssemblyConfig
from fragplan.core.assembly.junction_cost import distance, synthesis_piece_count
from fragplan.core.errors import ExternalToolFailure, PrimerPenaltyExceededError
from fragplan.core.external.runner import run_in_child, run_tool
from fragplan.core.models.fragment import Primer
from fragplan.core.models.node import Node
from fragplan.core.primer.thermodynamics import gc_percent

log = logging.getLogger(__name__)

BACKENDS = ("bindings", "executable")


@dataclass(frozen=True)
class PrimerDesign:
    forward: Primer
    reverse: Primer
    product: str          # PCR product, primer tails included


# --- Boulder-IO helpers ------------------------------------------------------

def to_boulder(settings: Dict[str, Any]) -> str:
    lines = [f"{k}={v}" for k, v in settings.items()]
    return "\n".join(lines) + "\n=\n"


def parse_boulder(text: str) -> Dict[str, str]:
    results: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, val = line.partition("=")
        if sep and key.strip():
            results[key.strip()] = val.strip()
    return results


def _pos_len(raw: Any) -> Tuple[int, int]:
    if isinstance(raw, (tuple, list)):
        return int(raw[0]), int(raw[1])
    pos, _, length = str(raw).partition(",")
    return int(pos), int(length)


def _as_float(raw: Any) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


def design_in_child(seq_args: Dict[str, Any], global_args: Dict[str, Any]) -> Dict[str, Any]:
    """primer3 bindings call, module-level so a spawned child can unpickle it."""
    return dict(primer3.bindings.design_primers(seq_args, global_args))


def _gc(raw: Any, seq: str) -> float:
    if raw is None or raw == "":
        return gc_percent(seq)
    return _as_float(raw)


# --- Planner -----------------------------------------------------------------

class PrimerPlanner:
    design_fn = staticmethod(design_in_child)

    def __init__(
        self,
        config: AssemblyConfig,
        backend: str = "bindings",
        primer3_core: str = "primer3_core",
        primer3_config_dir: Optional[Path] = None,
        timeout: Optional[float] = 60.0,
        retries: int = 1,
    ):
        if backend not in BACKENDS:
            raise ValueError(f"unknown primer3 backend {backend!r}; expected one of {BACKENDS}")
        self.cfg = config
        self.backend = backend
        self.primer3_core = primer3_core
        self.primer3_config_dir = primer3_config_dir
        self.timeout = timeout
        self.retries = retries

    def bp_to_share(self, left: Node, right: Node) -> int:
        """bp of homology `left`/`right` must create by PCR across their junction."""
        min_homology = self.cfg.fragments.min_homology
        if synthesis_piece_count(left, right, self.cfg.synthesis.max_length) != 0:
            return 0
        dist = distance(left, right)
        if dist > -min_homology:
            # e.g. a 5 bp gap leads to 5 + 10 bp added from this side
            return dist + min_homology // 2
        return 0

    def settings_for(self, last: Node, node: Node, nxt: Node, target: str) -> Dict[str, Any]:
        p = self.cfg.primer3
        add_left = self.bp_to_share(last, node)
        add_right = self.bp_to_share(node, nxt)
        max_added = max(add_left, add_right)

        start = node.start - add_left
        length = node.end - start + add_right

        primer_min, primer_opt, primer_max = p.primerMinSize, p.primerOptSize, p.primerMaxSize
        if max_added > 0:
            max_added += 2
            if max_added > p.primerMaxTotalSize - primer_max:
                max_added = p.primerMaxTotalSize - primer_max
            primer_min += max_added
            primer_opt += max_added
            primer_max += max_added

        L = len(target)
        offset = start % L
        if offset + L + length <= 3 * L:
            offset += L

        settings: Dict[str, Any] = {
            "SEQUENCE_ID": node.id,
            "SEQUENCE_TEMPLATE": target.upper() * 3,
            "SEQUENCE_INCLUDED_REGION": f"{offset},{length}",
            "PRIMER_TASK": p.primerTask,
            "PRIMER_NUM_RETURN": p.primerNumReturn,
            "PRIMER_PICK_ANYWAY": 1 if p.primerPickAnyway else 0,
            "PRIMER_MIN_SIZE": primer_min,
            "PRIMER_OPT_SIZE": primer_opt,
            "PRIMER_MAX_SIZE": primer_max,
            # cloning primers sit on the region ends; the product is the region
            "PRIMER_PRODUCT_SIZE_RANGE": f"{max(1, length - 10)}-{length + 10}",
        }
        if self.backend == "executable" and self.primer3_config_dir is not None:
            settings["PRIMER_THERMODYNAMIC_PARAMETERS_PATH"] = str(self.primer3_config_dir).rstrip("/") + "/"
        return settings

    # ---- runners ----

    def _run_bindings(self, settings: Dict[str, Any], node_id: str) -> Dict[str, Any]:
        seq_args = {
            "SEQUENCE_ID": settings["SEQUENCE_ID"],
            "SEQUENCE_TEMPLATE": settings["SEQUENCE_TEMPLATE"],
            "SEQUENCE_INCLUDED_REGION": list(_pos_len(settings["SEQUENCE_INCLUDED_REGION"])),
        }
        global_args = {k: v for k, v in settings.items() if not k.startswith("SEQUENCE_")}
        lo, _, hi = str(global_args["PRIMER_PRODUCT_SIZE_RANGE"]).partition("-")
        global_args["PRIMER_PRODUCT_SIZE_RANGE"] = [[int(lo), int(hi)]]
        if self.timeout is None:
            try:
                return self.design_fn(seq_args, global_args)
            except (OSError, ValueError, RuntimeError) as exc:
                raise ExternalToolFailure("primer3", node_id, str(exc)) from exc
        return run_in_child(
            "primer3",
            self.design_fn,
            (seq_args, global_args),
            node_id=node_id,
            timeout=self.timeout,
            retries=self.retries,
        )

    def _run_executable(self, settings: Dict[str, Any], node_id: str) -> Dict[str, Any]:
        stdout = run_tool(
            "primer3",
            [self.primer3_core, "-strict_tags"],
            node_id=node_id,
            timeout=self.timeout,
            retries=self.retries,
            input_text=to_boulder(settings),
        )
        return dict(parse_boulder(stdout))

    def run(self, settings: Dict[str, Any], node_id: str) -> Dict[str, Any]:
        if self.backend == "executable":
            return self._run_executable(settings, node_id)
        return self._run_bindings(settings, node_id)

    # ---- parsing ----

    @staticmethod
    def parse(results: Dict[str, Any], template: str, node_id: str) -> PrimerDesign:
        err = results.get("PRIMER_ERROR")
        if err:
            raise ExternalToolFailure("primer3", node_id, str(err))

        def side(name: str) -> Primer:
            seq = results.get(f"PRIMER_{name}_0_SEQUENCE")
            if not seq:
                explain = results.get(f"PRIMER_{name}_EXPLAIN", "no explanation")
                raise ExternalToolFailure("primer3", node_id, f"no {name.lower()} primer returned ({explain})")
            return Primer(
                seq=str(seq).upper(),
                strand=(name == "LEFT"),
                tm=_as_float(results.get(f"PRIMER_{name}_0_TM")),
                gc=_gc(results.get(f"PRIMER_{name}_0_GC_PERCENT"), str(seq)),
                penalty=_as_float(results.get(f"PRIMER_{name}_0_PENALTY")),
                pair_penalty=_as_float(results.get("PRIMER_PAIR_0_PENALTY")),
            )

        fwd = side("LEFT")
        rev = side("RIGHT")
        try:
            left_pos, _ = _pos_len(results["PRIMER_LEFT_0"])
            right_pos, _ = _pos_len(results["PRIMER_RIGHT_0"])
        except (KeyError, ValueError) as exc:
            raise ExternalToolFailure("primer3", node_id, f"unparseable primer positions: {exc}") from exc

        # the right primer's position is its 5' end on the + strand
        product = template[left_pos : right_pos + 1]
        return PrimerDesign(forward=fwd, reverse=rev, product=product)

    # ---- public API ----

    def design(self, last: Node, node: Node, nxt: Node, target: str) -> PrimerDesign:
        """Primers for `node` between `last` and `nxt`; raises on high penalty."""
        settings = self.settings_for(last, node, nxt, target)
        results = self.run(settings, node.id)
        design = self.parse(results, settings["SEQUENCE_TEMPLATE"], node.id)

        max_penalty = self.cfg.pcr.max_pair_penalty
        if design.forward.pair_penalty > max_penalty:
            raise PrimerPenaltyExceededError(node.id, design.forward.pair_penalty, max_penalty)

        log.debug("primer3 %s: fwd=%s rev=%s pair_penalty=%.3f",
                  node.id, design.forward.seq, design.reverse.seq, design.forward.pair_penalty)
        return design
