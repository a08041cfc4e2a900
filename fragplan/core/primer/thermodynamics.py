# File: fragplan/core/primer/thermodynamics.py
# Version: v0.1.0
"""
Thermodynamics utilities for primer properties.

Implements:
- Nearest-neighbor Tm (BioPython)
- GC percentage
- Reverse complement
"""

from __future__ import annotations

from Bio.SeqUtils import MeltingTemp as mt


def revcomp(seq: str) -> str:
    table = str.maketrans("ACGTNacgtn", "TGCANtgcan")
    return seq.translate(table)[::-1]


def gc_percent(seq: str) -> float:
    if not seq:
        return 0.0
    s = seq.upper()
    gc = sum(1 for c in s if c in ("G", "C"))
    return 100.0 * gc / len(s)


def tm_nearest_neighbor(seq: str, Na: float = 50.0, divalent: float = 0.0, dntp: float = 0.0, dna_conc: float = 250.0) -> float:
    """
    Melting temperature using NN method (°C).

    Args:
        seq: sequence (A/C/G/T)
        Na: monovalent salt concentration (mM)
        divalent: divalent salt (mM)
        dntp: dNTP concentration (mM)
        dna_conc: strand concentration (nM)
    """
    s = "".join(c for c in (seq or "").upper() if c in "ACGT")
    if len(s) < 2:
        return 0.0
    # Tm_NN takes mM for salts and nM for strand concentrations
    return float(mt.Tm_NN(s, Na=Na, Mg=divalent, dNTPs=dntp, dnac1=dna_conc, dnac2=0.0))
