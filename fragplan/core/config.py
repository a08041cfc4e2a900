# File: fragplan/core/config.py
# Version: v0.1.0
from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Tool locations and process knobs (read from FRAGPLAN_* env vars)."""

    APP_NAME: str = "fragplan"
    APP_VERSION: str = "0.1.0"

    # None: the bundled fragplan/config/assembly.json
    ASSEMBLY_CONFIG_PATH: Optional[Path] = None

    # primer3: "bindings" (primer3-py, in-process) or "executable" (primer3_core)
    PRIMER3_BACKEND: str = "bindings"
    PRIMER3_CORE: str = "primer3_core"
    PRIMER3_CONFIG_DIR: Optional[Path] = None

    BLASTN: str = "blastn"
    BLASTDBCMD: str = "blastdbcmd"
    BLAST_DB: Optional[Path] = None

    # External calls: per-call timeout and retries after a timeout
    EXTERNAL_TIMEOUT_S: float = 60.0
    EXTERNAL_RETRIES: int = 1

    # Bounded pool for per-junction primer/mismatch work (0 = derive from fraction)
    WORKERS: int = 0
    CPU_WORKERS_FRACTION: float = 0.5

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="FRAGPLAN_",
        extra="allow",
        env_file=None,
        env_file_encoding="utf-8",
    )

    def resolved_workers(self) -> int:
        if self.WORKERS > 0:
            return self.WORKERS
        frac = max(0.05, min(1.0, float(self.CPU_WORKERS_FRACTION)))
        return max(1, math.floor((os.cpu_count() or 1) * frac))
