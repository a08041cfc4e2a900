# File: fragplan/core/external/runner.py
# Version: v0.1.0
"""
Run one external tool (primer3_core, blastn, blastdbcmd) as a subprocess,
or one in-process library call (primer3 bindings) in a child process.

- `subprocess.run(timeout=...)` kills the child when the timeout expires;
  `run_in_child` terminates its one-worker pool the same way.
- A timed-out call is retried `retries` times (default once), then surfaced.
- Missing executables and non-zero exits are surfaced immediately.
All failures are raised as ExternalToolFailure(tool, node_id, cause).
"""

from __future__ import annotations

import logging
import multiprocessing
import subprocess
from typing import Any, Callable, Optional, Sequence

from fragplan.core.errors import ExternalToolFailure

log = logging.getLogger(__name__)


def run_tool(
    tool: str,
    args: Sequence[str],
    *,
    node_id: str = "",
    timeout: Optional[float] = 60.0,
    retries: int = 1,
    input_text: Optional[str] = None,
) -> str:
    """Execute `args`, returning stdout."""
    attempts = 0
    while True:
        attempts += 1
        try:
            proc = subprocess.run(
                list(args),
                input=input_text,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            if attempts <= retries:
                log.warning("%s timed out after %.1fs for %s; retry %d/%d",
                            tool, timeout or 0.0, node_id or "-", attempts, retries)
                continue
            raise ExternalToolFailure(tool, node_id, f"timed out after {timeout}s ({attempts} attempt(s))") from None
        except OSError as exc:
            raise ExternalToolFailure(tool, node_id, f"could not start {args[0]!r}: {exc}") from exc

        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or "").strip()
            raise ExternalToolFailure(tool, node_id, f"exit status {proc.returncode}: {detail}")
        return proc.stdout


def run_in_child(
    tool: str,
    fn: Callable[..., Any],
    args: Sequence[Any] = (),
    *,
    node_id: str = "",
    timeout: Optional[float] = 60.0,
    retries: int = 1,
) -> Any:
    """
    Call `fn(*args)` in a spawned child process and return its result.
    `fn` and its arguments must be picklable (a module-level function).
    """
    ctx = multiprocessing.get_context("spawn")
    attempts = 0
    while True:
        attempts += 1
        pool = ctx.Pool(processes=1)
        try:
            return pool.apply_async(fn, tuple(args)).get(timeout)
        except multiprocessing.TimeoutError:
            if attempts <= retries:
                log.warning("%s timed out after %.1fs for %s; retry %d/%d",
                            tool, timeout or 0.0, node_id or "-", attempts, retries)
                continue
            raise ExternalToolFailure(tool, node_id, f"timed out after {timeout}s ({attempts} attempt(s))") from None
        except (OSError, ValueError, RuntimeError) as exc:
            raise ExternalToolFailure(tool, node_id, str(exc)) from exc
        finally:
            pool.terminate()
            pool.join()
