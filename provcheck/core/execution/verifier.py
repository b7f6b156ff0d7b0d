"""
Boot verification for default-configuration installations.

Starts the server with the configured command, watches its console output
for the startup markers and shuts it down again. The whole cycle is bounded
by `BootConfig.timeout_seconds`; a server that neither reports startup nor
exits within that bound raises BootTimeout and is killed.
"""

from __future__ import annotations

import os
import signal
import subprocess
import threading
import time
from collections import deque
from typing import Deque, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from provcheck.core.config.models import BootConfig
from provcheck.core.errors import BootTimeout, InstallationNotFound, ProvcheckError
from provcheck.core.modules.installation import list_installations

OUTCOME_STARTED = "started"
OUTCOME_FAILED = "failed"
OUTCOME_EXITED = "exited"


class BootResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    installation: str
    path: str
    ok: bool
    outcome: str
    returncode: Optional[int] = None
    clean_shutdown: bool = False
    duration_seconds: float = 0.0
    error_code: str = ""
    output_tail: List[str] = Field(default_factory=list)


class BootVerifier:
    def __init__(self, *, cfg: Optional[BootConfig] = None, logger=None, tail_lines: int = 50):
        self.cfg = cfg or BootConfig()
        self.logger = logger
        self.tail_lines = int(tail_lines)

    def _command(self, installation_path: str) -> List[str]:
        cmd = list(self.cfg.command)
        first = cmd[0]
        if not os.path.isabs(first):
            candidate = os.path.join(installation_path, first)
            if os.path.exists(candidate):
                cmd[0] = candidate
        return cmd

    def _env(self, installation_path: str) -> Dict[str, str]:
        env = dict(os.environ)
        env["JBOSS_HOME"] = installation_path
        env.update(self.cfg.env)
        return env

    def _signal(self, proc: subprocess.Popen, sig: int) -> None:
        if proc.poll() is not None:
            return
        try:
            if hasattr(os, "killpg"):
                os.killpg(proc.pid, sig)
            elif sig == getattr(signal, "SIGKILL", None):
                proc.kill()
            else:
                proc.terminate()
        except ProcessLookupError:
            pass

    def _stop(self, proc: subprocess.Popen) -> bool:
        """Terminate the server; True if it went down within the grace period."""
        self._signal(proc, signal.SIGTERM)
        try:
            proc.wait(timeout=self.cfg.shutdown_grace_seconds)
            return True
        except subprocess.TimeoutExpired:
            self._signal(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
            proc.wait(timeout=self.cfg.shutdown_grace_seconds)
            return False

    def verify_boots(self, installation_path: str) -> BootResult:
        path = os.path.abspath(installation_path)
        name = os.path.basename(path)
        if not os.path.isdir(path):
            raise InstallationNotFound(f"No installation at {path}.", path=path)

        tail: Deque[str] = deque(maxlen=self.tail_lines)
        state: Dict[str, str] = {}
        done = threading.Event()
        started_at = time.monotonic()

        proc = subprocess.Popen(  # noqa: S603
            self._command(path),
            cwd=path,
            env=self._env(path),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            errors="replace",
            start_new_session=hasattr(os, "killpg"),
        )

        def _watch() -> None:
            assert proc.stdout is not None
            with proc.stdout as out:
                for line in out:
                    line = line.rstrip("\n")
                    tail.append(line)
                    if done.is_set():
                        continue
                    if any(m in line for m in self.cfg.failure_markers):
                        state["outcome"] = OUTCOME_FAILED
                        done.set()
                    elif self.cfg.started_marker in line:
                        state["outcome"] = OUTCOME_STARTED
                        done.set()
            state.setdefault("outcome", OUTCOME_EXITED)
            done.set()

        reader = threading.Thread(target=_watch, name=f"boot-watch-{name}", daemon=True)
        reader.start()

        if not done.wait(timeout=self.cfg.timeout_seconds):
            self._stop(proc)
            reader.join(timeout=1.0)
            if self.logger is not None:
                self.logger.error("Boot of %s timed out after %.0fs", name, self.cfg.timeout_seconds)
            raise BootTimeout(
                f"{name} did not start within {self.cfg.timeout_seconds:.0f}s.",
                installation=name,
                path=path,
                timeout_seconds=self.cfg.timeout_seconds,
                output_tail=list(tail)[-10:],
            )

        outcome = state.get("outcome", OUTCOME_EXITED)
        clean = False
        if outcome == OUTCOME_EXITED:
            try:
                proc.wait(timeout=self.cfg.shutdown_grace_seconds)
            except subprocess.TimeoutExpired:
                # closed its output without exiting
                self._stop(proc)
        else:
            clean = self._stop(proc)
        reader.join(timeout=1.0)

        result = BootResult(
            installation=name,
            path=path,
            ok=outcome == OUTCOME_STARTED and clean,
            outcome=outcome,
            returncode=proc.returncode,
            clean_shutdown=clean,
            duration_seconds=round(time.monotonic() - started_at, 3),
            output_tail=list(tail),
        )
        if self.logger is not None:
            self.logger.info("Boot of %s: outcome=%s clean_shutdown=%s", name, outcome, clean)
        return result

    def verify_all(self, root: str) -> List[BootResult]:
        results: List[BootResult] = []
        for path in list_installations(root):
            try:
                results.append(self.verify_boots(path))
            except ProvcheckError as e:
                results.append(
                    BootResult(
                        installation=os.path.basename(path),
                        path=os.path.abspath(path),
                        ok=False,
                        outcome=e.code,
                        error_code=e.code,
                        output_tail=[str(x) for x in (e.context.get("output_tail") or [])],
                    )
                )
        return results
