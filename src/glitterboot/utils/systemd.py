# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/utils/systemd.py
from __future__ import annotations

import logging
import subprocess
from typing import List, Sequence

from ..core.errors import CommandError

log = logging.getLogger("glitterboot")


def run_logged(cmd: Sequence[str], *, label: str, check: bool = True, timeout: int = 120) -> subprocess.CompletedProcess:
    """
    Run a local command, log argv and output, raise CommandError on a
    non-zero exit when *check* is set.
    """
    argv: List[str] = list(cmd)
    log.debug("[%s] $ %s", label, " ".join(argv))

    cp = subprocess.run(argv, capture_output=True, text=True, timeout=timeout)

    if cp.stdout and cp.stdout.strip():
        log.debug("[%s] %s", label, cp.stdout.rstrip())
    if cp.stderr and cp.stderr.strip():
        log.debug("[%s][stderr] %s", label, cp.stderr.rstrip())

    if check and cp.returncode != 0:
        raise CommandError(argv, cp.returncode, cp.stderr or "")
    return cp


class Systemctl:
    def __init__(self, binary: str = "systemctl"):
        self.binary = binary

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        return run_logged([self.binary, *args], label="systemctl", check=check)

    def start(self, unit: str) -> None:
        self._run("start", unit)

    def stop(self, unit: str) -> None:
        self._run("stop", unit)

    def restart(self, unit: str) -> None:
        self._run("restart", unit)

    def daemon_reload(self) -> None:
        self._run("daemon-reload")

    def is_active(self, unit: str) -> str:
        # is-active exits non-zero for inactive units; the text is what matters
        cp = self._run("is-active", unit, check=False)
        return (cp.stdout or "").strip() or "unknown"
