# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events of one lifecycle invocation
    operation: str    # init / start-fullnode / start-validator / ...

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(operation: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "operation": operation,
    }


# ---------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StepStarted(BaseEvent):
    step: str

@dataclass(frozen=True)
class StepSucceeded(BaseEvent):
    step: str
    duration_ms: int

@dataclass(frozen=True)
class StepFailed(BaseEvent):
    step: str
    error: str

@dataclass(frozen=True)
class StepSkipped(BaseEvent):
    step: str
    reason: str

@dataclass(frozen=True)
class StepWarning(BaseEvent):
    step: str
    message: str


# ---------------------------------------------------------------------
# Validator convergence
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ConvergencePoll(BaseEvent):
    attempt: int
    consecutive_errors: int
    matched: bool
    error: Optional[str] = None


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class PipelineSummary(BaseEvent):
    ok: int
    failed: int
    skipped: int
    error: Optional[str] = None
