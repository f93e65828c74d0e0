# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/core/pipeline.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .context import PipelineContext
from .errors import OPERATIONAL_ERRORS, PipelineError

from ..observers.console import ConsoleObserver
from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    StepStarted,
    StepSucceeded,
    StepFailed,
    StepSkipped,
)

log = logging.getLogger("glitterboot")

StepFn = Callable[[PipelineContext], Optional[BaseException]]


@dataclass
class StepRecord:
    label: str
    status: str                 # "OK" | "FAILED" | "SKIPPED"
    error: Optional[str] = None


class Pipeline:
    """
    Eager, fail-fast sequence of named steps over one shared context.

    Every ``append`` runs its operation immediately. A step fails by
    returning an exception or by raising one of OPERATIONAL_ERRORS; the
    first failure is kept and every later step is skipped. Other
    exceptions are defects and propagate to the caller untouched.
    """

    def __init__(
        self,
        ctx: Optional[PipelineContext] = None,
        *,
        bus: Optional[EventBus] = None,
        operation: str = "pipeline",
        run_id: Optional[str] = None,
    ):
        self.ctx = ctx if ctx is not None else PipelineContext()
        self.bus = bus if bus is not None else EventBus([ConsoleObserver()])
        self.operation = operation
        self.records: List[StepRecord] = []
        self._run_ctx = new_ctx(operation, run_id)
        self._step: Optional[str] = None
        self._error: Optional[BaseException] = None

    @property
    def failed(self) -> bool:
        return self._error is not None

    @property
    def current_step(self) -> Optional[str]:
        return self._step

    def append(self, label: str, fn: StepFn) -> "Pipeline":
        if self._error is not None:
            self.records.append(StepRecord(label=label, status="SKIPPED"))
            self.bus.emit(StepSkipped(step=label, reason=f"step [{self._step}] failed", **self._run_ctx))
            return self

        self._step = label
        self.bus.emit(StepStarted(step=label, **self._run_ctx))
        log.debug("running step %r", label)

        t0 = time.time()
        try:
            err = fn(self.ctx)
        except OPERATIONAL_ERRORS as exc:
            err = exc

        if err is None:
            duration_ms = int((time.time() - t0) * 1000)
            self.records.append(StepRecord(label=label, status="OK"))
            self.bus.emit(StepSucceeded(step=label, duration_ms=duration_ms, **self._run_ctx))
            return self

        if not isinstance(err, BaseException):
            raise TypeError(f"step {label!r} returned {type(err).__name__}, expected an exception or None")

        self._error = err
        self.records.append(StepRecord(label=label, status="FAILED", error=str(err)))
        self.bus.emit(StepFailed(step=label, error=str(err), **self._run_ctx))
        log.debug("step %r failed: %s", label, err)
        return self

    def result(self) -> Optional[PipelineError]:
        if self._error is None:
            return None
        return PipelineError(self._step or "", self._error)

    def summary(self) -> str:
        ok = sum(1 for r in self.records if r.status == "OK")
        failed = sum(1 for r in self.records if r.status == "FAILED")
        skipped = sum(1 for r in self.records if r.status == "SKIPPED")
        return f"OK={ok} FAILED={failed} SKIPPED={skipped}"

    @property
    def run_ctx(self) -> dict:
        return dict(self._run_ctx)
