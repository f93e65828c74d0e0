# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/observers/logger.py
from __future__ import annotations

import logging

from .events import BaseEvent, PipelineSummary, StepFailed


class LoggerObserver:
    """Mirrors every event into the run log. Outcomes go to INFO, the rest to DEBUG."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in ("ts", "run_id"))
        level = logging.INFO if isinstance(event, (StepFailed, PipelineSummary)) else logging.DEBUG
        self.logger.log(level, f"[EVENT] {etype}: {msg}")
