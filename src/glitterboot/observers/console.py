# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/observers/console.py
from __future__ import annotations

import typer

from .events import BaseEvent, StepStarted, StepWarning


class ConsoleObserver:
    """Operator-facing progress: one ``[step]`` line per executed step."""

    def notify(self, event: BaseEvent) -> None:
        if isinstance(event, StepStarted):
            typer.echo(f"[step] {event.step}")
        elif isinstance(event, StepWarning):
            typer.echo(f"[WARN] {event.message}")
