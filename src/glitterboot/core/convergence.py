# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/core/convergence.py
"""
Wait until the cluster's validator set contains this node.

A role change is applied by the consensus process, outside this tool's
control; polling the observable validator set is the only coordination
available. Consecutive RPC failures are capped; a wall-clock timeout
and a cancel token can bound the wait further.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from .errors import ConvergenceCancelled, ConvergenceTimeout, RPCError
from .store import Store

from ..observers.dispatcher import EventBus
from ..observers.events import ConvergencePoll, new_ctx

log = logging.getLogger("glitterboot")

KEY_VALIDATOR_STAGE = "validator_stage"
STAGE_OK = "ok"


class ValidatorLister(Protocol):
    def validators(self) -> List: ...


@dataclass(frozen=True)
class PollOptions:
    grace_seconds: float = 5.0
    interval_seconds: float = 1.0
    max_consecutive_errors: int = 10
    timeout_seconds: Optional[float] = None


def wait_for_validator(
    store: Store,
    client: ValidatorLister,
    address: str,
    *,
    options: Optional[PollOptions] = None,
    cancel: Optional[threading.Event] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
    bus: Optional[EventBus] = None,
    operation: str = "start-validator",
) -> None:
    """
    Block until *address* shows up in ``client.validators()``.

    Returns immediately when the store already records convergence. Raises
    the last RPC error once more than ``max_consecutive_errors`` queries in a
    row have failed; a successful query resets that count.
    """
    options = options or PollOptions()
    run_ctx = new_ctx(operation)

    if store.get(KEY_VALIDATOR_STAGE) == STAGE_OK:
        log.debug("validator stage already converged, skipping poll")
        return

    deadline = None
    if options.timeout_seconds is not None:
        deadline = clock() + options.timeout_seconds

    def _check_bounds() -> None:
        if cancel is not None and cancel.is_set():
            raise ConvergenceCancelled("waiting for validator set was cancelled")
        if deadline is not None and clock() >= deadline:
            raise ConvergenceTimeout(
                f"validator {address} not in the validator set after {options.timeout_seconds}s"
            )

    _check_bounds()
    sleep(options.grace_seconds)

    errors = 0
    attempt = 0
    while True:
        _check_bounds()
        sleep(options.interval_seconds)
        _check_bounds()

        attempt += 1
        try:
            validators = client.validators()
        except RPCError as exc:
            errors += 1
            log.debug("validators query %d failed (%d in a row): %s", attempt, errors, exc)
            if bus:
                bus.emit(ConvergencePoll(attempt=attempt, consecutive_errors=errors, matched=False, error=str(exc), **run_ctx))
            if errors > options.max_consecutive_errors:
                raise
            continue

        errors = 0
        matched = any(v.address == address for v in validators)
        if bus:
            bus.emit(ConvergencePoll(attempt=attempt, consecutive_errors=0, matched=matched, **run_ctx))
        if matched:
            log.info("validator %s observed in the validator set after %d polls", address, attempt)
            store.set(KEY_VALIDATOR_STAGE, STAGE_OK)
            return
