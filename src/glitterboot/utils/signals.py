# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/utils/signals.py
from __future__ import annotations

import contextlib
import logging
import signal
import threading
from typing import Iterator

log = logging.getLogger("glitterboot")


@contextlib.contextmanager
def cancel_on_signal(cancel: threading.Event) -> Iterator[threading.Event]:
    """
    Turn SIGINT/SIGTERM into ``cancel.set()`` for the duration of the block.

    The first signal only sets the token so a polling loop can stop
    cleanly; SIGINT then falls back to KeyboardInterrupt, so a second
    Ctrl-C interrupts for real. Previous handlers are restored on exit.
    """
    # signal.signal() only works on the main thread
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    original_sigint = signal.getsignal(signal.SIGINT)
    original_sigterm = signal.getsignal(signal.SIGTERM)

    def _handler(signum, frame) -> None:
        log.warning("received signal %d, cancelling", signum)
        cancel.set()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, original_sigint)
        signal.signal(signal.SIGTERM, original_sigterm)
