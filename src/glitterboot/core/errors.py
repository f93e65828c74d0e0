# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/core/errors.py
from __future__ import annotations

import subprocess

import jinja2
import requests


class BootError(Exception):
    """Base class for operational failures a pipeline step may report."""


class ValidationError(BootError):
    """Bad operator input (seeds, index mode, binary URLs)."""


class PreconditionError(ValidationError):
    """The node is not in a state that allows the requested operation."""


class ConfigError(BootError):
    pass


class StoreError(BootError):
    pass


class RPCError(BootError):
    pass


class DownloadError(BootError):
    pass


class CommandError(BootError):
    def __init__(self, argv, returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"`{' '.join(self.argv)}` exited with code {returncode}"
        if stderr.strip():
            msg += f": {stderr.strip()}"
        super().__init__(msg)


class ConvergenceTimeout(BootError):
    pass


class ConvergenceCancelled(BootError):
    pass


class PipelineError(BootError):
    def __init__(self, step: str, cause: BaseException):
        self.step = step
        self.cause = cause
        super().__init__(f"failed to execute step [{step}]: {cause}")


# Exceptions a step is allowed to raise to abort its pipeline. Anything
# else is a defect and propagates out of Pipeline.append().
OPERATIONAL_ERRORS = (
    BootError,
    OSError,
    requests.RequestException,
    subprocess.SubprocessError,
    jinja2.TemplateError,
)
