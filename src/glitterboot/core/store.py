# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/core/store.py
"""
Durable key/value state for the local node.

The whole map lives in memory and is written back as one JSON object on
every ``set``. Writes go to a temporary file in the same directory which is
then renamed over the backing file, so a crash mid-write leaves either the
old or the new snapshot on disk, never a truncated one.

Locking is in-process only. Two glitter-boot invocations against the same
file race at the filesystem level.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Protocol

from .errors import StoreError

log = logging.getLogger("glitterboot")


class Store(Protocol):
    def get(self, key: str) -> str: ...
    def set(self, key: str, value: str) -> None: ...


class FileStore:
    def __init__(self, path: Path, data: Dict[str, str]):
        self.path = Path(path)
        self._data = data
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: str | Path, create_if_missing: bool = False) -> "FileStore":
        """
        Load the store at *path*.

        A missing file yields an empty store when *create_if_missing* is set
        (nothing is written until the first ``set``) and a StoreError
        otherwise. A file that is not a JSON object of strings is rejected.
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            if create_if_missing:
                log.debug("store %s not found, starting empty", path)
                return cls(path, {})
            raise StoreError(f"state file {path} does not exist")
        except UnicodeDecodeError as exc:
            raise StoreError(f"state file {path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise StoreError(f"failed to read state file {path}: {exc}") from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise StoreError(f"state file {path} is not valid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise StoreError(f"state file {path} must hold a JSON object")
        for k, v in data.items():
            if not isinstance(v, str):
                raise StoreError(f"state file {path}: value of {k!r} is not a string")

        return cls(path, data)

    def get(self, key: str) -> str:
        with self._lock:
            return self._data.get(key, "")

    def set(self, key: str, value: str) -> None:
        with self._lock:
            # the in-memory map keeps the update even if the write below fails
            self._data[key] = value
            try:
                payload = json.dumps(self._data, sort_keys=True)
            except (TypeError, ValueError) as exc:
                raise StoreError(f"set: failed to marshal: {exc}") from exc
            self._write(payload)

    def snapshot(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._data)

    def _write(self, payload: str) -> None:
        directory = self.path.parent
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(directory), prefix=f".{self.path.name}.", suffix=".tmp"
            )
        except OSError as exc:
            raise StoreError(f"set: failed to update file {self.path}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise StoreError(f"set: failed to update file {self.path}: {exc}") from exc
