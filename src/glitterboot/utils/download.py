# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/utils/download.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from ..core.errors import DownloadError

log = logging.getLogger("glitterboot")


class Downloader:
    def __init__(self, *, timeout: float = 60.0, chunk_size: int = 1 << 20, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.session = session or requests.Session()

    def download(self, url: str, dest: Path) -> Path:
        """
        Stream *url* into *dest*. Non-2xx responses and transport errors
        raise DownloadError; a partially written file is removed.
        """
        dest = Path(dest)
        log.debug("downloading %s -> %s", url, dest)
        try:
            with self.session.get(url, stream=True, timeout=self.timeout) as r:
                if not r.ok:
                    raise DownloadError(f"bad status: {r.status_code} {r.reason} ({url})")
                with dest.open("wb") as out:
                    for chunk in r.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            out.write(chunk)
        except requests.RequestException as exc:
            dest.unlink(missing_ok=True)
            raise DownloadError(f"failed to download {url}: {exc}") from exc
        except OSError as exc:
            dest.unlink(missing_ok=True)
            raise DownloadError(f"failed to write {dest}: {exc}") from exc

        log.info("downloaded %s (%d bytes)", dest, dest.stat().st_size)
        return dest
