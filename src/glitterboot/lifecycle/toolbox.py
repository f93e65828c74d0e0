# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/lifecycle/toolbox.py
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import typer

from ..bootstrap.template_renderer import TemplateRenderer
from ..config.models import BootConfig
from ..node.keys import KeyGenerator
from ..rpc.client import GlitterAdminClient, TendermintClient
from ..utils.download import Downloader
from ..utils.host import HostOps
from ..utils.systemd import Systemctl


@dataclass
class Toolbox:
    """
    External collaborators the operation catalog calls out to.

    Tests swap any of these for fakes; ``Toolbox.default`` wires the real
    ones.
    """

    systemd: Any
    downloader: Any
    host: Any
    keygen: Any
    renderer: Any
    rpc_client: Callable[[str], Any]
    admin_client: Callable[[str], Any]
    sleep: Callable[[float], None] = time.sleep
    cancel: Optional[threading.Event] = None
    echo: Callable[[str], None] = typer.echo

    @classmethod
    def default(cls, cfg: BootConfig, cancel: Optional[threading.Event] = None) -> "Toolbox":
        timeout = cfg.network.http_timeout_seconds
        return cls(
            systemd=Systemctl(),
            downloader=Downloader(timeout=cfg.network.download_timeout_seconds),
            host=HostOps(),
            keygen=KeyGenerator(),
            renderer=TemplateRenderer(),
            rpc_client=lambda url: TendermintClient(url, timeout=timeout),
            admin_client=lambda url: GlitterAdminClient(url, timeout=timeout),
            cancel=cancel,
        )
