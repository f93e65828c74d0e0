# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/core/context.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..node.address import NodeAddr
from .store import FileStore


@dataclass
class PipelineContext:
    """
    Mutable state shared by the steps of one lifecycle invocation.

    Only what a step explicitly writes to the store or the filesystem
    outlives the run.
    """

    work_dir: Optional[Path] = None
    store_path: Optional[Path] = None

    mode: str = ""                     # "full" | "validator"
    moniker: str = ""
    index_mode: str = ""

    engine_binary_url: Optional[str] = None
    app_binary_url: Optional[str] = None

    seeds_str: str = ""
    seeds: List[NodeAddr] = field(default_factory=list)

    remote_rpc_url: str = ""
    remote_app_url: str = ""
    local_rpc_url: str = ""

    render_params: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    # outputs of earlier steps
    node_id: str = ""
    validator_address: str = ""
    validator_pub_key: str = ""        # base64

    store: Optional[FileStore] = None
    cluster_client: Any = None
    local_client: Any = None
    app_client: Any = None

    def require_store(self) -> FileStore:
        if self.store is None:
            raise RuntimeError("state store was not opened by an earlier step")
        return self.store
