# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/config/models.py

from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field


class PathsConfig(BaseModel):
    install_dir: Path = Path("/usr/local/glitter")
    boot_dir: Optional[Path] = None             # defaults to <install_dir>/glitter-boot
    systemd_dir: Path = Path("/etc/systemd/system")
    bin_dir: Path = Path("/usr/bin")
    scratch_dirs: List[Path] = Field(default_factory=lambda: [Path("/tmp/kvstore")])
    log_dir: Optional[Path] = None              # defaults to ~/.glitter-boot/logs

    @property
    def work_dir(self) -> Path:
        return self.boot_dir or (self.install_dir / "glitter-boot")

    @property
    def store_path(self) -> Path:
        return self.work_dir / "store.json"

    @property
    def engine_home(self) -> Path:
        return self.install_dir / "tendermint"

    @property
    def app_home(self) -> Path:
        return self.install_dir / "glitter"


class ServiceConfig(BaseModel):
    user: str = "glitter"
    group: str = "glitter"
    engine_service: str = "tendermint"          # systemd unit + binary name
    app_service: str = "glitter"


class NetworkConfig(BaseModel):
    rpc_port: int = 26657
    p2p_port: int = 26656
    app_port: int = 26659
    abci_port: int = 26658
    local_rpc_url: str = "http://127.0.0.1:26657"
    http_timeout_seconds: float = 10.0
    download_timeout_seconds: float = 120.0


class BinariesConfig(BaseModel):
    engine_url: Optional[str] = None
    app_url: Optional[str] = None


class PollConfig(BaseModel):
    grace_seconds: float = 5.0
    interval_seconds: float = 1.0
    max_consecutive_errors: int = 10
    timeout_seconds: Optional[float] = None


class BootConfig(BaseModel):
    paths: PathsConfig = Field(default_factory=PathsConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    binaries: BinariesConfig = Field(default_factory=BinariesConfig)
    poll: PollConfig = Field(default_factory=PollConfig)
