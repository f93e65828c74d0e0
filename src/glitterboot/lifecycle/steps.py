# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/lifecycle/steps.py
"""
Operation catalog: thin pipeline steps, each calling one collaborator.

Every step takes the shared PipelineContext and either returns None or
raises an operational error (see core.errors.OPERATIONAL_ERRORS).
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from ..config.models import BootConfig
from ..core.context import PipelineContext
from ..core import convergence
from ..core.errors import CommandError, PreconditionError, ValidationError
from ..core.store import FileStore
from ..node.address import join_host_port, parse_seeds
from ..node.keys import (
    load_node_key,
    load_validator_key,
    write_node_key,
    write_validator_key,
)
from ..observers.dispatcher import EventBus
from ..observers.events import StepWarning
from ..utils.signals import cancel_on_signal
from .toolbox import Toolbox

log = logging.getLogger("glitterboot")

# State store vocabulary
KEY_SEEDS = "seeds"
KEY_MONIKER = "moniker"
KEY_NODE_ID = "node_id"
KEY_PUB_KEY = "pub_key"
KEY_PUB_KEY_ADDRESS = "pub_key_address"
KEY_INIT_DONE = "init_done"
KEY_VALIDATOR_STAGE = "validator_stage"

INDEX_MODES = ("kv", "es")

FULL_CONFIG = "tendermint-full.config.toml"
VALIDATOR_CONFIG = "tendermint-validator.config.toml"
APP_CONFIG = "glitter.config.toml"
GENESIS = "genesis.json"
NODE_KEY = "node_key.json"
VALIDATOR_KEY = "priv_validator_key.json"
VALIDATOR_STATE = "priv_validator_state.json"


@dataclass
class NodeOpsArgs:
    seeds: str = ""
    moniker: str = ""
    index_mode: str = "es"
    app_binary_url: Optional[str] = None
    engine_binary_url: Optional[str] = None
    poll_timeout: Optional[float] = None


class OperationCatalog:
    def __init__(self, cfg: BootConfig, toolbox: Toolbox, bus: EventBus, run_ctx: dict):
        self.cfg = cfg
        self.tools = toolbox
        self.bus = bus
        self.run_ctx = run_ctx

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @property
    def work_dir(self) -> Path:
        return self.cfg.paths.work_dir

    def _warn(self, step: str, message: str) -> None:
        log.warning(message)
        self.bus.emit(StepWarning(step=step, message=message, **self.run_ctx))

    def _engine_config_dir(self) -> Path:
        return self.cfg.paths.engine_home / "config"

    # ------------------------------------------------------------------
    # state checks
    # ------------------------------------------------------------------

    def check_user_group(self, ctx: PipelineContext) -> None:
        svc = self.cfg.service
        self.tools.host.check_user_group(svc.user, svc.group)

    def open_store(self, ctx: PipelineContext) -> None:
        ctx.work_dir = self.work_dir
        ctx.store_path = self.cfg.paths.store_path
        # missing file reads as "not initialized"; nothing is written here
        ctx.store = FileStore.open(ctx.store_path, create_if_missing=True)

    def require_not_initialized(self, ctx: PipelineContext) -> None:
        if ctx.require_store().get(KEY_INIT_DONE) == "true":
            raise PreconditionError(
                "Full node has already setup, please remove "
                f"{self.work_dir} then redo current command if you want to reset it"
            )

    def require_initialized(self, ctx: PipelineContext) -> None:
        if ctx.require_store().get(KEY_INIT_DONE) != "true":
            raise PreconditionError("Please init node first")

    # ------------------------------------------------------------------
    # init
    # ------------------------------------------------------------------

    def parse_args(self, args: NodeOpsArgs, ctx: PipelineContext) -> None:
        ctx.moniker = args.moniker
        ctx.index_mode = args.index_mode
        ctx.seeds_str = args.seeds
        ctx.engine_binary_url = args.engine_binary_url or self.cfg.binaries.engine_url
        ctx.app_binary_url = args.app_binary_url or self.cfg.binaries.app_url

        if not ctx.moniker:
            raise ValidationError("invalid argument moniker: must not be empty")
        if not ctx.engine_binary_url:
            raise ValidationError("missing tendermint binary URL (--tendermint-bin-url or binaries.engine_url)")
        if not ctx.app_binary_url:
            raise ValidationError("missing glitter binary URL (--glitter-bin-url or binaries.app_url)")

        ctx.seeds = parse_seeds(ctx.seeds_str)

        net = self.cfg.network
        selected = ctx.seeds[0]
        ctx.remote_rpc_url = "http://" + join_host_port(selected.host, net.rpc_port)
        ctx.remote_app_url = "http://" + join_host_port(selected.host, net.app_port)
        ctx.local_rpc_url = net.local_rpc_url

    def prepare_work_dir(self, ctx: PipelineContext) -> None:
        self.tools.host.make_dirs(self.work_dir)
        ctx.cluster_client = self.tools.rpc_client(ctx.remote_rpc_url)
        ctx.local_client = self.tools.rpc_client(ctx.local_rpc_url)
        ctx.app_client = self.tools.admin_client(ctx.remote_app_url)

    def download_engine(self, ctx: PipelineContext) -> None:
        self.tools.downloader.download(ctx.engine_binary_url, self.work_dir / self.cfg.service.engine_service)

    def download_app(self, ctx: PipelineContext) -> None:
        self.tools.downloader.download(ctx.app_binary_url, self.work_dir / self.cfg.service.app_service)

    def download_genesis(self, ctx: PipelineContext) -> None:
        doc = ctx.cluster_client.genesis()
        (self.work_dir / GENESIS).write_text(json.dumps(doc, indent=2) + "\n", encoding="utf-8")

    def render_app_config(self, ctx: PipelineContext) -> None:
        if ctx.index_mode not in INDEX_MODES:
            raise ValidationError(f"invalid glitter index mode: {ctx.index_mode}")
        params = {
            "index_mode": ctx.index_mode,
            "app_port": self.cfg.network.app_port,
            "abci_port": self.cfg.network.abci_port,
        }
        ctx.render_params["glitter"] = params
        self.tools.renderer.render_to("glitter.config.toml.j2", self.work_dir / APP_CONFIG, params)

    def render_engine_configs(self, ctx: PipelineContext) -> None:
        net = self.cfg.network
        for mode, name in (("full", FULL_CONFIG), ("validator", VALIDATOR_CONFIG)):
            params = {
                "moniker": ctx.moniker,
                "seeds": ctx.seeds_str,
                "mode": mode,
                "rpc_port": net.rpc_port,
                "p2p_port": net.p2p_port,
                "abci_port": net.abci_port,
            }
            ctx.render_params[f"tendermint-{mode}"] = params
            self.tools.renderer.render_to("tendermint.config.toml.j2", self.work_dir / name, params)

    def render_service_units(self, ctx: PipelineContext) -> None:
        svc = self.cfg.service
        params = {
            "user": svc.user,
            "group": svc.group,
            "install_dir": str(self.cfg.paths.install_dir),
            "bin_dir": str(self.cfg.paths.bin_dir),
            "engine_service": svc.engine_service,
            "app_service": svc.app_service,
        }
        self.tools.renderer.render_to("tendermint.service.j2", self.work_dir / f"{svc.engine_service}.service", params)
        self.tools.renderer.render_to("glitter.service.j2", self.work_dir / f"{svc.app_service}.service", params)

    def generate_node_key(self, ctx: PipelineContext) -> None:
        path = self.work_dir / NODE_KEY
        if path.exists():
            self._warn("Generate nodekey files", "Skip Generate NodeKeyFile: node_key already exist")
            key = load_node_key(path)
        else:
            key = self.tools.keygen.generate()
            write_node_key(path, key)
        ctx.node_id = key.node_id
        ctx.require_store().set(KEY_NODE_ID, key.node_id)

    def generate_validator_key(self, ctx: PipelineContext) -> None:
        key_path = self.work_dir / VALIDATOR_KEY
        state_path = self.work_dir / VALIDATOR_STATE
        if key_path.exists():
            self._warn("Generate validator key files", "Skip Generate ValidatorFile: validator_key already exist")
            key = load_validator_key(key_path)
        else:
            key = self.tools.keygen.generate()
            write_validator_key(key_path, state_path, key)

        ctx.validator_address = key.address
        ctx.validator_pub_key = key.pub_value
        store = ctx.require_store()
        store.set(KEY_PUB_KEY, key.pub_value)
        store.set(KEY_PUB_KEY_ADDRESS, key.address)

    def _install_plan(self) -> List[Tuple[Path, Path]]:
        wd = self.work_dir
        paths = self.cfg.paths
        svc = self.cfg.service
        engine_cfg = self._engine_config_dir()
        engine_data = paths.engine_home / "data"
        return [
            (wd / FULL_CONFIG, engine_cfg / "config.toml"),
            (wd / GENESIS, engine_cfg / GENESIS),
            (wd / NODE_KEY, engine_cfg / NODE_KEY),
            (wd / VALIDATOR_KEY, engine_cfg / VALIDATOR_KEY),
            (wd / VALIDATOR_STATE, engine_data / VALIDATOR_STATE),
            (wd / APP_CONFIG, paths.app_home / "config.toml"),
            (wd / f"{svc.app_service}.service", paths.systemd_dir / f"{svc.app_service}.service"),
            (wd / f"{svc.engine_service}.service", paths.systemd_dir / f"{svc.engine_service}.service"),
            (wd / svc.app_service, paths.bin_dir / svc.app_service),
            (wd / svc.engine_service, paths.bin_dir / svc.engine_service),
        ]

    def reset_and_copy(self, ctx: PipelineContext) -> None:
        host = self.tools.host
        paths = self.cfg.paths
        svc = self.cfg.service

        for unit in (svc.engine_service, svc.app_service):
            try:
                self.tools.systemd.stop(unit)
            except CommandError as exc:
                # not installed yet on a fresh host
                self._warn("Reset and copy files", f"could not stop {unit}: {exc}")

        for d in (paths.engine_home, paths.app_home, *paths.scratch_dirs):
            host.remove_tree(d)
        host.make_dirs(self._engine_config_dir())
        host.make_dirs(paths.engine_home / "data")
        host.make_dirs(paths.app_home)

        for src, dest in self._install_plan():
            try:
                host.copy_file(src, dest)
            except OSError as exc:
                raise OSError(f"copy file error: {src} -> {dest} err={exc}") from exc
        # install lays down the full-mode engine config
        ctx.mode = "full"

        binaries = [paths.bin_dir / svc.app_service, paths.bin_dir / svc.engine_service]
        for b in binaries:
            host.chmod(b, 0o755)

        host.chown(paths.install_dir, svc.user, svc.group, recursive=True)
        for b in binaries:
            host.chown(b, svc.user, svc.group)

        self.tools.systemd.daemon_reload()

    def save_config(self, ctx: PipelineContext) -> None:
        store = ctx.require_store()
        store.set(KEY_SEEDS, ctx.seeds_str)
        store.set(KEY_MONIKER, ctx.moniker)
        store.set(KEY_INIT_DONE, "true")

    # ------------------------------------------------------------------
    # mode switching / services
    # ------------------------------------------------------------------

    def _switch_mode(self, ctx: PipelineContext, mode: str, config_name: str) -> None:
        self.tools.host.copy_file(self.work_dir / config_name, self._engine_config_dir() / "config.toml")
        ctx.mode = mode
        log.info("engine config switched to %s mode", mode)

    def switch_to_fullnode(self, ctx: PipelineContext) -> None:
        self._switch_mode(ctx, "full", FULL_CONFIG)

    def switch_to_validator(self, ctx: PipelineContext) -> None:
        self._switch_mode(ctx, "validator", VALIDATOR_CONFIG)

    def prepare_local_client(self, ctx: PipelineContext) -> None:
        ctx.local_rpc_url = self.cfg.network.local_rpc_url
        ctx.local_client = self.tools.rpc_client(ctx.local_rpc_url)
        store = ctx.require_store()
        ctx.moniker = store.get(KEY_MONIKER)
        ctx.validator_address = store.get(KEY_PUB_KEY_ADDRESS)
        ctx.validator_pub_key = store.get(KEY_PUB_KEY)

    def request_validator_change(self, ctx: PipelineContext) -> None:
        if not ctx.validator_pub_key:
            raise PreconditionError("validator public key is unknown, generate validator key files first")
        reply = ctx.app_client.update_validator(ctx.validator_pub_key, power=1)
        log.info("update_validator reply: %s", reply.strip())

    def await_validator_set(self, ctx: PipelineContext, timeout: Optional[float] = None) -> None:
        store = ctx.require_store()
        address = ctx.validator_address or store.get(KEY_PUB_KEY_ADDRESS)
        if not address and store.get(KEY_VALIDATOR_STAGE) != "ok":
            raise PreconditionError("validator address is not recorded, re-run init")
        poll = self.cfg.poll
        cancel = self.tools.cancel if self.tools.cancel is not None else threading.Event()
        with cancel_on_signal(cancel):
            convergence.wait_for_validator(
                store,
                ctx.local_client,
                address,
                options=convergence.PollOptions(
                    grace_seconds=poll.grace_seconds,
                    interval_seconds=poll.interval_seconds,
                    max_consecutive_errors=poll.max_consecutive_errors,
                    timeout_seconds=timeout if timeout is not None else poll.timeout_seconds,
                ),
                cancel=cancel,
                sleep=self.tools.sleep,
                bus=self.bus,
                operation=self.run_ctx.get("operation", "start-validator"),
            )

    def start_service(self, unit: str):
        def _step(ctx: PipelineContext) -> None:
            self.tools.systemd.start(unit)
        return _step

    def stop_service(self, unit: str):
        def _step(ctx: PipelineContext) -> None:
            self.tools.systemd.stop(unit)
        return _step

    def restart_service(self, unit: str):
        def _step(ctx: PipelineContext) -> None:
            self.tools.systemd.restart(unit)
        return _step

    # ------------------------------------------------------------------
    # reporting
    # ------------------------------------------------------------------

    def show_node_info(self, ctx: PipelineContext) -> None:
        store = ctx.require_store()
        svc = self.cfg.service
        paths = self.cfg.paths
        engine_status = self.tools.systemd.is_active(svc.engine_service)
        app_status = self.tools.systemd.is_active(svc.app_service)

        self.tools.echo(
            "\n"
            f"NodeID:\t\t{store.get(KEY_NODE_ID)}\n"
            f"Moniker:\t{store.get(KEY_MONIKER)}\n"
            "\n"
            f"PubKey:\t\t{store.get(KEY_PUB_KEY)}\n"
            f"Address:\t{store.get(KEY_PUB_KEY_ADDRESS)}\n"
            "\n"
            f"Tendermint Status: {engine_status}\n"
            f"Glitter    Status: {app_status}\n"
            "\n"
            f"PrivateKeyFile:\t{self.work_dir / VALIDATOR_KEY}\n"
            f"GlitterBootDir:\t{self.work_dir}\n"
            f"GlitterDir:\t{paths.app_home}\n"
        )
