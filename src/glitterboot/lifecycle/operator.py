# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/lifecycle/operator.py
from __future__ import annotations

import logging
from enum import Enum
from functools import partial
from typing import Callable, Dict, List, Optional

from ..config.models import BootConfig
from ..core.errors import PipelineError
from ..core.pipeline import Pipeline
from ..observers.console import ConsoleObserver
from ..observers.dispatcher import EventBus
from ..observers.events import PipelineSummary
from ..observers.interface import Observer
from .steps import NodeOpsArgs, OperationCatalog
from .toolbox import Toolbox

log = logging.getLogger("glitterboot")


class NodeOperation(str, Enum):
    INIT = "init"
    START_FULLNODE = "start-fullnode"
    START_VALIDATOR = "start-validator"
    STOP = "stop"
    SHOW_INFO = "show-info"
    SETUP_FULLNODE = "setup-fullnode"
    SETUP_VALIDATOR = "setup-validator"


SUCCESS_MESSAGES: Dict[NodeOperation, Optional[str]] = {
    NodeOperation.INIT: "Init node successfully",
    NodeOperation.START_FULLNODE: "Start fullnode successfully",
    NodeOperation.START_VALIDATOR: "Start validator successfully",
    NodeOperation.STOP: "Stop node successfully",
    NodeOperation.SHOW_INFO: None,
    NodeOperation.SETUP_FULLNODE: "Setup fullnode successfully",
    NodeOperation.SETUP_VALIDATOR: "Setup validator successfully",
}


class NodeOperator:
    """
    Lifecycle dispatcher: runs the pipeline for one operation and renders
    the outcome to the operator.
    """

    def __init__(
        self,
        cfg: BootConfig,
        toolbox: Optional[Toolbox] = None,
        *,
        observers: Optional[List[Observer]] = None,
        run_id: Optional[str] = None,
    ):
        self.cfg = cfg
        self.tools = toolbox or Toolbox.default(cfg)
        self.bus = EventBus([ConsoleObserver(), *(observers or [])])
        self.run_id = run_id

    def operate(self, op: NodeOperation, args: Optional[NodeOpsArgs] = None) -> Optional[PipelineError]:
        args = args or NodeOpsArgs()
        builders: Dict[NodeOperation, Callable[[Pipeline, OperationCatalog, NodeOpsArgs], None]] = {
            NodeOperation.INIT: self._init,
            NodeOperation.START_FULLNODE: self._start_fullnode,
            NodeOperation.START_VALIDATOR: self._start_validator,
            NodeOperation.STOP: self._stop,
            NodeOperation.SHOW_INFO: self._show_info,
            NodeOperation.SETUP_FULLNODE: self._setup_fullnode,
            NodeOperation.SETUP_VALIDATOR: self._setup_validator,
        }

        pipe = Pipeline(bus=self.bus, operation=op.value, run_id=self.run_id)
        catalog = OperationCatalog(self.cfg, self.tools, self.bus, pipe.run_ctx)

        log.info("operation %s started", op.value)
        builders[op](pipe, catalog, args)

        err = pipe.result()
        statuses = [r.status for r in pipe.records]
        self.bus.emit(
            PipelineSummary(
                ok=statuses.count("OK"),
                failed=statuses.count("FAILED"),
                skipped=statuses.count("SKIPPED"),
                error=str(err) if err else None,
                **pipe.run_ctx,
            )
        )
        log.info("operation %s finished: %s", op.value, pipe.summary())

        if err is not None:
            self.tools.echo(str(err))
            if op is NodeOperation.SHOW_INFO:
                self.tools.echo("Did you initialize the node?")
            return err

        msg = SUCCESS_MESSAGES[op]
        if msg:
            self.tools.echo(msg)
        return None

    # ------------------------------------------------------------------
    # pipelines
    # ------------------------------------------------------------------

    def _init(self, p: Pipeline, c: OperationCatalog, args: NodeOpsArgs) -> None:
        svc = self.cfg.service
        (
            p.append("Check user and group", c.check_user_group)
            .append("Open state store", c.open_store)
            .append("Check not initialized", c.require_not_initialized)
            .append("Parse arguments", partial(c.parse_args, args))
            .append("Prepare work dir", c.prepare_work_dir)
            .append(f"Download {svc.engine_service}", c.download_engine)
            .append(f"Download {svc.app_service}", c.download_app)
            .append("Download genesis file", c.download_genesis)
            .append(f"Render {svc.app_service} config", c.render_app_config)
            .append(f"Render {svc.engine_service} config", c.render_engine_configs)
            .append("Render systemctl config", c.render_service_units)
            .append("Generate nodekey files", c.generate_node_key)
            .append("Generate validator key files", c.generate_validator_key)
            .append("Reset and copy files", c.reset_and_copy)
            .append("Save config", c.save_config)
        )

    def _check_initialized(self, p: Pipeline, c: OperationCatalog) -> None:
        p.append("Open state store", c.open_store).append("Check", c.require_initialized)

    def _start_fullnode(self, p: Pipeline, c: OperationCatalog, args: NodeOpsArgs) -> None:
        svc = self.cfg.service
        self._check_initialized(p, c)
        (
            p.append("Switch to fullnode mode", c.switch_to_fullnode)
            .append(f"Restart {svc.engine_service}", c.restart_service(svc.engine_service))
            .append(f"Restart {svc.app_service}", c.restart_service(svc.app_service))
        )

    def _start_validator(self, p: Pipeline, c: OperationCatalog, args: NodeOpsArgs) -> None:
        svc = self.cfg.service
        self._check_initialized(p, c)
        (
            p.append("Prepare", c.prepare_local_client)
            .append("Waiting to receive a validator change event...",
                    partial(c.await_validator_set, timeout=args.poll_timeout))
            .append("Switch to validator mode", c.switch_to_validator)
            .append(f"Restart {svc.engine_service}", c.restart_service(svc.engine_service))
            .append(f"Restart {svc.app_service}", c.restart_service(svc.app_service))
        )

    def _stop(self, p: Pipeline, c: OperationCatalog, args: NodeOpsArgs) -> None:
        svc = self.cfg.service
        self._check_initialized(p, c)
        (
            p.append(f"Stop {svc.engine_service}", c.stop_service(svc.engine_service))
            .append(f"Stop {svc.app_service}", c.stop_service(svc.app_service))
        )

    def _show_info(self, p: Pipeline, c: OperationCatalog, args: NodeOpsArgs) -> None:
        self._check_initialized(p, c)
        p.append("Node Info", c.show_node_info)

    def _setup_fullnode(self, p: Pipeline, c: OperationCatalog, args: NodeOpsArgs) -> None:
        svc = self.cfg.service
        self._init(p, c, args)
        (
            p.append(f"Start {svc.engine_service} full node", c.start_service(svc.engine_service))
            .append(f"Start {svc.app_service}", c.start_service(svc.app_service))
        )

    def _setup_validator(self, p: Pipeline, c: OperationCatalog, args: NodeOpsArgs) -> None:
        svc = self.cfg.service
        self._setup_fullnode(p, c, args)
        (
            p.append("Make validator change", c.request_validator_change)
            .append("Wait received validator change",
                    partial(c.await_validator_set, timeout=args.poll_timeout))
            .append(f"Stop {svc.engine_service} full node", c.stop_service(svc.engine_service))
            .append("Switch to validator mode", c.switch_to_validator)
            .append(f"Restart {svc.engine_service}", c.restart_service(svc.engine_service))
        )
