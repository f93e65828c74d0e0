# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/cli/app.py
from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from glitterboot.config.loader import load_config
from glitterboot.config.models import BootConfig
from glitterboot.core.errors import ConfigError
from glitterboot.lifecycle.operator import NodeOperation, NodeOperator
from glitterboot.lifecycle.steps import NodeOpsArgs
from glitterboot.lifecycle.toolbox import Toolbox
from glitterboot.logging.log import init_logging
from glitterboot.observers.jsonfile import JsonFileObserver
from glitterboot.observers.logger import LoggerObserver


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Glitter node bootstrap CLI", no_args_is_help=True)
fullnode_app = typer.Typer(help="Full node shortcuts", no_args_is_help=True)
validator_app = typer.Typer(help="Validator shortcuts", no_args_is_help=True)
app.add_typer(fullnode_app, name="fullnode")
app.add_typer(validator_app, name="validator")


@dataclass
class CliState:
    config: Optional[Path] = None
    debug: bool = False


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML config file (default: $GLITTER_BOOT_CONFIG)"
    ),
    debug: bool = typer.Option(False, "--debug", help="Mirror the debug log to the console"),
):
    ctx.obj = CliState(config=config, debug=debug)


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _load_cfg(state: CliState) -> BootConfig:
    try:
        return load_config(state.config)
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


def _run(ctx: typer.Context, op: NodeOperation, args: Optional[NodeOpsArgs] = None) -> None:
    state: CliState = ctx.obj or CliState()
    cfg = _load_cfg(state)

    logger, run_id, log_path = init_logging(base_dir=cfg.paths.log_dir, verbose=state.debug)
    jsonl_dir = cfg.paths.log_dir or (Path.home() / ".glitter-boot" / "logs")
    observers: List = [
        LoggerObserver(logger),
        JsonFileObserver(jsonl_dir / f"{run_id}.jsonl"),
    ]

    operator = NodeOperator(cfg, Toolbox.default(cfg, cancel=threading.Event()), observers=observers, run_id=run_id)
    err = operator.operate(op, args)
    if err is not None:
        logger.error("%s failed: %s (log: %s)", op.value, err, log_path)
        raise typer.Exit(code=1)


def _node_args(
    seeds: str,
    moniker: str,
    indexer: str,
    glitter_bin_url: Optional[str],
    tendermint_bin_url: Optional[str],
    timeout: Optional[float] = None,
) -> NodeOpsArgs:
    return NodeOpsArgs(
        seeds=seeds,
        moniker=moniker,
        index_mode=indexer,
        app_binary_url=glitter_bin_url,
        engine_binary_url=tendermint_bin_url,
        poll_timeout=timeout,
    )


SEEDS_OPT = typer.Option("", "--seeds", help="Comma separated id@host:port seed list")
MONIKER_OPT = typer.Option("", "--moniker", help="Node moniker")
INDEXER_OPT = typer.Option("es", "--indexer", help="Glitter index mode: kv | es")
GLITTER_URL_OPT = typer.Option(
    None, "--glitter-bin-url", "--glitter_bin_url", help="Download URL of the glitter binary"
)
TENDERMINT_URL_OPT = typer.Option(
    None, "--tendermint-bin-url", "--tendermint_bin_url", help="Download URL of the tendermint binary"
)
TIMEOUT_OPT = typer.Option(
    None, "--timeout", help="Give up waiting for the validator set after this many seconds"
)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def init(
    ctx: typer.Context,
    seeds: str = SEEDS_OPT,
    moniker: str = MONIKER_OPT,
    indexer: str = INDEXER_OPT,
    glitter_bin_url: Optional[str] = GLITTER_URL_OPT,
    tendermint_bin_url: Optional[str] = TENDERMINT_URL_OPT,
):
    """Download binaries, render configs, generate keys and install the node."""
    _run(ctx, NodeOperation.INIT, _node_args(seeds, moniker, indexer, glitter_bin_url, tendermint_bin_url))


@app.command()
def start(
    ctx: typer.Context,
    mode: str = typer.Argument(..., help="fullnode | validator"),
    timeout: Optional[float] = TIMEOUT_OPT,
):
    """Start the node as a full node or, once admitted, as a validator."""
    if mode == "fullnode":
        _run(ctx, NodeOperation.START_FULLNODE)
    elif mode == "validator":
        _run(ctx, NodeOperation.START_VALIDATOR, NodeOpsArgs(poll_timeout=timeout))
    else:
        raise typer.BadParameter(f"unknown mode {mode!r}, expected fullnode or validator", param_hint="MODE")


@app.command()
def stop(ctx: typer.Context):
    """Stop both services."""
    _run(ctx, NodeOperation.STOP)


@app.command("show-node-info")
def show_node_info(ctx: typer.Context):
    """Print node id, keys and service status."""
    _run(ctx, NodeOperation.SHOW_INFO)


@app.command("show_node_info", hidden=True)
def show_node_info_alias(ctx: typer.Context):
    _run(ctx, NodeOperation.SHOW_INFO)


@fullnode_app.command("setup")
def fullnode_setup(
    ctx: typer.Context,
    seeds: str = SEEDS_OPT,
    moniker: str = MONIKER_OPT,
    indexer: str = INDEXER_OPT,
    glitter_bin_url: Optional[str] = GLITTER_URL_OPT,
    tendermint_bin_url: Optional[str] = TENDERMINT_URL_OPT,
):
    """Init and start a full node in one go."""
    _run(
        ctx,
        NodeOperation.SETUP_FULLNODE,
        _node_args(seeds, moniker, indexer, glitter_bin_url, tendermint_bin_url),
    )


@validator_app.command("setup")
def validator_setup(
    ctx: typer.Context,
    seeds: str = SEEDS_OPT,
    moniker: str = MONIKER_OPT,
    indexer: str = INDEXER_OPT,
    glitter_bin_url: Optional[str] = GLITTER_URL_OPT,
    tendermint_bin_url: Optional[str] = TENDERMINT_URL_OPT,
    timeout: Optional[float] = TIMEOUT_OPT,
):
    """
    Init and start a full node, ask the seed cluster to admit it as a
    validator, wait for the validator set, then restart in validator mode.
    """
    _run(
        ctx,
        NodeOperation.SETUP_VALIDATOR,
        _node_args(seeds, moniker, indexer, glitter_bin_url, tendermint_bin_url, timeout),
    )


if __name__ == "__main__":
    app()
