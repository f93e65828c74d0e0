# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/config/loader.py

import logging
import os
from pathlib import Path
from typing import Optional

import pydantic
import yaml

from .models import BootConfig
from ..core.errors import ConfigError

log = logging.getLogger("glitterboot")

CONFIG_ENV = "GLITTER_BOOT_CONFIG"


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Recursively merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            _deep_merge(base[key], value)
        else:
            if value not in (None, ""):
                base[key] = value
    return base


def _find_config_file(path: Optional[Path]) -> Optional[Path]:
    """
    1. explicit --config path (must exist)
    2. GLITTER_BOOT_CONFIG environment variable
    3. none: built-in defaults
    """
    if path is not None:
        if not path.is_file():
            raise ConfigError(f"config file {path} does not exist")
        return path

    env = os.environ.get(CONFIG_ENV)
    if env:
        p = Path(env)
        if p.is_file():
            return p
        log.warning("%s=%s does not exist, using defaults", CONFIG_ENV, env)
    return None


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    try:
        data = yaml.safe_load(expanded) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def load_config(path: str | Path | None = None, overrides: Optional[dict] = None) -> BootConfig:
    """
    Build the BootConfig for this invocation.

    Values come from the built-in defaults, then the YAML file (explicit
    path or ``$GLITTER_BOOT_CONFIG``), then *overrides* (typically CLI
    flags) deep-merged on top. Empty override values are ignored.
    """
    cfg_path = _find_config_file(Path(path) if path is not None else None)

    data: dict = {}
    if cfg_path:
        log.debug("loading config from %s", cfg_path)
        data = _load_yaml(cfg_path)
    else:
        log.debug("no config file, using defaults")

    if overrides:
        _deep_merge(data, overrides)

    try:
        return BootConfig.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ConfigError(f"invalid configuration: {exc}") from exc
