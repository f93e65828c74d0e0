# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/utils/serialize.py

from dataclasses import is_dataclass, asdict
from enum import Enum
from pathlib import PurePath
from typing import Any

def to_jsonable(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, dict):
        return {k: to_jsonable(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]

    if isinstance(obj, PurePath):
        return str(obj)

    if isinstance(obj, Enum):
        return obj.value

    return obj
