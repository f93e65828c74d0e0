# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/node/address.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from ..core.errors import ValidationError


@dataclass(frozen=True)
class NodeAddr:
    node_id: str
    host: str
    port: str

    def __str__(self) -> str:
        return f"{self.node_id}@{join_host_port(self.host, self.port)}"


def join_host_port(host: str, port: str | int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def split_host_port(hostport: str) -> Tuple[str, str]:
    """
    Split ``host:port`` or ``[ipv6]:port``. Raises ValueError on bad input.
    """
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError("missing ']' in address")
        host = hostport[1:end]
        rest = hostport[end + 1:]
        if not rest.startswith(":"):
            raise ValueError("missing port in address")
        port = rest[1:]
    else:
        if hostport.count(":") != 1:
            raise ValueError("missing port in address" if ":" not in hostport else "too many colons in address")
        host, port = hostport.split(":")

    if not host:
        raise ValueError("missing host in address")
    if not port.isdigit() or not 0 < int(port) <= 65535:
        raise ValueError(f"invalid port {port!r}")
    return host, port


def parse_node_addr(id_host_port: str) -> NodeAddr:
    parts = id_host_port.split("@")
    if len(parts) != 2 or not parts[0]:
        raise ValidationError(f"invalid node IdHostPort: {id_host_port}")
    try:
        host, port = split_host_port(parts[1])
    except ValueError as exc:
        raise ValidationError(f"invalid node IdHostPort: {id_host_port} err={exc}") from exc
    return NodeAddr(node_id=parts[0], host=host, port=port)


def parse_seeds(seeds: str) -> List[NodeAddr]:
    """
    Parse a comma separated seed list. Blank entries are ignored; at least
    one seed is required.
    """
    out: List[NodeAddr] = []
    for s in (seeds or "").split(","):
        s = s.strip()
        if not s:
            continue
        out.append(parse_node_addr(s))
    if not out:
        raise ValidationError("invalid argument seeds: at least provide one seed")
    return out
