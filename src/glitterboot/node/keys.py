# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/node/keys.py
"""
Tendermint-compatible Ed25519 key material.

File layouts follow what the engine expects on disk:

* ``node_key.json``              {"priv_key": {"type", "value"}}
* ``priv_validator_key.json``    {"address", "pub_key", "priv_key"}
* ``priv_validator_state.json``  {"height": "0", "round": 0, "step": 0}

Private keys are serialized as seed || public key (64 bytes), base64.
"""

from __future__ import annotations

import base64
import hashlib
import json
from dataclasses import dataclass
from pathlib import Path

from nacl.signing import SigningKey

from ..core.errors import ValidationError

PRIV_KEY_TYPE = "tendermint/PrivKeyEd25519"
PUB_KEY_TYPE = "tendermint/PubKeyEd25519"


def _address_bytes(pub: bytes) -> bytes:
    return hashlib.sha256(pub).digest()[:20]


@dataclass(frozen=True)
class Ed25519Key:
    seed: bytes
    pub_key: bytes

    @classmethod
    def generate(cls) -> "Ed25519Key":
        sk = SigningKey.generate()
        return cls(seed=bytes(sk), pub_key=bytes(sk.verify_key))

    @classmethod
    def from_priv_value(cls, value: str) -> "Ed25519Key":
        raw = base64.b64decode(value)
        if len(raw) != 64:
            raise ValidationError(f"ed25519 private key must be 64 bytes, got {len(raw)}")
        sk = SigningKey(raw[:32])
        return cls(seed=raw[:32], pub_key=bytes(sk.verify_key))

    @property
    def priv_value(self) -> str:
        return base64.b64encode(self.seed + self.pub_key).decode()

    @property
    def pub_value(self) -> str:
        return base64.b64encode(self.pub_key).decode()

    @property
    def node_id(self) -> str:
        return _address_bytes(self.pub_key).hex()

    @property
    def address(self) -> str:
        return _address_bytes(self.pub_key).hex().upper()


def _write_json(path: Path, doc: dict) -> None:
    path.write_text(json.dumps(doc, indent=2) + "\n", encoding="utf-8")


def _load_key(path: Path) -> Ed25519Key:
    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
        return Ed25519Key.from_priv_value(doc["priv_key"]["value"])
    except (ValueError, KeyError, TypeError) as exc:
        raise ValidationError(f"malformed key file {path}: {exc}") from exc


def write_node_key(path: Path, key: Ed25519Key) -> None:
    _write_json(path, {"priv_key": {"type": PRIV_KEY_TYPE, "value": key.priv_value}})


def load_node_key(path: Path) -> Ed25519Key:
    return _load_key(path)


def write_validator_key(key_path: Path, state_path: Path, key: Ed25519Key) -> None:
    _write_json(
        key_path,
        {
            "address": key.address,
            "pub_key": {"type": PUB_KEY_TYPE, "value": key.pub_value},
            "priv_key": {"type": PRIV_KEY_TYPE, "value": key.priv_value},
        },
    )
    _write_json(state_path, {"height": "0", "round": 0, "step": 0})


def load_validator_key(key_path: Path) -> Ed25519Key:
    return _load_key(key_path)


class KeyGenerator:
    """Default key-generation collaborator used by the operation catalog."""

    def generate(self) -> Ed25519Key:
        return Ed25519Key.generate()
