# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/glitterboot/rpc/client.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ..core.errors import RPCError

log = logging.getLogger("glitterboot")


@dataclass(frozen=True)
class Validator:
    address: str
    pub_key: str            # base64 value of the public key
    voting_power: int = 0


class TendermintClient:
    """
    Minimal JSON-RPC-over-HTTP client for the consensus engine.

    Only the two calls the lifecycle needs are implemented: the genesis
    document and the current validator set.
    """

    def __init__(self, base_url: str, *, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def __repr__(self) -> str:
        return f"TendermintClient({self.base_url!r})"

    def _call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}/{method}"
        try:
            r = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RPCError(f"{method}: {exc}") from exc

        try:
            body = r.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            err = body["error"]
            if isinstance(err, dict):
                detail = err.get("data") or err.get("message") or err
            else:
                detail = err
            raise RPCError(f"{method}: {detail}")

        if not r.ok:
            raise RPCError(f"{method}: HTTP {r.status_code} {r.reason}")

        if not isinstance(body, dict) or not isinstance(body.get("result"), dict):
            raise RPCError(f"{method}: malformed response from {url}")
        return body["result"]

    def genesis(self) -> Dict[str, Any]:
        result = self._call("genesis")
        doc = result.get("genesis")
        if not isinstance(doc, dict):
            raise RPCError("genesis: response has no genesis document")
        return doc

    def validators(self, per_page: int = 100) -> List[Validator]:
        out: List[Validator] = []
        page = 1
        while True:
            result = self._call("validators", {"page": page, "per_page": per_page})
            batch = result.get("validators") or []
            try:
                for v in batch:
                    out.append(
                        Validator(
                            address=str(v.get("address", "")),
                            pub_key=str((v.get("pub_key") or {}).get("value", "")),
                            voting_power=int(v.get("voting_power") or 0),
                        )
                    )
                total = int(result.get("total") or len(out))
            except (AttributeError, TypeError, ValueError) as exc:
                raise RPCError(f"validators: malformed validator entry on page {page}: {exc}") from exc
            if not batch or len(out) >= total:
                return out
            page += 1


class GlitterAdminClient:
    """Admin endpoint of the application process on a seed cluster."""

    def __init__(self, base_url: str, *, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def update_validator(self, pub_key: str, power: int = 1) -> str:
        url = f"{self.base_url}/v1/admin/update_validator"
        payload = {
            "pub_key": {"type": "tendermint/PubKeyEd25519", "value": pub_key},
            "power": power,
        }
        log.debug("POST %s power=%d", url, power)
        try:
            r = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RPCError(f"update_validator: {exc}") from exc
        if not r.ok:
            raise RPCError(f"update_validator: HTTP {r.status_code} {r.text.strip()}")
        return r.text
