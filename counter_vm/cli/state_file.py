"""
counter_vm.cli.state_file — JSON persistence for the CLI devnet.

Layout (version 1):

    {
      "version": 1,
      "nextTxIndex": 7,
      "contracts": [
        {"address": "0x..", "name": "PrivateCounter", "manifest": "/abs/manifest.json",
         "deployer": "0x..", "txIndex": 0, "codeHash": "0x.."}
      ],
      "storage": {"0x<addr>": {"0x<key>": "0x<value>"}},
      "logs": [{"txIndex": 0, "logIndex": 0, "address": "0x..", "name": "..", "args": [..]}]
    }

The file is rewritten whole after every successful command. Contract sources
are reloaded from their manifests on open; a changed source is refused so
stored state is never run against different code.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from counter_vm.runtime.context import to_address, to_bytes, to_hex
from counter_vm.runtime.engine import DeployedContract, Engine, LogEntry
from counter_vm.runtime.error import VmError
from counter_vm.runtime.events_api import from_canonical
from counter_vm.runtime.loader import load_contract

log = logging.getLogger(__name__)

STATE_VERSION = 1


class StateFileError(VmError):
    """The devnet state file is missing, malformed, or out of date."""


def _empty() -> Dict[str, Any]:
    return {"version": STATE_VERSION, "nextTxIndex": 0, "contracts": [], "storage": {}, "logs": []}


def read_state(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return _empty()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise StateFileError(f"malformed state file {path}: {e}", code="state.invalid") from e
    if not isinstance(data, dict) or data.get("version") != STATE_VERSION:
        raise StateFileError(f"unsupported state file version in {path}", code="state.invalid")
    return data


def _log_from_dict(d: Dict[str, Any]) -> LogEntry:
    return LogEntry(
        tx_index=int(d["txIndex"]),
        log_index=int(d["logIndex"]),
        address=to_address(d["address"]),
        event=from_canonical(d),
    )


def open_engine(path: Path) -> Engine:
    """Rebuild an Engine (storage, contracts, log history) from `path`."""
    data = read_state(path)
    try:
        return _build_engine(data, path)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise StateFileError(
            f"malformed state file {path}: {type(e).__name__}: {e}", code="state.invalid"
        ) from e


def _build_engine(data: Dict[str, Any], path: Path) -> Engine:
    storage = {
        to_address(addr): {to_bytes(k): to_bytes(v) for k, v in slots.items()}
        for addr, slots in data.get("storage", {}).items()
    }
    engine = Engine(storage=storage)
    for c in data.get("contracts", []):
        runtime = load_contract(c["manifest"])
        if runtime.code_hash != c.get("codeHash"):
            raise StateFileError(
                f"source of {c.get('name')} at {c['address']} changed since deploy "
                f"({c.get('codeHash')} -> {runtime.code_hash})",
                code="state.code_changed",
            )
        engine.attach(c["address"], runtime, deployer=c["deployer"], tx_index=int(c["txIndex"]))
    engine.restore_history([_log_from_dict(d) for d in data.get("logs", [])], int(data.get("nextTxIndex", 0)))
    log.debug("state loaded", extra={"path": str(path), "contracts": len(engine.contracts)})
    return engine


def _contract_to_dict(handle: DeployedContract) -> Dict[str, Any]:
    if handle.runtime.manifest_path is None:
        raise StateFileError(
            f"{handle.name} at {to_hex(handle.address)} was not loaded from a manifest file",
            code="state.invalid",
        )
    return {
        "address": to_hex(handle.address),
        "name": handle.name,
        "manifest": str(handle.runtime.manifest_path),
        "deployer": to_hex(handle.deployer),
        "txIndex": handle.tx_index,
        "codeHash": handle.runtime.code_hash,
    }


def save_engine(engine: Engine, path: Path) -> None:
    """Write `engine` to `path` atomically (temp file + rename)."""
    contracts: List[Dict[str, Any]] = [
        _contract_to_dict(handle)
        for handle in sorted(engine.contracts.values(), key=lambda h: h.tx_index)
    ]

    data = {
        "version": STATE_VERSION,
        "nextTxIndex": engine.next_tx_index,
        "contracts": contracts,
        "storage": {
            to_hex(addr): {to_hex(k): to_hex(v) for k, v in sorted(slots.items())}
            for addr, slots in sorted(engine.storage.items())
        },
        "logs": [entry.to_dict() for entry in engine.logs()],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
    tmp.replace(path)
    log.debug("state saved", extra={"path": str(path), "next_tx_index": engine.next_tx_index})


__all__ = ["STATE_VERSION", "StateFileError", "read_state", "open_engine", "save_engine"]
