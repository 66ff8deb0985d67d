"""
counter_vm.cli.accounts — deterministic dev accounts.

Addresses are the first 20 bytes of sha3-256(label), so every checkout and
every test run agree on who "deployer", "alice" and "bob" are. There are no
keys: the devnet trusts the `--from` flag.
"""

from __future__ import annotations

import hashlib
from typing import Dict, Optional

from counter_vm.runtime.context import ContextError, to_address, to_hex

DEV_ACCOUNTS = ("deployer", "alice", "bob")
DEFAULT_ACCOUNT = "deployer"


def dev_address(label: str) -> bytes:
    return hashlib.sha3_256(label.encode("utf-8")).digest()[:20]


def dev_accounts() -> Dict[str, bytes]:
    return {label: dev_address(label) for label in DEV_ACCOUNTS}


def resolve_account(name_or_address: str) -> bytes:
    """
    Accept a dev account label (case-insensitive) or a 0x-prefixed 20-byte
    address. Raises ContextError for anything else.
    """
    label = name_or_address.strip().lower()
    if label in DEV_ACCOUNTS:
        return dev_address(label)
    try:
        return to_address(name_or_address)
    except ContextError as e:
        raise ContextError(
            f"unknown account {name_or_address!r} (use one of {', '.join(DEV_ACCOUNTS)} or a 0x address)",
            code="context.bad_address",
        ) from e


def label_for(address: bytes) -> Optional[str]:
    for label, addr in dev_accounts().items():
        if addr == address:
            return label
    return None


def describe(address: bytes) -> str:
    """`0xabc… (alice)` for dev accounts, plain hex otherwise."""
    label = label_for(address)
    return f"{to_hex(address)} ({label})" if label else to_hex(address)


__all__ = [
    "DEV_ACCOUNTS",
    "DEFAULT_ACCOUNT",
    "dev_address",
    "dev_accounts",
    "resolve_account",
    "label_for",
    "describe",
]
