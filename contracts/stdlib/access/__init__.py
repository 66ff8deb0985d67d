# -*- coding: utf-8 -*-
"""
contracts.stdlib.access
=======================

Deterministic, VM-safe access-control helpers for counter_vm Python contracts.

Only the single-owner model is provided: exactly one owner at a time, set at
deploy and only ever replaced. Helpers use the sanctioned VM stdlib modules
(`storage`, `events`, `abi`) and plain byte operations.

Storage layout (by convention)
------------------------------
- Owner:
    key `b"access:owner"` → 20-byte address.

These keys are deterministic byte strings; *do not* change them after deploy.

Events (convention)
-------------------
- "OwnershipTransferred" args: {"previousOwner": bytes, "newOwner": bytes}
"""
from __future__ import annotations

ADDRESS_LEN: int = 20
ZERO_ADDRESS: bytes = b"\x00" * ADDRESS_LEN

# Fixed storage key (namespaced)
OWNER_KEY: bytes = b"access:owner"

from .ownable import (  # noqa: E402
    ERR_INVALID_OWNER,
    ERR_NOOP_TRANSFER,
    ERR_NOT_OWNER,
    get_owner,
    init_owner,
    require_owner,
    transfer_ownership,
)

__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "OWNER_KEY",
    "ERR_NOT_OWNER",
    "ERR_INVALID_OWNER",
    "ERR_NOOP_TRANSFER",
    "get_owner",
    "init_owner",
    "require_owner",
    "transfer_ownership",
]
