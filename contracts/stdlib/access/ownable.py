# -*- coding: utf-8 -*-
"""
contracts.stdlib.access.ownable
================================

Minimal, deterministic **Ownable** helper for counter_vm Python contracts.

This module provides a focused single-owner storage and control surface:
- read the current owner (`get_owner`)
- establish the owner once at deploy time (`init_owner`)
- check that a caller is the owner (`require_owner`)
- hand ownership to another account (`transfer_ownership`)

Only the sanctioned stdlib modules (`storage`, `events`, `abi`) are used;
there is no time, randomness, or I/O.

Conventions
-----------
- Addresses are 20-byte `bytes` values; the zero address is never a valid owner.
- The owner is stored at `OWNER_KEY = b"access:owner"`.
- Revert messages are prefixed with the contract's `scope`, e.g.
  ``b"PrivateCounter: caller is not the owner"``.
- Events:
    - "OwnershipTransferred" args: {"previousOwner": bytes, "newOwner": bytes}
      (emitted by `init_owner` too, with previousOwner = zero address)

Typical usage
-------------
    from contracts.stdlib.access.ownable import init_owner, require_owner

    SCOPE = "MyContract"

    def init() -> None:
        init_owner(abi.caller(), scope=SCOPE)

    def admin_only() -> None:
        require_owner(abi.caller(), scope=SCOPE)
        # ... privileged logic ...

Safety notes
------------
- There is deliberately no renounce: once set, the owner is only ever replaced.
- `transfer_ownership` runs every check before its single storage write.
"""
from __future__ import annotations

from typing import Optional

from . import ADDRESS_LEN, OWNER_KEY, ZERO_ADDRESS

__all__ = [
    "OWNER_KEY",
    "ZERO_ADDRESS",
    "ERR_NOT_OWNER",
    "ERR_INVALID_OWNER",
    "ERR_NOOP_TRANSFER",
    "get_owner",
    "init_owner",
    "require_owner",
    "transfer_ownership",
]

# Error codes (stable, surfaced on the receipt next to the message)
ERR_NOT_OWNER = "NotOwner"
ERR_INVALID_OWNER = "InvalidOwner"
ERR_NOOP_TRANSFER = "NoOpTransfer"

_MESSAGES = {
    ERR_NOT_OWNER: "caller is not the owner",
    ERR_INVALID_OWNER: "new owner is the zero address",
    ERR_NOOP_TRANSFER: "new owner is the same as current owner",
}

# --- Internal stdlib accessors (lazy so the module imports outside a call) ----


def _std_storage():
    from stdlib import storage  # type: ignore

    return storage


def _std_events():
    from stdlib import events  # type: ignore

    return events


def _std_abi():
    from stdlib import abi  # type: ignore

    return abi


def _fail(code: str, scope: str) -> None:
    _std_abi().revert(f"{scope}: {_MESSAGES[code]}".encode("utf-8"), code=code)


# --- Owner primitives ---------------------------------------------------------


def get_owner() -> Optional[bytes]:
    """
    Return the current owner address, or None before `init_owner` ran.
    """
    v = _std_storage().get(OWNER_KEY)
    return v if v is not None and len(v) > 0 else None


def init_owner(owner: bytes, *, scope: str = "Ownable") -> None:
    """
    Establish `owner` as the first owner. Idempotent: an existing owner is
    never overwritten and no second event is emitted.

    Emits:
        - "OwnershipTransferred" with {"previousOwner": ZERO_ADDRESS, "newOwner": owner}
    """
    if get_owner() is not None:
        return
    if len(owner) != ADDRESS_LEN or owner == ZERO_ADDRESS:
        _fail(ERR_INVALID_OWNER, scope)
    _std_storage().set(OWNER_KEY, owner)
    _std_events().emit(
        b"OwnershipTransferred", {"previousOwner": ZERO_ADDRESS, "newOwner": owner}
    )


def require_owner(caller: bytes, *, scope: str = "Ownable") -> bytes:
    """
    Revert with NotOwner unless `caller` equals the current owner.
    Returns the owner.
    """
    owner = get_owner()
    if owner is None or owner != caller:
        _fail(ERR_NOT_OWNER, scope)
    return owner  # type: ignore[return-value]


def transfer_ownership(caller: bytes, new_owner: bytes, *, scope: str = "Ownable") -> None:
    """
    Owner-only: transfer ownership to `new_owner`.

    Checks, in order: NotOwner, InvalidOwner (zero/malformed), NoOpTransfer.

    Emits:
        - "OwnershipTransferred" with {"previousOwner": <old>, "newOwner": <new>}
    """
    previous = require_owner(caller, scope=scope)
    if new_owner is None or len(new_owner) != ADDRESS_LEN or new_owner == ZERO_ADDRESS:
        _fail(ERR_INVALID_OWNER, scope)
    if new_owner == previous:
        _fail(ERR_NOOP_TRANSFER, scope)

    _std_storage().set(OWNER_KEY, new_owner)
    _std_events().emit(
        b"OwnershipTransferred", {"previousOwner": previous, "newOwner": new_owner}
    )
