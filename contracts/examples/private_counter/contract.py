# -*- coding: utf-8 -*-
"""
PrivateCounter — single-owner, access-controlled counter.

Views:
  - owner() -> address
  - current() -> u256
State-changing (owner-only):
  - increment(step: u256) -> u256
  - decrement(step: u256) -> u256
  - reset() -> u256                         (returns the pre-reset value)
  - transferOwnership(newOwner: address) -> None
Constructor:
  - init() -> None                          (deployer becomes owner, value = 0)

Every mutating entrypoint checks all preconditions before its single storage
write, and the host journal discards that write anyway if the call reverts.

Event names (bytes):
  b"OwnershipTransferred", b"Incremented", b"Decremented", b"Reset"
"""
from __future__ import annotations

from typing import Final

from stdlib import abi, events, storage  # VM-provided deterministic modules

from contracts.stdlib.access import get_owner, init_owner, require_owner, transfer_ownership

SCOPE: Final[str] = "PrivateCounter"

K_VALUE: Final[bytes] = b"counter:value"

UINT256_MAX: Final[int] = (1 << 256) - 1


def _load() -> int:
    return storage.get_int(K_VALUE)


def _store(value: int) -> None:
    storage.set_int(K_VALUE, value)


def _only_owner() -> bytes:
    return require_owner(abi.caller(), scope=SCOPE)


def _require_step(step: int) -> None:
    abi.require(
        step > 0,
        b"PrivateCounter: step must be greater than zero",
        code="InvalidStep",
    )


# ----------------------------
# Constructor
# ----------------------------

def init() -> None:
    init_owner(abi.caller(), scope=SCOPE)
    _store(0)


# ----------------------------
# Views
# ----------------------------

def owner() -> bytes:
    """Current owner (never the zero address once deployed)."""
    return get_owner()


def current() -> int:
    """Current counter value."""
    return _load()


# ----------------------------
# Mutations (owner-only)
# ----------------------------

def increment(step: int) -> int:
    """
    Add `step` to the counter. Reverts with ArithmeticOverflow rather than
    wrapping past 2**256 - 1.
    """
    caller = _only_owner()
    _require_step(step)
    new = _load() + step
    if new > UINT256_MAX:
        abi.revert(b"PrivateCounter: arithmetic overflow", code="ArithmeticOverflow")
    _store(new)
    events.emit(b"Incremented", {b"caller": caller, b"newValue": new})
    return new


def decrement(step: int) -> int:
    """Subtract the full `step`; never clamps to zero."""
    caller = _only_owner()
    _require_step(step)
    cur = _load()
    if step > cur:
        abi.revert(b"PrivateCounter: cannot decrement below zero", code="Underflow")
    new = cur - step
    _store(new)
    events.emit(b"Decremented", {b"caller": caller, b"newValue": new})
    return new


def reset() -> int:
    _only_owner()
    old = _load()
    _store(0)
    # Emitted even when old == 0.
    events.emit(b"Reset", {b"oldValue": old})
    return old


def transferOwnership(newOwner: bytes) -> None:
    transfer_ownership(abi.caller(), newOwner, scope=SCOPE)
