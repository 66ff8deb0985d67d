"""
counter_vm.runtime.storage_api — host hooks for deterministic key/value storage.

This module provides the contract-facing storage primitives that
`stdlib.storage` re-exports. Every call resolves the active call frame, so a
contract only ever sees its own address namespace and every write lands in
the frame's journal checkpoint (committed or reverted by the engine).

Public API (re-exported by stdlib.storage)
------------------------------------------
- get(key: bytes) -> Optional[bytes]
- set(key: bytes, value: bytes) -> None
- delete(key: bytes) -> None
- exists(key: bytes) -> bool
- get_int(key: bytes) -> int                    # big-endian u256, 0 if unset
- set_int(key: bytes, value: int) -> None       # fixed 32-byte big-endian u256

Length caps come from the active frame's config (the host engine's VMConfig).
"""

from __future__ import annotations

from typing import Optional

from .context import current_frame
from .error import VmError

U256_MAX = (1 << 256) - 1
U256_BYTES = 32


# --------------------------- Validation helpers --------------------------- #


def _check_key(key: bytes, cap: int) -> bytes:
    if not isinstance(key, (bytes, bytearray)):
        raise VmError("storage key must be bytes", code="storage_invalid")
    if len(key) == 0:
        raise VmError("storage key must be non-empty", code="storage_invalid")
    if len(key) > cap:
        raise VmError(f"storage key too long (>{cap} bytes)", code="storage_invalid")
    return bytes(key)


def _check_value(value: bytes, cap: int) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise VmError("storage value must be bytes", code="storage_invalid")
    if len(value) > cap:
        raise VmError(f"storage value too large (>{cap} bytes)", code="storage_invalid")
    return bytes(value)


def _writable_frame():
    frame = current_frame()
    if frame.env.static:
        raise VmError(
            "storage write in static call",
            code="static_write",
            context={"to": frame.env.to.hex()},
        )
    return frame


# --------------------------- Contract-facing API --------------------------- #


def get(key: bytes) -> Optional[bytes]:
    """Return the value for `key`, or None if not set."""
    frame = current_frame()
    return frame.journal.get(frame.env.to, _check_key(key, frame.config.max_storage_key_bytes))


def set(key: bytes, value: bytes) -> None:
    """Set `key` to `value` (overwrites existing)."""
    frame = _writable_frame()
    frame.journal.set(
        frame.env.to,
        _check_key(key, frame.config.max_storage_key_bytes),
        _check_value(value, frame.config.max_storage_value_bytes),
    )


def delete(key: bytes) -> None:
    """Delete `key` if present (no-op otherwise)."""
    frame = _writable_frame()
    frame.journal.delete(frame.env.to, _check_key(key, frame.config.max_storage_key_bytes))


def exists(key: bytes) -> bool:
    """Return True if `key` is present."""
    return get(key) is not None


# ------------------------------ Typed helpers ----------------------------- #


def get_int(key: bytes) -> int:
    """
    Read a big-endian unsigned integer at `key`. Unset keys read as 0.
    """
    raw = get(key)
    if raw is None or len(raw) == 0:
        return 0
    if len(raw) > U256_BYTES:
        raise VmError("stored integer wider than 256 bits", code="storage_invalid")
    return int.from_bytes(raw, byteorder="big", signed=False)


def set_int(key: bytes, value: int) -> None:
    """
    Store `value` as a 32-byte big-endian unsigned integer. Enforces 0 <= value <= 2^256-1.
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise VmError("set_int value must be int", code="storage_invalid")
    if value < 0 or value > U256_MAX:
        raise VmError("set_int out of range (must fit in 256 bits)", code="storage_invalid")
    set(key, value.to_bytes(U256_BYTES, "big"))


__all__ = [
    "U256_MAX",
    "get",
    "set",
    "delete",
    "exists",
    "get_int",
    "set_int",
]
