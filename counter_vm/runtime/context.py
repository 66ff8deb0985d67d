"""
counter_vm.runtime.context — TxEnv and the active call frame (deterministic)

The host binds a :class:`CallFrame` for the duration of every contract call.
Contract-facing stdlib modules (storage, events, abi.caller) resolve their
target through :func:`current_frame`, so contract code never touches the
host's state objects directly.

Design notes
------------
- Addresses are raw 20-byte values. Hex strings (with or without "0x") are
  accepted by helpers and normalized to bytes.
- The zero address (20 zero bytes) is never a valid owner or sender.
- Frames are held in a ContextVar; nesting restores the outer frame on exit.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Union

from counter_vm.config import VMConfig, load_config

from .error import VmError

if TYPE_CHECKING:  # pragma: no cover
    from .events_api import Event
    from .journal import Journal

ADDRESS_BYTES = 20
ZERO_ADDRESS = b"\x00" * ADDRESS_BYTES


# ----------------------------- helpers ----------------------------- #

class ContextError(VmError):
    """Validation or coercion failure for addresses and TxEnv fields."""


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_bytes(value: Union[bytes, bytearray, memoryview, str]) -> bytes:
    """
    Coerce `value` to bytes.
    - If str, interpret as hex (with or without '0x'); odd-length hex is rejected.
    - If a bytes-like object, copy to immutable bytes.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise ContextError(f"hex string must have even length, got {len(h)}", code="context.bad_hex")
        try:
            return bytes.fromhex(h)
        except ValueError as e:
            raise ContextError(f"invalid hex string: {value!r}", code="context.bad_hex") from e
    raise ContextError(f"cannot convert type {type(value).__name__} to bytes", code="context.bad_type")


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def to_address(value: Union[bytes, bytearray, memoryview, str]) -> bytes:
    """Coerce to a 20-byte address; anything else is rejected."""
    b = to_bytes(value)
    if len(b) != ADDRESS_BYTES:
        raise ContextError(
            f"address must be {ADDRESS_BYTES} bytes, got {len(b)}",
            code="context.bad_address",
        )
    return b


def _require_non_negative_int(name: str, v: Any) -> int:
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContextError(f"{name} must be int, got {type(v).__name__}", code="context.bad_type")
    if v < 0:
        raise ContextError(f"{name} must be non-negative, got {v}", code="context.bad_value")
    return v


# ----------------------------- models ------------------------------ #

@dataclass(frozen=True)
class TxEnv:
    """
    Deterministic per-call environment.

    Fields
    ------
    sender:    Authenticated caller address (20 bytes).
    to:        Target contract address.
    tx_index:  Position in the host's total order (0-based). Static calls
               reuse the index of the next transaction and do not consume it.
    static:    True for read-only calls; any storage write fails.
    """
    sender: bytes
    to: bytes
    tx_index: int
    static: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", to_address(self.sender))
        object.__setattr__(self, "to", to_address(self.to))
        object.__setattr__(self, "tx_index", _require_non_negative_int("tx_index", self.tx_index))

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["sender"] = to_hex(self.sender)
        d["to"] = to_hex(self.to)
        return d


@dataclass
class CallFrame:
    """Everything a single contract call may read or stage."""
    env: TxEnv
    journal: "Journal"
    events: List["Event"] = field(default_factory=list)
    config: VMConfig = field(default_factory=load_config)


_FRAME: ContextVar[Optional[CallFrame]] = ContextVar("_FRAME", default=None)


def current_frame() -> CallFrame:
    """Return the active frame or fail loudly when called outside a call."""
    frame = _FRAME.get()
    if frame is None:
        raise VmError("no active call frame", code="no_frame")
    return frame


@contextmanager
def frame_scope(frame: CallFrame) -> Iterator[CallFrame]:
    token = _FRAME.set(frame)
    try:
        yield frame
    finally:
        _FRAME.reset(token)


__all__ = [
    "ADDRESS_BYTES",
    "ZERO_ADDRESS",
    "ContextError",
    "to_bytes",
    "to_hex",
    "to_address",
    "TxEnv",
    "CallFrame",
    "current_frame",
    "frame_scope",
]
