from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

from .context import current_frame
from .error import VmError

MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_INT_BITS = 256

# Keys must be identifier-like: letters/underscore, then letters/digits/underscore.
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ArgValue = Any  # constrained at runtime


@dataclass(frozen=True)
class Event:
    """In-VM representation of an emitted event."""

    name: bytes
    args: Dict[str, ArgValue]


@dataclass(frozen=True)
class CanonicalEvent:
    """
    Canonical event representation for receipts and the CLI state file:

        name: event name decoded as ASCII
        args: sequence of {"k", "t", "v"} dicts
              t="b" => bytes encoded as 0x-prefixed hex
              t="i" => integer
              t="z" => boolean
    """

    name: str
    args: Sequence[Mapping[str, Any]]


# --- Validation helpers -----------------------------------------------------


def _check_name(name: Any, cap: int) -> bytes:
    if not isinstance(name, (bytes, bytearray)):
        raise VmError("event name must be bytes", code="event_invalid", context={"where": "name_type"})
    b = bytes(name)
    if len(b) == 0:
        raise VmError("event name must be non-empty", code="event_invalid", context={"where": "name_empty"})
    if len(b) > cap:
        raise VmError(
            "event name too long",
            code="event_invalid",
            context={"where": "name_length", "len": len(b)},
        )
    return b


def _check_key(key: Any) -> str:
    if isinstance(key, (bytes, bytearray)):
        try:
            key = bytes(key).decode("ascii")
        except UnicodeDecodeError:
            raise VmError(
                "event key must be ASCII", code="event_invalid", context={"where": "key_ascii"}
            ) from None
    if not isinstance(key, str):
        raise VmError("event key must be str", code="event_invalid", context={"where": "key_type"})
    if len(key) == 0 or len(key) > MAX_KEY_LEN:
        raise VmError(
            "event key length out of range",
            code="event_invalid",
            context={"where": "key_length", "len": len(key)},
        )
    if not _KEY_RE.match(key):
        raise VmError(
            "event key has invalid characters",
            code="event_invalid",
            context={"where": "key_grammar", "key": key},
        )
    return key


def _check_value(value: Any) -> ArgValue:
    if isinstance(value, (bytes, bytearray)):
        b = bytes(value)
        if len(b) > MAX_BYTES_LEN:
            raise VmError(
                "event bytes arg too long",
                code="event_invalid",
                context={"where": "value_bytes_length", "len": len(b)},
            )
        return b

    if isinstance(value, bool):
        # bool is a subclass of int, so check it before int.
        return value

    if isinstance(value, int):
        if value < 0 or value.bit_length() > MAX_INT_BITS:
            raise VmError(
                "event int arg out of range",
                code="event_invalid",
                context={"where": "value_int_bits", "bits": value.bit_length()},
            )
        return int(value)

    raise VmError(
        "unsupported event arg type",
        code="event_invalid",
        context={"where": "value_type", "py_type": type(value).__name__},
    )


# --- Public API -------------------------------------------------------------


def emit(name: bytes, args: Mapping[Any, Any]) -> None:
    """
    Stage an event in the active call frame. Staged events only reach the
    host's log if the call commits.
    """
    frame = current_frame()
    if frame.env.static:
        raise VmError("event emitted in static call", code="static_write")

    bname = _check_name(name, frame.config.max_event_name_bytes)
    if not isinstance(args, Mapping):
        raise VmError("event args must be a mapping", code="event_invalid", context={"where": "args_type"})

    checked: Dict[str, ArgValue] = {}
    for raw_k, raw_v in args.items():
        checked[_check_key(raw_k)] = _check_value(raw_v)

    cap = frame.config.max_logs_per_tx
    if len(frame.events) >= cap:
        raise VmError("too many events in one call", code="event_invalid", context={"cap": cap})
    frame.events.append(Event(bname, checked))


def get_events() -> List[Event]:
    """Events staged so far in the active call frame."""
    return list(current_frame().events)


def to_canonical(ev: Event) -> CanonicalEvent:
    enc_args: List[Dict[str, Any]] = []
    for k, v in ev.args.items():
        if isinstance(v, (bytes, bytearray)):
            enc_args.append({"k": k, "t": "b", "v": "0x" + bytes(v).hex()})
        elif isinstance(v, bool):
            enc_args.append({"k": k, "t": "z", "v": v})
        else:
            enc_args.append({"k": k, "t": "i", "v": int(v)})
    return CanonicalEvent(name=ev.name.decode("ascii", errors="replace"), args=tuple(enc_args))


def from_canonical(ce: Mapping[str, Any]) -> Event:
    """Inverse of :func:`to_canonical` for dicts read back from JSON."""
    args: Dict[str, ArgValue] = {}
    for item in ce.get("args", ()):
        t, v = item["t"], item["v"]
        if t == "b":
            args[item["k"]] = bytes.fromhex(str(v)[2:])
        elif t == "z":
            args[item["k"]] = bool(v)
        elif t == "i":
            args[item["k"]] = int(v)
        else:
            raise VmError(f"unknown canonical arg type {t!r}", code="event_invalid")
    return Event(name=str(ce["name"]).encode("ascii"), args=args)


__all__ = [
    "Event",
    "CanonicalEvent",
    "emit",
    "get_events",
    "to_canonical",
    "from_canonical",
    "MAX_KEY_LEN",
    "MAX_BYTES_LEN",
    "MAX_INT_BITS",
]
