from __future__ import annotations

from typing import Any, Dict, List, Mapping, NoReturn, Optional, Sequence

from .context import ADDRESS_BYTES, ContextError, current_frame, to_address
from .error import Revert, ValidationError

U256_MAX = (1 << 256) - 1


def _to_message(msg: Any) -> str:
    if isinstance(msg, (bytes, bytearray)):
        return bytes(msg).decode("utf-8", errors="replace")
    return str(msg)


# --------------------------- Contract-facing API --------------------------- #


def revert(
    message: Any = "revert",
    *,
    code: str = "abi.revert",
    context: Optional[Mapping[str, Any]] = None,
) -> NoReturn:
    """
    Abort the current call. The host discards every staged write and event.

        abi.revert(b"PrivateCounter: cannot decrement below zero", code="Underflow")
    """
    raise Revert(_to_message(message), code=code, context=dict(context or {}))


def require(
    condition: bool,
    message: Any = "abi.require failed",
    *,
    code: str = "abi.require_failed",
    context: Optional[Mapping[str, Any]] = None,
) -> None:
    """
    Assertion helper for contracts:

        abi.require(step > 0, b"PrivateCounter: step must be greater than zero", code="InvalidStep")
    """
    if condition:
        return
    revert(message, code=code, context=context)


def caller() -> bytes:
    """Authenticated sender of the active call."""
    return current_frame().env.sender


def this_address() -> bytes:
    """Address of the contract being executed."""
    return current_frame().env.to


# ----------------------------- Host-side ABI ------------------------------ #


def _coerce_one(abi_type: str, name: str, value: Any) -> Any:
    if abi_type == "u256":
        if isinstance(value, str):
            try:
                value = int(value, 0)
            except ValueError:
                raise ValidationError(
                    f"argument {name!r}: not an integer: {value!r}", code="abi.bad_arg"
                ) from None
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValidationError(f"argument {name!r}: expected u256", code="abi.bad_arg")
        if value < 0 or value > U256_MAX:
            raise ValidationError(f"argument {name!r}: out of range for u256", code="abi.bad_arg")
        return value
    if abi_type == "address":
        try:
            return to_address(value)
        except ContextError as e:
            raise ValidationError(
                f"argument {name!r}: expected {ADDRESS_BYTES}-byte address ({e.message})",
                code="abi.bad_arg",
            ) from None
    if abi_type == "bool":
        if not isinstance(value, bool):
            raise ValidationError(f"argument {name!r}: expected bool", code="abi.bad_arg")
        return value
    if abi_type == "bytes":
        if not isinstance(value, (bytes, bytearray)):
            raise ValidationError(f"argument {name!r}: expected bytes", code="abi.bad_arg")
        return bytes(value)
    raise ValidationError(f"unsupported ABI type {abi_type!r}", code="abi.bad_type")


def coerce_args(fn_abi: Mapping[str, Any], args: Sequence[Any]) -> List[Any]:
    """
    Check positional `args` against a manifest function entry and return the
    normalized values. Hex strings are accepted for addresses, decimal or 0x
    strings for u256 (convenient for CLI callers).
    """
    inputs: List[Dict[str, Any]] = list(fn_abi.get("inputs", []))
    if len(args) != len(inputs):
        raise ValidationError(
            f"{fn_abi.get('name')}: expected {len(inputs)} argument(s), got {len(args)}",
            code="abi.bad_arity",
        )
    return [
        _coerce_one(str(p.get("type")), str(p.get("name", f"arg{i}")), v)
        for i, (p, v) in enumerate(zip(inputs, args))
    ]


__all__ = ["U256_MAX", "revert", "require", "caller", "this_address", "coerce_args"]
