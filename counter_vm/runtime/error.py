from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping


@dataclass(eq=False)
class VmError(Exception):
    """
    Structured error used inside the counter_vm runtime.

    Supported call patterns:

        VmError("simple message")

        VmError("message", code="some_code", context={...})

        # 2-positional form:
        VmError("SOME_CODE", "message")

    Attributes:
        code: short machine-readable code string
        message: human-readable message
        context: optional extra fields for debugging / tooling
    """

    code: str
    message: str
    context: Dict[str, Any]

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        code: str = "vm_error"
        context: Dict[str, Any] = {}

        if "code" in kwargs:
            code = str(kwargs.pop("code"))

        if "context" in kwargs:
            ctx = kwargs.pop("context")
            if ctx is None:
                context = {}
            elif isinstance(ctx, Mapping):
                context = dict(ctx)
            else:
                context = dict(ctx)  # type: ignore[arg-type]

        if kwargs:
            raise TypeError(f"unexpected keyword arguments: {sorted(kwargs)}")

        if len(args) == 0:
            message = ""
        elif len(args) == 1:
            message = str(args[0])
        else:
            code = str(args[0])
            message = str(args[1])

        super().__init__(message)

        object.__setattr__(self, "code", code)
        object.__setattr__(self, "message", message)
        object.__setattr__(self, "context", context)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
        }


class Revert(VmError):
    """
    Raised when contract code aborts through ``abi.revert`` / ``abi.require``.

    The host rolls back every staged write and event of the call and hands the
    error to the caller untouched, so ``code`` and ``message`` are stable.
    """


class ValidationError(VmError):
    """Malformed manifest, missing export, or argument that violates the ABI."""


__all__ = ["VmError", "Revert", "ValidationError"]
