"""Contract-facing storage: bytes keys → bytes values, plus u256 helpers."""

from __future__ import annotations

from counter_vm.runtime.storage_api import (
    U256_MAX,
    delete,
    exists,
    get,
    get_int,
    set,
    set_int,
)

__all__ = ["U256_MAX", "get", "set", "delete", "exists", "get_int", "set_int"]
