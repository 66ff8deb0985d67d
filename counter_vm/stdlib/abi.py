"""Contract-facing ABI helpers: revert/require and caller identity."""

from __future__ import annotations

from counter_vm.runtime.abi import U256_MAX, caller, require, revert, this_address
from counter_vm.runtime.error import Revert

__all__ = ["U256_MAX", "Revert", "revert", "require", "caller", "this_address"]
