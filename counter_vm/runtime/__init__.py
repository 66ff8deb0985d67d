"""
counter_vm runtime — package

This package contains the host that executes contracts (Engine), the journal
that makes every call all-or-nothing, and the host-facing APIs
(storage/events/abi) that contracts reach through the `stdlib` surface.

Convenience re-exports live here so callers can do:

    from counter_vm.runtime import Engine, load_contract, TxEnv
    from counter_vm.runtime import abi, storage, events  # module namespaces

Notes
-----
- No wall-clock I/O or system randomness is exposed to contracts.
- For contract code, import **only** from `stdlib`.
"""

from __future__ import annotations

from ..version import __version__
from . import abi as abi
from . import events_api as events
from . import journal as journal
from . import loader as loader
from . import storage_api as storage
from .context import ZERO_ADDRESS, CallFrame, TxEnv, to_address, to_hex
from .engine import REVERT, SUCCESS, DeployedContract, Engine, LogEntry, Receipt
from .error import Revert, ValidationError, VmError
from .loader import ContractRuntime, load_contract

__all__ = [
    "__version__",
    # Core classes
    "Engine",
    "DeployedContract",
    "Receipt",
    "LogEntry",
    "SUCCESS",
    "REVERT",
    "ContractRuntime",
    "load_contract",
    "TxEnv",
    "CallFrame",
    "ZERO_ADDRESS",
    "to_address",
    "to_hex",
    # Errors
    "VmError",
    "Revert",
    "ValidationError",
    # Namespaces (modules)
    "abi",
    "storage",
    "events",
    "journal",
    "loader",
]
