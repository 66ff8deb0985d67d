"""
counter_vm.stdlib
=================

Contract-facing standard library surface.

Contracts do:

    from stdlib import storage, events, abi

Exports
-------
- storage : get/set/delete/exists plus get_int/set_int (u256) over the
            contract's own namespace in the active call frame
- events  : emit(name: bytes, args: dict) -> None (staged until commit)
- abi     : revert(...), require(...), caller(), this_address()

Every function resolves the active call frame bound by the engine; calling
them outside a contract call raises VmError(code="no_frame").
"""

from __future__ import annotations

from . import abi, events, storage

__all__ = ("storage", "events", "abi")
