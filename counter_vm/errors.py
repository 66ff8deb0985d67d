from __future__ import annotations

"""
Public error types.

Tools and tests import:

    from counter_vm.errors import VmError, Revert

The canonical implementation lives in counter_vm.runtime.error.
"""

from counter_vm.runtime.error import Revert, ValidationError, VmError

__all__ = ["VmError", "Revert", "ValidationError"]
