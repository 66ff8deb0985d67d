"""
Top-level 'stdlib' import surface for counter_vm contracts.

Contracts and contract libraries use:

    from stdlib import storage, events, abi
"""

from counter_vm.stdlib import abi, events, storage

__all__ = ["storage", "events", "abi"]
