"""Developer-facing command line tools for counter_vm.

The `counter-vm` console script drives a local, single-process devnet whose
state lives in a JSON file. It is a convenience wrapper for development and
demos, not operations tooling.
"""

from __future__ import annotations

__all__ = ["main", "accounts", "state_file"]
