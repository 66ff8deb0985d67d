"""
counter_vm — deterministic single-process contract runtime.

Subpackages:

- counter_vm.runtime   journal, engine, loader and the host APIs behind `stdlib`
- counter_vm.stdlib    the contract-facing `abi` / `events` / `storage` modules
- counter_vm.cli       the `counter-vm` devnet CLI

Only the version is exported here so `import counter_vm` stays cheap.
"""

from __future__ import annotations

from .version import __version__


def version() -> str:
    """Return the counter_vm semantic version string."""
    return __version__


__all__ = ["__version__", "version"]
