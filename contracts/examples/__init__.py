# -*- coding: utf-8 -*-
"""
contracts.examples
==================

Lookup helper for the deployable contract packages shipped here.

Each package is a directory holding a contract source and its manifest:

    contracts/examples/private_counter/
      ├── contract.py
      └── manifest.json

Tools (the `counter-vm` CLI, tests) look packages up by directory name:

    from contracts.examples import manifest_path
    load_contract(manifest_path("private_counter"))
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

__all__ = [
    "DEFAULT_PACKAGE",
    "ContractPackage",
    "examples_dir",
    "get_package",
    "manifest_path",
]

DEFAULT_PACKAGE = "private_counter"


@dataclass(frozen=True)
class ContractPackage:
    """One contract package directory."""
    name: str
    base_dir: Path
    manifest_path: Path


def examples_dir() -> Path:
    return Path(__file__).parent.resolve()


def get_package(name: str) -> Optional[ContractPackage]:
    mod_dir = examples_dir() / name
    man_path = mod_dir / "manifest.json"
    if not man_path.is_file():
        return None
    return ContractPackage(name=name, base_dir=mod_dir, manifest_path=man_path)


def manifest_path(name: str = DEFAULT_PACKAGE) -> Path:
    """Path to a package's manifest; raises LookupError for unknown names."""
    pkg = get_package(name)
    if pkg is None:
        raise LookupError(f"no contract package named {name!r} in {examples_dir()}")
    return pkg.manifest_path
