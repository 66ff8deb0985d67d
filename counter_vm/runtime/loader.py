"""
counter_vm.runtime.loader — load manifest + source and link the contract module.

This module turns a contract source + manifest into a runtime-ready object the
engine can deploy and invoke deterministically.

It:
  1) Loads and validates a contract manifest (JSON/dict).
  2) Reads the Python source named by the manifest.
  3) Computes a stable code hash (sha3-256 over the source bytes).
  4) Executes the source into a fresh module namespace (the contract imports
     only the `stdlib` surface and contract libraries).
  5) Checks that every ABI function is defined by the module.
  6) Returns a ContractRuntime wrapper.

Manifest (minimal):
{
  "name": "PrivateCounter",
  "version": "1.0.0",
  "manifestVersion": 1,
  "source": "contract.py",           # OR "code": "<inline source>"
  "abi": {
    "functions": [{"name": ..., "stateMutability": "view"|"nonpayable",
                   "inputs": [{"name": ..., "type": ...}], "outputs": [...]}],
    "events": [...],
    "errors": [{"name": ..., "message": ...}]
  }
}
"""

from __future__ import annotations

import hashlib
import json
import logging
import types
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .error import ValidationError

log = logging.getLogger(__name__)

MANIFEST_VERSION = 1
INIT_FUNCTION = "init"
_MUTABILITIES = ("view", "pure", "nonpayable")

ManifestLike = Union[str, Path, Dict[str, Any]]


# --- Data classes ------------------------------------------------------------

@dataclass
class ContractRuntime:
    """A linked contract: manifest metadata plus the executed module."""
    name: str
    version: str
    code_hash: str          # 0x-prefixed hex (sha3-256 over source bytes)
    abi: Dict[str, Any]
    module: types.ModuleType
    source_path: Optional[Path] = None
    manifest_path: Optional[Path] = None
    _functions: Dict[str, Dict[str, Any]] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        self._functions = {f["name"]: f for f in self.abi.get("functions", [])}

    @property
    def exports(self) -> List[str]:
        return sorted(self._functions)

    @property
    def has_init(self) -> bool:
        return callable(getattr(self.module, INIT_FUNCTION, None))

    def function_abi(self, name: str) -> Dict[str, Any]:
        fn = self._functions.get(name)
        if fn is None:
            raise ValidationError(f"method {name!r} not exported by {self.name}", code="abi.unknown_method")
        return fn

    def is_view(self, name: str) -> bool:
        return self.function_abi(name).get("stateMutability") in ("view", "pure")

    def resolve(self, name: str) -> Callable[..., Any]:
        """Return the module function backing an exported ABI entry."""
        self.function_abi(name)
        return getattr(self.module, name)


# --- Loading -----------------------------------------------------------------

def load_manifest(m: ManifestLike) -> Dict[str, Any]:
    """Load a manifest from path or return a shallow-copied dict."""
    if isinstance(m, (str, Path)):
        p = Path(m)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ValidationError(f"manifest not found: {p}", code="manifest.missing") from e
        except json.JSONDecodeError as e:
            raise ValidationError(f"invalid JSON in manifest {p}: {e}", code="manifest.invalid") from e
        if not isinstance(data, dict):
            raise ValidationError("manifest root must be an object", code="manifest.invalid")
        return dict(data)
    if isinstance(m, dict):
        return dict(m)
    raise ValidationError(f"unsupported manifest input: {type(m).__name__}", code="manifest.invalid")


def validate_manifest(man: Dict[str, Any]) -> None:
    if not isinstance(man.get("name"), str) or not man["name"]:
        raise ValidationError("manifest.name must be a non-empty string", code="manifest.invalid")
    if man.get("manifestVersion") != MANIFEST_VERSION:
        raise ValidationError(
            f"manifestVersion must be {MANIFEST_VERSION}", code="manifest.invalid"
        )
    abi = man.get("abi")
    if not isinstance(abi, dict) or not isinstance(abi.get("functions"), list):
        raise ValidationError("manifest.abi.functions must be a list", code="manifest.invalid")
    seen = set()
    for fn in abi["functions"]:
        name = fn.get("name") if isinstance(fn, dict) else None
        if not isinstance(name, str) or not name or name.startswith("_"):
            raise ValidationError(f"bad function entry: {fn!r}", code="manifest.invalid")
        if name in seen:
            raise ValidationError(f"duplicate function {name!r}", code="manifest.invalid")
        seen.add(name)
        if fn.get("stateMutability") not in _MUTABILITIES:
            raise ValidationError(f"{name}: invalid stateMutability", code="manifest.invalid")
        if not isinstance(fn.get("inputs"), list):
            raise ValidationError(f"{name}: inputs must be a list", code="manifest.invalid")


def _read_source(man: Dict[str, Any], base: Path) -> tuple[str, Optional[Path]]:
    if isinstance(man.get("code"), str):
        return man["code"], None
    if isinstance(man.get("source"), str):
        p = (base / man["source"]).resolve()
        try:
            return p.read_text(encoding="utf-8"), p
        except FileNotFoundError as e:
            raise ValidationError(f"contract source not found: {p}", code="manifest.missing") from e
    raise ValidationError("manifest must contain 'source' (str) or 'code' (str)", code="manifest.invalid")


def _sha3_256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha3_256(data).hexdigest()


def _exec_module(name: str, source: str, filename: str, code_hash: str) -> types.ModuleType:
    module = types.ModuleType(f"contract_{name}_{code_hash[2:18]}")
    module.__file__ = filename
    exec(compile(source, filename, "exec"), module.__dict__)
    return module


def load_contract(manifest: ManifestLike, base_dir: Optional[Union[str, Path]] = None) -> ContractRuntime:
    """
    Manifest → ContractRuntime. Relative `source` paths resolve against
    `base_dir`, else the manifest's own directory, else the CWD.
    """
    man = load_manifest(manifest)
    validate_manifest(man)
    if base_dir is not None:
        base = Path(base_dir)
    elif isinstance(manifest, (str, Path)):
        base = Path(manifest).parent
    else:
        base = Path.cwd()

    source, path = _read_source(man, base)
    code_hash = _sha3_256_hex(source.encode("utf-8"))
    module = _exec_module(str(man["name"]), source, str(path or "<manifest:code>"), code_hash)

    rt = ContractRuntime(
        name=str(man["name"]),
        version=str(man.get("version", "0.0.0")),
        code_hash=code_hash,
        abi=dict(man["abi"]),
        module=module,
        source_path=path,
        manifest_path=Path(manifest).resolve() if isinstance(manifest, (str, Path)) else None,
    )
    for fname in rt.exports:
        if not callable(getattr(module, fname, None)):
            raise ValidationError(
                f"ABI function {fname!r} is not defined by the contract source",
                code="manifest.missing_export",
            )
    log.debug("loaded contract", extra={"contract_name": rt.name, "code_hash": rt.code_hash})
    return rt


__all__ = [
    "MANIFEST_VERSION",
    "INIT_FUNCTION",
    "ContractRuntime",
    "load_manifest",
    "validate_manifest",
    "load_contract",
]
