"""
counter_vm.runtime.journal — journaling storage writes, checkpoints, revert/commit.

A deterministic, in-memory write journal layered over the host's base storage
mapping ``{address: {key: value}}``. Nested checkpoints are a stack of
overlays. Writes go to the top overlay; reads consult overlays from
top → base. `commit()` merges the top overlay into the next layer (or the base
state if it's the last layer). `revert()` discards the top overlay.

Key properties
--------------
- Pure Python, no I/O; safe for unit tests and simulations.
- Storage overlay per (address, key) with explicit deletion markers.
- Nested checkpoints (begin/commit/revert) with O(changes) merge cost.

Intended usage
--------------
    j = Journal(base)
    with j.checkpoint():            # commit on success, revert on exception
        j.set(addr, b"k", b"v")

Notes
-----
- This journal does not enforce contract rules; callers (the engine and the
  contract itself) validate before writing.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, MutableMapping, Optional, Tuple

# Marker for a key deleted in an overlay (distinct from "not touched here").
_DELETED = object()

BaseStorage = MutableMapping[bytes, Dict[bytes, bytes]]


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


@dataclass
class _Overlay:
    """A single journal layer: staged writes per address; `_DELETED` marks removal."""

    storage: Dict[bytes, Dict[bytes, object]] = field(default_factory=dict)

    def get_local(self, addr: bytes, key: bytes) -> object:
        m = self.storage.get(addr)
        if m is None:
            return None
        return m.get(key)

    def set_local(self, addr: bytes, key: bytes, value: object) -> None:
        self.storage.setdefault(addr, {})[key] = value

    def is_empty(self) -> bool:
        return not any(self.storage.values())


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    Parameters
    ----------
    base : MutableMapping[bytes, Dict[bytes, bytes]]
        The committed storage, keyed by contract address. Only `commit()` of
        the outermost checkpoint writes into it.
    """

    def __init__(self, base: Optional[BaseStorage] = None) -> None:
        self._base: BaseStorage = base if base is not None else {}
        self._layers: List[_Overlay] = []

    @property
    def base(self) -> BaseStorage:
        return self._base

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of open checkpoints (0 means writes would hit base directly)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth marker."""
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        """Merge the top overlay into its parent, or into base if it is the last one."""
        if not self._layers:
            raise RuntimeError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            parent = self._layers[-1]
            for addr, m in top.storage.items():
                for k, v in m.items():
                    parent.set_local(addr, k, v)
            return
        self._apply_to_base(top)

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise RuntimeError("revert without an open checkpoint")
        self._layers.pop()

    @contextmanager
    def checkpoint(self) -> Iterator[int]:
        """Open a checkpoint; commit on normal exit, revert if the body raises."""
        marker = self.begin()
        try:
            yield marker
        except BaseException:
            self.revert_to(marker - 1)
            raise
        else:
            self.commit_to(marker - 1)

    def commit_to(self, marker: int) -> None:
        """Commit repeatedly until the depth equals `marker`."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.commit()

    def revert_to(self, marker: int) -> None:
        """Revert repeatedly until the depth equals `marker`."""
        if marker < 0:
            raise ValueError("marker must be >= 0")
        while len(self._layers) > marker:
            self.revert()

    def _apply_to_base(self, top: _Overlay) -> None:
        for addr, m in top.storage.items():
            slot = self._base.setdefault(addr, {})
            for k, v in m.items():
                if v is _DELETED:
                    slot.pop(k, None)
                else:
                    slot[k] = v  # type: ignore[assignment]
            if not slot:
                self._base.pop(addr, None)

    # ------------------------------------------------------------------ #
    # Storage API
    # ------------------------------------------------------------------ #

    def get(
        self,
        address: bytes | bytearray | memoryview,
        key: bytes | bytearray | memoryview,
    ) -> Optional[bytes]:
        """Read with overlay precedence. Returns None if absent or deleted."""
        addr = _b(address, name="address")
        key_b = _b(key, name="key")
        for layer in reversed(self._layers):
            local = layer.get_local(addr, key_b)
            if local is _DELETED:
                return None
            if local is not None:
                return local  # type: ignore[return-value]
        return self._base.get(addr, {}).get(key_b)

    def set(
        self,
        address: bytes | bytearray | memoryview,
        key: bytes | bytearray | memoryview,
        value: bytes | bytearray | memoryview,
    ) -> None:
        """Stage a write in the top overlay."""
        if not self._layers:
            raise RuntimeError("write outside a checkpoint")
        self._layers[-1].set_local(
            _b(address, name="address"), _b(key, name="key"), _b(value, name="value")
        )

    def delete(
        self,
        address: bytes | bytearray | memoryview,
        key: bytes | bytearray | memoryview,
    ) -> None:
        """Stage an explicit deletion in the top overlay."""
        if not self._layers:
            raise RuntimeError("write outside a checkpoint")
        self._layers[-1].set_local(_b(address, name="address"), _b(key, name="key"), _DELETED)

    def items(self, address: bytes | bytearray | memoryview) -> Iterator[Tuple[bytes, bytes]]:
        """
        Iterate visible (key, value) for an address with overlay precedence.
        Stable order by key.
        """
        addr = _b(address, name="address")
        visible: Dict[bytes, bytes] = dict(self._base.get(addr, {}))
        for layer in self._layers:
            for k, v in layer.storage.get(addr, {}).items():
                if v is _DELETED:
                    visible.pop(k, None)
                else:
                    visible[k] = v  # type: ignore[assignment]
        for k in sorted(visible):
            yield k, visible[k]

    def is_dirty(self) -> bool:
        return any(not layer.is_empty() for layer in self._layers)


__all__ = ["Journal", "BaseStorage"]
