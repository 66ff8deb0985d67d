"""
Repository-wide pytest hooks.

- Each test sees a freshly built VMConfig, so ``monkeypatch.setenv`` on
  COUNTER_VM_* variables takes effect.
- Byte-string assertion failures are shown as hexdumps.
"""
from __future__ import annotations

import os
from typing import Any, List, Optional

import pytest

from counter_vm.config import load_config

os.environ.setdefault("PYTHONHASHSEED", "0")


@pytest.fixture(autouse=True)
def _fresh_config():
    load_config.cache_clear()
    yield
    load_config.cache_clear()


def pytest_assertrepr_compare(op: str, left: Any, right: Any) -> Optional[List[str]]:
    if isinstance(left, (bytes, bytearray)) and isinstance(right, (bytes, bytearray)) and op == "==":
        def hexdump(b: bytes) -> str:
            return " ".join(f"{x:02x}" for x in b)
        return [
            "bytes differ:",
            f" left: {hexdump(bytes(left))}",
            f"right: {hexdump(bytes(right))}",
        ]
    return None
