"""
counter_vm.config — runtime feature flags, numeric caps and logging defaults.

This module centralizes configuration for the deterministic contract runtime.
It has NO third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (COUNTER_VM_* / legacy VM_*)
  2) Hardcoded safe defaults below

Key env vars (case-insensitive where boolean):
  - COUNTER_VM_STRICT                 (bool)  default: true
  - COUNTER_VM_MAX_LOGS_PER_TX        (int)   default: 1024
  - COUNTER_VM_MAX_STORAGE_KEY_BYTES  (int)   default: 64
  - COUNTER_VM_MAX_STORAGE_VAL_BYTES  (int)   default: 131_072   (128 KiB)
  - COUNTER_VM_MAX_EVENT_NAME_BYTES   (int)   default: 64
  - COUNTER_VM_LOG_LEVEL              (str)   default: INFO
  - COUNTER_VM_LOG_FORMAT             (str)   json|text, default: auto (TTY → text)
  - COUNTER_VM_STATE                  (path)  default: ./.counter-vm/devnet.json

Usage:
    from counter_vm.config import load_config
    CFG = load_config()
    if CFG.strict_mode: ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_STATE_PATH = Path(".counter-vm") / "devnet.json"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


# ----------------------------- helpers ---------------------------------------


def _raw(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        # Secondary prefix (legacy)
        raw = os.getenv(name.replace("COUNTER_VM_", "VM_"))
    return raw


def _env_bool(name: str, default: bool) -> bool:
    raw = _raw(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in ("1", "true", "t", "yes", "y", "on")


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = _raw(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_choice(name: str, default: Optional[str], choices: tuple) -> Optional[str]:
    raw = _raw(name)
    if raw is None:
        return default
    val = raw.strip().upper()
    wanted = tuple(c.upper() for c in choices)
    if val not in wanted:
        return default
    return choices[wanted.index(val)]


def _env_path(name: str, default: Path) -> Path:
    raw = _raw(name)
    if not raw:
        return default
    return Path(raw).expanduser()


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class VMConfig:
    # Feature flags
    strict_mode: bool

    # Numeric caps / limits (enforced by loader/runtime)
    max_logs_per_tx: int
    max_storage_key_bytes: int
    max_storage_value_bytes: int
    max_event_name_bytes: int

    # Logging
    log_level: str
    log_format: Optional[str]  # "json" | "text" | None (auto)

    # CLI devnet state file
    state_path: Path

    def as_dict(self) -> Dict[str, Any]:
        return {
            "strict_mode": self.strict_mode,
            "max_logs_per_tx": self.max_logs_per_tx,
            "max_storage_key_bytes": self.max_storage_key_bytes,
            "max_storage_value_bytes": self.max_storage_value_bytes,
            "max_event_name_bytes": self.max_event_name_bytes,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "state_path": str(self.state_path),
        }


@lru_cache(maxsize=1)
def load_config() -> VMConfig:
    """
    Build and cache a VMConfig from environment + safe defaults.

    Tests that tweak the environment must call ``load_config.cache_clear()``.
    """
    return VMConfig(
        strict_mode=_env_bool("COUNTER_VM_STRICT", True),
        max_logs_per_tx=_env_int("COUNTER_VM_MAX_LOGS_PER_TX", 1024, min_v=1, max_v=10_000),
        max_storage_key_bytes=_env_int("COUNTER_VM_MAX_STORAGE_KEY_BYTES", 64, min_v=1, max_v=256),
        max_storage_value_bytes=_env_int(
            "COUNTER_VM_MAX_STORAGE_VAL_BYTES", 131_072, min_v=32, max_v=1_048_576
        ),
        max_event_name_bytes=_env_int("COUNTER_VM_MAX_EVENT_NAME_BYTES", 64, min_v=8, max_v=256),
        log_level=_env_choice("COUNTER_VM_LOG_LEVEL", "INFO", _LOG_LEVELS) or "INFO",
        log_format=(_env_choice("COUNTER_VM_LOG_FORMAT", None, ("json", "text")) or "").lower() or None,
        state_path=_env_path("COUNTER_VM_STATE", DEFAULT_STATE_PATH),
    )


__all__ = ["VMConfig", "load_config", "DEFAULT_STATE_PATH"]
