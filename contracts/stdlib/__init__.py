# -*- coding: utf-8 -*-
"""
contracts.stdlib
================

Reusable, VM-safe helpers that contract sources import alongside the runtime
`stdlib` surface:

    from stdlib import abi
    from contracts.stdlib.access import init_owner, require_owner

Helpers only call `storage`, `events` and `abi` from the active call frame;
they hold no module-level state of their own.
"""
from __future__ import annotations

from . import access

__all__ = ["access"]
