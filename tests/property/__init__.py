# -*- coding: utf-8 -*-
"""
tests.property package bootstrap.

Hypothesis settings and shared strategies for the counter runtime and the
PrivateCounter contract.

On import this registers three profiles and loads one of them:
- dev   (default locally): 100 examples, random seeds
- ci    (default when CI is truthy): 200 examples, derandomized, verbose
- fast  : 25 examples, for quick local loops

HYPOTHESIS_PROFILE=dev|ci|fast overrides the automatic choice.

Usage in tests:
    from tests.property import given, steps

    @given(steps())
    def test_something(step):
        ...
"""
from __future__ import annotations

import os
from typing import Final

from hypothesis import HealthCheck, Verbosity, given, settings
from hypothesis import strategies as st

_SUPPRESS = (HealthCheck.too_slow, HealthCheck.filter_too_much)

settings.register_profile(
    "dev",
    settings(max_examples=100, deadline=None, suppress_health_check=_SUPPRESS, verbosity=Verbosity.normal),
)
settings.register_profile(
    "ci",
    settings(
        max_examples=200,
        deadline=None,
        suppress_health_check=_SUPPRESS,
        verbosity=Verbosity.verbose,
        derandomize=True,
    ),
)
settings.register_profile(
    "fast",
    settings(max_examples=25, deadline=None, suppress_health_check=(HealthCheck.too_slow,)),
)


def _env_truthy(name: str) -> bool:
    return (os.getenv(name) or "").lower() not in ("", "0", "false", "no", "off")


_active: Final[str] = os.getenv("HYPOTHESIS_PROFILE") or ("ci" if _env_truthy("CI") else "dev")
settings.load_profile(_active)


def active_profile() -> str:
    """Return the name of the active Hypothesis profile."""
    return _active


def steps(max_value: int = 10_000):
    """Counter step sizes, including the invalid zero step."""
    return st.integers(min_value=0, max_value=max_value)


def addresses():
    """20-byte addresses (the zero address included)."""
    return st.binary(min_size=20, max_size=20)


__all__ = ["st", "given", "active_profile", "steps", "addresses"]
