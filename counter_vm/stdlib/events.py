from __future__ import annotations

from typing import Any, List, Mapping

from counter_vm.runtime import events_api as _rt

# Re-export types so tests and contracts can import them from stdlib.events
Event = _rt.Event
CanonicalEvent = _rt.CanonicalEvent

__all__ = ["Event", "CanonicalEvent", "emit", "get_events"]


def emit(name: bytes, args: Mapping[Any, Any]) -> None:
    """
    Contract-facing emit:

        emit(b"Incremented", {b"caller": sender, b"newValue": 5})

    Keys may be bytes or str; the runtime normalizes them to str and
    validates values (bytes, bool, u256 ints). Nothing is delivered unless
    the call commits.
    """
    _rt.emit(name, args)


def get_events() -> List[Event]:
    """Events staged so far by the current call."""
    return _rt.get_events()
