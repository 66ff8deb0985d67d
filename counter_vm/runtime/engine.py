"""
counter_vm.runtime.engine — the host ledger that executes contract calls.

Design goals
------------
- One call at a time, each to completion. Every submitted deploy/call gets the
  next transaction index, which defines the total order of operations.
- All-or-nothing: each call runs inside a journal checkpoint. Writes and
  events are staged in the frame and reach committed state only if the call
  returns normally. Any VmError (or contract fault) reverts the checkpoint.
- Static calls (views) see committed state, cannot write, and consume no index.
- Committed events are appended to the engine's log and then delivered to
  subscribers; reverted calls never notify.

Typical usage
-------------
    engine = Engine()
    counter = engine.deploy(load_contract(MANIFEST), sender=alice)
    counter.call("increment", 5, sender=alice)
    assert counter.view("current") == 5

NOTE: Contract authors never import this directly; they use `stdlib`.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from counter_vm.config import VMConfig, load_config

from .abi import coerce_args
from .context import CallFrame, TxEnv, frame_scope, to_address, to_hex
from .error import ValidationError, VmError
from .events_api import Event, to_canonical
from .journal import BaseStorage, Journal
from .loader import INIT_FUNCTION, ContractRuntime

log = logging.getLogger(__name__)

SUCCESS = "SUCCESS"
REVERT = "REVERT"

Subscriber = Callable[["LogEntry"], None]


# --- Results -----------------------------------------------------------------

@dataclass(frozen=True)
class LogEntry:
    """A committed event, positioned in the host's total order."""
    tx_index: int
    log_index: int
    address: bytes
    event: Event

    @property
    def name(self) -> str:
        return self.event.name.decode("ascii", errors="replace")

    @property
    def args(self) -> Dict[str, Any]:
        return dict(self.event.args)

    def to_dict(self) -> Dict[str, Any]:
        ce = to_canonical(self.event)
        return {
            "txIndex": self.tx_index,
            "logIndex": self.log_index,
            "address": to_hex(self.address),
            "name": ce.name,
            "args": list(ce.args),
        }


@dataclass
class Receipt:
    tx_index: int
    kind: str               # "deploy" | "call"
    to: bytes
    sender: bytes
    method: str
    status: str
    return_value: Any = None
    logs: List[LogEntry] = field(default_factory=list)
    error: Optional[VmError] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txIndex": self.tx_index,
            "kind": self.kind,
            "to": to_hex(self.to),
            "from": to_hex(self.sender),
            "method": self.method,
            "status": self.status,
            "return": self.return_value if not isinstance(self.return_value, bytes) else to_hex(self.return_value),
            "logs": [entry.to_dict() for entry in self.logs],
            "error": self.error.to_dict() if self.error is not None else None,
        }


@dataclass
class DeployedContract:
    """Handle bound to a deployed contract address."""
    engine: "Engine"
    address: bytes
    runtime: ContractRuntime
    deployer: bytes
    tx_index: int

    @property
    def name(self) -> str:
        return self.runtime.name

    def execute(self, method: str, *args: Any, sender: Any) -> Receipt:
        return self.engine.execute(self.address, method, args, sender=sender)

    def call(self, method: str, *args: Any, sender: Any) -> Any:
        return self.engine.transact(self.address, method, args, sender=sender)

    def view(self, method: str, *args: Any) -> Any:
        return self.engine.view(self.address, method, args)

    def logs(self, name: Optional[str] = None) -> List[LogEntry]:
        return self.engine.logs(address=self.address, name=name)


def contract_address(sender: bytes, tx_index: int) -> bytes:
    """Deterministic 20-byte address for a contract deployed by `sender` at `tx_index`."""
    h = hashlib.sha3_256()
    h.update(b"counter_vm/deploy|")
    h.update(sender)
    h.update(tx_index.to_bytes(8, "big"))
    return h.digest()[:20]


# --- Engine ------------------------------------------------------------------

class Engine:
    """
    Single-threaded host for deployed contracts.

    Parameters
    ----------
    config : VMConfig | None
        Runtime configuration; defaults to :func:`load_config`.
    storage : mapping | None
        Committed base storage ``{address: {key: value}}`` (e.g. restored
        from a devnet state file).
    """

    def __init__(self, config: Optional[VMConfig] = None, *, storage: Optional[BaseStorage] = None) -> None:
        self.config = config or load_config()
        self._journal = Journal(storage if storage is not None else {})
        self._contracts: Dict[bytes, DeployedContract] = {}
        self._logs: List[LogEntry] = []
        self._receipts: List[Receipt] = []
        self._next_index = 0
        self._subscribers: List[Tuple[Optional[str], Subscriber]] = []

    # ---- state views ---- #

    @property
    def next_tx_index(self) -> int:
        return self._next_index

    @property
    def receipts(self) -> List[Receipt]:
        return list(self._receipts)

    @property
    def storage(self) -> BaseStorage:
        return self._journal.base

    @property
    def contracts(self) -> Dict[bytes, DeployedContract]:
        return dict(self._contracts)

    def at(self, address: Any) -> DeployedContract:
        addr = to_address(address)
        try:
            return self._contracts[addr]
        except KeyError:
            raise VmError(f"no contract at {to_hex(addr)}", code="unknown_contract") from None

    def logs(self, *, address: Any = None, name: Optional[str] = None) -> List[LogEntry]:
        addr = to_address(address) if address is not None else None
        return [
            e
            for e in self._logs
            if (addr is None or e.address == addr) and (name is None or e.name == name)
        ]

    # ---- subscriptions ---- #

    def subscribe(self, name: Optional[str], callback: Subscriber) -> Callable[[], None]:
        """
        Deliver committed events named `name` (or all, if None) to `callback`.
        Returns a function that removes the subscription.
        """
        entry = (name, callback)
        self._subscribers.append(entry)

        def _unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return _unsubscribe

    # ---- host restore (CLI state file) ---- #

    def attach(self, address: Any, runtime: ContractRuntime, *, deployer: Any, tx_index: int) -> DeployedContract:
        """Register an already-deployed contract whose storage is in base state."""
        handle = DeployedContract(
            engine=self,
            address=to_address(address),
            runtime=runtime,
            deployer=to_address(deployer),
            tx_index=tx_index,
        )
        self._contracts[handle.address] = handle
        return handle

    def snapshot(self) -> Dict[bytes, Dict[bytes, bytes]]:
        """Deep copy of committed storage."""
        return {addr: dict(slots) for addr, slots in self.storage.items()}

    def restore_history(self, logs: Sequence[LogEntry], next_tx_index: int) -> None:
        if self._receipts or self._logs:
            raise VmError("cannot restore history into a used engine", code="engine_state")
        self._logs = list(logs)
        self._next_index = int(next_tx_index)

    # ---- transactions ---- #

    def deploy(self, runtime: ContractRuntime, *, sender: Any, args: Sequence[Any] = ()) -> DeployedContract:
        """
        Deploy `runtime` at a fresh address and run its `init` constructor
        (if defined) with `sender` as caller. Raises the VmError if `init`
        fails; nothing is registered in that case.
        """
        sender_b = to_address(sender)
        idx = self._next_index
        address = contract_address(sender_b, idx)
        if address in self._contracts:
            raise VmError(f"address collision at {to_hex(address)}", code="engine_state")

        init_fn = getattr(runtime.module, INIT_FUNCTION, None) if runtime.has_init else None
        receipt = self._run(
            kind="deploy",
            address=address,
            method=INIT_FUNCTION,
            fn=init_fn,
            args=list(args),
            sender=sender_b,
        )
        receipt.raise_for_status()
        handle = self.attach(address, runtime, deployer=sender_b, tx_index=idx)
        log.info(
            "contract deployed",
            extra={"contract": to_hex(address), "contract_name": runtime.name, "sender": to_hex(sender_b)},
        )
        return handle

    def execute(self, address: Any, method: str, args: Sequence[Any] = (), *, sender: Any) -> Receipt:
        """Submit a state-changing call. Always returns a receipt."""
        sender_b = to_address(sender)
        handle = self.at(address)
        try:
            fn, call_args = self._prepare(handle, method, args)
        except ValidationError as e:
            return self._reject(handle.address, method, sender_b, e)
        return self._run(kind="call", address=handle.address, method=method, fn=fn, args=call_args, sender=sender_b)

    def transact(self, address: Any, method: str, args: Sequence[Any] = (), *, sender: Any) -> Any:
        """Like :meth:`execute` but raises the call's VmError on failure."""
        receipt = self.execute(address, method, args, sender=sender)
        receipt.raise_for_status()
        return receipt.return_value

    def view(self, address: Any, method: str, args: Sequence[Any] = ()) -> Any:
        """Read-only call against committed state; never consumes a tx index."""
        handle = self.at(address)
        fn, call_args = self._prepare(handle, method, args)
        if method in handle.runtime.exports and not handle.runtime.is_view(method):
            raise ValidationError(f"{method} is not a view function", code="abi.not_view")
        env = TxEnv(sender=handle.address, to=handle.address, tx_index=self._next_index, static=True)
        frame = CallFrame(env=env, journal=self._journal, config=self.config)
        marker = self._journal.begin()
        try:
            with frame_scope(frame):
                return fn(*call_args)
        except VmError:
            raise
        except Exception as e:
            raise VmError(
                f"contract fault: {type(e).__name__}: {e}",
                code="contract_fault",
                context={"method": method},
            ) from e
        finally:
            self._journal.revert_to(marker - 1)

    # ---- internals ---- #

    def _prepare(self, handle: DeployedContract, method: str, args: Sequence[Any]) -> Tuple[Callable[..., Any], List[Any]]:
        rt = handle.runtime
        if method == INIT_FUNCTION:
            raise ValidationError("init can only run at deploy time", code="abi.unknown_method")
        if method in rt.exports:
            return rt.resolve(method), coerce_args(rt.function_abi(method), args)
        if not self.config.strict_mode and not method.startswith("_"):
            # Functions defined by the contract source only, never imported helpers.
            fn = getattr(rt.module, method, None)
            if callable(fn) and getattr(fn, "__module__", None) == rt.module.__name__:
                return fn, list(args)
        raise ValidationError(f"method {method!r} not exported by {rt.name}", code="abi.unknown_method")

    def _take_index(self) -> int:
        idx = self._next_index
        self._next_index += 1
        return idx

    def _reject(self, address: bytes, method: str, sender: bytes, err: VmError) -> Receipt:
        receipt = Receipt(
            tx_index=self._take_index(),
            kind="call",
            to=address,
            sender=sender,
            method=method,
            status=REVERT,
            error=err,
        )
        self._receipts.append(receipt)
        log.info(
            "call rejected",
            extra={"contract": to_hex(address), "method": method, "code": err.code},
        )
        return receipt

    def _run(
        self,
        *,
        kind: str,
        address: bytes,
        method: str,
        fn: Optional[Callable[..., Any]],
        args: List[Any],
        sender: bytes,
    ) -> Receipt:
        idx = self._take_index()
        env = TxEnv(sender=sender, to=address, tx_index=idx)
        frame = CallFrame(env=env, journal=self._journal, config=self.config)
        receipt = Receipt(tx_index=idx, kind=kind, to=address, sender=sender, method=method, status=REVERT)

        marker = self._journal.begin()
        try:
            with frame_scope(frame):
                ret = fn(*args) if fn is not None else None
        except VmError as e:
            self._journal.revert_to(marker - 1)
            receipt.error = e
        except Exception as e:
            self._journal.revert_to(marker - 1)
            log.warning(
                "contract fault",
                exc_info=True,
                extra={"contract": to_hex(address), "method": method},
            )
            err = VmError(
                f"contract fault: {type(e).__name__}: {e}",
                code="contract_fault",
                context={"method": method},
            )
            err.__cause__ = e
            receipt.error = err
        else:
            self._journal.commit_to(marker - 1)
            receipt.status = SUCCESS
            receipt.return_value = ret
            receipt.logs = [
                LogEntry(tx_index=idx, log_index=len(self._logs) + i, address=address, event=ev)
                for i, ev in enumerate(frame.events)
            ]
            self._logs.extend(receipt.logs)

        self._receipts.append(receipt)
        if receipt.ok:
            log.debug(
                "tx committed",
                extra={"tx_index": idx, "contract": to_hex(address), "method": method, "events": len(receipt.logs)},
            )
            self._notify(receipt.logs)
        elif receipt.error is not None:
            log.info(
                "tx reverted",
                extra={
                    "tx_index": idx,
                    "contract": to_hex(address),
                    "method": method,
                    "code": receipt.error.code,
                    "sender": to_hex(sender),
                },
            )
        return receipt

    def _notify(self, entries: Sequence[LogEntry]) -> None:
        for entry in entries:
            for name, cb in list(self._subscribers):
                if name is None or name == entry.name:
                    try:
                        cb(entry)
                    except Exception:
                        log.exception(
                            "subscriber failed",
                            extra={"event": entry.name, "tx_index": entry.tx_index, "contract": to_hex(entry.address)},
                        )


__all__ = [
    "SUCCESS",
    "REVERT",
    "LogEntry",
    "Receipt",
    "DeployedContract",
    "Engine",
    "contract_address",
]
