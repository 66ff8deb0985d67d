from __future__ import annotations

from typing import Any, Dict, List

import pytest

from counter_vm.runtime.engine import REVERT, SUCCESS, Engine, LogEntry, contract_address
from counter_vm.runtime.error import Revert, ValidationError, VmError
from counter_vm.runtime.loader import load_contract

ALICE = b"\xa1" * 20
BOB = b"\xb0" * 20

# Writes first, then checks: the host journal alone must undo the write.
SOURCE = '''
from stdlib import abi, events, storage

caller = abi.caller

def init():
    storage.set_int(b"n", 1)
    events.emit(b"Born", {"by": abi.caller()})

def bump(step):
    storage.set_int(b"n", storage.get_int(b"n") + step)
    events.emit(b"Bumped", {"n": storage.get_int(b"n")})
    abi.require(step != 13, b"unlucky", code="Unlucky")
    return storage.get_int(b"n")

def crash():
    storage.set_int(b"n", 999)
    return 1 // 0

def sneaky():
    storage.set_int(b"n", 42)
    return 0

def peek():
    return storage.get_int(b"n")

def broken():
    return {}["missing"]

def who(addr):
    return addr

def helper():
    return "undeclared"
'''


def _fn(name: str, mut: str = "nonpayable", inputs: List[Dict[str, Any]] | None = None) -> Dict[str, Any]:
    return {"name": name, "stateMutability": mut, "inputs": inputs or [], "outputs": []}


MANIFEST: Dict[str, Any] = {
    "name": "Toy",
    "version": "0.0.1",
    "manifestVersion": 1,
    "code": SOURCE,
    "abi": {
        "functions": [
            _fn("bump", inputs=[{"name": "step", "type": "u256"}]),
            _fn("crash"),
            _fn("sneaky", mut="view"),
            _fn("peek", mut="view"),
            _fn("broken", mut="view"),
            _fn("who", mut="view", inputs=[{"name": "addr", "type": "address"}]),
        ],
        "events": [],
        "errors": [{"name": "Unlucky", "message": "unlucky"}],
    },
}


@pytest.fixture
def engine() -> Engine:
    return Engine()


@pytest.fixture
def toy(engine: Engine):
    return engine.deploy(load_contract(MANIFEST), sender=ALICE)


def test_deploy_runs_init_with_deployer_as_caller(engine: Engine, toy) -> None:
    assert toy.address == contract_address(ALICE, 0)
    assert toy.deployer == ALICE
    assert toy.view("peek") == 1
    [born] = toy.logs()
    assert born.name == "Born" and born.args == {"by": ALICE}
    assert born.tx_index == 0 and born.log_index == 0
    assert engine.next_tx_index == 1


def test_successful_call_commits_and_orders_logs(engine: Engine, toy) -> None:
    r = toy.execute("bump", 4, sender=BOB)
    assert r.status == SUCCESS and r.ok
    assert r.return_value == 5
    assert [(e.name, e.args) for e in r.logs] == [("Bumped", {"n": 5})]
    assert r.logs[0].tx_index == 1 and r.logs[0].log_index == 1
    assert toy.view("peek") == 5


def test_revert_rolls_back_writes_and_events(engine: Engine, toy) -> None:
    before_logs = len(engine.logs())
    r = toy.execute("bump", 13, sender=BOB)
    assert r.status == REVERT
    assert isinstance(r.error, Revert)
    assert r.error.code == "Unlucky" and r.error.message == "unlucky"
    assert r.logs == []
    assert toy.view("peek") == 1
    assert len(engine.logs()) == before_logs
    # failed transactions still take their slot in the order
    assert r.tx_index == 1 and engine.next_tx_index == 2


def test_transact_raises_the_revert(engine: Engine, toy) -> None:
    with pytest.raises(Revert) as ei:
        toy.call("bump", 13, sender=BOB)
    assert ei.value.code == "Unlucky"
    assert toy.call("bump", 1, sender=BOB) == 2


def test_unexpected_exception_becomes_contract_fault(engine: Engine, toy) -> None:
    r = toy.execute("crash", sender=ALICE)
    assert r.status == REVERT
    assert r.error.code == "contract_fault"
    assert isinstance(r.error.__cause__, ZeroDivisionError)
    assert toy.view("peek") == 1


@pytest.mark.parametrize(
    "args,code",
    [
        ((-1,), "abi.bad_arg"),
        ((1 << 256,), "abi.bad_arg"),
        ((True,), "abi.bad_arg"),
        (("nope",), "abi.bad_arg"),
        ((), "abi.bad_arity"),
        ((1, 2), "abi.bad_arity"),
    ],
)
def test_bad_arguments_revert_before_the_contract_runs(engine: Engine, toy, args, code) -> None:
    r = toy.execute("bump", *args, sender=ALICE)
    assert r.status == REVERT and r.error.code == code
    assert isinstance(r.error, ValidationError)
    assert toy.view("peek") == 1


def test_string_arguments_are_coerced(engine: Engine, toy) -> None:
    assert toy.call("bump", "0x10", sender=ALICE) == 17
    assert toy.view("who", "0x" + "b0" * 20) == BOB


def test_unknown_and_init_methods_are_rejected(engine: Engine, toy) -> None:
    assert toy.execute("nope", sender=ALICE).error.code == "abi.unknown_method"
    assert toy.execute("init", sender=ALICE).error.code == "abi.unknown_method"
    assert toy.execute("helper", sender=ALICE).error.code == "abi.unknown_method"
    assert toy.view("peek") == 1


def test_non_strict_mode_allows_undeclared_public_functions(monkeypatch) -> None:
    monkeypatch.setenv("COUNTER_VM_STRICT", "0")
    from counter_vm.config import load_config

    load_config.cache_clear()
    eng = Engine()
    toy = eng.deploy(load_contract(MANIFEST), sender=ALICE)
    assert toy.call("helper", sender=ALICE) == "undeclared"
    # names bound from the stdlib are not the contract's own functions
    assert toy.execute("caller", sender=ALICE).error.code == "abi.unknown_method"


def test_view_cannot_write_and_consumes_no_index(engine: Engine, toy) -> None:
    idx = engine.next_tx_index
    with pytest.raises(VmError) as ei:
        toy.view("sneaky")
    assert ei.value.code == "static_write"
    assert toy.view("peek") == 1
    assert engine.next_tx_index == idx


def test_view_rejects_state_changing_methods(engine: Engine, toy) -> None:
    with pytest.raises(ValidationError) as ei:
        toy.view("bump", 1)
    assert ei.value.code == "abi.not_view"


def test_subscribers_see_only_committed_events(engine: Engine, toy) -> None:
    seen: List[LogEntry] = []
    everything: List[LogEntry] = []
    off = engine.subscribe("Bumped", seen.append)
    engine.subscribe(None, everything.append)

    toy.execute("bump", 13, sender=ALICE)  # reverted: no delivery
    toy.execute("bump", 2, sender=ALICE)
    off()
    toy.execute("bump", 2, sender=ALICE)

    assert [e.args["n"] for e in seen] == [3]
    assert [e.args["n"] for e in everything] == [3, 5]


def test_logs_filter_by_name_and_address(engine: Engine, toy) -> None:
    other = engine.deploy(load_contract(MANIFEST), sender=BOB)
    toy.execute("bump", 1, sender=ALICE)
    assert [e.name for e in engine.logs(name="Born")] == ["Born", "Born"]
    assert [e.name for e in engine.logs(address=other.address)] == ["Born"]
    assert [e.name for e in toy.logs("Bumped")] == ["Bumped"]


def test_failed_init_registers_nothing(engine: Engine) -> None:
    bad = dict(MANIFEST, code=SOURCE.replace('storage.set_int(b"n", 1)', 'abi.revert(b"no", code="NoInit")'))
    with pytest.raises(Revert):
        engine.deploy(load_contract(bad), sender=ALICE)
    assert engine.contracts == {}
    assert engine.storage == {}


def test_unknown_contract_address(engine: Engine) -> None:
    with pytest.raises(VmError) as ei:
        engine.execute(b"\x99" * 20, "bump", (1,), sender=ALICE)
    assert ei.value.code == "unknown_contract"


def test_snapshot_is_a_detached_copy(engine: Engine, toy) -> None:
    snap = engine.snapshot()
    toy.call("bump", 10, sender=ALICE)
    assert toy.view("peek") == 11
    assert snap[toy.address][b"n"] == (1).to_bytes(32, "big")
    assert engine.snapshot()[toy.address][b"n"] == (11).to_bytes(32, "big")


def test_receipt_to_dict_is_json_friendly(engine: Engine, toy) -> None:
    d = toy.execute("bump", 13, sender=BOB).to_dict()
    assert d["status"] == REVERT
    assert d["from"] == "0x" + "b0" * 20
    assert d["error"]["code"] == "Unlucky"
    assert d["logs"] == []


def test_failing_subscriber_does_not_break_the_receipt(engine: Engine, toy, caplog) -> None:
    later: List[LogEntry] = []

    def _boom(entry: LogEntry) -> None:
        raise RuntimeError("listener failed")

    engine.subscribe("Bumped", _boom)
    engine.subscribe("Bumped", later.append)

    with caplog.at_level("ERROR", logger="counter_vm.runtime.engine"):
        r = toy.execute("bump", 5, sender=BOB)

    assert r.status == SUCCESS and r.return_value == 6
    assert [e.args["n"] for e in later] == [6]
    assert toy.view("peek") == 6
    assert any(rec.getMessage() == "subscriber failed" for rec in caplog.records)


def test_engine_config_bounds_storage_and_events() -> None:
    from dataclasses import replace

    from counter_vm.config import load_config

    tight_keys = Engine(replace(load_config(), max_storage_key_bytes=1))
    with pytest.raises(VmError) as ei:
        tight_keys.deploy(load_contract(dict(MANIFEST, code=SOURCE.replace('b"n"', 'b"nn"'))), sender=ALICE)
    assert ei.value.code == "storage_invalid"

    one_log = Engine(replace(load_config(), max_logs_per_tx=1))
    toy = one_log.deploy(load_contract(MANIFEST), sender=ALICE)
    assert toy.execute("bump", 1, sender=ALICE).ok

    noisy = SOURCE.replace(
        'events.emit(b"Bumped", {"n": storage.get_int(b"n")})',
        'events.emit(b"Bumped", {"n": 0})\n    events.emit(b"Bumped", {"n": 1})',
    )
    loud = one_log.deploy(load_contract(dict(MANIFEST, code=noisy)), sender=ALICE)
    r = loud.execute("bump", 1, sender=ALICE)
    assert r.status == REVERT and r.error.code == "event_invalid"
    assert loud.view("peek") == 1


def test_view_fault_is_reported_as_vm_error(engine: Engine, toy) -> None:
    with pytest.raises(VmError) as ei:
        toy.view("broken")
    assert ei.value.code == "contract_fault"
    assert isinstance(ei.value.__cause__, KeyError)
    assert engine.next_tx_index == 1
