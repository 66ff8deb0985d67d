"""
CLI tests for `counter-vm`, driven through typer's CliRunner against a
throwaway devnet state file.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import List

import pytest
import typer.testing

from counter_vm.cli.main import app

runner = typer.testing.CliRunner()


def _addr(label: str) -> str:
    return "0x" + hashlib.sha3_256(label.encode("utf-8")).hexdigest()[:40]


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch) -> None:
    monkeypatch.setenv("COUNTER_VM_LOG_LEVEL", "WARNING")
    monkeypatch.delenv("COUNTER_ADDR", raising=False)


@pytest.fixture
def state(tmp_path: Path) -> Path:
    return tmp_path / "devnet.json"


def _run(state: Path, *args: str, json_out: bool = False):
    argv: List[str] = ["--state", str(state)]
    if json_out:
        argv.append("--json")
    return runner.invoke(app, argv + list(args))


@pytest.fixture
def deployed(state: Path) -> str:
    result = _run(state, "deploy", "--from", "deployer", json_out=True)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)["address"]


class TestCLIBasics:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for cmd in ("deploy", "call", "view", "events", "interact", "accounts"):
            assert cmd in result.stdout

    def test_accounts_are_sha3_of_label(self, state: Path) -> None:
        result = _run(state, "accounts", json_out=True)
        assert result.exit_code == 0
        assert json.loads(result.stdout) == {
            "deployer": _addr("deployer"),
            "alice": _addr("alice"),
            "bob": _addr("bob"),
        }


class TestDeployAndCall:
    def test_deploy_reports_owner_and_initial_value(self, state: Path) -> None:
        result = _run(state, "deploy")
        assert result.exit_code == 0, result.output
        assert "PrivateCounter deployed" in result.stdout
        assert _addr("deployer") in result.stdout
        assert "Initial value:    0" in result.stdout
        assert "export COUNTER_ADDR=0x" in result.stdout
        saved = json.loads(state.read_text(encoding="utf-8"))
        assert saved["nextTxIndex"] == 1
        assert saved["contracts"][0]["name"] == "PrivateCounter"

    def test_state_persists_between_invocations(self, state: Path, deployed: str) -> None:
        assert _run(state, "call", "increment", "5", "--address", deployed).exit_code == 0
        assert _run(state, "call", "increment", "3", "--address", deployed).exit_code == 0
        result = _run(state, "view", "current", "--address", deployed)
        assert result.exit_code == 0
        assert result.stdout.strip() == "8"

    def test_call_json_receipt(self, state: Path, deployed: str) -> None:
        result = _run(state, "call", "increment", "7", "--address", deployed, json_out=True)
        assert result.exit_code == 0, result.output
        receipt = json.loads(result.stdout)
        assert receipt["status"] == "SUCCESS"
        assert receipt["return"] == 7
        [log] = receipt["logs"]
        assert log["name"] == "Incremented"
        assert {"k": "newValue", "t": "i", "v": 7} in log["args"]

    def test_address_from_environment(self, state: Path, deployed: str, monkeypatch) -> None:
        monkeypatch.setenv("COUNTER_ADDR", deployed)
        result = _run(state, "view", "owner")
        assert result.exit_code == 0
        assert _addr("deployer") in result.stdout

    def test_non_owner_call_fails_with_message_and_hint(self, state: Path, deployed: str) -> None:
        result = _run(state, "call", "increment", "5", "--address", deployed, "--from", "alice")
        assert result.exit_code == 1
        assert "PrivateCounter: caller is not the owner" in result.output
        assert "use the owner account or transfer ownership" in result.output
        # the reverted call still took a slot in the order
        saved = json.loads(state.read_text(encoding="utf-8"))
        assert saved["nextTxIndex"] == 2
        assert _run(state, "view", "current", "--address", deployed).stdout.strip() == "0"

    def test_underflow_json_error(self, state: Path, deployed: str) -> None:
        result = _run(state, "call", "decrement", "1", "--address", deployed, json_out=True)
        assert result.exit_code == 1
        out = json.loads(result.stdout)
        assert out["error"]["code"] == "Underflow"
        assert out["error"]["message"] == "PrivateCounter: cannot decrement below zero"
        assert out["receipt"]["status"] == "REVERT"

    def test_bad_argument(self, state: Path, deployed: str) -> None:
        result = _run(state, "call", "increment", "three", "--address", deployed, json_out=True)
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"]["code"] == "abi.bad_arg"

    def test_transfer_ownership_accepts_account_names(self, state: Path, deployed: str) -> None:
        result = _run(state, "call", "transferOwnership", "alice", "--address", deployed)
        assert result.exit_code == 0, result.output
        assert _run(state, "view", "owner", "--address", deployed, json_out=True).stdout.count(_addr("alice")) == 1
        assert _run(state, "call", "increment", "15", "--address", deployed, "--from", "alice").exit_code == 0
        assert _run(state, "call", "increment", "5", "--address", deployed).exit_code == 1

    def test_events_lists_committed_log(self, state: Path, deployed: str) -> None:
        _run(state, "call", "increment", "4", "--address", deployed)
        _run(state, "call", "reset", "--address", deployed)
        result = _run(state, "events", "--address", deployed, json_out=True)
        names = [e["name"] for e in json.loads(result.stdout)]
        assert names == ["OwnershipTransferred", "Incremented", "Reset"]
        only = _run(state, "events", "--address", deployed, "--name", "Reset", json_out=True)
        assert [e["name"] for e in json.loads(only.stdout)] == ["Reset"]

    def test_unknown_contract(self, state: Path) -> None:
        result = _run(state, "view", "current", "--address", "0x" + "11" * 20)
        assert result.exit_code == 1
        assert "counter-vm deploy" in result.output

    def test_missing_address(self, state: Path) -> None:
        result = _run(state, "view", "current")
        assert result.exit_code == 1
        assert "COUNTER_ADDR" in result.output


class TestStateFile:
    @pytest.mark.parametrize("field", ["manifest", "txIndex", "deployer"])
    def test_contract_entry_missing_field(self, state: Path, deployed: str, field: str) -> None:
        data = json.loads(state.read_text(encoding="utf-8"))
        del data["contracts"][0][field]
        state.write_text(json.dumps(data), encoding="utf-8")

        result = _run(state, "view", "current", "--address", deployed, json_out=True)
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"]["code"] == "state.invalid"

    def test_non_numeric_tx_index(self, state: Path, deployed: str) -> None:
        data = json.loads(state.read_text(encoding="utf-8"))
        data["nextTxIndex"] = "soon"
        state.write_text(json.dumps(data), encoding="utf-8")

        result = _run(state, "view", "current", "--address", deployed)
        assert result.exit_code == 1
        assert "state.invalid" in result.output

    def test_changed_source_is_refused(self, state: Path, deployed: str) -> None:
        data = json.loads(state.read_text(encoding="utf-8"))
        data["contracts"][0]["codeHash"] = "0x" + "00" * 32
        state.write_text(json.dumps(data), encoding="utf-8")

        result = _run(state, "view", "current", "--address", deployed, json_out=True)
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error"]["code"] == "state.code_changed"


class TestInteract:
    def test_owner_runs_demo(self, state: Path, deployed: str) -> None:
        result = _run(state, "interact", "--address", deployed)
        assert result.exit_code == 0, result.output
        assert "Is current signer the owner? True" in result.stdout
        assert "increment(5) -> 5" in result.stdout
        assert "increment(3) -> 8" in result.stdout
        assert "decrement(2) -> 6" in result.stdout
        assert "to 16" in result.stdout
        assert "Final counter value: 16" in result.stdout

    def test_owner_demo_json(self, state: Path, deployed: str) -> None:
        result = _run(state, "interact", "--address", deployed, json_out=True)
        report = json.loads(result.stdout)
        assert report["isOwner"] is True
        assert report["initial"] == 0 and report["final"] == 16
        assert [s["method"] for s in report["steps"]] == ["increment", "increment", "decrement", "increment"]
        assert [h["name"] for h in report["heard"]] == ["Incremented"]

    def test_non_owner_skips_owner_only_steps(self, state: Path, deployed: str) -> None:
        result = _run(state, "interact", "--address", deployed, "--from", "bob")
        assert result.exit_code == 0
        assert "Is current signer the owner? False" in result.stdout
        assert "Skipping owner-only operations" in result.stdout
        assert _run(state, "view", "current", "--address", deployed).stdout.strip() == "0"
