# -*- coding: utf-8 -*-
"""
contracts.tests.conftest
========================

Pytest fixtures for the contract packages under contracts/examples.

- A fresh in-memory :class:`counter_vm.runtime.engine.Engine` per test.
- ``counter``: PrivateCounter deployed by the ``deployer`` account.
- ``funded_accounts``: stable dev addresses (sha3-256 of the label, 20 bytes),
  identical to the ones the `counter-vm accounts` command prints.
- ``expect_revert``: run a call and assert it reverted with a given error code
  and left the contract's committed storage untouched.

Usage (inside a test file):
    def test_flow(counter, funded_accounts):
        owner = funded_accounts["deployer"]["address"]
        counter.call("increment", 5, sender=owner)
        assert counter.view("current") == 5
"""
from __future__ import annotations

import hashlib
from typing import Any, Callable, Dict

import pytest

from contracts.examples import manifest_path
from counter_vm.runtime.engine import DeployedContract, Engine, Receipt
from counter_vm.runtime.loader import ContractRuntime, load_contract

ZERO_ADDRESS = b"\x00" * 20


def _det_address(tag: str) -> bytes:
    """Stable 20-byte address derived from a tag."""
    return hashlib.sha3_256(tag.encode("utf-8")).digest()[:20]


@pytest.fixture(scope="session")
def funded_accounts() -> Dict[str, Dict[str, Any]]:
    return {label: {"address": _det_address(label)} for label in ("deployer", "alice", "bob")}


@pytest.fixture(scope="session")
def deployer(funded_accounts) -> bytes:
    return funded_accounts["deployer"]["address"]


@pytest.fixture(scope="session")
def alice(funded_accounts) -> bytes:
    return funded_accounts["alice"]["address"]


@pytest.fixture(scope="session")
def bob(funded_accounts) -> bytes:
    return funded_accounts["bob"]["address"]


@pytest.fixture(scope="session")
def counter_runtime() -> ContractRuntime:
    return load_contract(manifest_path("private_counter"))


@pytest.fixture
def engine() -> Engine:
    return Engine()


@pytest.fixture
def counter(engine: Engine, counter_runtime: ContractRuntime, deployer: bytes) -> DeployedContract:
    return engine.deploy(counter_runtime, sender=deployer)


@pytest.fixture
def expect_revert(engine: Engine) -> Callable[..., Receipt]:
    """
    expect_revert(contract, code, message, method, *args, sender=...)

    Asserts the call reverted with `code` and the exact `message`, emitted
    nothing, and left committed storage byte-for-byte unchanged.
    """

    def _run(contract: DeployedContract, code: str, message: str, method: str, *args: Any, sender: bytes) -> Receipt:
        before = engine.snapshot()
        logs_before = len(engine.logs())
        receipt = contract.execute(method, *args, sender=sender)
        assert receipt.status == "REVERT", receipt.to_dict()
        assert receipt.error is not None
        assert receipt.error.code == code
        assert receipt.error.message == message
        assert receipt.logs == []
        assert engine.snapshot() == before
        assert len(engine.logs()) == logs_before
        return receipt

    return _run
