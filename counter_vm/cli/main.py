"""
counter-vm - command line interface for the local counter_vm devnet.

Commands:
  - accounts     List the deterministic dev accounts
  - deploy       Deploy a contract package (default: PrivateCounter)
  - call         Send a state-changing call and print its receipt
  - view         Read-only call against committed state
  - events       Print the committed event log
  - interact     Scripted PrivateCounter demo (owner-aware)

Global options:
  --state PATH   Devnet state file (env COUNTER_VM_STATE)
  --json         Output JSON instead of human-readable text
  --verbose      Debug logging on stderr

Examples:
  counter-vm deploy --from deployer
  export COUNTER_ADDR=0x...
  counter-vm call increment 5 --from deployer
  counter-vm view current
  counter-vm call transferOwnership alice --from deployer
  counter-vm interact --from alice
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, NoReturn, Optional

import typer

from counter_vm import logging as clog
from counter_vm.config import load_config
from counter_vm.runtime.context import to_hex
from counter_vm.runtime.engine import DeployedContract, Engine, LogEntry, Receipt
from counter_vm.runtime.error import VmError
from counter_vm.runtime.loader import ContractRuntime, load_contract
from counter_vm.version import __version__

from . import accounts as acct
from .state_file import open_engine, save_engine

app = typer.Typer(
    name="counter-vm",
    help="Local devnet CLI for counter_vm contracts",
    no_args_is_help=True,
    add_completion=False,
)

log = clog.get_logger(__name__)

ADDRESS_ENV = "COUNTER_ADDR"

# Suggestions printed under a failed call, keyed by error code.
HINTS: Dict[str, str] = {
    "NotOwner": "use the owner account or transfer ownership",
    "InvalidStep": "pass a step greater than zero",
    "Underflow": "read `counter-vm view current` and decrement by at most that much",
    "ArithmeticOverflow": "the counter cannot exceed 2**256 - 1; reset it first",
    "InvalidOwner": "pass a non-zero 20-byte address or a dev account name",
    "NoOpTransfer": "that account already owns the contract",
    "abi.bad_arg": "check the argument types in the contract manifest",
    "abi.bad_arity": "check the argument count in the contract manifest",
    "abi.unknown_method": "run `counter-vm view --help` or read the manifest ABI",
    "unknown_contract": f"run `counter-vm deploy` first, then set {ADDRESS_ENV}=<address>",
}


class GlobalContext:
    def __init__(self):
        self.state_path: Path = load_config().state_path
        self.json_output: bool = False
        self.verbose: bool = False


_ctx = GlobalContext()


@app.callback()
def main_callback(
    state: Optional[Path] = typer.Option(
        None,
        "--state",
        help="Devnet state file",
        envvar="COUNTER_VM_STATE",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output JSON instead of human-readable text",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Debug logging on stderr",
    ),
) -> None:
    """
    counter-vm — deploy and drive contracts on a single-process devnet.

    State persists between invocations in a JSON file (default
    ./.counter-vm/devnet.json).
    """
    cfg = load_config()
    _ctx.state_path = state if state is not None else cfg.state_path
    _ctx.json_output = json_output
    _ctx.verbose = verbose
    clog.configure_from_config(cfg, verbose=verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return to_hex(value)
    return value


def _fail(err: VmError, *, receipt: Optional[Receipt] = None) -> NoReturn:
    hint = HINTS.get(err.code)
    if _ctx.json_output:
        out: Dict[str, Any] = {"error": err.to_dict()}
        if receipt is not None:
            out["receipt"] = receipt.to_dict()
        if hint:
            out["hint"] = hint
        typer.echo(_pretty(out))
    else:
        typer.echo(f"Error [{err.code}]: {err.message}", err=True)
        if hint:
            typer.echo(f"Hint: {hint}", err=True)
    raise typer.Exit(1)


def _open() -> Engine:
    try:
        return open_engine(_ctx.state_path)
    except VmError as e:
        _fail(e)


def _save(engine: Engine) -> None:
    save_engine(engine, _ctx.state_path)


def _resolve_sender(name: str) -> bytes:
    try:
        return acct.resolve_account(name)
    except VmError as e:
        _fail(e)


def _contract(engine: Engine, address: Optional[str]) -> DeployedContract:
    if not address:
        _fail(VmError(f"no contract address given (--address or {ADDRESS_ENV})", code="unknown_contract"))
    try:
        return engine.at(address)
    except VmError as e:
        _fail(e)


def _cli_args(runtime: ContractRuntime, method: str, raw: List[str]) -> List[Any]:
    """Dev account names are accepted wherever the ABI expects an address."""
    try:
        inputs = runtime.function_abi(method).get("inputs", [])
    except VmError:
        return list(raw)
    out: List[Any] = []
    for i, value in enumerate(raw):
        typ = inputs[i].get("type") if i < len(inputs) else None
        if typ == "address" and value.strip().lower() in acct.DEV_ACCOUNTS:
            out.append(to_hex(acct.dev_address(value.strip().lower())))
        else:
            out.append(value)
    return out


def _print_log(entry: LogEntry) -> None:
    args = ", ".join(f"{k}={acct.describe(v) if isinstance(v, bytes) else v}" for k, v in entry.args.items())
    typer.echo(f"  [{entry.tx_index}:{entry.log_index}] {entry.name}({args})")


def _print_receipt(receipt: Receipt) -> None:
    typer.echo(f"Tx #{receipt.tx_index} {receipt.method} from {acct.describe(receipt.sender)}: {receipt.status}")
    if receipt.return_value is not None:
        typer.echo(f"Return:  {_jsonable(receipt.return_value)}")
    if receipt.logs:
        typer.echo("Events:")
        for entry in receipt.logs:
            _print_log(entry)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def version() -> None:
    """Print the counter_vm version."""
    typer.echo(__version__)


@app.command()
def accounts() -> None:
    """List the deterministic dev accounts (sha3-256 of the label)."""
    rows = {label: to_hex(addr) for label, addr in acct.dev_accounts().items()}
    if _ctx.json_output:
        typer.echo(_pretty(rows))
        return
    for label, addr in rows.items():
        typer.echo(f"{label:<10} {addr}")


@app.command()
def deploy(
    sender: str = typer.Option(acct.DEFAULT_ACCOUNT, "--from", help="Deployer (dev account name or 0x address)"),
    manifest: Optional[Path] = typer.Option(
        None,
        "--manifest",
        help="Contract manifest.json (default: contracts/examples/private_counter)",
    ),
) -> None:
    """Deploy a contract package into the devnet state file."""
    from contracts.examples import manifest_path

    engine = _open()
    deployer = _resolve_sender(sender)
    try:
        runtime = load_contract(manifest if manifest is not None else manifest_path())
        handle = engine.deploy(runtime, sender=deployer)
    except VmError as e:
        _fail(e)
    _save(engine)

    owner = handle.view("owner") if "owner" in runtime.exports else None
    current = handle.view("current") if "current" in runtime.exports else None
    info = {
        "contract": runtime.name,
        "address": to_hex(handle.address),
        "deployer": to_hex(deployer),
        "txIndex": handle.tx_index,
        "codeHash": runtime.code_hash,
        "owner": _jsonable(owner),
        "current": current,
        "state": str(_ctx.state_path),
    }
    if _ctx.json_output:
        typer.echo(_pretty(info))
        return

    typer.echo(f"{runtime.name} deployed")
    typer.echo("=" * 50)
    typer.echo(f"Contract Address: {info['address']}")
    typer.echo(f"Deployer:         {acct.describe(deployer)}")
    typer.echo(f"Tx Index:         {handle.tx_index}")
    typer.echo(f"Code Hash:        {runtime.code_hash}")
    if owner is not None:
        typer.echo(f"Owner:            {acct.describe(owner)}")
    if current is not None:
        typer.echo(f"Initial value:    {current}")
    typer.echo("=" * 50)
    typer.echo("Next steps:")
    typer.echo(f"1. export {ADDRESS_ENV}={info['address']}")
    typer.echo("2. counter-vm interact")
    typer.echo("3. pytest")


@app.command()
def call(
    method: str = typer.Argument(..., help="Contract method, e.g. increment"),
    args: Optional[List[str]] = typer.Argument(None, help="Positional arguments"),
    address: Optional[str] = typer.Option(None, "--address", envvar=ADDRESS_ENV, help="Contract address"),
    sender: str = typer.Option(acct.DEFAULT_ACCOUNT, "--from", help="Caller (dev account name or 0x address)"),
) -> None:
    """Send a state-changing call. Exits 1 if the call reverts."""
    engine = _open()
    handle = _contract(engine, address)
    caller = _resolve_sender(sender)
    receipt = handle.execute(method, *_cli_args(handle.runtime, method, args or []), sender=caller)
    # Reverted calls still consume a tx index.
    _save(engine)
    if receipt.error is not None:
        _fail(receipt.error, receipt=receipt)
    if _ctx.json_output:
        typer.echo(_pretty(receipt.to_dict()))
    else:
        _print_receipt(receipt)


@app.command()
def view(
    method: str = typer.Argument(..., help="View method, e.g. current"),
    args: Optional[List[str]] = typer.Argument(None, help="Positional arguments"),
    address: Optional[str] = typer.Option(None, "--address", envvar=ADDRESS_ENV, help="Contract address"),
) -> None:
    """Read-only call; never changes state."""
    engine = _open()
    handle = _contract(engine, address)
    try:
        value = handle.view(method, *_cli_args(handle.runtime, method, args or []))
    except VmError as e:
        _fail(e)
    if _ctx.json_output:
        typer.echo(_pretty({"method": method, "value": _jsonable(value)}))
    elif isinstance(value, bytes):
        typer.echo(acct.describe(value))
    else:
        typer.echo(str(value))


@app.command()
def events(
    address: Optional[str] = typer.Option(None, "--address", envvar=ADDRESS_ENV, help="Contract address"),
    name: Optional[str] = typer.Option(None, "--name", help="Only events with this name"),
) -> None:
    """Print committed events in order."""
    engine = _open()
    handle = _contract(engine, address)
    entries = handle.logs(name)
    if _ctx.json_output:
        typer.echo(_pretty([e.to_dict() for e in entries]))
        return
    if not entries:
        typer.echo("No events")
        return
    for entry in entries:
        _print_log(entry)


@app.command()
def interact(
    address: Optional[str] = typer.Option(None, "--address", envvar=ADDRESS_ENV, help="Contract address"),
    sender: str = typer.Option(acct.DEFAULT_ACCOUNT, "--from", help="Signer (dev account name or 0x address)"),
) -> None:
    """
    Walk a PrivateCounter through a short demo.

    Shows owner and current value; if the signer owns the contract it runs
    increment 5, increment 3, decrement 2, then increment 10 with listeners
    on Incremented and Reset. Non-owners skip the owner-only steps.
    """
    engine = _open()
    handle = _contract(engine, address)
    signer = _resolve_sender(sender)
    text = not _ctx.json_output
    report: Dict[str, Any] = {"address": to_hex(handle.address), "signer": to_hex(signer), "steps": []}

    def say(msg: str) -> None:
        if text:
            typer.echo(msg)

    with clog.trace_scope():
        clog.bind(contract=to_hex(handle.address), sender=to_hex(signer))
        try:
            owner = handle.view("owner")
            initial = handle.view("current")
        except VmError as e:
            _fail(e)
        is_owner = owner == signer
        report.update(owner=to_hex(owner), isOwner=is_owner, initial=initial)

        say(f"Interacting with account: {acct.describe(signer)}")
        say(f"Contract address:         {to_hex(handle.address)}")
        say(f"Contract owner:           {acct.describe(owner)}")
        say(f"Is current signer the owner? {is_owner}")
        say("")
        say("=" * 30)
        say(f"Counter Value: {initial}")
        say("=" * 30)

        if not is_owner:
            say("")
            say("Skipping owner-only operations since current signer is not the owner.")
            say(f"Hint: {HINTS['NotOwner']}")
            report["skipped"] = True
            if not text:
                typer.echo(_pretty(report))
            return

        def step(method: str, amount: int) -> None:
            receipt = handle.execute(method, amount, sender=signer)
            report["steps"].append(receipt.to_dict())
            if receipt.error is not None:
                _save(engine)
                _fail(receipt.error, receipt=receipt)
            say(f"{method}({amount}) -> {handle.view('current')}")

        say("")
        step("increment", 5)
        step("increment", 3)
        step("decrement", 2)

        heard: List[LogEntry] = []
        unsubscribe = [engine.subscribe(n, heard.append) for n in ("Incremented", "Reset")]
        try:
            step("increment", 10)
        finally:
            for off in unsubscribe:
                off()
        for entry in heard:
            if entry.name == "Incremented":
                say(f"Event: counter incremented by {acct.describe(entry.args['caller'])} to {entry.args['newValue']}")
            else:
                say(f"Event: counter reset from {entry.args['oldValue']}")

        _save(engine)
        final = handle.view("current")
        report.update(final=final, heard=[e.to_dict() for e in heard])
        say(f"Final counter value: {final}")
        log.info("interaction complete", extra={"final": final})

    if not text:
        typer.echo(_pretty(report))


def main() -> None:
    """Entry point for the counter-vm CLI."""
    app()


if __name__ == "__main__":
    main()
