"""
cosm-orc CLI

Command-line interface for storing and driving CosmWasm contracts.

Commands:
  store        - Upload every *.wasm in a directory
  instantiate  - Instantiate a stored contract
  execute      - Execute a message on a deployed contract
  query        - Run a smart query
  migrate      - Migrate a deployed contract to a new code id
  wait         - Wait for N blocks

Mutating commands write the updated deploy state back to the config file
(or to --deploy-out) so later runs reuse stored code ids and addresses.
The signer mnemonic is read from MNEMONIC (.env files are honoured).
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional, TypeVar

import click

from .client.errors import ClientError, DeserializeError
from .config.cfg import Coin, Config, ConfigError
from .config.key import DEFAULT_DERIVATION_PATH, SigningKey
from .orchestrator.async_api import contract_name_for, wasm_files
from .orchestrator.cosm_orc import CosmOrc
from .orchestrator.errors import ContractMapError, PollBlockError, ProcessError, StoreError
from .orchestrator.gas_profiler import CallSite

# ============ Constants ============

VERSION = "0.1.0"

T = TypeVar("T")

_HANDLED_ERRORS = (
    ClientError,
    ConfigError,
    ContractMapError,
    DeserializeError,
    PollBlockError,
    ProcessError,
    StoreError,
)


@dataclass
class CliState:
    config: Config
    config_path: Path
    env_file: Optional[Path]
    gas_report: Optional[Path]
    deploy_out: Optional[Path]
    key_name: str
    derivation_path: str

    def signing_key(self) -> SigningKey:
        return SigningKey.from_env(self.key_name, env_path=self.env_file, derivation_path=self.derivation_path)


# ============ Helpers ============


def _fail(exc: BaseException) -> NoReturn:
    click.secho(f"ERROR: {exc}", fg="red", err=True)
    sys.exit(getattr(exc, "exit_code", 1))


def _parse_msg(msg_json: str) -> Any:
    try:
        return json.loads(msg_json)
    except json.JSONDecodeError as exc:
        click.secho(f"ERROR: Invalid message JSON: {exc}", fg="red", err=True)
        sys.exit(1)


def _parse_funds(funds: tuple[str, ...]) -> list[Coin]:
    return [Coin.parse(f) for f in funds]


def _run(state: CliState, action: Callable[[CosmOrc, CallSite], T], mutating: bool = True) -> T:
    """
    Run ``action`` against a fresh orchestrator, then persist deploy state and reports.

    Deploy state is written even when ``action`` fails part way.
    Gas figures are attributed to the config file and the command name.
    """
    call_site = CallSite(file=f"{state.config_path}:{click.get_current_context().info_name}", line=0)
    try:
        with CosmOrc(state.config, use_gas_profiler=state.gas_report is not None) as orc:
            try:
                result = action(orc, call_site)
            finally:
                if mutating:
                    out = state.config.write_deploy_info(state.deploy_out or state.config_path, orc.contract_map)
                    click.echo(f"  Deploy info: {out}")

            report = orc.gas_profiler_report()
            if report is not None and state.gas_report is not None:
                state.gas_report.parent.mkdir(parents=True, exist_ok=True)
                state.gas_report.write_text(report.to_json() + "\n", encoding="utf-8")
                click.echo(f"  Gas report: {state.gas_report}")
    except _HANDLED_ERRORS as exc:
        _fail(exc)
    return result


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="cosm-orc")
@click.option(
    "--config",
    "-c",
    "config_path",
    required=True,
    envvar="COSM_ORC_CONFIG",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Chain config YAML",
)
@click.option("--env-file", type=click.Path(dir_okay=False, path_type=Path), default=None, help=".env file to load")
@click.option("--gas-report", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Write a gas report here")
@click.option(
    "--deploy-out",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write deploy info here instead of back to --config",
)
@click.option("--key-name", default="cosm-orc", show_default=True, help="Signing key name")
@click.option("--derivation-path", default=DEFAULT_DERIVATION_PATH, show_default=True, help="BIP-32 path")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path,
    env_file: Optional[Path],
    gas_report: Optional[Path],
    deploy_out: Optional[Path],
    key_name: str,
    derivation_path: str,
    verbose: bool,
) -> None:
    """cosm-orc - CosmWasm contract orchestrator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = Config.from_yaml(config_path, env_file=env_file)
    except ConfigError as exc:
        click.secho(f"ERROR: {exc}", fg="red", err=True)
        for message in exc.errors:
            click.secho(f"  - {message}", fg="red", err=True)
        sys.exit(exc.exit_code)

    ctx.obj = CliState(
        config=config,
        config_path=config_path,
        env_file=env_file,
        gas_report=gas_report,
        deploy_out=deploy_out,
        key_name=key_name,
        derivation_path=derivation_path,
    )


# ============ Commands ============


@cli.command()
@click.argument("wasm_dir", type=click.Path(path_type=Path))
@click.pass_obj
def store(state: CliState, wasm_dir: Path) -> None:
    """Upload every *.wasm file in WASM_DIR."""
    try:
        key = state.signing_key()
    except ClientError as exc:
        _fail(exc)

    responses = _run(state, lambda orc, site: orc.store_contracts(wasm_dir, key, call_site=site))
    if not responses:
        click.secho(f"No .wasm files in {wasm_dir}", fg="yellow")
    names = [contract_name_for(p) for p in wasm_files(wasm_dir)]
    for name, res in zip(names, responses):
        click.secho(f"  {name}: code id {res.code_id}", fg="green")
        click.echo(f"    TX: {res.tx_hash} (height {res.height})")


@cli.command()
@click.argument("name")
@click.argument("label")
@click.argument("msg_json")
@click.option("--admin", default=None, help="Admin address allowed to migrate")
@click.option("--funds", multiple=True, help="Funds to send, e.g. 100ujunox (repeatable)")
@click.pass_obj
def instantiate(
    state: CliState,
    name: str,
    label: str,
    msg_json: str,
    admin: Optional[str],
    funds: tuple[str, ...],
) -> None:
    """Instantiate stored contract NAME with MSG_JSON."""
    msg = _parse_msg(msg_json)
    try:
        key = state.signing_key()
        coins = _parse_funds(funds)
    except ClientError as exc:
        _fail(exc)

    res = _run(
        state,
        lambda orc, site: orc.instantiate(name, label, msg, key, admin=admin, funds=coins, call_site=site),
    )
    click.secho(f"SUCCESS: {name} instantiated", fg="green")
    click.echo(f"  Address: {res.address}")
    click.echo(f"  TX: {res.tx_hash} (height {res.height})")


@cli.command()
@click.argument("name")
@click.argument("label")
@click.argument("msg_json")
@click.option("--funds", multiple=True, help="Funds to send, e.g. 100ujunox (repeatable)")
@click.pass_obj
def execute(state: CliState, name: str, label: str, msg_json: str, funds: tuple[str, ...]) -> None:
    """Execute MSG_JSON on deployed contract NAME."""
    msg = _parse_msg(msg_json)
    try:
        key = state.signing_key()
        coins = _parse_funds(funds)
    except ClientError as exc:
        _fail(exc)

    res = _run(state, lambda orc, site: orc.execute(name, label, msg, key, funds=coins, call_site=site))
    click.secho(f"SUCCESS: {label} executed on {name}", fg="green")
    click.echo(f"  TX: {res.tx_hash} (height {res.height})")
    click.echo(f"  Gas: {res.res.gas_used} used / {res.res.gas_wanted} wanted")


@cli.command()
@click.argument("name")
@click.argument("msg_json")
@click.pass_obj
def query(state: CliState, name: str, msg_json: str) -> None:
    """Run smart query MSG_JSON against deployed contract NAME."""
    msg = _parse_msg(msg_json)

    data = _run(state, lambda orc, _site: orc.query(name, msg).data(), mutating=False)
    click.echo(json.dumps(data, indent=2))


@cli.command()
@click.argument("name")
@click.argument("code_id", type=int)
@click.argument("label")
@click.argument("msg_json")
@click.pass_obj
def migrate(state: CliState, name: str, code_id: int, label: str, msg_json: str) -> None:
    """Migrate deployed contract NAME to CODE_ID."""
    msg = _parse_msg(msg_json)
    try:
        key = state.signing_key()
    except ClientError as exc:
        _fail(exc)

    res = _run(state, lambda orc, site: orc.migrate(name, code_id, label, msg, key, call_site=site))
    click.secho(f"SUCCESS: {name} migrated to code id {code_id}", fg="green")
    click.echo(f"  TX: {res.tx_hash} (height {res.height})")


@cli.command()
@click.argument("n", type=int)
@click.option("--timeout", default=60.0, show_default=True, type=float, help="Seconds to wait")
@click.option("--first", "is_first_block", is_flag=True, help="Wait for a fresh node to start serving")
@click.pass_obj
def wait(state: CliState, n: int, timeout: float, is_first_block: bool) -> None:
    """Wait until N blocks have been committed."""
    _run(state, lambda orc, _site: orc.poll_for_n_blocks(n, timeout, is_first_block), mutating=False)
    click.secho(f"{n} block(s) committed", fg="green")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
