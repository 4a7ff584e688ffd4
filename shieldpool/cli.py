#!/usr/bin/env python3
"""
shieldpool.cli
==============

Operate a shielded pool stored in a local KV database.

Usage
-----
# Initialise a pool accepting exactly 10 TKN per deposit
shieldpool --db sqlite:///pool.db init --vk verification_key.json --denom TKN --amount 10

# Deposit a commitment (decimal field element)
shieldpool --db sqlite:///pool.db deposit 4213... --amount 10 --sender juno1...

# Withdraw with a snarkjs proof
shieldpool --db sqlite:///pool.db withdraw --proof proof.json --root 1947... \\
    --nullifier-hash 7 --recipient juno1... --relayer juno1... --fee 1

# Queries
shieldpool --db sqlite:///pool.db is-known-root 1947...
shieldpool --db sqlite:///pool.db info

Defaults come from SHIELDPOOL_* environment variables (see shieldpool.config).
Pool errors are printed with their code and exit with status 1.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from shieldpool import logging as plog
from shieldpool.config import PoolConfig
from shieldpool.db import open_kv
from shieldpool.errors import ConfigError, PoolError
from shieldpool.pool import Coin, DepositMsg, Response, ShieldedPool, WithdrawMsg
from shieldpool.version import __version__

app = typer.Typer(no_args_is_help=True, add_completion=False)
console = Console()


class _State:
    cfg: PoolConfig = PoolConfig()


_state = _State()


# ----------------- helpers -----------------


def _read_json(path: str) -> Any:
    data = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"failed to parse {path!r} as JSON: {e}")


def _fail(err: PoolError) -> None:
    console.print(f"[bold red]error[/] {escape(f'[{err.code}]')} {escape(err.message)}")
    if err.data:
        console.print_json(json.dumps(err.data, default=str))
    raise typer.Exit(1)


def _open_pool() -> ShieldedPool:
    cfg = _state.cfg
    return ShieldedPool(open_kv(cfg.db_uri), address_hrp=cfg.address_hrp)


def _print_table(title: str, rows: Dict[str, Any]) -> None:
    t = Table(box=box.SIMPLE)
    t.add_column("Field")
    t.add_column("Value", overflow="fold")
    for k, v in rows.items():
        t.add_row(k, str(v))
    console.print(Panel(t, title=title, expand=False))


def _print_response(title: str, resp: Response) -> None:
    rows: Dict[str, Any] = dict(resp.attributes)
    for i, tr in enumerate(resp.transfers):
        rows[f"transfer[{i}]"] = f"{tr.amount}{tr.denom} -> {tr.recipient}"
    _print_table(title, rows)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"shieldpool {__version__}")
        raise typer.Exit(0)


# ----------------- CLI -----------------


@app.callback()
def _meta(
    db: Optional[str] = typer.Option(None, "--db", help="KV URI (sqlite:///path.db or memory://)"),
    hrp: Optional[str] = typer.Option(None, "--hrp", help="Bech32 prefix of accounts"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ..."),
    log_json: Optional[bool] = typer.Option(None, "--log-json/--log-text", help="Log format"),
    version: bool = typer.Option(
        False, "--version", "-V", help="Print version and exit", is_eager=True, callback=_version_callback
    ),
) -> None:
    try:
        cfg = PoolConfig.from_env().with_overrides(
            db_uri=db, address_hrp=hrp, log_level=log_level.upper() if log_level else None, log_json=log_json
        )
    except ConfigError as e:
        _fail(e)
    _state.cfg = cfg
    plog.configure(level=cfg.log_level, json=cfg.log_json)


@app.command("init")
def init(
    vk: str = typer.Option(..., "--vk", help="snarkjs verification_key.json ('-' for stdin)"),
    denom: Optional[str] = typer.Option(None, "--denom", help="Coin denom accepted by the pool"),
    amount: Optional[int] = typer.Option(None, "--amount", help="Exact amount per deposit"),
    depth: Optional[int] = typer.Option(None, "--depth", help="Merkle tree depth (1..31)"),
    history_size: Optional[int] = typer.Option(None, "--history-size", help="Number of recent roots accepted"),
) -> None:
    """Initialise a new pool in the configured store."""
    try:
        cfg = _state.cfg.with_overrides(
            denom=denom, denomination=amount, tree_depth=depth, root_history_size=history_size
        )
        pool = ShieldedPool.instantiate(
            open_kv(cfg.db_uri),
            Coin(cfg.denom, cfg.denomination),
            _read_json(vk),
            depth=cfg.tree_depth,
            history_size=cfg.root_history_size,
            address_hrp=cfg.address_hrp,
        )
        _print_table("shieldpool init", pool.info())
    except PoolError as e:
        _fail(e)


@app.command("deposit")
def deposit(
    commitment: str = typer.Argument(..., help="Commitment as a decimal field element"),
    amount: int = typer.Option(..., "--amount", help="Amount attached to the deposit"),
    denom: Optional[str] = typer.Option(None, "--denom", help="Denom of the attached coin"),
    sender: Optional[str] = typer.Option(None, "--sender", help="Depositing account"),
) -> None:
    """Deposit one denomination bound to COMMITMENT."""
    try:
        pool = _open_pool()
        resp = pool.deposit(
            DepositMsg(commitment), [Coin(denom or _state.cfg.denom, amount)], sender=sender
        )
        _print_response("deposit", resp)
    except PoolError as e:
        _fail(e)


@app.command("withdraw")
def withdraw(
    proof: str = typer.Option(..., "--proof", help="snarkjs proof.json ('-' for stdin)"),
    root: str = typer.Option(..., "--root", help="Merkle root the proof was made against"),
    nullifier_hash: str = typer.Option(..., "--nullifier-hash", help="Nullifier hash (decimal)"),
    recipient: str = typer.Option(..., "--recipient", help="Recipient account"),
    relayer: str = typer.Option("0", "--relayer", help="Relayer account, or 0 for none"),
    fee: str = typer.Option("0", "--fee", help="Relayer fee"),
) -> None:
    """Withdraw one denomination with a zero-knowledge proof."""
    try:
        pool = _open_pool()
        resp = pool.withdraw(
            WithdrawMsg(
                proof=_read_json(proof),
                root=root,
                nullifier_hash=nullifier_hash,
                recipient=recipient,
                relayer=relayer,
                fee=fee,
            )
        )
        _print_response("withdraw", resp)
    except PoolError as e:
        _fail(e)


@app.command("is-known-root")
def is_known_root(root: str = typer.Argument(..., help="Root as a decimal field element")) -> None:
    """Print true/false: is ROOT one of the recent roots."""
    try:
        typer.echo("true" if _open_pool().is_known_root(root) else "false")
    except PoolError as e:
        _fail(e)


@app.command("info")
def info(as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table")) -> None:
    """Show pool parameters and counters."""
    try:
        data = _open_pool().info()
    except PoolError as e:
        _fail(e)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True))
    else:
        _print_table("shieldpool", data)


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
