"""Café Orders CLI — staff actions from the terminal.

Usage:
    cafe orders                         # All orders, newest first
    cafe set-time 3f2a... 15            # Estimate 15 min, moves to preparing
    cafe set-status 3f2a... done        # preparing | done | canceled
    cafe delete 3f2a...                 # Remove an order
    cafe issue-token alice              # Mint a staff token (uses CAFE_JWT_SECRET)
    cafe init-db                        # Create tables (local dev, no Alembic)

Staff commands read the token from CAFE_TOKEN (or --token).
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("CAFE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run a coroutine from a synchronous click handler.

    Offloads to a thread when a loop is already running (e.g. CliRunner
    invoked from an async test).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _token(token: Optional[str]) -> str:
    tok = token or os.environ.get("CAFE_TOKEN")
    if not tok:
        click.secho("Error: --token required (or set CAFE_TOKEN)", fg="red", err=True)
        sys.exit(1)
    return tok


def _fail_on_error(r: httpx.Response) -> None:
    if r.is_error:
        try:
            detail = r.json().get("detail", r.text)
        except ValueError:
            detail = r.text
        click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
        sys.exit(1)


def _status_color(status: str) -> str:
    return {
        "pending": "yellow",
        "preparing": "cyan",
        "done": "green",
        "canceled": "red",
    }.get(status, "white")


def _print_orders(orders: list[dict]) -> None:
    header = f"{'ID':<34}{'TABLE':>6}  {'STATUS':<10}{'ETA':>6}  {'TOTAL':>8}  ITEMS"
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for o in orders:
        eta = o.get("estimated_time_minutes")
        items = ", ".join(
            f"{li['quantity']}x {(li.get('menu_item') or {}).get('name', li['menu_item_id'])}"
            for li in o["line_items"]
        )
        status = click.style(f"{o['status']:<10}", fg=_status_color(o["status"]))
        click.echo(
            f"{o['id']:<34}{o['table_number']:>6}  {status}"
            f"{(f'{eta:g}m' if eta else '—'):>6}  {o['total']:>8.2f}  {items}"
        )


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="cafe")
def main():
    """Café Orders — manage orders from the terminal."""


@main.command()
@click.option("--token", help="Staff token (or set CAFE_TOKEN)")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def orders(token: Optional[str], as_json: bool):
    """List all orders, newest first."""
    _run(_orders_impl(_token(token), as_json))


async def _orders_impl(token: str, as_json: bool):
    async with _client(token) as c:
        r = await c.get("/api/v1/staff/orders")
        _fail_on_error(r)
        data = r.json()
    if as_json:
        click.echo(json.dumps(data, indent=2))
    elif not data:
        click.echo("No orders.")
    else:
        _print_orders(data)


@main.command("set-time")
@click.argument("order_id")
@click.argument("minutes", type=float)
@click.option("--token", help="Staff token (or set CAFE_TOKEN)")
def set_time(order_id: str, minutes: float, token: Optional[str]):
    """Set the preparation estimate for ORDER_ID (moves it to preparing)."""
    _run(_put_impl(_token(token), f"/api/v1/staff/orders/{order_id}/time",
                   {"minutes": minutes}))


@main.command("set-status")
@click.argument("order_id")
@click.argument("status", type=click.Choice(["preparing", "done", "canceled"]))
@click.option("--token", help="Staff token (or set CAFE_TOKEN)")
def set_status(order_id: str, status: str, token: Optional[str]):
    """Move ORDER_ID to STATUS."""
    _run(_put_impl(_token(token), f"/api/v1/staff/orders/{order_id}/status",
                   {"status": status}))


async def _put_impl(token: str, path: str, body: dict):
    async with _client(token) as c:
        r = await c.put(path, json=body)
        _fail_on_error(r)
        order = r.json()
    _print_orders([order])


@main.command()
@click.argument("order_id")
@click.option("--token", help="Staff token (or set CAFE_TOKEN)")
@click.confirmation_option(prompt="Delete this order permanently?")
def delete(order_id: str, token: Optional[str]):
    """Delete ORDER_ID."""
    _run(_delete_impl(_token(token), order_id))


async def _delete_impl(token: str, order_id: str):
    async with _client(token) as c:
        r = await c.delete(f"/api/v1/staff/orders/{order_id}")
        _fail_on_error(r)
    click.secho(f"Deleted order {order_id}", fg="green")


@main.command("issue-token")
@click.argument("subject")
@click.option("--role", type=click.Choice(["staff", "admin"]), default="staff")
@click.option("--expires-minutes", type=int, default=None)
def issue_token(subject: str, role: str, expires_minutes: Optional[int]):
    """Mint a staff token for SUBJECT with the local CAFE_JWT_SECRET."""
    from cafe_orders.auth.jwt import create_access_token

    click.echo(create_access_token(subject, role=role, expires_minutes=expires_minutes))


@main.command("init-db")
def init_db():
    """Create database tables directly from the models."""
    from cafe_orders.db.engine import init_db as _init_db

    _run(_init_db())
    click.secho("Tables created.", fg="green")


if __name__ == "__main__":
    main()
