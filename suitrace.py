"""SuiTrace: transaction flow graph explorer for Sui addresses.

Fetches the transactions touching an address, builds a directed flow
graph around it, and prints the subgraph selected by the given filters.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Optional

import click
import httpx
from rich.console import Console

from core import FilterState, FlowMode, NodeKind
from core.ingest import TX_QUERY_LIMIT
from core.ledger import LedgerClient, StaticLedgerClient
from core.output import render_json, render_terminal, render_transactions
from core.session import Session, SessionState
from core.sui_client import NETWORKS, SuiRpcClient

console = Console(force_terminal=True)


@click.command()
@click.argument("address", required=False, default="")
@click.option(
    "--network",
    type=click.Choice(sorted(NETWORKS), case_sensitive=False),
    default="mainnet",
    help="Sui network to query (default: mainnet).",
)
@click.option(
    "--rpc-url",
    default=None,
    envvar="SUITRACE_RPC_URL",
    help="Custom fullnode JSON-RPC endpoint (overrides --network).",
)
@click.option(
    "--page-size",
    default=TX_QUERY_LIMIT,
    envvar="SUITRACE_PAGE_SIZE",
    type=click.IntRange(1, 50),
    help="Transactions fetched per direction (default: 50).",
)
@click.option(
    "--fixture",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Read transaction blocks from a JSON file instead of the network.",
)
@click.option("--search", "-s", default="", help="Keep nodes whose id, type or name contains this text.")
@click.option(
    "--kind",
    "kinds",
    multiple=True,
    type=click.Choice([k.value for k in NodeKind], case_sensitive=False),
    help="Node types to keep (repeatable; default: all).",
)
@click.option(
    "--flow",
    type=click.Choice([m.value for m in FlowMode], case_sensitive=False),
    default=FlowMode.ALL.value,
    help="Edge direction relative to the root (default: all).",
)
@click.option("--min-amount", type=float, default=None, help="Minimum edge value (inclusive).")
@click.option("--max-amount", type=float, default=None, help="Maximum edge value (inclusive).")
@click.option("--start-date", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Earliest day (UTC).")
@click.option("--end-date", type=click.DateTime(["%Y-%m-%d"]), default=None, help="Latest day (UTC).")
@click.option(
    "--edge",
    nargs=2,
    default=None,
    metavar="SOURCE TARGET",
    help="Also list the transactions between two addresses.",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="List every edge and node.")
@click.option(
    "--debug",
    is_flag=True,
    hidden=True,
    help="Enable debug logging.",
)
def main(
    address: str,
    network: str,
    rpc_url: Optional[str],
    page_size: int,
    fixture: Optional[str],
    search: str,
    kinds: tuple[str, ...],
    flow: str,
    min_amount: Optional[float],
    max_amount: Optional[float],
    start_date,
    end_date,
    edge: Optional[tuple[str, str]],
    output_json: bool,
    verbose: bool,
    debug: bool,
) -> None:
    """Build the transaction flow graph of a Sui ADDRESS (0x + 64 hex chars)."""
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if min_amount is not None and max_amount is not None and min_amount > max_amount:
        raise click.BadParameter("--min-amount is greater than --max-amount")

    filters = FilterState(
        text_query=search,
        allowed_kinds=frozenset(NodeKind(k.lower()) for k in kinds),
        flow_mode=FlowMode(flow.lower()),
        min_amount=min_amount,
        max_amount=max_amount,
        start_date=start_date.date() if start_date else None,
        end_date=end_date.date() if end_date else None,
    )

    try:
        state = asyncio.run(
            _run(
                address=address,
                rpc_url=rpc_url or NETWORKS[network.lower()],
                page_size=page_size,
                fixture=fixture,
                filters=filters,
                edge=edge,
                output_json=output_json,
                verbose=verbose,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        sys.exit(130)

    if state is SessionState.ERROR:
        sys.exit(1)


async def _run(
    address: str,
    rpc_url: str,
    page_size: int,
    fixture: Optional[str],
    filters: FilterState,
    edge: Optional[tuple[str, str]],
    output_json: bool,
    verbose: bool,
) -> SessionState:
    """Async pipeline: Ingest -> Graph -> Filters -> Output."""
    if fixture:
        return await _explore(
            StaticLedgerClient.from_json(fixture),
            address, page_size, filters, edge, output_json, verbose,
        )

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(15.0, connect=5.0),
        limits=httpx.Limits(max_connections=4, max_keepalive_connections=2),
        headers={"User-Agent": "SuiTrace/1.0 (transaction flow explorer)"},
        follow_redirects=True,
    ) as client:
        return await _explore(
            SuiRpcClient(client, rpc_url=rpc_url),
            address, page_size, filters, edge, output_json, verbose,
        )


async def _explore(
    client: LedgerClient,
    address: str,
    page_size: int,
    filters: FilterState,
    edge: Optional[tuple[str, str]],
    output_json: bool,
    verbose: bool,
) -> SessionState:
    session = Session(client, page_size=page_size)

    if address and not output_json:
        console.print()
        console.print("[dim]Fetching transactions...[/dim]")

    await session.load(address)
    session.set_filters(filters)

    if edge:
        edge = (edge[0].strip().lower(), edge[1].strip().lower())

    if output_json:
        render_json(session, edge=edge)
    else:
        render_terminal(console, session, verbose=verbose)
        if edge and session.graph is not None:
            source, target = edge
            render_transactions(
                console, session.transactions_for_edge(source, target), source, target
            )

    return session.state


if __name__ == "__main__":
    main()
