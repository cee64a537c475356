"""Output formatting for terminal (Rich) and JSON.

Renders a Session's filtered graph either as a human-readable report or
as the force-graph ``{nodes, links}`` document an external renderer
consumes.
"""

from __future__ import annotations

import json
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table

from core import Flow, FlowSummary, Graph, TransactionRecord, TxStatus
from core.session import Session, SessionState
from core.summary import summarize

SUI_EXPLORER_TX_URL = "https://suiscan.xyz/mainnet/tx/"

MAX_EDGE_ROWS = 50


def render_terminal(console: Console, session: Session, verbose: bool = False) -> None:
    """Render the session's current view to terminal using Rich."""

    # Header
    console.print()
    console.print("[bold]SuiTrace[/bold] \u2014 Transaction Flow Graph", style="bright_white")
    console.print("\u2501" * 50, style="dim")
    console.print()

    if session.address:
        console.print(f"  [dim]Root address:[/dim]  {session.address}")
    if session.graph is not None:
        console.print(f"  [dim]Transactions:[/dim]  {len(session.records)}")
    if not session.filters.is_default:
        console.print(f"  [dim]Filters:[/dim]       {_describe_filters(session)}")
    console.print()

    message = session.status_message()
    if message:
        style = "bold red" if session.state is SessionState.ERROR else "yellow"
        console.print(f"  [{style}]{message}[/{style}]")
        console.print()

    view = session.view
    if view is None or session.state is SessionState.EMPTY_RESULT:
        return

    summary = summarize(view)
    _render_summary(console, summary)

    if view.edges:
        _render_edges(console, view, verbose)
    if verbose:
        _render_nodes(console, view)


def render_json(session: Session, edge: Optional[tuple[str, str]] = None) -> None:
    """Render the session's current view as JSON to stdout.

    With ``edge``, the transactions linking its two addresses are added
    under ``edge_transactions``.
    """
    view = session.view
    output = {
        "root": session.address,
        "state": session.state.value,
        "message": session.status_message(),
        "error": session.error.kind if session.error else None,
        "transaction_count": len(session.records),
        "graph": graph_to_dict(view) if view is not None else {"nodes": [], "links": []},
        "summary": _summary_to_dict(summarize(view)) if view is not None else None,
    }
    if edge is not None:
        source, target = edge
        output["edge_transactions"] = [
            _transaction_to_dict(tx) for tx in session.transactions_for_edge(source, target)
        ]
    json.dump(output, sys.stdout, indent=2, ensure_ascii=False)
    print()


def render_transactions(
    console: Console,
    records: list[TransactionRecord],
    source: str,
    target: str,
) -> None:
    """List the transactions behind an activated edge."""
    console.print()
    console.print(
        f"[bold]TRANSACTIONS[/bold] {_short(source)} \u2194 {_short(target)}"
    )
    if not records:
        console.print(
            "  [dim]No direct transactions found for this specific interaction link.[/dim]"
        )
        console.print()
        return

    console.print(f"  [dim]{len(records)} transaction(s) between these two addresses[/dim]")
    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("Digest")
    table.add_column("Status")
    table.add_column("Timestamp", style="dim")
    table.add_column("Amount (MIST)", justify="right")
    table.add_column("From")
    table.add_column("To")

    for tx in records:
        status_style = "green" if tx.status is TxStatus.SUCCESS else "red"
        table.add_row(
            f"[link={SUI_EXPLORER_TX_URL}{tx.id}]{_short(tx.id, 8, 8)}[/link]",
            f"[{status_style}]{tx.status.value}[/{status_style}]",
            tx.timestamp.strftime("%Y-%m-%d %H:%M:%S") if tx.timestamp else "\u2014",
            f"{tx.amount:,}",
            _short(tx.sender),
            ", ".join(_short(r) for r in tx.recipients),
        )

    console.print(table)
    console.print()


def graph_to_dict(graph: Graph) -> dict:
    """Force-graph compatible document for ``graph``."""
    return {
        "nodes": [
            {
                "id": n.id,
                "name": n.name,
                "type": n.kind.value,
                "address": n.id,
                "val": n.display_weight,
            }
            for n in graph.nodes.values()
        ],
        "links": [
            {
                "source": e.source,
                "target": e.target,
                "value": e.value,
                "transactionId": e.transaction_id,
                "transactionType": e.tx_kind.label,
                "flow": e.flow.value,
            }
            for e in graph.edges
        ],
    }


# ── Helpers ───────────────────────────────────────────────────────────────────


def _render_summary(console: Console, summary: FlowSummary) -> None:
    console.print("[bold]FLOW SUMMARY[/bold]")
    console.print(f"  Nodes:              {summary.node_count}")
    console.print(f"  Edges:              {summary.edge_count}")
    flows = ", ".join(f"{k} {v}" for k, v in summary.edges_by_flow.items() if v)
    if flows:
        console.print(f"  By flow:            {flows}")
    console.print(
        f"  Inbound:            {_fmt_value(summary.total_in)} MIST "
        f"from {summary.inbound_sources} source(s)"
    )
    console.print(
        f"  Outbound:           {_fmt_value(summary.total_out)} MIST "
        f"to {summary.outbound_destinations} destination(s)"
    )
    if summary.failed_edges:
        console.print(f"  [red]Failed tx edges:    {summary.failed_edges}[/red]")
    console.print(f"  [dim]{summary.interpretation}[/dim]")
    console.print()

    if summary.top_counterparties:
        console.print("[bold]TOP COUNTERPARTIES[/bold]")
        for addr, value in summary.top_counterparties:
            console.print(f"  {_fmt_value(value):>20} MIST | {addr}")
        console.print()


def _render_edges(console: Console, graph: Graph, verbose: bool) -> None:
    console.print("[bold]EDGES[/bold]")
    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("Flow", style="dim")
    table.add_column("Source")
    table.add_column("Target")
    table.add_column("Value", justify="right")
    table.add_column("Type")
    table.add_column("Tx")

    flow_style = {Flow.IN: "green", Flow.OUT: "red", Flow.INTERNAL: "cyan", Flow.OTHER: "dim"}
    edges = graph.edges if verbose else graph.edges[:MAX_EDGE_ROWS]
    for e in edges:
        style = flow_style[e.flow]
        table.add_row(
            f"[{style}]{e.flow.value}[/{style}]",
            graph.nodes[e.source].name if e.source in graph.nodes else _short(e.source),
            graph.nodes[e.target].name if e.target in graph.nodes else _short(e.target),
            _fmt_value(e.value),
            e.tx_kind.label,
            _short(e.transaction_id, 8, 4),
        )

    console.print(table)
    hidden = len(graph.edges) - len(edges)
    if hidden > 0:
        console.print(f"  [dim]... {hidden} more edge(s); use --verbose to list all[/dim]")
    console.print()


def _render_nodes(console: Console, graph: Graph) -> None:
    console.print("[bold]NODES[/bold]")
    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("Type", style="dim")
    table.add_column("Address")
    table.add_column("Weight", justify="right")
    for n in graph.nodes.values():
        table.add_row(n.kind.value, n.id, _fmt_value(n.display_weight))
    console.print(table)
    console.print()


def _transaction_to_dict(tx: TransactionRecord) -> dict:
    return {
        "digest": tx.id,
        "timestamp": tx.timestamp.isoformat() if tx.timestamp else None,
        "sender": tx.sender,
        "recipients": list(tx.recipients),
        "amount": tx.amount,
        "gas_used": tx.gas_used,
        "status": tx.status.value,
        "url": f"{SUI_EXPLORER_TX_URL}{tx.id}",
    }


def _summary_to_dict(summary: FlowSummary) -> dict:
    return {
        "node_count": summary.node_count,
        "edge_count": summary.edge_count,
        "edges_by_flow": summary.edges_by_flow,
        "total_in": summary.total_in,
        "total_out": summary.total_out,
        "inbound_sources": summary.inbound_sources,
        "outbound_destinations": summary.outbound_destinations,
        "failed_edges": summary.failed_edges,
        "top_counterparties": [
            {"address": addr, "value": value} for addr, value in summary.top_counterparties
        ],
        "interpretation": summary.interpretation,
    }


def _describe_filters(session: Session) -> str:
    f = session.filters
    parts = []
    if f.text_query:
        parts.append(f"text={f.text_query!r}")
    if f.allowed_kinds:
        parts.append("kinds=" + ",".join(sorted(k.value for k in f.allowed_kinds)))
    if f.flow_mode.value != "all":
        parts.append(f"flow={f.flow_mode.value}")
    if f.min_amount is not None:
        parts.append(f"min={_fmt_value(f.min_amount)}")
    if f.max_amount is not None:
        parts.append(f"max={_fmt_value(f.max_amount)}")
    if f.start_date is not None:
        parts.append(f"from={f.start_date.isoformat()}")
    if f.end_date is not None:
        parts.append(f"to={f.end_date.isoformat()}")
    return " ".join(parts)


def _fmt_value(value: Optional[float]) -> str:
    if value is None:
        return "\u2014"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def _short(address: str, start: int = 6, end: int = 4) -> str:
    if not address:
        return "N/A"
    if len(address) <= start + end:
        return address
    return f"{address[:start]}...{address[-end:]}"
