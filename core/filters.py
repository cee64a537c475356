"""Filter pipeline producing a consistent viewable subgraph.

Node stages (text, kind) and edge stages (flow, amount, date) run
independently, then a reconciliation pass removes edges that point at
filtered-out nodes and nodes orphaned by the edge stages. Nodes that
had no edges to begin with are kept only while every edge stage is at
its default. The root address is never filtered out.
"""

from __future__ import annotations

from datetime import datetime, time, timezone
from typing import Iterable, Optional

from core import Edge, FilterState, FlowMode, Graph, Node, TransactionRecord


def apply_filters(
    graph: Graph,
    records: Iterable[TransactionRecord],
    state: FilterState,
) -> Graph:
    """Return the subgraph of ``graph`` selected by ``state``.

    Never mutates its inputs and never raises for well-formed input.
    """
    nodes = list(graph.nodes.values())
    nodes = _text_stage(nodes, state.text_query)
    nodes = _kind_stage(nodes, state)
    node_ids = {n.id for n in nodes}
    if graph.root in graph.nodes:
        node_ids.add(graph.root)

    edges = list(graph.edges)
    edges = _flow_stage(edges, state.flow_mode)
    edges = _amount_stage(edges, state.min_amount, state.max_amount)
    edges = _date_stage(edges, records, state)

    # Reconciliation
    touched = {graph.root}
    for e in edges:
        touched.add(e.source)
        touched.add(e.target)
    if not _edge_stages_active(state):
        touched |= isolated_ids(graph)
    final_ids = touched & node_ids

    return Graph(
        root=graph.root,
        nodes={nid: n for nid, n in graph.nodes.items() if nid in final_ids},
        edges=[e for e in edges if e.source in final_ids and e.target in final_ids],
    )


# ── Node stages ───────────────────────────────────────────────────────────────


def _text_stage(nodes: list[Node], query: str) -> list[Node]:
    if not query:
        return nodes
    q = query.lower()
    return [
        n
        for n in nodes
        if q in n.id.lower() or q in n.kind.value.lower() or q in n.name.lower()
    ]


def _kind_stage(nodes: list[Node], state: FilterState) -> list[Node]:
    # An empty selection means no restriction, not "exclude everything".
    if not state.allowed_kinds:
        return nodes
    return [n for n in nodes if n.kind in state.allowed_kinds]


# ── Edge stages ───────────────────────────────────────────────────────────────


def _flow_stage(edges: list[Edge], mode: FlowMode) -> list[Edge]:
    if mode is FlowMode.ALL:
        return edges
    return [e for e in edges if e.flow.value == mode.value]


def _amount_stage(
    edges: list[Edge], min_amount: Optional[float], max_amount: Optional[float]
) -> list[Edge]:
    if min_amount is not None:
        edges = [e for e in edges if e.value >= min_amount]
    if max_amount is not None:
        edges = [e for e in edges if e.value <= max_amount]
    return edges


def _date_stage(
    edges: list[Edge],
    records: Iterable[TransactionRecord],
    state: FilterState,
) -> list[Edge]:
    if state.start_date is None and state.end_date is None:
        return edges

    timestamps = {r.id: _as_utc(r.timestamp) for r in records if r.timestamp is not None}
    start = (
        datetime.combine(state.start_date, time.min, tzinfo=timezone.utc)
        if state.start_date is not None
        else None
    )
    end = (
        datetime.combine(state.end_date, time.max, tzinfo=timezone.utc)
        if state.end_date is not None
        else None
    )

    kept = []
    for e in edges:
        ts = timestamps.get(e.transaction_id)
        if ts is None:
            continue
        if start is not None and ts < start:
            continue
        if end is not None and ts > end:
            continue
        kept.append(e)
    return kept


# ── Helpers ───────────────────────────────────────────────────────────────────


def _edge_stages_active(state: FilterState) -> bool:
    return (
        state.flow_mode is not FlowMode.ALL
        or state.min_amount is not None
        or state.max_amount is not None
        or state.start_date is not None
        or state.end_date is not None
    )


def _as_utc(ts: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def isolated_ids(graph: Graph) -> set[str]:
    """Nodes with no edges at all in the unfiltered graph."""
    linked = set()
    for e in graph.edges:
        linked.add(e.source)
        linked.add(e.target)
    return set(graph.nodes) - linked
