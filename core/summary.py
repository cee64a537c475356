"""Flow statistics for a graph.

Pure computation over a Graph; used by both renderers.
"""

from collections import Counter

from core import Flow, FlowSummary, Graph, TxKind

TOP_COUNTERPARTIES = 5


def summarize(graph: Graph) -> FlowSummary:
    """Count edges per flow and total the value moving in and out of the root."""
    by_flow = Counter(e.flow.value for e in graph.edges)
    volume: Counter = Counter()
    sources = set()
    destinations = set()
    total_in = 0
    total_out = 0

    for e in graph.edges:
        if e.flow is Flow.IN:
            total_in += e.value
            sources.add(e.source)
            volume[e.source] += e.value
        elif e.flow is Flow.OUT:
            total_out += e.value
            destinations.add(e.target)
            volume[e.target] += e.value

    return FlowSummary(
        node_count=len(graph.nodes),
        edge_count=len(graph.edges),
        edges_by_flow={f.value: by_flow.get(f.value, 0) for f in Flow},
        total_in=total_in,
        total_out=total_out,
        inbound_sources=len(sources),
        outbound_destinations=len(destinations),
        failed_edges=sum(1 for e in graph.edges if e.tx_kind is TxKind.FAILED),
        top_counterparties=volume.most_common(TOP_COUNTERPARTIES),
        interpretation=_interpret(len(sources), len(destinations), total_in, total_out),
    )


def _interpret(n_sources: int, n_destinations: int, total_in: float, total_out: float) -> str:
    if not n_sources and not n_destinations:
        return "No value movements touched the root address."
    if n_destinations >= n_sources * 2 and total_out > total_in:
        return (
            "Looks like a distributor: many outbound destinations "
            "and more value out than in."
        )
    if n_sources >= n_destinations * 2 and total_in > total_out:
        return (
            "Looks like a collector: many inbound sources "
            "and more value in than out."
        )
    return "Flows are mixed without a strong directional skew."
