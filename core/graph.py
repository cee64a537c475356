"""Flow graph construction around a root address.

Pure computation: no I/O, no async. Turns canonical TransactionRecords
into a Graph with one edge per (sender, recipient) pair per transaction.
"""

from __future__ import annotations

import logging
from typing import Iterable

from core import (
    Edge,
    Flow,
    Graph,
    Node,
    NodeKind,
    TransactionRecord,
    TxKind,
    TxStatus,
)

logger = logging.getLogger(__name__)

ROOT_WEIGHT = 10
PARTICIPANT_WEIGHT = 2

# Per-recipient share of a fan-out is not recoverable from balance changes
FAN_OUT_VALUE = 1


def build_graph(records: Iterable[TransactionRecord], root: str) -> Graph:
    """Build the flow graph for ``root``.

    The root node is always present, so an empty record list yields a
    single-node graph.
    """
    graph = Graph(root=root)
    _add_node(graph, root, NodeKind.ROOT, ROOT_WEIGHT)

    count = 0
    for record in records:
        count += 1
        if not record.sender:
            logger.warning("Skipping transaction %s with no sender", record.id)
            continue

        _add_node(graph, record.sender, NodeKind.WALLET, PARTICIPANT_WEIGHT)

        if not record.recipients:
            logger.debug(
                "Transaction %s from %s has no explicit recipients",
                record.id,
                record.sender,
            )
            continue

        value = record.amount if len(record.recipients) == 1 else FAN_OUT_VALUE
        tx_kind = TxKind.TRANSFER if record.status is TxStatus.SUCCESS else TxKind.FAILED

        for recipient in record.recipients:
            if not recipient:
                logger.warning("Skipping empty recipient in transaction %s", record.id)
                continue
            _add_node(graph, recipient, NodeKind.WALLET, PARTICIPANT_WEIGHT)
            graph.edges.append(
                Edge(
                    source=record.sender,
                    target=recipient,
                    transaction_id=record.id,
                    value=value,
                    tx_kind=tx_kind,
                    flow=classify_flow(record.sender, recipient, root),
                )
            )

    logger.info(
        "Transformed %d transactions into %d nodes and %d edges",
        count,
        len(graph.nodes),
        len(graph.edges),
    )
    return graph


def classify_flow(sender: str, recipient: str, root: str) -> Flow:
    """Direction of a sender -> recipient edge as seen from ``root``."""
    if sender == root and recipient == root:
        return Flow.INTERNAL
    if sender == root:
        return Flow.OUT
    if recipient == root:
        return Flow.IN
    return Flow.OTHER


def transactions_between(
    records: Iterable[TransactionRecord], a: str, b: str
) -> list[TransactionRecord]:
    """Records linking ``a`` and ``b`` in either direction.

    Backs the renderer's edge-activation callback.
    """
    matches = []
    for record in records:
        if record.sender == a and b in record.recipients:
            matches.append(record)
        elif record.sender == b and a in record.recipients:
            matches.append(record)
    return matches


def _add_node(graph: Graph, node_id: str, kind: NodeKind, weight: float) -> None:
    """Insert a node unless one with this id exists; the first insert wins."""
    if node_id in graph.nodes:
        return
    if node_id == graph.root:
        kind, weight = NodeKind.ROOT, ROOT_WEIGHT
    graph.nodes[node_id] = Node(id=node_id, kind=kind, display_weight=weight)
