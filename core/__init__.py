"""SuiTrace core data models.

All dataclasses and enums live here to prevent circular imports.
Every other module in core/ imports from this file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union


# ── Enums ─────────────────────────────────────────────────────────────────────


class NodeKind(Enum):
    """Role of an address in the flow graph."""

    ROOT = "root"
    WALLET = "wallet"
    CONTRACT = "contract"


class Flow(Enum):
    """Direction of an edge relative to the root address."""

    IN = "in"
    OUT = "out"
    INTERNAL = "internal"  # root -> root
    OTHER = "other"  # neither endpoint is the root


class FlowMode(Enum):
    """Flow filter selection. ALL is the no-op setting."""

    ALL = "all"
    IN = "in"
    OUT = "out"
    INTERNAL = "internal"


class TxStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"

    @classmethod
    def from_effects(cls, status: Optional[str]) -> TxStatus:
        """Map an effects status string; anything unrecognised is a failure."""
        return cls.SUCCESS if status == "success" else cls.FAILURE


class TxKind(Enum):
    TRANSFER = "transfer"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return {
            TxKind.TRANSFER: "Transfer/Interaction",
            TxKind.FAILED: "Failed Tx",
        }[self]


# ── Raw ledger primitives ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class AddressOwner:
    """Owned by an account address."""

    address: str


@dataclass(frozen=True)
class ObjectOwner:
    """Owned by another object (dynamic fields, wrapped objects)."""

    object_id: str


@dataclass(frozen=True)
class SharedOwner:
    """Shared object; object_id may be a version marker when the RPC omits it."""

    object_id: str


Owner = Union[AddressOwner, ObjectOwner, SharedOwner]


@dataclass(frozen=True)
class BalanceChange:
    """A signed coin movement attributed to an owner."""

    owner: Optional[Owner]
    coin_type: str
    amount: int  # Signed, smallest unit


@dataclass(frozen=True)
class ObjectChange:
    """Creation, mutation or transfer of a ledger object."""

    change_type: str  # "created", "mutated", "transferred", "deleted", "published", ...
    sender: str
    recipient: Optional[Owner] = None
    object_type: str = ""
    object_id: str = ""


@dataclass(frozen=True)
class RawTransactionBlock:
    """One transaction block as returned by the upstream ledger client."""

    digest: str
    sender: str
    timestamp_ms: Optional[int]
    status: str
    computation_cost: int = 0
    storage_cost: int = 0
    storage_rebate: int = 0
    balance_changes: tuple[BalanceChange, ...] = ()
    object_changes: tuple[ObjectChange, ...] = ()


# ── Canonical records ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TransactionRecord:
    """A deduplicated transaction in canonical sender/recipients/amount form."""

    id: str  # Transaction digest
    timestamp: Optional[datetime]  # UTC; None if the ledger omitted it
    sender: str
    recipients: tuple[str, ...]
    amount: int  # MIST moved to non-sender parties (approximate)
    gas_used: int  # computation + storage - rebate, may be negative
    status: TxStatus


# ── Graph structures ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Node:
    """An address in the flow graph.

    Layout state (x/y, velocities) belongs to the renderer and is kept
    in its own table keyed by node id, never on this object.
    """

    id: str
    kind: NodeKind
    display_weight: float

    @property
    def name(self) -> str:
        prefix = "Root" if self.kind is NodeKind.ROOT else "User"
        return f"{prefix}: {self.id[:6]}..."


@dataclass(frozen=True)
class Edge:
    """One (sender, recipient) pair observed in a single transaction."""

    source: str
    target: str
    transaction_id: str
    value: float
    tx_kind: TxKind
    flow: Flow


@dataclass
class Graph:
    """Node set plus edge set around a root address."""

    root: str
    nodes: dict[str, Node] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)

    @property
    def root_node(self) -> Optional[Node]:
        return self.nodes.get(self.root)


# ── Filtering ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FilterState:
    """Snapshot of every filter dimension. Defaults mean "no restriction"."""

    text_query: str = ""
    allowed_kinds: frozenset[NodeKind] = frozenset()
    flow_mode: FlowMode = FlowMode.ALL
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @property
    def is_default(self) -> bool:
        return self == FilterState()


# ── Analysis results ──────────────────────────────────────────────────────────


@dataclass
class FlowSummary:
    """Aggregate flow statistics for a (possibly filtered) graph."""

    node_count: int
    edge_count: int
    edges_by_flow: dict[str, int] = field(default_factory=dict)
    total_in: float = 0
    total_out: float = 0
    inbound_sources: int = 0
    outbound_destinations: int = 0
    failed_edges: int = 0
    top_counterparties: list[tuple[str, float]] = field(default_factory=list)
    interpretation: str = ""
