"""Session orchestration: address lifecycle and filter re-evaluation.

States: IDLE -> LOADING -> READY | ERROR | EMPTY_RESULT, and back to
LOADING only when a new address is requested. Every load gets a request
token; a completion whose token is no longer the latest is dropped, so a
slow earlier request can never overwrite a newer one.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from core import FilterState, Graph, TransactionRecord
from core.errors import IngestError
from core.filters import apply_filters, isolated_ids
from core.graph import build_graph, transactions_between
from core.ingest import TX_QUERY_LIMIT, ingest, validate_address
from core.ledger import LedgerClient

logger = logging.getLogger(__name__)

NO_ADDRESS_MESSAGE = "Enter a Sui address to visualize its transactions."
LOADING_MESSAGE = "Loading Sui transaction data..."
NO_TRANSACTIONS_MESSAGE = "No transactions found for this address."
NO_MATCH_MESSAGE = (
    "No nodes match your current search/filter criteria. "
    "Clear filters to see the full graph."
)


class SessionState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    EMPTY_RESULT = "empty_result"


class Session:
    """Owns the current root address, its graph, and the filter snapshot."""

    def __init__(self, client: LedgerClient, page_size: int = TX_QUERY_LIMIT):
        self.client = client
        self.page_size = page_size
        self.state = SessionState.IDLE
        self.address: Optional[str] = None
        self.error: Optional[IngestError] = None
        self.records: list[TransactionRecord] = []
        self.graph: Optional[Graph] = None
        self.filters = FilterState()
        self.view: Optional[Graph] = None
        self._token = 0

    @property
    def token(self) -> int:
        """Token of the most recently issued request."""
        return self._token

    async def load(self, address: str) -> SessionState:
        """Fetch and build the graph for ``address``.

        Returns the session state after this call; for a superseded
        request that is whatever the newer request left behind.
        """
        if not (address or "").strip():
            self._token += 1
            self._reset(SessionState.IDLE)
            return self.state

        if self.state is SessionState.READY and self._same_address(address):
            logger.debug("Graph for %s already loaded", self.address)
            return self.state

        self._token += 1
        token = self._token
        self._reset(SessionState.LOADING)
        self.address = address.strip()

        try:
            records = await ingest(self.client, address, self.page_size)
        except IngestError as exc:
            if token != self._token:
                logger.debug("Discarding stale error for request %d", token)
                return self.state
            logger.warning("Ingestion failed (%s): %s", exc.kind, exc)
            self.state = SessionState.ERROR
            self.error = exc
            return self.state

        if token != self._token:
            logger.debug("Discarding stale result for request %d", token)
            return self.state

        root = validate_address(address)
        self.address = root
        self.records = records
        self.graph = build_graph(records, root)
        self.state = SessionState.READY if records else SessionState.EMPTY_RESULT
        self._refresh()
        return self.state

    def set_filters(self, filters: FilterState) -> Optional[Graph]:
        """Replace the filter snapshot; only the filter pipeline re-runs."""
        self.filters = filters
        self._refresh()
        return self.view

    def clear_filters(self) -> Optional[Graph]:
        return self.set_filters(FilterState())

    def transactions_for_edge(self, a: str, b: str) -> list[TransactionRecord]:
        return transactions_between(self.records, a, b)

    def status_message(self) -> Optional[str]:
        """User-facing explanation when there is nothing (or nothing matching) to show."""
        if self.state is SessionState.IDLE:
            return NO_ADDRESS_MESSAGE
        if self.state is SessionState.LOADING:
            return LOADING_MESSAGE
        if self.state is SessionState.ERROR:
            return self.error.user_message if self.error else IngestError.user_message
        if self.state is SessionState.EMPTY_RESULT:
            return NO_TRANSACTIONS_MESSAGE
        if self.view is not None and self.graph is not None and self._nothing_matches():
            return NO_MATCH_MESSAGE
        return None

    def _refresh(self) -> None:
        if self.graph is None:
            self.view = None
            return
        self.view = apply_filters(self.graph, self.records, self.filters)

    def _reset(self, state: SessionState) -> None:
        self.state = state
        self.address = None
        self.error = None
        self.records = []
        self.graph = None
        self.view = None

    def _nothing_matches(self) -> bool:
        # No edge survived and only the root or edge-less senders remain.
        if self.filters.is_default or self.view.edges:
            return False
        lonely = isolated_ids(self.graph) | {self.graph.root}
        if any(nid not in lonely for nid in self.view.nodes):
            return False
        return bool(self.graph.edges) or self.view.nodes.keys() != self.graph.nodes.keys()

    def _same_address(self, address: str) -> bool:
        return (self.address or "").lower() == address.strip().lower()
