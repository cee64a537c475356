"""Ledger query port and an in-memory implementation.

The Ingestor only needs two directional queries. Anything that can answer
them (the JSON-RPC client, a fixture file, a test double) plugs in here.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional

from core import AddressOwner, RawTransactionBlock


class LedgerClient(ABC):
    """Abstract source of raw transaction blocks for an address."""

    @abstractmethod
    async def query_by_originator(
        self, address: str, page_size: int
    ) -> list[RawTransactionBlock]:
        """Transactions whose sender is ``address``."""
        raise NotImplementedError

    @abstractmethod
    async def query_by_recipient(
        self, address: str, page_size: int
    ) -> list[RawTransactionBlock]:
        """Transactions that moved coins or objects to ``address``."""
        raise NotImplementedError


class StaticLedgerClient(LedgerClient):
    """Serves a fixed list of blocks. Used for offline runs and tests."""

    def __init__(self, blocks: Optional[Iterable[RawTransactionBlock]] = None):
        self._blocks = list(blocks or [])
        self.calls: list[tuple[str, str, int]] = []

    @classmethod
    def from_json(cls, path: str | Path) -> StaticLedgerClient:
        """Load a file holding a list of JSON-RPC transaction block objects.

        A full ``suix_queryTransactionBlocks`` response (with
        ``result.data``) is accepted too.
        """
        from core.sui_client import parse_transaction_block

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, dict):
            data = (data.get("result") or data).get("data", [])

        return cls(parse_transaction_block(item) for item in data)

    async def query_by_originator(
        self, address: str, page_size: int
    ) -> list[RawTransactionBlock]:
        self.calls.append(("originator", address, page_size))
        addr = address.lower()
        items = [b for b in self._blocks if b.sender.lower() == addr]
        return items[:page_size]

    async def query_by_recipient(
        self, address: str, page_size: int
    ) -> list[RawTransactionBlock]:
        self.calls.append(("recipient", address, page_size))
        addr = address.lower()
        items = [b for b in self._blocks if addr in _receivers(b)]
        return items[:page_size]


def _receivers(block: RawTransactionBlock) -> set[str]:
    """Addresses that received coins or objects in ``block``."""
    out: set[str] = set()
    for change in block.balance_changes:
        if isinstance(change.owner, AddressOwner) and change.amount > 0:
            out.add(change.owner.address.lower())
    for change in block.object_changes:
        if isinstance(change.recipient, AddressOwner):
            out.add(change.recipient.address.lower())
    return out
