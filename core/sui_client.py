"""Sui JSON-RPC client and raw response parsing.

Wraps ``suix_queryTransactionBlocks`` behind the LedgerClient port.
One page per direction; cursors are not followed.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from core import (
    AddressOwner,
    BalanceChange,
    ObjectChange,
    ObjectOwner,
    Owner,
    RawTransactionBlock,
    SharedOwner,
)
from core.errors import SuiRpcError
from core.ledger import LedgerClient
from core.rate_limiter import RateLimiter, limiter_for

logger = logging.getLogger(__name__)

SUI_MAINNET_RPC = "https://fullnode.mainnet.sui.io:443"
SUI_TESTNET_RPC = "https://fullnode.testnet.sui.io:443"
SUI_DEVNET_RPC = "https://fullnode.devnet.sui.io:443"

NETWORKS = {
    "mainnet": SUI_MAINNET_RPC,
    "testnet": SUI_TESTNET_RPC,
    "devnet": SUI_DEVNET_RPC,
}

QUERY_METHOD = "suix_queryTransactionBlocks"

# Events and raw BCS input are left out to keep responses small.
RESPONSE_OPTIONS = {
    "showInput": True,
    "showEffects": True,
    "showObjectChanges": True,
    "showBalanceChanges": True,
}


class SuiRpcClient(LedgerClient):
    """LedgerClient backed by a Sui fullnode.

    Args:
        client: Shared httpx async client.
        rpc_url: Fullnode JSON-RPC endpoint.
        limiter: Rate limiter; defaults to the shared limiter for the host.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        rpc_url: str = SUI_MAINNET_RPC,
        limiter: Optional[RateLimiter] = None,
    ):
        self._client = client
        self._rpc_url = rpc_url
        self._limiter = limiter or limiter_for(rpc_url)
        self._request_id = 0

    async def query_by_originator(
        self, address: str, page_size: int
    ) -> list[RawTransactionBlock]:
        return await self._query({"FromAddress": address}, page_size)

    async def query_by_recipient(
        self, address: str, page_size: int
    ) -> list[RawTransactionBlock]:
        return await self._query({"ToAddress": address}, page_size)

    async def _query(
        self, tx_filter: dict[str, str], page_size: int
    ) -> list[RawTransactionBlock]:
        params = [
            {"filter": tx_filter, "options": RESPONSE_OPTIONS},
            None,  # cursor
            page_size,
            False,  # descending
        ]
        result = await self._call(QUERY_METHOD, params)
        page = result.get("data") or []
        if result.get("hasNextPage"):
            logger.info(
                "%s returned a full page of %d; older history is truncated",
                tx_filter,
                len(page),
            )
        return [parse_transaction_block(item) for item in page]

    async def _call(self, method: str, params: list) -> dict:
        """POST a JSON-RPC request and return its ``result`` object."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }
        async with self._limiter:
            logger.debug("%s %s", method, params[0].get("filter"))
            resp = await self._client.post(self._rpc_url, json=payload)
            resp.raise_for_status()
            body = resp.json()

        error = body.get("error")
        if error:
            raise SuiRpcError(int(error.get("code", 0)), str(error.get("message", "")))
        result = body.get("result")
        if not isinstance(result, dict):
            raise SuiRpcError(0, f"Malformed {method} response")
        return result


# ── Parsing ───────────────────────────────────────────────────────────────────


def parse_owner(raw: Any) -> Optional[Owner]:
    """Map an RPC owner union onto the Owner variant.

    ``"Immutable"`` and owner kinds this tool does not model return None.
    """
    if not isinstance(raw, dict):
        return None
    if "AddressOwner" in raw:
        return AddressOwner(address=str(raw["AddressOwner"]))
    if "ObjectOwner" in raw:
        return ObjectOwner(object_id=str(raw["ObjectOwner"]))
    if "Shared" in raw:
        shared = raw["Shared"] or {}
        object_id = shared.get("object_id") or shared.get("initial_shared_version", "")
        return SharedOwner(object_id=str(object_id))
    return None


def _int(value: Any, default: Optional[int] = 0) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_transaction_block(data: dict) -> RawTransactionBlock:
    """Parse a SuiTransactionBlockResponse into a RawTransactionBlock."""
    tx_data = (data.get("transaction") or {}).get("data") or {}
    effects = data.get("effects") or {}
    gas = effects.get("gasUsed") or {}
    status = (effects.get("status") or {}).get("status", "failure")

    timestamp_ms = _int(data.get("timestampMs"), default=None)
    if timestamp_ms is None and data.get("timestampMs") is not None:
        logger.warning("Unparseable timestampMs in %s", data.get("digest"))

    balance_changes = tuple(
        BalanceChange(
            owner=parse_owner(bc.get("owner")),
            coin_type=bc.get("coinType", ""),
            amount=_int(bc.get("amount")),
        )
        for bc in data.get("balanceChanges") or []
    )

    object_changes = tuple(
        ObjectChange(
            change_type=oc.get("type", ""),
            sender=oc.get("sender", ""),
            recipient=parse_owner(oc.get("recipient")),
            object_type=oc.get("objectType", ""),
            object_id=oc.get("objectId", ""),
        )
        for oc in data.get("objectChanges") or []
    )

    return RawTransactionBlock(
        digest=data.get("digest", ""),
        sender=tx_data.get("sender", ""),
        timestamp_ms=timestamp_ms,
        status=status,
        computation_cost=_int(gas.get("computationCost")),
        storage_cost=_int(gas.get("storageCost")),
        storage_rebate=_int(gas.get("storageRebate")),
        balance_changes=balance_changes,
        object_changes=object_changes,
    )
