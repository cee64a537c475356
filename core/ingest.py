"""Transaction ingestion for a single Sui address.

Runs the two directional queries, merges them by digest, and reduces
each raw block to a canonical TransactionRecord.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

import httpx

from core import (
    AddressOwner,
    ObjectOwner,
    RawTransactionBlock,
    SharedOwner,
    TransactionRecord,
    TxStatus,
)
from core.errors import IngestError, InvalidAddress, NetworkError, UnknownFetchError
from core.ledger import LedgerClient

logger = logging.getLogger(__name__)

# 0x followed by 64 hex characters
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")

TX_QUERY_LIMIT = 50  # Per direction


def validate_address(address: str) -> str:
    """Return the canonical lowercase form of ``address`` or raise InvalidAddress."""
    candidate = (address or "").strip()
    if not ADDRESS_PATTERN.match(candidate):
        raise InvalidAddress(f"Invalid Sui address format: {address!r}")
    return candidate.lower()


async def ingest(
    client: LedgerClient,
    address: str,
    page_size: int = TX_QUERY_LIMIT,
) -> list[TransactionRecord]:
    """Fetch and canonicalize the transactions touching ``address``.

    Args:
        client: Upstream ledger client.
        address: Sui address to investigate.
        page_size: Upper bound on results per direction.

    Returns:
        Unique TransactionRecords in first-discovery order.

    Raises:
        InvalidAddress: Bad format. No query is issued.
        NetworkError: The transport failed during either query.
        UnknownFetchError: Anything else went wrong.
    """
    address = validate_address(address)
    records: dict[str, TransactionRecord] = {}

    try:
        logger.info("Fetching outgoing transactions for %s", address)
        outgoing = await client.query_by_originator(address, page_size)
        _merge(outgoing, records)

        logger.info("Fetching incoming transactions for %s", address)
        incoming = await client.query_by_recipient(address, page_size)
        _merge(incoming, records)
    except IngestError:
        raise
    except (httpx.HTTPError, OSError) as exc:
        logger.error("Network error fetching %s: %s", address, exc)
        raise NetworkError(f"Network error: {exc}") from exc
    except Exception as exc:
        logger.error("Error fetching or processing %s: %s", address, exc)
        raise UnknownFetchError(f"An unknown error occurred: {exc}") from exc

    logger.info("Total unique transactions fetched: %d", len(records))
    return list(records.values())


def _merge(
    blocks: list[RawTransactionBlock], records: dict[str, TransactionRecord]
) -> None:
    """Add each block to ``records`` unless its digest is already there."""
    for block in blocks:
        if block.digest in records:
            continue
        records[block.digest] = to_record(block)


def to_record(block: RawTransactionBlock) -> TransactionRecord:
    """Reduce a raw block to its canonical record."""
    recipients, amount = derive_recipients(block)

    timestamp = None
    if block.timestamp_ms is not None:
        timestamp = datetime.fromtimestamp(block.timestamp_ms / 1000, tz=timezone.utc)

    return TransactionRecord(
        id=block.digest,
        timestamp=timestamp,
        sender=block.sender,
        recipients=tuple(recipients),
        amount=amount,
        gas_used=block.computation_cost + block.storage_cost - block.storage_rebate,
        status=TxStatus.from_effects(block.status),
    )


def derive_recipients(block: RawTransactionBlock) -> tuple[list[str], int]:
    """Work out who received value in ``block`` and how much.

    Balance changes take precedence. Transferred objects are only consulted
    when no balance change credited anyone other than the sender, and they
    never add to the amount.
    """
    sender = block.sender
    recipients: list[str] = []
    amount = 0

    for change in block.balance_changes:
        address = _owner_address(change.owner)
        if address is None or address == sender or change.amount <= 0:
            continue
        if address not in recipients:
            recipients.append(address)
        amount += change.amount

    if recipients:
        return recipients, amount

    for change in block.object_changes:
        if change.change_type != "transferred":
            continue
        address = _owner_address(change.recipient)
        if address is not None and address != sender and address not in recipients:
            recipients.append(address)

    return recipients, amount


def _owner_address(owner) -> str | None:
    """Account address behind an owner, or None for object/shared ownership."""
    if owner is None:
        return None
    if isinstance(owner, AddressOwner):
        return owner.address
    if isinstance(owner, (ObjectOwner, SharedOwner)):
        return None
    raise TypeError(f"Unhandled owner variant: {owner!r}")
