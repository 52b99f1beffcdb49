"""Normalise inbound payloads into candidate tokens."""

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from tokenwatch.constants.providers import SOLANA_CHAIN
from tokenwatch.constants.webhook import UNKNOWN_CHAIN
from tokenwatch.ingestion.field_map import (
    FEED_ITEM_FIELDS,
    HELIUS_TOKEN_DATA_FIELDS,
    HELIUS_TOKEN_FIELDS,
    HELIUS_TRANSFER_FIELDS,
    map_fields,
    pick,
)
from tokenwatch.models.token import CandidateToken

logger = structlog.get_logger(__name__)

# Feed fields copied into the primary record
FEED_RECORD_FIELDS = tuple(k for k in FEED_ITEM_FIELDS if k not in ("address", "chain", "creator"))

FEED_LIST_KEYS = ("tokens", "data", "pairs")


class CandidateNormalizer:
    """Turns Helius webhook payloads and polled feeds into CandidateTokens.

    Payload shapes vary by stream type, so several layouts are recognised.
    Tokens are deduplicated per payload by lowercase ``chain:address``;
    the first occurrence wins.
    """

    def from_helius_payload(self, payload: Any) -> list[CandidateToken]:
        """Extract candidates from a Helius webhook payload.

        Recognised layouts: flat ``mint`` (Solana), flat ``tokenAddress``
        (EVM), a ``tokens`` array, ``transactions`` carrying
        ``tokenTransfers`` / ``tokenData``, and a list of any of these.
        """
        return self._dedupe(self._helius_entries(payload))

    def from_feed(self, payload: Any) -> list[CandidateToken]:
        """Extract candidates from a polled JSON feed.

        The feed is a list of items or an object wrapping one under
        ``tokens``, ``data`` or ``pairs``. Metrics already present on an
        item are carried into the primary record.
        """
        items: Any = payload
        if isinstance(payload, Mapping):
            items = next(
                (payload[k] for k in FEED_LIST_KEYS if isinstance(payload.get(k), list)),
                [],
            )
        if not isinstance(items, list):
            logger.warning("feed_payload_unrecognised", payload_type=type(payload).__name__)
            return []

        candidates = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            fields = map_fields(item, FEED_ITEM_FIELDS)
            raw = {k: fields[k] for k in FEED_RECORD_FIELDS if k in fields}
            candidates.append(
                (fields.get("chain"), fields.get("address"), fields.get("creator"), raw)
            )
        return self._dedupe(candidates)

    def _helius_entries(self, payload: Any) -> Iterator[tuple[Any, Any, Any, dict]]:
        if isinstance(payload, list):
            for item in payload:
                yield from self._helius_entries(item)
            return
        if not isinstance(payload, Mapping):
            return

        payload_chain = payload.get("chain")

        if payload.get("mint"):
            yield (
                payload_chain or SOLANA_CHAIN,
                payload["mint"],
                pick(payload, ("mintAuthority", "creator")),
                {},
            )
        if payload.get("tokenAddress"):
            yield (payload_chain or "ethereum", payload["tokenAddress"], payload.get("creator"), {})

        for token in _mappings(payload.get("tokens")):
            fields = map_fields(token, HELIUS_TOKEN_FIELDS)
            yield (
                fields.get("chain") or payload_chain,
                fields.get("address"),
                fields.get("creator"),
                {},
            )

        for tx in _mappings(payload.get("transactions")):
            tx_chain = tx.get("chain") or payload_chain
            for transfer in _mappings(tx.get("tokenTransfers")):
                fields = map_fields(transfer, HELIUS_TRANSFER_FIELDS)
                yield (tx_chain, fields.get("address"), fields.get("creator"), {})
            for data in _mappings(tx.get("tokenData")):
                fields = map_fields(data, HELIUS_TOKEN_DATA_FIELDS)
                yield (tx_chain, fields.get("address"), fields.get("creator"), {})

    def _dedupe(self, entries: Iterable[tuple[Any, Any, Any, dict]]) -> list[CandidateToken]:
        seen: dict[str, CandidateToken] = {}
        for chain, address, creator, raw in entries:
            if not address:
                continue
            try:
                candidate = CandidateToken(
                    chain=chain or UNKNOWN_CHAIN,
                    address=str(address),
                    creator_address=str(creator) if creator else None,
                    raw_fields=raw,
                )
            except ValidationError as e:
                logger.debug("candidate_invalid", address=str(address)[:8] + "...", error=str(e))
                continue
            seen.setdefault(f"{candidate.chain}:{candidate.address}", candidate)

        logger.debug("candidates_normalized", count=len(seen))
        return list(seen.values())


def _mappings(value: Any) -> Iterator[Mapping]:
    if isinstance(value, list):
        for item in value:
            if isinstance(item, Mapping):
                yield item
