from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol, TypeVar

from token_indexer.app.domain.models import (
    Block,
    ContractStandard,
    DecodedTokenEvent,
    EvmLog,
    TokenDetails,
)

E = TypeVar("E")


class EntityStore(Protocol):
    """
    Port for the durable relational store.

    `model` is the entity class (the "kind"); every entity exposes a string `id`.
    `relations` are eager-load hints naming relationship attributes of the model.

    Implementations must not retry: failures propagate to the caller, which owns
    the batch transaction.
    """

    async def get(
        self,
        model: type[E],
        entity_id: str,
        relations: Sequence[str] | None = None,
    ) -> E | None:
        ...

    async def find(
        self,
        model: type[E],
        entity_ids: Sequence[str],
        relations: Sequence[str] | None = None,
    ) -> list[E]:
        ...

    async def save(self, model: type[E], entities: Sequence[E]) -> None:
        ...


class TokenContract(Protocol):
    """
    Read-only contract client bound to one address, standard and block height.

    Every read is best-effort: failures and timeouts come back as None.
    """

    async def read_details(self, *, token_id: int | None = None) -> TokenDetails:
        ...

    async def balance_of(self, account_address: str) -> int | None:
        ...


class TokenContractFetcher(Protocol):
    """
    Builds TokenContract clients for contract enrichment.
    """

    def contract(
        self,
        *,
        contract_address: str,
        contract_standard: ContractStandard,
        block_height: int,
    ) -> TokenContract:
        ...


class EvmEventDecoder(Protocol):
    def decode(
        self,
        *,
        topic0: bytes | None,
        topic1: bytes | None,
        topic2: bytes | None,
        topic3: bytes | None,
        data: bytes,
    ) -> dict[str, Any] | None:
        """
        Decode an EVM log (topics + data) into a dict of typed fields.

        Return:
          - dict[str, Any] for decoded event fields
          - None if the log is not decodable / not the expected event
        """
        ...


class TokenEventDecoder(Protocol):
    """
    Decodes a raw log into a tagged token-standard event.

    `decode` returns the first matching shape (in priority order) or None.
    `decode_all` returns every shape the log satisfies; used by prefetch,
    which harvests ids speculatively.
    """

    def decode(self, log: EvmLog) -> DecodedTokenEvent | None:
        ...

    def decode_all(self, log: EvmLog) -> list[DecodedTokenEvent]:
        ...

    @property
    def topics(self) -> list[bytes]:
        ...


class EvmLogBatchSource(Protocol):
    """
    Port for the blockchain log/block source.

    Yields batches of consecutive blocks, ascending by height, each holding its
    logs ascending by index. Blocks without token logs may be omitted.
    """

    def iter_batches(
        self,
        *,
        chain_id: int,
        from_block: int,
        to_block: int,
        blocks_per_batch: int,
    ) -> AsyncIterator[list[Block]]:
        ...


class TokenTransfersIndexer(Protocol):
    """
    Port for indexing token-standard events into the domain layer.

    Implementations pull log batches for the block range, resolve accounts,
    tokens, collections, balances and transfers, and commit each batch once.
    """

    async def index_token_transfers_for_block_range(
        self,
        *,
        chain_id: int,
        from_block: int,
        to_block: int,
    ) -> None:
        ...
