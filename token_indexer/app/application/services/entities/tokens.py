from __future__ import annotations

import logging

from token_indexer.app.application.services.entities.entity_cache import EntityCache
from token_indexer.app.domain import ids
from token_indexer.app.domain.models import ContractStandard, EventContext
from token_indexer.app.domain.ports.out import TokenContractFetcher
from token_indexer.app.infrastructure.db.models.domain.collections import CollectionsDB
from token_indexer.app.infrastructure.db.models.domain.tokens import FTokensDB, NfTokensDB

logger = logging.getLogger(__name__)


class CollectionsManager(EntityCache[CollectionsDB]):
    """
    ERC721/ERC1155 token collections, one per contract.
    """

    def __init__(self, *, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(CollectionsDB, prefetch_chunk_size=prefetch_chunk_size)

    async def get_or_create(
        self,
        *,
        contract_address: str,
        contract_standard: ContractStandard,
        ctx: EventContext,
    ) -> CollectionsDB:
        collection_id = ids.collection_id(contract_address)
        collection = await self.get(collection_id)

        if collection is None:
            collection = CollectionsDB(
                id=collection_id,
                collection_type=contract_standard.value,
                created_at_block=ctx.block_height,
                created_at=ctx.block_timestamp,
            )
        self.add(collection)

        return collection


class FTokensManager(EntityCache[FTokensDB]):
    """
    ERC20 tokens.

    Metadata is read on creation. A stored token with name or symbol still
    missing is re-read and only those two fields are patched. Either way a
    token hits the chain at most once per batch.
    """

    def __init__(self, *, fetcher: TokenContractFetcher, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(FTokensDB, prefetch_chunk_size=prefetch_chunk_size)
        self._fetcher = fetcher
        self._refreshed: set[str] = set()

    def _on_init(self) -> None:
        self._refreshed.clear()

    async def get_or_create(
        self,
        *,
        contract_address: str,
        contract_standard: ContractStandard,
        ctx: EventContext,
    ) -> FTokensDB:
        token_id = ids.ft_token_id(contract_address)
        token = await self.get(token_id)

        if token is None:
            self._refreshed.add(token_id)
            contract = self._fetcher.contract(
                contract_address=token_id,
                contract_standard=contract_standard,
                block_height=ctx.block_height,
            )
            details = await contract.read_details()
            token = FTokensDB(
                id=token_id,
                contract_address=token_id,
                contract_standard=contract_standard.value,
                name=details.name,
                symbol=details.symbol,
                decimals=details.decimals,
            )
            logger.debug(
                "Created ERC20 token %s (name=%r symbol=%r decimals=%r)",
                token_id,
                token.name,
                token.symbol,
                token.decimals,
            )
        elif (not token.name or not token.symbol) and token_id not in self._refreshed:
            self._refreshed.add(token_id)
            contract = self._fetcher.contract(
                contract_address=token_id,
                contract_standard=contract_standard,
                block_height=ctx.block_height,
            )
            details = await contract.read_details()
            token.name = details.name or token.name
            token.symbol = details.symbol or token.symbol

        self.add(token)

        return token


class NfTokensManager(EntityCache[NfTokensDB]):
    """
    ERC721/ERC1155 tokens, one per (contract, native token id).
    """

    relations = ("collection", "current_owner")

    def __init__(
        self,
        *,
        fetcher: TokenContractFetcher,
        collections: CollectionsManager,
        prefetch_chunk_size: int = 1000,
    ) -> None:
        super().__init__(NfTokensDB, prefetch_chunk_size=prefetch_chunk_size)
        self._fetcher = fetcher
        self._collections = collections
        self._refreshed: set[str] = set()

    def _on_init(self) -> None:
        self._refreshed.clear()

    async def get_or_create(
        self,
        *,
        contract_address: str,
        native_id: int,
        contract_standard: ContractStandard,
        owner_id: str,
        ctx: EventContext,
    ) -> NfTokensDB:
        token_id = ids.nft_id(contract_address, native_id)
        token = await self.get(token_id)

        if token is None:
            self._refreshed.add(token_id)
            contract = self._fetcher.contract(
                contract_address=contract_address,
                contract_standard=contract_standard,
                block_height=ctx.block_height,
            )
            details = await contract.read_details(token_id=native_id)
            collection = await self._collections.get_or_create(
                contract_address=contract_address,
                contract_standard=contract_standard,
                ctx=ctx,
            )
            token = NfTokensDB(
                id=token_id,
                native_id=str(native_id),
                contract_address=ids.collection_id(contract_address),
                name=details.name,
                symbol=details.symbol,
                uri=details.uri,
                collection_id=collection.id,
                current_owner_id=owner_id,
                amount=0,
                is_burned=False,
            )
        elif (not token.name or not token.symbol) and token_id not in self._refreshed:
            self._refreshed.add(token_id)
            contract = self._fetcher.contract(
                contract_address=contract_address,
                contract_standard=contract_standard,
                block_height=ctx.block_height,
            )
            details = await contract.read_details(token_id=native_id)
            token.name = details.name or token.name
            token.symbol = details.symbol or token.symbol
            if token.uri is None:
                token.uri = details.uri

        self.add(token)

        return token
