from __future__ import annotations

from typing import TypeVar

from token_indexer.app.application.services.entities.entity_cache import EntityCache
from token_indexer.app.domain import ids
from token_indexer.app.domain.models import EventContext, TransferDirection, TransferType
from token_indexer.app.infrastructure.db.models.domain.account_transfers import (
    AccountFtTransfersDB,
    AccountNftTransfersDB,
)
from token_indexer.app.infrastructure.db.models.domain.transfers import (
    FtTransfersDB,
    NftTransfersDB,
)
from token_indexer.app.infrastructure.db.models.domain.uri_update_actions import (
    UriUpdateActionsDB,
)

J = TypeVar("J", AccountFtTransfersDB, AccountNftTransfersDB)


class FtTransfersManager(EntityCache[FtTransfersDB]):
    def __init__(self, *, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(FtTransfersDB, prefetch_chunk_size=prefetch_chunk_size)

    def create(
        self,
        *,
        ctx: EventContext,
        from_id: str,
        to_id: str,
        token_id: str,
        amount: int,
        transfer_type: TransferType,
    ) -> FtTransfersDB:
        transfer = FtTransfersDB(
            id=ids.transfer_id(ctx.event_id),
            block_number=ctx.block_height,
            timestamp=ctx.block_timestamp,
            event_index=ctx.event_index,
            txn_hash=ctx.tx_hash,
            from_id=from_id,
            to_id=to_id,
            token_id=token_id,
            amount=amount,
            transfer_type=transfer_type.value,
        )
        self.add(transfer)

        return transfer


class NftTransfersManager(EntityCache[NftTransfersDB]):
    """
    NFT transfers, one row per (event, token id).

    A TransferBatch may list the same token id more than once; those pairs
    share one row whose amount accumulates.
    """

    def __init__(self, *, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(NftTransfersDB, prefetch_chunk_size=prefetch_chunk_size)
        self._created: set[str] = set()

    def _on_init(self) -> None:
        self._created.clear()

    async def is_indexed(self, transfer_id: str) -> bool:
        """True when the transfer was persisted by an earlier batch."""
        if transfer_id in self._created:
            return False
        return await self.get(transfer_id) is not None

    def create(
        self,
        *,
        ctx: EventContext,
        native_id: int,
        from_id: str,
        to_id: str,
        operator_id: str | None,
        token_id: str,
        amount: int,
        transfer_type: TransferType,
        is_batch: bool,
    ) -> NftTransfersDB:
        transfer_id = ids.nft_transfer_id(ctx.event_id, native_id)
        if transfer_id in self._created:
            transfer = self._entities[transfer_id]
            transfer.amount += amount
            return transfer

        transfer = NftTransfersDB(
            id=transfer_id,
            block_number=ctx.block_height,
            timestamp=ctx.block_timestamp,
            event_index=ctx.event_index,
            txn_hash=ctx.tx_hash,
            from_id=from_id,
            to_id=to_id,
            operator_id=operator_id,
            token_id=token_id,
            amount=amount,
            transfer_type=transfer_type.value,
            is_batch=is_batch,
        )
        self.add(transfer)
        self._created.add(transfer_id)

        return transfer


class _AccountTransfersManager(EntityCache[J]):
    """
    Account x transfer join rows.

    Rows are immutable once written, so an id already cached in this batch is
    returned as-is and a fresh id is created without a store lookup (the flush
    upserts by id).
    """

    def create(
        self,
        *,
        account_id: str,
        transfer_id: str,
        direction: TransferDirection,
    ) -> J:
        join_id = ids.account_transfer_id(account_id, transfer_id)
        existing = self._entities.get(join_id)
        if existing is not None:
            return existing

        row = self.entity(
            id=join_id,
            account_id=account_id,
            transfer_id=transfer_id,
            direction=direction.value,
        )
        self.add(row)

        return row


class AccountFtTransfersManager(_AccountTransfersManager[AccountFtTransfersDB]):
    def __init__(self, *, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(AccountFtTransfersDB, prefetch_chunk_size=prefetch_chunk_size)


class AccountNftTransfersManager(_AccountTransfersManager[AccountNftTransfersDB]):
    def __init__(self, *, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(AccountNftTransfersDB, prefetch_chunk_size=prefetch_chunk_size)


class UriUpdateActionsManager(EntityCache[UriUpdateActionsDB]):
    def __init__(self, *, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(UriUpdateActionsDB, prefetch_chunk_size=prefetch_chunk_size)

    def create(
        self,
        *,
        ctx: EventContext,
        token_id: str,
        old_value: str | None,
        new_value: str | None,
    ) -> UriUpdateActionsDB:
        action = UriUpdateActionsDB(
            id=ctx.event_id,
            token_id=token_id,
            old_value=old_value,
            new_value=new_value,
            block_number=ctx.block_height,
            timestamp=ctx.block_timestamp,
            txn_hash=ctx.tx_hash,
        )
        self.add(action)

        return action
