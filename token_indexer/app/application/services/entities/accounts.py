from __future__ import annotations

from token_indexer.app.application.services.entities.entity_cache import EntityCache
from token_indexer.app.domain import ids
from token_indexer.app.infrastructure.db.models.domain.accounts import AccountsDB


class AccountsManager(EntityCache[AccountsDB]):
    def __init__(self, *, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(AccountsDB, prefetch_chunk_size=prefetch_chunk_size)

    async def get_or_create(self, address: str) -> AccountsDB:
        account_id = ids.account_id(address)
        account = await self.get(account_id)

        if account is None:
            account = AccountsDB(
                id=account_id,
                transfers_total_count=0,
                transfers_sent_count=0,
                transfers_received_count=0,
            )
        self.add(account)

        return account

    def register_transfer(self, sender: AccountsDB, receiver: AccountsDB) -> None:
        sender.transfers_sent_count += 1
        sender.transfers_total_count += 1

        receiver.transfers_received_count += 1
        receiver.transfers_total_count += 1

        self.add(sender)
        self.add(receiver)
