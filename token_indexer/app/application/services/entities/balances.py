from __future__ import annotations

import logging

from token_indexer.app.application.services.entities.entity_cache import EntityCache
from token_indexer.app.domain import ids
from token_indexer.app.domain.models import (
    ZERO_ADDRESS,
    ContractStandard,
    EventContext,
    FTokenBalanceAction,
)
from token_indexer.app.domain.ports.out import TokenContractFetcher
from token_indexer.app.infrastructure.db.models.domain.account_f_token_balances import (
    AccountFTokenBalancesDB,
)

logger = logging.getLogger(__name__)


class AccountFTokenBalancesManager(EntityCache[AccountFTokenBalancesDB]):
    """
    Running ERC20 balances per (account, token).

    An existing row is only ever moved by ± amount. A missing row is
    bootstrapped from balanceOf at the block *before* the event's block (the
    indexer may start mid-history), then the event's delta is applied like for
    any other row.
    """

    def __init__(self, *, fetcher: TokenContractFetcher, prefetch_chunk_size: int = 1000) -> None:
        super().__init__(AccountFTokenBalancesDB, prefetch_chunk_size=prefetch_chunk_size)
        self._fetcher = fetcher

    async def update_balance(
        self,
        *,
        account_id: str,
        token_id: str,
        contract_address: str,
        amount: int,
        action: FTokenBalanceAction,
        ctx: EventContext,
    ) -> AccountFTokenBalancesDB:
        balance_id = ids.account_balance_id(account_id, token_id)
        balance = await self.get(balance_id)

        if balance is None:
            balance = AccountFTokenBalancesDB(
                id=balance_id,
                account_id=account_id,
                token_id=token_id,
                amount=await self._bootstrap_amount(
                    account_id=account_id,
                    contract_address=contract_address,
                    ctx=ctx,
                ),
                updated_at_block=ctx.block_height,
                updated_at=ctx.block_timestamp,
            )

        if action == FTokenBalanceAction.ADD:
            balance.amount += amount
        elif action == FTokenBalanceAction.SUB:
            balance.amount -= amount

        balance.updated_at_block = ctx.block_height
        balance.updated_at = ctx.block_timestamp

        self.add(balance)

        return balance

    async def _bootstrap_amount(
        self,
        *,
        account_id: str,
        contract_address: str,
        ctx: EventContext,
    ) -> int:
        if account_id == ZERO_ADDRESS:
            return 0

        contract = self._fetcher.contract(
            contract_address=contract_address,
            contract_standard=ContractStandard.ERC20,
            block_height=max(ctx.block_height - 1, 0),
        )
        amount = await contract.balance_of(account_id)
        if amount is None:
            logger.debug(
                "balanceOf unavailable for %s on %s at block %s; starting from 0",
                account_id,
                contract_address,
                ctx.block_height - 1,
            )
            return 0
        return amount
