from __future__ import annotations

import logging
from typing import Any

from token_indexer.app.application.services.domain.token_events.classification import (
    get_transfer_type,
)
from token_indexer.app.application.services.entities.unit_of_work import EntityManagers
from token_indexer.app.domain import ids
from token_indexer.app.domain.models import (
    ContractStandard,
    EventContext,
    FTokenBalanceAction,
    TransferDirection,
)

logger = logging.getLogger(__name__)


async def resolve_erc20_transfer(
    managers: EntityManagers,
    ctx: EventContext,
    payload: dict[str, Any],
) -> bool:
    """
    Apply one ERC20 Transfer(from, to, value).

    Returns False when the transfer is already indexed (the batch is being
    replayed) and nothing was changed.
    """
    transfer_id = ids.transfer_id(ctx.event_id)
    if await managers.ft_transfers.get(transfer_id) is not None:
        logger.debug("ERC20 transfer %s already indexed; skipping", transfer_id)
        return False

    amount: int = payload["value"]

    sender = await managers.accounts.get_or_create(payload["from"])
    receiver = await managers.accounts.get_or_create(payload["to"])
    managers.accounts.register_transfer(sender, receiver)

    token = await managers.f_tokens.get_or_create(
        contract_address=ctx.contract_address,
        contract_standard=ContractStandard.ERC20,
        ctx=ctx,
    )

    transfer = managers.ft_transfers.create(
        ctx=ctx,
        from_id=sender.id,
        to_id=receiver.id,
        token_id=token.id,
        amount=amount,
        transfer_type=get_transfer_type(sender.id, receiver.id),
    )

    managers.account_ft_transfers.create(
        account_id=sender.id,
        transfer_id=transfer.id,
        direction=TransferDirection.FROM,
    )
    await managers.account_f_token_balances.update_balance(
        account_id=sender.id,
        token_id=token.id,
        contract_address=token.contract_address,
        amount=amount,
        action=FTokenBalanceAction.SUB,
        ctx=ctx,
    )

    managers.account_ft_transfers.create(
        account_id=receiver.id,
        transfer_id=transfer.id,
        direction=TransferDirection.TO,
    )
    await managers.account_f_token_balances.update_balance(
        account_id=receiver.id,
        token_id=token.id,
        contract_address=token.contract_address,
        amount=amount,
        action=FTokenBalanceAction.ADD,
        ctx=ctx,
    )

    return True
