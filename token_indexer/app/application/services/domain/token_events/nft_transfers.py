from __future__ import annotations

import logging
from typing import Any

from token_indexer.app.application.services.domain.token_events.classification import (
    get_token_burned_status,
    get_token_total_supply,
    get_transfer_type,
)
from token_indexer.app.application.services.entities.unit_of_work import EntityManagers
from token_indexer.app.domain import ids
from token_indexer.app.domain.errors import InvalidEventError
from token_indexer.app.domain.models import (
    ContractStandard,
    EventContext,
    TransferDirection,
    TransferType,
)

logger = logging.getLogger(__name__)


async def resolve_erc721_transfer(
    managers: EntityManagers,
    ctx: EventContext,
    payload: dict[str, Any],
) -> bool:
    return await _resolve_nft_transfer(
        managers,
        ctx,
        contract_standard=ContractStandard.ERC721,
        native_id=payload["tokenId"],
        amount=1,
        from_address=payload["from"],
        to_address=payload["to"],
        operator_address=None,
        is_batch=False,
    )


async def resolve_erc1155_transfer_single(
    managers: EntityManagers,
    ctx: EventContext,
    payload: dict[str, Any],
) -> bool:
    return await _resolve_nft_transfer(
        managers,
        ctx,
        contract_standard=ContractStandard.ERC1155,
        native_id=payload["id"],
        amount=payload["value"],
        from_address=payload["from"],
        to_address=payload["to"],
        operator_address=payload["operator"],
        is_batch=False,
    )


async def resolve_erc1155_transfer_batch(
    managers: EntityManagers,
    ctx: EventContext,
    payload: dict[str, Any],
) -> bool:
    """
    One TransferBatch fans out into one transfer per (id, value) pair, all
    sharing the event id. Returns True if at least one pair was applied.
    """
    native_ids = list(payload["ids"])
    values = list(payload["values"])
    if len(native_ids) != len(values):
        raise InvalidEventError(
            f"TransferBatch {ctx.event_id}: {len(native_ids)} ids but {len(values)} values"
        )

    applied = False
    for native_id, value in zip(native_ids, values):
        applied |= await _resolve_nft_transfer(
            managers,
            ctx,
            contract_standard=ContractStandard.ERC1155,
            native_id=native_id,
            amount=value,
            from_address=payload["from"],
            to_address=payload["to"],
            operator_address=payload["operator"],
            is_batch=True,
        )
    return applied


async def _resolve_nft_transfer(
    managers: EntityManagers,
    ctx: EventContext,
    *,
    contract_standard: ContractStandard,
    native_id: int,
    amount: int,
    from_address: str,
    to_address: str,
    operator_address: str | None,
    is_batch: bool,
) -> bool:
    transfer_id = ids.nft_transfer_id(ctx.event_id, native_id)
    if await managers.nft_transfers.is_indexed(transfer_id):
        logger.debug("NFT transfer %s already indexed; skipping", transfer_id)
        return False

    sender = await managers.accounts.get_or_create(from_address)
    receiver = await managers.accounts.get_or_create(to_address)
    operator = (
        await managers.accounts.get_or_create(operator_address)
        if operator_address is not None
        else None
    )
    managers.accounts.register_transfer(sender, receiver)

    transfer_type = get_transfer_type(sender.id, receiver.id)

    token = await managers.nf_tokens.get_or_create(
        contract_address=ctx.contract_address,
        native_id=native_id,
        contract_standard=contract_standard,
        owner_id=receiver.id,
        ctx=ctx,
    )
    token.amount = get_token_total_supply(token.amount, amount, transfer_type)
    if contract_standard == ContractStandard.ERC721:
        token.is_burned = transfer_type == TransferType.BURN
    else:
        token.is_burned = get_token_burned_status(token.amount)
    token.current_owner_id = receiver.id
    managers.nf_tokens.add(token)

    transfer = managers.nft_transfers.create(
        ctx=ctx,
        native_id=native_id,
        from_id=sender.id,
        to_id=receiver.id,
        operator_id=operator.id if operator is not None else None,
        token_id=token.id,
        amount=amount,
        transfer_type=transfer_type,
        is_batch=is_batch,
    )

    managers.account_nft_transfers.create(
        account_id=sender.id,
        transfer_id=transfer.id,
        direction=TransferDirection.FROM,
    )
    managers.account_nft_transfers.create(
        account_id=receiver.id,
        transfer_id=transfer.id,
        direction=TransferDirection.TO,
    )
    # the operator usually is the sender itself; its row would collide
    if operator is not None and operator.id not in (sender.id, receiver.id):
        managers.account_nft_transfers.create(
            account_id=operator.id,
            transfer_id=transfer.id,
            direction=TransferDirection.OPERATOR,
        )

    return True
