from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from token_indexer.app.application.services.entities.unit_of_work import EntityManagers
from token_indexer.app.domain import ids
from token_indexer.app.domain.models import Block, EventContext, TokenEventKind
from token_indexer.app.domain.ports.out import TokenEventDecoder

logger = logging.getLogger(__name__)


class TokenEventsPrefetcher:
    """
    Collects every entity id a batch may touch and bulk-loads them.

    Each log is tried against every decode shape it satisfies (not only the
    one that will win at resolution time), so the harvest over-approximates
    and no entity is mutated here.
    """

    def __init__(self, *, managers: EntityManagers, decoder: TokenEventDecoder) -> None:
        self._managers = managers
        self._decoder = decoder

    async def prefetch(self, blocks: Sequence[Block]) -> int:
        harvested = 0
        for block in blocks:
            for log in block.logs:
                for event in self._decoder.decode_all(log):
                    ctx = EventContext.from_log(block, log)
                    self._harvest(event.kind, ctx, event.payload)
                    harvested += 1

        logger.debug(
            "Harvested prefetch ids from %s decoded events: %s",
            harvested,
            {cache.kind: len(cache.prefetch_ids) for cache in self._managers.caches},
        )
        await self._managers.prefetch_all()
        return harvested

    def _harvest(self, kind: TokenEventKind, ctx: EventContext, payload: dict[str, Any]) -> None:
        m = self._managers

        if kind == TokenEventKind.ERC20_TRANSFER:
            token_id = ids.ft_token_id(ctx.contract_address)
            accounts = [ids.account_id(payload["from"]), ids.account_id(payload["to"])]
            m.accounts.add_prefetch_id(accounts)
            m.f_tokens.add_prefetch_id(token_id)
            m.account_f_token_balances.add_prefetch_id(
                [ids.account_balance_id(a, token_id) for a in accounts]
            )
            m.ft_transfers.add_prefetch_id(ids.transfer_id(ctx.event_id))

        elif kind == TokenEventKind.ERC721_TRANSFER:
            m.accounts.add_prefetch_id(
                [ids.account_id(payload["from"]), ids.account_id(payload["to"])]
            )
            self._harvest_nft(ctx, [payload["tokenId"]])

        elif kind in (TokenEventKind.ERC1155_TRANSFER_SINGLE, TokenEventKind.ERC1155_TRANSFER_BATCH):
            m.accounts.add_prefetch_id(
                [
                    ids.account_id(payload["operator"]),
                    ids.account_id(payload["from"]),
                    ids.account_id(payload["to"]),
                ]
            )
            native_ids = (
                [payload["id"]]
                if kind == TokenEventKind.ERC1155_TRANSFER_SINGLE
                else list(payload["ids"])
            )
            self._harvest_nft(ctx, native_ids)

        elif kind == TokenEventKind.ERC1155_URI:
            m.nf_tokens.add_prefetch_id(ids.nft_id(ctx.contract_address, payload["id"]))
            m.uri_update_actions.add_prefetch_id(ctx.event_id)

    def _harvest_nft(self, ctx: EventContext, native_ids: list[int]) -> None:
        m = self._managers
        m.collections.add_prefetch_id(ids.collection_id(ctx.contract_address))
        m.nf_tokens.add_prefetch_id([ids.nft_id(ctx.contract_address, n) for n in native_ids])
        m.nft_transfers.add_prefetch_id(
            [ids.nft_transfer_id(ctx.event_id, n) for n in native_ids]
        )
