from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from token_indexer.app.application.services.domain.token_events.ft_transfers import (
    resolve_erc20_transfer,
)
from token_indexer.app.application.services.domain.token_events.nft_transfers import (
    resolve_erc721_transfer,
    resolve_erc1155_transfer_batch,
    resolve_erc1155_transfer_single,
)
from token_indexer.app.application.services.domain.token_events.prefetch import (
    TokenEventsPrefetcher,
)
from token_indexer.app.application.services.domain.token_events.uri_updates import (
    resolve_erc1155_uri,
)
from token_indexer.app.application.services.entities.entity_cache import (
    DEFAULT_PREFETCH_CHUNK_SIZE,
)
from token_indexer.app.application.services.entities.unit_of_work import EntityManagers
from token_indexer.app.domain.errors import (
    CacheFlushedError,
    NotInitializedError,
    StoreError,
)
from token_indexer.app.domain.models import Block, EventContext, EvmLog, TokenEventKind
from token_indexer.app.domain.ports.out import (
    EntityStore,
    TokenContractFetcher,
    TokenEventDecoder,
)

logger = logging.getLogger(__name__)

Resolver = Callable[[EntityManagers, EventContext, dict[str, Any]], Awaitable[bool]]

RESOLVERS: dict[TokenEventKind, Resolver] = {
    TokenEventKind.ERC20_TRANSFER: resolve_erc20_transfer,
    TokenEventKind.ERC721_TRANSFER: resolve_erc721_transfer,
    TokenEventKind.ERC1155_TRANSFER_SINGLE: resolve_erc1155_transfer_single,
    TokenEventKind.ERC1155_TRANSFER_BATCH: resolve_erc1155_transfer_batch,
    TokenEventKind.ERC1155_URI: resolve_erc1155_uri,
}

# Not per-event problems: a broken store or a misused cache must stop the batch
_FATAL_ERRORS = (StoreError, NotInitializedError, CacheFlushedError)


class BatchState(str, Enum):
    INIT = "init"
    PREFETCHING = "prefetching"
    PROCESSING = "processing"
    FLUSHING = "flushing"
    DONE = "done"


@dataclass
class BatchStats:
    blocks: int = 0
    logs: int = 0
    applied: Counter = field(default_factory=Counter)
    already_indexed: int = 0
    undecoded: int = 0
    failed: int = 0

    @property
    def applied_total(self) -> int:
        return sum(self.applied.values())


class TokenEventsBatchProcessor:
    """
    Runs one batch of blocks through prefetch, resolution and flush.

    INIT binds the per-batch caches to the store, PREFETCHING bulk-loads every
    id the batch may touch, PROCESSING resolves events in block/index order,
    FLUSHING writes every entity kind, DONE means the caller may commit.

    A failing resolver only loses its own event. Store failures propagate and
    leave `state` at the phase that failed, so the caller can roll back and
    retry the whole batch.
    """

    def __init__(
        self,
        *,
        decoder: TokenEventDecoder,
        fetcher: TokenContractFetcher,
        prefetch_chunk_size: int = DEFAULT_PREFETCH_CHUNK_SIZE,
        resolvers: dict[TokenEventKind, Resolver] | None = None,
    ) -> None:
        self._decoder = decoder
        self.managers = EntityManagers(fetcher=fetcher, prefetch_chunk_size=prefetch_chunk_size)
        self._prefetcher = TokenEventsPrefetcher(managers=self.managers, decoder=decoder)
        self._resolvers = dict(RESOLVERS if resolvers is None else resolvers)
        self.state = BatchState.INIT

    async def process_batch(self, *, store: EntityStore, blocks: Sequence[Block]) -> BatchStats:
        ordered = sorted(blocks, key=lambda b: b.height)
        stats = BatchStats(blocks=len(ordered))

        self.state = BatchState.INIT
        self.managers.init(store)

        self.state = BatchState.PREFETCHING
        await self._prefetcher.prefetch(ordered)

        self.state = BatchState.PROCESSING
        for block in ordered:
            for log in sorted(block.logs, key=lambda l: l.index_in_block):
                stats.logs += 1
                await self._process_log(block, log, stats)

        self.state = BatchState.FLUSHING
        await self.managers.flush_all()

        self.state = BatchState.DONE
        if ordered:
            logger.info(
                "Token events batch [%s..%s]: logs=%s applied=%s already_indexed=%s undecoded=%s failed=%s",
                ordered[0].height,
                ordered[-1].height,
                stats.logs,
                dict(stats.applied),
                stats.already_indexed,
                stats.undecoded,
                stats.failed,
            )
        return stats

    async def _process_log(self, block: Block, log: EvmLog, stats: BatchStats) -> None:
        event = self._decoder.decode(log)
        resolver = self._resolvers.get(event.kind) if event is not None else None
        if event is None or resolver is None:
            stats.undecoded += 1
            logger.debug(
                "Skipping unrecognized log %s at block %s (contract=%s)",
                log.id,
                block.height,
                log.address,
            )
            return

        ctx = EventContext.from_log(block, log)
        try:
            applied = await resolver(self.managers, ctx, event.payload)
        except _FATAL_ERRORS:
            raise
        except Exception:
            stats.failed += 1
            logger.exception(
                "Failed to resolve %s event %s (tx=%s contract=%s); skipping",
                event.kind.value,
                ctx.event_id,
                ctx.tx_hash,
                ctx.contract_address,
            )
            return

        if applied:
            stats.applied[event.kind.value] += 1
        else:
            stats.already_indexed += 1
