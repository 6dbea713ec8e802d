from __future__ import annotations

import logging
from collections import Counter

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from token_indexer.app.application.services.domain.token_events.batch_processor import (
    TokenEventsBatchProcessor,
)
from token_indexer.app.domain.ports.out import EvmLogBatchSource, TokenTransfersIndexer
from token_indexer.app.infrastructure.adapters.domain.entity_store import SqlAlchemyEntityStore

logger = logging.getLogger(__name__)


class SqlAlchemyTokenTransfersIndexer(TokenTransfersIndexer):
    """
    Indexer adapter: projects ERC20/ERC721/ERC1155 logs from staging.evm_logs
    into the domain token tables.

    Strategy:
    - the log source yields windows of blocks holding token-standard logs,
    - each window is one batch: one session, one transaction, one
      prefetch / resolve / flush cycle,
    - a failing batch rolls back and stops the run; batches already committed
      stay committed and replaying them is a no-op.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        source: EvmLogBatchSource,
        processor: TokenEventsBatchProcessor,
        blocks_per_batch: int,
        save_chunk_size: int = 1000,
    ) -> None:
        if blocks_per_batch <= 0:
            raise ValueError("blocks_per_batch must be positive")
        self._session_factory = session_factory
        self._source = source
        self._processor = processor
        self._blocks_per_batch = blocks_per_batch
        self._save_chunk_size = save_chunk_size

    async def index_token_transfers_for_block_range(
        self,
        *,
        chain_id: int,
        from_block: int,
        to_block: int,
    ) -> None:
        logger.info(
            "Indexing token transfers: chain_id=%s, blocks=[%s, %s], blocks_per_batch=%s",
            chain_id,
            from_block,
            to_block,
            self._blocks_per_batch,
        )

        batches = 0
        applied: Counter = Counter()
        failed = 0

        async for blocks in self._source.iter_batches(
            chain_id=chain_id,
            from_block=from_block,
            to_block=to_block,
            blocks_per_batch=self._blocks_per_batch,
        ):
            async with self._session_factory() as session:
                async with session.begin():
                    store = SqlAlchemyEntityStore(session, save_chunk_size=self._save_chunk_size)
                    try:
                        stats = await self._processor.process_batch(store=store, blocks=blocks)
                    except Exception:
                        logger.error(
                            "Token transfers batch [%s..%s] failed in state %s; rolling back",
                            blocks[0].height,
                            blocks[-1].height,
                            self._processor.state.value,
                        )
                        raise

            batches += 1
            applied.update(stats.applied)
            failed += stats.failed

            logger.debug(
                "Batch committed: chain_id=%s, blocks=[%s, %s]",
                chain_id,
                blocks[0].height,
                blocks[-1].height,
            )

        logger.info(
            "Finished indexing token transfers: chain_id=%s, blocks=[%s, %s], batches=%s, applied=%s, failed=%s",
            chain_id,
            from_block,
            to_block,
            batches,
            dict(applied),
            failed,
        )
