from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any, Final

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from token_indexer.app.domain import ids
from token_indexer.app.domain.models import Block, EvmLog
from token_indexer.app.domain.ports.out import EvmLogBatchSource
from token_indexer.app.infrastructure.db.models.staging.evm_logs import EvmLogsDB

logger = logging.getLogger(__name__)

_EVM_LOGS = EvmLogsDB.__table__
_DEFAULT_BLOCKS_PER_BATCH: Final[int] = 50


def _as_bytes(value: Any) -> bytes | None:
    # asyncpg might return memoryview; normalize to bytes
    if value is None:
        return None
    if isinstance(value, memoryview):
        return value.tobytes()
    return bytes(value)


def _hex(value: Any) -> str:
    return "0x" + (_as_bytes(value) or b"").hex()


class SqlAlchemyEvmLogBatchSource(EvmLogBatchSource):
    """
    Reads token-standard logs from staging.evm_logs, one block window at a time.

    Only rows whose topic0 is one of `topics` are selected. Rows are grouped
    into Blocks (ascending height, logs ascending by log_index). Windows with
    no matching logs are not yielded.
    """

    def __init__(
        self,
        *,
        engine: AsyncEngine,
        topics: Sequence[bytes],
    ) -> None:
        if not topics:
            raise ValueError("topics must not be empty")
        self._engine = engine
        self._topics = [bytes(t) for t in topics]

    async def iter_batches(
        self,
        *,
        chain_id: int,
        from_block: int,
        to_block: int,
        blocks_per_batch: int = _DEFAULT_BLOCKS_PER_BATCH,
    ) -> AsyncIterator[list[Block]]:
        if blocks_per_batch <= 0:
            raise ValueError("blocks_per_batch must be positive")

        current = from_block
        while current <= to_block:
            batch_from = current
            batch_to = min(current + blocks_per_batch - 1, to_block)
            current = batch_to + 1

            blocks = await self._load_blocks(
                chain_id=chain_id,
                from_block=batch_from,
                to_block=batch_to,
            )
            if not blocks:
                logger.debug(
                    "No token logs: chain_id=%s, blocks=[%s, %s]",
                    chain_id,
                    batch_from,
                    batch_to,
                )
                continue

            yield blocks

    async def _load_blocks(self, *, chain_id: int, from_block: int, to_block: int) -> list[Block]:
        stmt = (
            select(_EVM_LOGS)
            .where(
                _EVM_LOGS.c.chain_id == chain_id,
                _EVM_LOGS.c.block_number.between(from_block, to_block),
                _EVM_LOGS.c.topic0.in_(self._topics),
            )
            .order_by(_EVM_LOGS.c.block_number, _EVM_LOGS.c.log_index)
        )

        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            rows = result.mappings().all()

        blocks: list[Block] = []
        current_height: int | None = None
        current_logs: list[EvmLog] = []
        current_ts = None

        for r in rows:
            if r["block_number"] != current_height:
                if current_height is not None:
                    blocks.append(Block(height=current_height, timestamp=current_ts, logs=tuple(current_logs)))
                current_height = r["block_number"]
                current_ts = r["block_timestamp"]
                current_logs = []

            current_logs.append(self._to_log(r))

        if current_height is not None:
            blocks.append(Block(height=current_height, timestamp=current_ts, logs=tuple(current_logs)))

        return blocks

    @staticmethod
    def _to_log(r: Any) -> EvmLog:
        topics = tuple(
            t
            for t in (_as_bytes(r[f"topic{i}"]) for i in range(4))
            if t is not None
        )
        return EvmLog(
            id=r["event_id"] or ids.event_id(r["block_number"], r["log_index"]),
            index_in_block=r["log_index"],
            tx_hash=_hex(r["transaction_hash"]),
            address=_hex(r["address"]),
            topics=topics,
            data=_as_bytes(r["data"]) or b"",
        )
