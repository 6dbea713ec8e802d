from __future__ import annotations

from token_indexer.app.application.services.domain.index_token_transfers_for_block_range import (
    BlockRange,
    index_token_transfers_for_block_range,
)
from token_indexer.app.application.services.staging.block_bounds import (
    resolve_block_bounds_from_table,
)
from token_indexer.app.domain.ports.out import TokenTransfersIndexer
from token_indexer.app.infrastructure.db.engine import create_app_async_engine
from token_indexer.app.infrastructure.factories.domain.token_transfers_indexer_factory import (
    token_transfers_indexer_factory,
)


async def index_token_transfers_task(
    *,
    chain_id: int,
    from_block: int | str,
    to_block: int | str,
    backend: str = "sqlalchemy",
) -> None:
    """
    Task: index ERC20 / ERC721 / ERC1155 events into the domain token tables
    for a given chain and block range.

    - reads token-standard logs from staging.evm_logs (topic0 filter in adapter),
    - resolves accounts, tokens, collections, balances and transfers per batch,
    - upserts every touched entity once per batch (ON CONFLICT DO UPDATE).

    from_block / to_block accept a block number, "earliest" or "latest"
    (bounds of staging.evm_logs for the chain).
    """
    engine = create_app_async_engine()
    try:
        resolved_from_block, resolved_to_block = await resolve_block_bounds_from_table(
            engine=engine,
            chain_id=chain_id,
            from_block=from_block,
            to_block=to_block,
            source_table="staging.evm_logs",
        )

        indexer: TokenTransfersIndexer = token_transfers_indexer_factory(
            backend=backend,
            engine=engine,
        )

        await index_token_transfers_for_block_range(
            indexer=indexer,
            chain_id=chain_id,
            block_range=BlockRange(
                from_block=resolved_from_block,
                to_block=resolved_to_block,
            ),
        )
    finally:
        await engine.dispose()
