from __future__ import annotations

from typing import Callable, Dict

from sqlalchemy.ext.asyncio import AsyncEngine
from web3 import AsyncHTTPProvider, AsyncWeb3

from token_indexer.app.application.services.domain.token_events.batch_processor import (
    TokenEventsBatchProcessor,
)
from token_indexer.app.config import settings
from token_indexer.app.domain.ports.out import TokenTransfersIndexer
from token_indexer.app.infrastructure.adapters.domain.token_transfers_indexer import (
    SqlAlchemyTokenTransfersIndexer,
)
from token_indexer.app.infrastructure.adapters.staging.evm_logs_source import (
    SqlAlchemyEvmLogBatchSource,
)
from token_indexer.app.infrastructure.db.engine import create_app_session_factory
from token_indexer.app.infrastructure.decoders.token_standards.token_event_decoder import (
    TokenStandardEventDecoder,
)
from token_indexer.app.infrastructure.fetchers.token_contract_fetcher import (
    Web3TokenContractFetcher,
)

TokenTransfersIndexerFactory = Callable[[AsyncEngine], TokenTransfersIndexer]

_TOKEN_TRANSFERS_INDEXER_REGISTRY: Dict[str, TokenTransfersIndexerFactory] = {}


def _make_sqlalchemy_indexer(engine: AsyncEngine) -> TokenTransfersIndexer:
    """
    Wire dependencies for SQLAlchemy backend:
    - AsyncWeb3 provider (CHAIN_NODE) for contract enrichment and balance bootstrap
    - token-standard event decoder built from registry/abi
    - staging.evm_logs batch source filtered on the decoder's topic0 set
    - batch processor + session-per-batch indexer adapter
    """
    w3 = AsyncWeb3(
        AsyncHTTPProvider(
            settings.chain_node,
            request_kwargs={"timeout": settings.rpc_request_timeout},
        )
    )

    decoder = TokenStandardEventDecoder.from_abi_dir()
    fetcher = Web3TokenContractFetcher(w3=w3, call_timeout=settings.contract_call_timeout)

    processor = TokenEventsBatchProcessor(
        decoder=decoder,
        fetcher=fetcher,
        prefetch_chunk_size=settings.prefetch_chunk_size,
    )

    return SqlAlchemyTokenTransfersIndexer(
        session_factory=create_app_session_factory(engine),
        source=SqlAlchemyEvmLogBatchSource(engine=engine, topics=decoder.topics),
        processor=processor,
        blocks_per_batch=settings.batch_size,
        save_chunk_size=settings.prefetch_chunk_size,
    )


# Register backends
_TOKEN_TRANSFERS_INDEXER_REGISTRY["sqlalchemy"] = _make_sqlalchemy_indexer


def token_transfers_indexer_factory(
    *,
    backend: str,
    engine: AsyncEngine,
) -> TokenTransfersIndexer:
    try:
        factory = _TOKEN_TRANSFERS_INDEXER_REGISTRY[backend]
    except KeyError:
        raise ValueError(f"Unsupported token transfers indexer backend: {backend!r}")

    return factory(engine)
