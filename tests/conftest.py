from __future__ import annotations

import os

# Settings() is built on import of token_indexer.app.config
os.environ.setdefault("PROJECT_NAME", "token-indexer-tests")
os.environ.setdefault("POSTGRES_USER", "indexer")
os.environ.setdefault("POSTGRES_PASSWORD", "p@ss word")
os.environ.setdefault("POSTGRES_SERVER", "localhost")
os.environ.setdefault("POSTGRES_PORT", "5432")
os.environ.setdefault("POSTGRES_DB", "indexer")
os.environ.setdefault("CHAIN_NODE", "http://localhost:8545")

import pytest  # noqa: E402

from helpers import FakeEntityStore, FakeTokenContractFetcher  # noqa: E402
from token_indexer.app.application.services.domain.token_events.batch_processor import (  # noqa: E402
    TokenEventsBatchProcessor,
)
from token_indexer.app.infrastructure.decoders.token_standards.token_event_decoder import (  # noqa: E402
    TokenStandardEventDecoder,
)


@pytest.fixture
def store() -> FakeEntityStore:
    return FakeEntityStore()


@pytest.fixture
def fetcher() -> FakeTokenContractFetcher:
    return FakeTokenContractFetcher()


@pytest.fixture(scope="session")
def decoder() -> TokenStandardEventDecoder:
    return TokenStandardEventDecoder.from_abi_dir()


@pytest.fixture
def processor(decoder, fetcher) -> TokenEventsBatchProcessor:
    return TokenEventsBatchProcessor(decoder=decoder, fetcher=fetcher)
