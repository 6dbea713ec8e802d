from __future__ import annotations

from datetime import datetime, timezone

import pytest

from helpers import ALICE, ERC20_TOKEN, TRANSFER_TOPIC, address_topic
from token_indexer.app.application.services.domain.index_token_transfers_for_block_range import (
    BlockRange,
    index_token_transfers_for_block_range,
)
from token_indexer.app.infrastructure.adapters.domain.entity_store import SqlAlchemyEntityStore
from token_indexer.app.infrastructure.adapters.staging.evm_logs_source import (
    SqlAlchemyEvmLogBatchSource,
)
from token_indexer.app.infrastructure.db.models.domain.tokens import NfTokensDB
from token_indexer.app.infrastructure.factories.domain.token_transfers_indexer_factory import (
    token_transfers_indexer_factory,
)


class _RecordingIndexer:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    async def index_token_transfers_for_block_range(self, **kwargs) -> None:
        self.calls.append(kwargs)


class TestUseCase:
    @pytest.mark.asyncio
    async def test_valid_range_reaches_the_indexer(self):
        indexer = _RecordingIndexer()

        await index_token_transfers_for_block_range(
            indexer=indexer,
            chain_id=1,
            block_range=BlockRange(from_block=10, to_block=20),
        )

        assert indexer.calls == [{"chain_id": 1, "from_block": 10, "to_block": 20}]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("chain_id", "block_range"),
        [
            (1, BlockRange(from_block=20, to_block=10)),
            (1, BlockRange(from_block=-1, to_block=10)),
            (0, BlockRange(from_block=1, to_block=10)),
        ],
    )
    async def test_invalid_input_is_rejected(self, chain_id, block_range):
        indexer = _RecordingIndexer()

        with pytest.raises(ValueError):
            await index_token_transfers_for_block_range(
                indexer=indexer,
                chain_id=chain_id,
                block_range=block_range,
            )
        assert indexer.calls == []


def test_unknown_backend_is_rejected():
    with pytest.raises(ValueError):
        token_transfers_indexer_factory(backend="nope", engine=None)


def test_staging_row_becomes_evm_log():
    row = {
        "block_number": 17,
        "block_timestamp": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "log_index": 3,
        "event_id": None,
        "transaction_hash": memoryview(b"\xab" * 32),
        "address": bytes.fromhex(ERC20_TOKEN[2:]),
        "topic0": TRANSFER_TOPIC,
        "topic1": address_topic(ALICE),
        "topic2": None,
        "topic3": None,
        "data": b"",
    }

    log = SqlAlchemyEvmLogBatchSource._to_log(row)

    assert log.id == "0000000017-000003"
    assert log.index_in_block == 3
    assert log.tx_hash == "0x" + "ab" * 32
    assert log.address == ERC20_TOKEN
    assert log.topics == (TRANSFER_TOPIC, address_topic(ALICE))


def test_upstream_event_id_wins():
    row = {
        "block_number": 17,
        "log_index": 3,
        "event_id": "0000000017-000042-a1b2c",
        "transaction_hash": b"\x01" * 32,
        "address": b"\x02" * 20,
        "topic0": None,
        "topic1": None,
        "topic2": None,
        "topic3": None,
        "data": None,
    }

    log = SqlAlchemyEvmLogBatchSource._to_log(row)

    assert log.id == "0000000017-000042-a1b2c"
    assert log.topics == ()
    assert log.data == b""


def test_store_turns_relation_hints_into_eager_loads():
    options = SqlAlchemyEntityStore._load_options(NfTokensDB, ("collection", "current_owner"))

    assert len(options) == 2
    assert SqlAlchemyEntityStore._load_options(NfTokensDB, None) == []
