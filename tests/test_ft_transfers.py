from __future__ import annotations

import pytest

from helpers import ALICE, BOB, CAROL, ERC20_TOKEN, ZERO, erc20_transfer, make_block
from token_indexer.app.domain import ids
from token_indexer.app.domain.models import TokenDetails, TransferDirection, TransferType
from token_indexer.app.infrastructure.db.models.domain.account_f_token_balances import (
    AccountFTokenBalancesDB,
)
from token_indexer.app.infrastructure.db.models.domain.account_transfers import (
    AccountFtTransfersDB,
)
from token_indexer.app.infrastructure.db.models.domain.accounts import AccountsDB
from token_indexer.app.infrastructure.db.models.domain.tokens import FTokensDB
from token_indexer.app.infrastructure.db.models.domain.transfers import FtTransfersDB


def _balance(store, account: str) -> int:
    row = store.load(AccountFTokenBalancesDB, ids.account_balance_id(account, ERC20_TOKEN))
    return row.amount


@pytest.mark.asyncio
async def test_balances_move_incrementally_within_a_batch(processor, store):
    blocks = [
        make_block(100, erc20_transfer(sender=ALICE, receiver=BOB, value=100, block=100)),
        make_block(101, erc20_transfer(sender=BOB, receiver=CAROL, value=40, block=101)),
    ]

    stats = await processor.process_batch(store=store, blocks=blocks)

    assert stats.applied == {"erc20_transfer": 2}
    assert _balance(store, ALICE) == -100
    assert _balance(store, BOB) == 60
    assert _balance(store, CAROL) == 40


@pytest.mark.asyncio
async def test_missing_balance_is_bootstrapped_from_previous_block(processor, store, fetcher):
    fetcher.balances[(ERC20_TOKEN, ALICE)] = 500

    await processor.process_batch(
        store=store,
        blocks=[make_block(100, erc20_transfer(sender=ALICE, receiver=BOB, value=100, block=100))],
    )

    assert _balance(store, ALICE) == 400
    assert _balance(store, BOB) == 100
    assert (ERC20_TOKEN, ALICE, 99) in fetcher.balance_calls


@pytest.mark.asyncio
async def test_existing_balance_is_not_read_on_chain(processor, store, fetcher):
    store.seed(
        AccountFTokenBalancesDB(
            id=ids.account_balance_id(ALICE, ERC20_TOKEN),
            account_id=ALICE,
            token_id=ERC20_TOKEN,
            amount=1_000,
            updated_at_block=1,
            updated_at=None,
        )
    )

    await processor.process_batch(
        store=store,
        blocks=[make_block(100, erc20_transfer(sender=ALICE, receiver=BOB, value=100, block=100))],
    )

    assert _balance(store, ALICE) == 900
    assert [c for c in fetcher.balance_calls if c[1] == ALICE] == []


@pytest.mark.asyncio
async def test_mint_creates_transfer_join_rows_and_counters(processor, store, fetcher):
    fetcher.details[ERC20_TOKEN] = TokenDetails(name="Token", symbol="TKN", decimals=18)
    log = erc20_transfer(sender=ZERO, receiver=ALICE, value=5, block=100, index=3)

    await processor.process_batch(store=store, blocks=[make_block(100, log)])

    transfer = store.load(FtTransfersDB, log.id)
    assert transfer.transfer_type == TransferType.MINT.value
    assert (transfer.from_id, transfer.to_id, transfer.token_id) == (ZERO, ALICE, ERC20_TOKEN)
    assert (transfer.block_number, transfer.event_index, transfer.amount) == (100, 3, 5)

    joins = {row.account_id: row.direction for row in store.all(AccountFtTransfersDB)}
    assert joins == {ZERO: TransferDirection.FROM.value, ALICE: TransferDirection.TO.value}

    token = store.load(FTokensDB, ERC20_TOKEN)
    assert (token.name, token.symbol, token.decimals, token.contract_standard) == ("Token", "TKN", 18, "ERC20")

    alice = store.load(AccountsDB, ALICE)
    assert (alice.transfers_received_count, alice.transfers_sent_count, alice.transfers_total_count) == (1, 0, 1)
    assert _balance(store, ZERO) == -5


@pytest.mark.asyncio
async def test_token_metadata_is_read_once_per_batch(processor, store, fetcher):
    logs = [erc20_transfer(sender=ALICE, receiver=BOB, value=1, block=100, index=i) for i in range(3)]

    await processor.process_batch(store=store, blocks=[make_block(100, *logs)])

    assert len([c for c in fetcher.details_calls if c[0] == ERC20_TOKEN]) == 1


@pytest.mark.asyncio
async def test_incomplete_token_metadata_is_patched_but_decimals_kept(processor, store, fetcher):
    store.seed(
        FTokensDB(
            id=ERC20_TOKEN,
            contract_address=ERC20_TOKEN,
            contract_standard="ERC20",
            name=None,
            symbol="OLD",
            decimals=None,
        )
    )
    fetcher.details[ERC20_TOKEN] = TokenDetails(name="Late Name", symbol="NEW", decimals=6)
    logs = [erc20_transfer(sender=ALICE, receiver=BOB, value=1, block=100, index=i) for i in range(2)]

    await processor.process_batch(store=store, blocks=[make_block(100, *logs)])

    token = store.load(FTokensDB, ERC20_TOKEN)
    assert (token.name, token.symbol, token.decimals) == ("Late Name", "NEW", None)
    assert len(fetcher.details_calls) == 1


@pytest.mark.asyncio
async def test_account_is_fetched_at_most_once_per_batch(processor, store):
    logs = [erc20_transfer(sender=ALICE, receiver=BOB, value=1, block=100, index=i) for i in range(5)]

    await processor.process_batch(store=store, blocks=[make_block(100, *logs)])

    assert store.requested_ids(AccountsDB).count(ALICE) == 1
    assert store.requested_ids(AccountsDB).count(BOB) == 1
    assert store.load(AccountsDB, ALICE).transfers_sent_count == 5


@pytest.mark.asyncio
async def test_replaying_a_committed_batch_changes_nothing(processor, store):
    blocks = [
        make_block(100, erc20_transfer(sender=ALICE, receiver=BOB, value=100, block=100)),
        make_block(101, erc20_transfer(sender=BOB, receiver=CAROL, value=40, block=101)),
    ]
    await processor.process_batch(store=store, blocks=blocks)

    stats = await processor.process_batch(store=store, blocks=blocks)

    assert stats.applied_total == 0
    assert stats.already_indexed == 2
    assert _balance(store, BOB) == 60
    assert store.load(AccountsDB, BOB).transfers_total_count == 2
