from __future__ import annotations

import asyncio

import pytest
from web3.exceptions import ContractLogicError

from helpers import ALICE, ERC20_TOKEN
from token_indexer.app.domain.models import ContractStandard
from token_indexer.app.infrastructure.fetchers.token_contract_fetcher import (
    Web3TokenContract,
    Web3TokenContractFetcher,
)


class _Call:
    def __init__(self, contract: "_FakeContract", fn_name: str, args: tuple) -> None:
        self._contract = contract
        self._fn_name = fn_name
        self._args = args

    async def call(self, *, block_identifier):
        self._contract.calls.append((self._fn_name, self._args, block_identifier))
        result = self._contract.results.get(self._fn_name)
        if isinstance(result, BaseException):
            raise result
        if result == "hang":
            await asyncio.sleep(10)
        return result


class _Functions:
    def __init__(self, contract: "_FakeContract") -> None:
        self._contract = contract

    def __getattr__(self, fn_name: str):
        return lambda *args: _Call(self._contract, fn_name, args)


class _FakeContract:
    """Stands in for web3's AsyncContract: contract.functions.<fn>(*args).call(...)."""

    def __init__(self, results: dict) -> None:
        self.address = ERC20_TOKEN
        self.results = results
        self.calls: list = []
        self.functions = _Functions(self)


def _erc20(results: dict, legacy: dict | None = None, *, timeout: float = 0.05) -> Web3TokenContract:
    return Web3TokenContract(
        contract=_FakeContract(results),
        legacy_contract=_FakeContract(legacy) if legacy is not None else None,
        contract_standard=ContractStandard.ERC20,
        block_height=1234,
        call_timeout=timeout,
    )


@pytest.mark.asyncio
async def test_details_are_sanitized_and_bound_to_block():
    contract = _erc20({"name": "My\x00Token", "symbol": "MTK", "decimals": 18})

    details = await contract.read_details()

    assert (details.name, details.symbol, details.decimals, details.uri) == ("MyToken", "MTK", 18, None)
    assert {c[2] for c in contract._contract.calls} == {1234}


@pytest.mark.asyncio
async def test_each_field_fails_independently():
    contract = _erc20(
        {
            "name": "hang",
            "symbol": ContractLogicError("execution reverted"),
            "decimals": 6,
        }
    )

    details = await contract.read_details()

    assert (details.name, details.symbol, details.decimals) == (None, None, 6)


@pytest.mark.asyncio
async def test_bytes32_fallback_fills_only_missing_fields():
    contract = _erc20(
        {"name": ContractLogicError("bad output"), "symbol": "SYM", "decimals": 300},
        legacy={"name": b"Maker" + b"\x00" * 27, "symbol": b"IGNORED" + b"\x00" * 25},
    )

    details = await contract.read_details()

    assert (details.name, details.symbol, details.decimals) == ("Maker", "SYM", None)


@pytest.mark.asyncio
async def test_uri_is_tried_then_token_uri_for_nfts():
    contract = Web3TokenContract(
        contract=_FakeContract({"uri": ContractLogicError("no uri"), "tokenURI": "ipfs://5"}),
        legacy_contract=None,
        contract_standard=ContractStandard.ERC721,
        block_height=1,
        call_timeout=0.05,
    )

    details = await contract.read_details(token_id=5)

    assert details.uri == "ipfs://5"
    assert details.decimals is None
    assert [c[0] for c in contract._contract.calls if c[0] in ("uri", "tokenURI")] == ["uri", "tokenURI"]


@pytest.mark.asyncio
async def test_balance_of_reads_erc20_only():
    erc20 = _erc20({"balanceOf": 42})
    assert await erc20.balance_of(ALICE) == 42

    failing = _erc20({"balanceOf": ValueError("boom")})
    assert await failing.balance_of(ALICE) is None


class _FakeEth:
    def __init__(self) -> None:
        self.built: list[str] = []

    def contract(self, *, address, abi):
        self.built.append(address)
        return _FakeContract({})


class _FakeWeb3:
    def __init__(self) -> None:
        self.eth = _FakeEth()

    @staticmethod
    def to_checksum_address(address: str) -> str:
        return address


def test_contract_clients_are_cached_with_lru_eviction():
    w3 = _FakeWeb3()
    fetcher = Web3TokenContractFetcher(w3=w3, max_cached_contracts=2)

    def touch(address: str) -> None:
        fetcher.contract(contract_address=address, contract_standard=ContractStandard.ERC721, block_height=1)

    touch("0xa")
    touch("0xb")
    touch("0xa")
    touch("0xc")  # evicts 0xb, the least recently used
    touch("0xa")
    touch("0xb")

    assert w3.eth.built == ["0xa", "0xb", "0xc", "0xb"]


def test_contract_cache_size_must_be_positive():
    with pytest.raises(ValueError):
        Web3TokenContractFetcher(w3=_FakeWeb3(), max_cached_contracts=0)
