from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Any

from web3 import AsyncWeb3
from web3.contract.async_contract import AsyncContract
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from token_indexer.app.domain.models import ContractStandard, TokenDetails
from token_indexer.app.domain.ports.out import TokenContract, TokenContractFetcher
from token_indexer.app.domain.sanitize import sanitize_call_result, sanitize_uri

logger = logging.getLogger(__name__)

# Minimal ABI fragments
_ERC20_ABI_STD = [
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
    {"name": "decimals", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "uint8"}]},
    {"name": "balanceOf", "type": "function", "stateMutability": "view", "inputs": [{"name": "owner", "type": "address"}], "outputs": [{"name": "", "type": "uint256"}]},
]

_ERC20_ABI_LEGACY = [
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "bytes32"}]},
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "bytes32"}]},
]

# ERC721 exposes tokenURI, ERC1155 exposes uri; name/symbol are optional extensions
_NFT_ABI = [
    {"name": "name", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
    {"name": "symbol", "type": "function", "stateMutability": "view", "inputs": [], "outputs": [{"name": "", "type": "string"}]},
    {"name": "uri", "type": "function", "stateMutability": "view", "inputs": [{"name": "id", "type": "uint256"}], "outputs": [{"name": "", "type": "string"}]},
    {"name": "tokenURI", "type": "function", "stateMutability": "view", "inputs": [{"name": "tokenId", "type": "uint256"}], "outputs": [{"name": "", "type": "string"}]},
]

_URI_FUNCTIONS = ("uri", "tokenURI")
DEFAULT_MAX_CACHED_CONTRACTS = 1024


class Web3TokenContract(TokenContract):
    """
    Read-only token contract bound to one block height.

    Every call goes out with block_identifier=block_height, so the view is the
    same whichever event asked for it. Each read is isolated: a revert, a
    provider error or a timeout turns that one field into None.
    """

    def __init__(
        self,
        *,
        contract: AsyncContract,
        legacy_contract: AsyncContract | None,
        contract_standard: ContractStandard,
        block_height: int,
        call_timeout: float,
    ) -> None:
        self._contract = contract
        self._legacy_contract = legacy_contract
        self._contract_standard = contract_standard
        self._block_height = block_height
        self._call_timeout = call_timeout

    @property
    def address(self) -> str:
        return self._contract.address

    async def read_details(self, *, token_id: int | None = None) -> TokenDetails:
        raw_name, raw_symbol, decimals, uri = await asyncio.gather(
            self._safe_call(self._contract, "name"),
            self._safe_call(self._contract, "symbol"),
            self._read_decimals(),
            self._read_uri(token_id),
        )

        name = sanitize_call_result(raw_name)
        symbol = sanitize_call_result(raw_symbol)

        # Fallback to bytes32 ABI ONLY for missing fields
        if self._legacy_contract is not None:
            if name is None:
                name = sanitize_call_result(await self._safe_call(self._legacy_contract, "name"))
            if symbol is None:
                symbol = sanitize_call_result(await self._safe_call(self._legacy_contract, "symbol"))

        return TokenDetails(name=name, symbol=symbol, decimals=decimals, uri=uri)

    async def balance_of(self, account_address: str) -> int | None:
        if self._contract_standard != ContractStandard.ERC20:
            return None
        owner = AsyncWeb3.to_checksum_address(account_address)
        raw = await self._safe_call(self._contract, "balanceOf", owner)
        if isinstance(raw, int) and raw >= 0:
            return raw
        return None

    async def _read_decimals(self) -> int | None:
        if self._contract_standard != ContractStandard.ERC20:
            return None
        raw = await self._safe_call(self._contract, "decimals")
        if isinstance(raw, int) and 0 <= raw <= 255:
            return int(raw)
        return None

    async def _read_uri(self, token_id: int | None) -> str | None:
        if token_id is None or self._contract_standard == ContractStandard.ERC20:
            return None
        # only one of them is expected to exist per standard
        for fn_name in _URI_FUNCTIONS:
            uri = sanitize_uri(await self._safe_call(self._contract, fn_name, token_id))
            if uri is not None:
                return uri
        return None

    async def _safe_call(self, contract: AsyncContract, fn_name: str, *args: Any) -> Any | None:
        try:
            fn = getattr(contract.functions, fn_name)
            return await asyncio.wait_for(
                fn(*args).call(block_identifier=self._block_height),
                timeout=self._call_timeout,
            )
        except asyncio.TimeoutError:
            logger.debug(
                "Contract call timed out: %s.%s at block %s (timeout=%ss)",
                contract.address,
                fn_name,
                self._block_height,
                self._call_timeout,
            )
            return None
        except (BadFunctionCallOutput, ContractLogicError, ValueError) as e:
            # Missing function, proxy weirdness, revert, or empty response
            logger.debug(
                "Contract call failed: %s.%s at block %s: %s",
                contract.address,
                fn_name,
                self._block_height,
                e,
            )
            return None
        except Exception as e:
            # Network / provider error
            logger.debug(
                "Contract call error: %s.%s at block %s: %r",
                contract.address,
                fn_name,
                self._block_height,
                e,
            )
            return None


class Web3TokenContractFetcher(TokenContractFetcher):
    """
    Builds block-bound token contract clients on top of AsyncWeb3.

    AsyncContract objects are cached per (address, standard), least recently
    used first out once `max_cached_contracts` is exceeded. The block height is
    applied per call, so a cached object is safe to reuse across blocks.
    """

    def __init__(
        self,
        *,
        w3: AsyncWeb3,
        call_timeout: float = 5.0,
        max_cached_contracts: int = DEFAULT_MAX_CACHED_CONTRACTS,
    ) -> None:
        if max_cached_contracts <= 0:
            raise ValueError("max_cached_contracts must be positive")
        self._w3 = w3
        self._call_timeout = call_timeout
        self._max_cached_contracts = max_cached_contracts
        self._contracts: OrderedDict[tuple[str, ContractStandard], tuple[AsyncContract, AsyncContract | None]] = (
            OrderedDict()
        )

    def contract(
        self,
        *,
        contract_address: str,
        contract_standard: ContractStandard,
        block_height: int,
    ) -> Web3TokenContract:
        contract, legacy_contract = self._get_contracts(contract_address, contract_standard)
        return Web3TokenContract(
            contract=contract,
            legacy_contract=legacy_contract,
            contract_standard=contract_standard,
            block_height=block_height,
            call_timeout=self._call_timeout,
        )

    def _get_contracts(
        self,
        contract_address: str,
        contract_standard: ContractStandard,
    ) -> tuple[AsyncContract, AsyncContract | None]:
        key = (contract_address.lower(), contract_standard)
        cached = self._contracts.get(key)
        if cached is not None:
            self._contracts.move_to_end(key)
            return cached

        # web3 expects checksum hex string
        addr_hex = self._w3.to_checksum_address(contract_address)

        if contract_standard == ContractStandard.ERC20:
            contracts = (
                self._w3.eth.contract(address=addr_hex, abi=_ERC20_ABI_STD),
                self._w3.eth.contract(address=addr_hex, abi=_ERC20_ABI_LEGACY),
            )
        else:
            contracts = (self._w3.eth.contract(address=addr_hex, abi=_NFT_ABI), None)

        self._contracts[key] = contracts
        if len(self._contracts) > self._max_cached_contracts:
            self._contracts.popitem(last=False)
        return contracts
