from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from token_indexer.app.domain.ports.out import EvmEventDecoder

_MAX_INDEXED_INPUTS = 3
_WORD_SIZE = 32


class AbiEventDecoder(EvmEventDecoder):
    """
    ABI-based decoder for a single EVM event shape.

    It:
    - loads ABI from a JSON file,
    - finds the event ABI by name,
    - computes topic0 = keccak("EventName(type1,type2,...)"),
    - decodes indexed args from topics (address / uint / bytes32),
    - decodes non-indexed args from `data` with eth_abi.

    Decoding is strict about the *shape* of the log: the number of topics must
    match the number of indexed inputs, and static-only data must have the exact
    ABI length. This is what tells ERC20 Transfer (value in data) apart from
    ERC721 Transfer (tokenId in topic3), which share topic0.

    `decode` never raises for a non-matching log; it returns None.
    """

    def __init__(self, *, abi_path: Path, event_name: str) -> None:
        self._abi = self._load_abi(abi_path)
        self._event_abi = self._find_event(self._abi, event_name)
        self._signature = self._event_signature(self._event_abi)
        self._topic0 = keccak(text=self._signature)

        self._inputs: list[dict[str, Any]] = list(self._event_abi.get("inputs", []))
        self._indexed_inputs = [i for i in self._inputs if i.get("indexed") is True]
        self._non_indexed_inputs = [i for i in self._inputs if not i.get("indexed")]

        self._non_indexed_types = [i["type"] for i in self._non_indexed_inputs]
        self._non_indexed_names = [i["name"] for i in self._non_indexed_inputs]

        if len(self._indexed_inputs) > _MAX_INDEXED_INPUTS:
            indexed_names = [i.get("name") for i in self._indexed_inputs]
            raise ValueError(
                f"Event {event_name!r} declares {len(self._indexed_inputs)} indexed inputs "
                f"({indexed_names}); EVM logs carry at most {_MAX_INDEXED_INPUTS}."
            )

        # Exact data length is known only when every non-indexed type is static
        self._static_data_size: int | None = (
            _WORD_SIZE * len(self._non_indexed_types)
            if all(not self._is_dynamic(t) for t in self._non_indexed_types)
            else None
        )

    @property
    def topic0(self) -> bytes:
        return self._topic0

    @property
    def event_signature(self) -> str:
        return self._signature

    def decode(
        self,
        *,
        topic0: bytes | None,
        topic1: bytes | None,
        topic2: bytes | None,
        topic3: bytes | None,
        data: bytes,
    ) -> dict[str, Any] | None:
        # 1) must match expected event
        if topic0 is None or bytes(topic0) != self._topic0:
            return None

        # 2) topic count must equal indexed inputs count
        topics = [topic1, topic2, topic3]
        expected = len(self._indexed_inputs)
        if any(t is None for t in topics[:expected]):
            return None
        if any(t is not None for t in topics[expected:]):
            return None

        out: dict[str, Any] = {}
        for inp, topic in zip(self._indexed_inputs, topics[:expected]):
            value = self._decode_topic(inp["type"], topic)  # type: ignore[arg-type]
            if value is None:
                return None
            out[inp["name"]] = value

        # 3) non-indexed from data
        decoded_non_indexed = self._decode_non_indexed_data(bytes(data or b""))
        if decoded_non_indexed is None:
            return None
        out.update(decoded_non_indexed)

        return out

    # ---------------------------------------------------------------------
    # ABI helpers
    # ---------------------------------------------------------------------

    def _load_abi(self, abi_path: Path) -> list[dict[str, Any]]:
        if not abi_path.exists():
            raise FileNotFoundError(f"ABI file not found: {abi_path}")
        raw = abi_path.read_text(encoding="utf-8")
        data = json.loads(raw)

        # Common formats:
        # - [ ... ] (ABI list)
        # - { "abi": [ ... ] } (artifact)
        if isinstance(data, list):
            abi = data
        elif isinstance(data, dict) and "abi" in data and isinstance(data["abi"], list):
            abi = data["abi"]
        else:
            raise ValueError(
                f"Unsupported ABI JSON format in {abi_path}. Expected list or dict with 'abi' list."
            )

        return [x for x in abi if isinstance(x, dict)]

    def _find_event(self, abi: list[dict[str, Any]], event_name: str) -> dict[str, Any]:
        events = [x for x in abi if x.get("type") == "event" and x.get("name") == event_name]
        if not events:
            names = sorted({x.get("name") for x in abi if x.get("type") == "event"})
            raise ValueError(f"Event {event_name!r} not found in ABI. Available events: {names}")
        if len(events) > 1:
            raise ValueError(
                f"Multiple events named {event_name!r} found in ABI. "
                "Disambiguation by full signature is required."
            )
        return events[0]

    def _event_signature(self, event_abi: Mapping[str, Any]) -> str:
        name = event_abi.get("name")
        inputs = event_abi.get("inputs", [])
        if not isinstance(name, str) or not isinstance(inputs, list):
            raise ValueError("Invalid event ABI: missing name/inputs")
        types: list[str] = []
        for inp in inputs:
            if not isinstance(inp, dict) or "type" not in inp:
                raise ValueError("Invalid event ABI inputs")
            types.append(inp["type"])
        return f"{name}({','.join(types)})"

    def _decode_non_indexed_data(self, data: bytes) -> dict[str, Any] | None:
        if not self._non_indexed_inputs:
            # e.g. ERC721 Transfer: everything is indexed, data must be empty
            return {} if not data else None

        if self._static_data_size is not None and len(data) != self._static_data_size:
            return None

        try:
            values = abi_decode(self._non_indexed_types, data)
        except (DecodingError, OverflowError, ValueError):
            return None

        out: dict[str, Any] = {}
        for name, typ, val in zip(
            self._non_indexed_names, self._non_indexed_types, values, strict=True
        ):
            out[name] = self._normalize_abi_value(typ, val)
        return out

    # ---------------------------------------------------------------------
    # Topic / ABI value normalization
    # ---------------------------------------------------------------------

    @staticmethod
    def _is_dynamic(typ: str) -> bool:
        return typ in ("string", "bytes") or typ.endswith("[]")

    def _decode_topic(self, typ: str, topic: bytes) -> Any:
        t = bytes(topic)
        if len(t) != _WORD_SIZE:
            return None

        if typ == "address":
            # left-zero padded to 32 bytes
            if any(t[:12]):
                return None
            return "0x" + t[-20:].hex()

        if typ.startswith("uint"):
            return int.from_bytes(t, byteorder="big", signed=False)

        if typ.startswith("int"):
            return int.from_bytes(t, byteorder="big", signed=True)

        # bytes32, or keccak of an indexed dynamic value
        return t

    def _normalize_abi_value(self, typ: str, val: Any) -> Any:
        if typ == "address":
            if isinstance(val, str):
                return val.lower()
            if isinstance(val, (bytes, bytearray)) and len(val) == 20:
                return "0x" + bytes(val).hex()
            return val

        if typ.endswith("[]"):
            item_type = typ[:-2]
            return [self._normalize_abi_value(item_type, v) for v in val]

        if typ.startswith("uint") or typ.startswith("int"):
            if isinstance(val, int):
                return val
            return int(val)

        if typ.startswith("bytes"):
            if isinstance(val, (bytes, bytearray, memoryview)):
                return bytes(val)
            return val

        return val
