from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from token_indexer.app.domain.models import DecodedTokenEvent, EvmLog, TokenEventKind
from token_indexer.app.domain.ports.out import EvmEventDecoder, TokenEventDecoder
from token_indexer.app.infrastructure.decoders.token_standards.abi_event_decoder import (
    AbiEventDecoder,
)

# Resolve ABI path robustly (relative to package, not current working dir)
DEFAULT_ABI_DIR = (
    Path(__file__).resolve().parents[3]  # .../token_indexer/app/infrastructure/decoders/token_standards
    / "registry"
    / "abi"
)

# Priority order matters: ERC20 Transfer is tried before ERC721 Transfer (same topic0).
_DEFAULT_SHAPES: tuple[tuple[TokenEventKind, str, str], ...] = (
    (TokenEventKind.ERC20_TRANSFER, "ERC20.json", "Transfer"),
    (TokenEventKind.ERC721_TRANSFER, "ERC721.json", "Transfer"),
    (TokenEventKind.ERC1155_TRANSFER_SINGLE, "ERC1155.json", "TransferSingle"),
    (TokenEventKind.ERC1155_TRANSFER_BATCH, "ERC1155.json", "TransferBatch"),
    (TokenEventKind.ERC1155_URI, "ERC1155.json", "URI"),
)


class TokenStandardEventDecoder(TokenEventDecoder):
    """
    Decodes raw EVM logs into tagged token-standard events.

    Candidates are grouped by topic0 and kept in priority order. `decode` returns
    the first candidate whose shape matches; `decode_all` returns every match.
    A log that matches nothing yields None / [] and is not an error.
    """

    def __init__(
        self,
        *,
        candidates: Sequence[tuple[TokenEventKind, AbiEventDecoder]],
    ) -> None:
        self._candidates_by_topic0: dict[bytes, list[tuple[TokenEventKind, EvmEventDecoder]]] = {}
        for kind, decoder in candidates:
            self._candidates_by_topic0.setdefault(decoder.topic0, []).append((kind, decoder))

    @classmethod
    def from_abi_dir(cls, abi_dir: Path = DEFAULT_ABI_DIR) -> "TokenStandardEventDecoder":
        return cls(
            candidates=[
                (kind, AbiEventDecoder(abi_path=abi_dir / file_name, event_name=event_name))
                for kind, file_name, event_name in _DEFAULT_SHAPES
            ]
        )

    @property
    def topics(self) -> list[bytes]:
        return list(self._candidates_by_topic0)

    def decode(self, log: EvmLog) -> DecodedTokenEvent | None:
        for kind, decoder in self._candidates_for(log):
            payload = self._try_decode(decoder, log)
            if payload is not None:
                return DecodedTokenEvent(kind=kind, payload=payload)
        return None

    def decode_all(self, log: EvmLog) -> list[DecodedTokenEvent]:
        out: list[DecodedTokenEvent] = []
        for kind, decoder in self._candidates_for(log):
            payload = self._try_decode(decoder, log)
            if payload is not None:
                out.append(DecodedTokenEvent(kind=kind, payload=payload))
        return out

    def _candidates_for(self, log: EvmLog) -> list[tuple[TokenEventKind, EvmEventDecoder]]:
        topic0 = log.topic(0)
        if topic0 is None:
            return []
        return self._candidates_by_topic0.get(bytes(topic0), [])

    @staticmethod
    def _try_decode(decoder: EvmEventDecoder, log: EvmLog) -> dict | None:
        if len(log.topics) > 4:
            return None
        return decoder.decode(
            topic0=log.topic(0),
            topic1=log.topic(1),
            topic2=log.topic(2),
            topic3=log.topic(3),
            data=log.data,
        )
