from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    DateTime,
    Index,
    Integer,
    PrimaryKeyConstraint,
    Text,
)
from sqlalchemy.dialects.postgresql import BYTEA
from sqlalchemy.orm import Mapped, mapped_column

from token_indexer.app.infrastructure.db.db_base import BaseDB


class EvmLogsDB(BaseDB):
    """
    Staging table the token indexer reads EVM logs from.

    Each row is a single EVM log entry emitted by a smart contract, uniquely
    identified within the canonical chain by (chain_id, block_number, log_index),
    together with the timestamp of its block.

    `event_id` is the id assigned by the upstream archive (substrate event id);
    when NULL the indexer derives one from (block_number, log_index).

    Binary identifiers (addresses, hashes, topics) are stored as BYTEA; the
    indexer renders them as lower-case 0x hex.
    """

    __tablename__ = "evm_logs"
    __table_args__ = (
        PrimaryKeyConstraint("chain_id", "block_number", "log_index"),
        # Typical lookup pattern: event signature + block range
        Index(
            "ix_evm_logs_chain_topic0_block",
            "chain_id",
            "topic0",
            "block_number",
        ),
        {"schema": "staging"},
    )

    # -------------------------------------------------------------------------
    # Block / chain context
    # -------------------------------------------------------------------------

    """Chain identifier."""
    chain_id: Mapped[int] = mapped_column(Integer, nullable=False)

    """Number of the block in which the log was emitted."""
    block_number: Mapped[int] = mapped_column(BigInteger, nullable=False)

    """Block timestamp (UTC)."""
    block_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # -------------------------------------------------------------------------
    # Event identity
    # -------------------------------------------------------------------------

    """Index of the log within the block (0-based, deterministic ordering)."""
    log_index: Mapped[int] = mapped_column(Integer, nullable=False)

    """Upstream event id, if the archive assigns one."""
    event_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    """Hash of the transaction that emitted the log (bytea)."""
    transaction_hash: Mapped[bytes] = mapped_column(BYTEA, nullable=False)

    # -------------------------------------------------------------------------
    # Log payload (EVM log fields)
    # -------------------------------------------------------------------------

    """Address of the contract that emitted the log (bytea)."""
    address: Mapped[bytes] = mapped_column(BYTEA, nullable=False)

    """topic0: keccak256 hash of the event signature (bytea)."""
    topic0: Mapped[bytes | None] = mapped_column(BYTEA, nullable=True)

    """topic1: first indexed event argument (bytea)."""
    topic1: Mapped[bytes | None] = mapped_column(BYTEA, nullable=True)

    """topic2: second indexed event argument (bytea)."""
    topic2: Mapped[bytes | None] = mapped_column(BYTEA, nullable=True)

    """topic3: third indexed event argument (bytea)."""
    topic3: Mapped[bytes | None] = mapped_column(BYTEA, nullable=True)

    """Event data payload (ABI-encoded, non-indexed args; bytea)."""
    data: Mapped[bytes] = mapped_column(BYTEA, nullable=False)
