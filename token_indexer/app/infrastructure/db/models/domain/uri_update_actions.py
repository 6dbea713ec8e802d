from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from token_indexer.app.infrastructure.db.db_base import BaseDB, BigIntNumeric


class UriUpdateActionsDB(BaseDB):
    """
    Append-only audit trail of ERC-1155 URI changes (one row per URI log).
    """

    __tablename__ = "uri_update_actions"
    __table_args__ = (
        Index("ix_uri_update_actions_token", "token_id"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)  # event id
    token_id: Mapped[str] = mapped_column(Text, ForeignKey("domain.nf_tokens.id"), nullable=False)

    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    block_number: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    txn_hash: Mapped[str] = mapped_column(Text, nullable=False)
