from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from token_indexer.app.infrastructure.db.db_base import BaseDB, BigIntNumeric


class CollectionsDB(BaseDB):
    """
    NFT collection registry.

    One row = one ERC721 / ERC1155 contract, created by the first event seen for it.
    """

    __tablename__ = "collections"
    __table_args__ = (
        Index("ix_collections_type", "collection_type"),
        {"schema": "domain"},
    )

    id: Mapped[str] = mapped_column(Text, primary_key=True)  # contract address
    collection_type: Mapped[str] = mapped_column(String(7), nullable=False)

    created_at_block: Mapped[int] = mapped_column(BigIntNumeric, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
