from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Iterable, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from token_indexer.app.domain.errors import StoreError
from token_indexer.app.domain.ports.out import EntityStore

logger = logging.getLogger(__name__)

E = TypeVar("E")


def _chunks(seq: list[Any], size: int) -> Iterable[list[Any]]:
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


class SqlAlchemyEntityStore(EntityStore):
    """
    Entity store over one AsyncSession (one batch transaction).

    Reads go through the ORM and hand back detached objects: the batch cache
    owns them from then on and the session never flushes them on its own.
    Writes are Core upserts (INSERT ... ON CONFLICT (id) DO UPDATE), so saving
    a row loaded earlier in the batch and saving a brand-new one are the same
    statement.

    The caller owns the transaction (commit / rollback). SQLAlchemy errors are
    re-raised as StoreError.
    """

    def __init__(self, session: AsyncSession, *, save_chunk_size: int = 1000) -> None:
        self._session = session
        self._save_chunk_size = save_chunk_size

    async def get(
        self,
        model: type[E],
        entity_id: str,
        relations: Sequence[str] | None = None,
    ) -> E | None:
        try:
            entity = await self._session.get(
                model,
                entity_id,
                options=self._load_options(model, relations),
            )
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to get {model.__name__} {entity_id!r}") from e

        if entity is not None:
            self._session.expunge_all()
        return entity

    async def find(
        self,
        model: type[E],
        entity_ids: Sequence[str],
        relations: Sequence[str] | None = None,
    ) -> list[E]:
        if not entity_ids:
            return []

        stmt = (
            select(model)
            .where(model.id.in_(list(entity_ids)))  # type: ignore[attr-defined]
            .options(*self._load_options(model, relations))
        )
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(
                f"Failed to find {len(entity_ids)} {model.__name__} rows"
            ) from e

        entities = list(result.scalars().all())
        self._session.expunge_all()
        return entities

    async def save(self, model: type[E], entities: Sequence[E]) -> None:
        if not entities:
            return

        table = model.__table__  # type: ignore[attr-defined]
        # mapped attribute names equal column names
        columns = [c.name for c in table.columns]
        rows = [{c: getattr(entity, c) for c in columns} for entity in entities]

        try:
            for chunk in _chunks(rows, self._save_chunk_size):
                stmt = pg_insert(table).values(chunk)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[table.c.id],
                    set_={c: stmt.excluded[c] for c in columns if c != "id"},
                )
                await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to save {len(rows)} {model.__name__} rows") from e

        logger.debug("Upserted %s rows into %s", len(rows), table.fullname)

    @staticmethod
    def _load_options(model: type[Any], relations: Sequence[str] | None) -> list[Any]:
        return [selectinload(getattr(model, rel)) for rel in relations or ()]
