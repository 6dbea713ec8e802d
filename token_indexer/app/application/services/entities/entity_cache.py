from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Generic, Protocol, TypeVar

from token_indexer.app.domain.errors import CacheFlushedError, NotInitializedError
from token_indexer.app.domain.ports.out import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_PREFETCH_CHUNK_SIZE = 1000


class EntityWithId(Protocol):
    id: Any


E = TypeVar("E", bound=EntityWithId)


def _chunks(seq: list[Any], size: int) -> Iterable[list[Any]]:
    for i in range(0, len(seq), size):
        yield seq[i : i + size]


class EntityCache(Generic[E]):
    """
    Batch-scoped cache for one entity kind (unit of work).

    It is the single source of truth for "was this entity already touched in
    this batch": reads hit the cache first and fall back to the store, writes
    only touch memory, and `flush_all` persists everything with one bulk save.

    Lifecycle per batch: init(store) -> [add_prefetch_id, prefetch_all] ->
    get/add ... -> flush_all. After flush, `add` fails until the next `init`.
    """

    # eager-load hints used when the call passes none
    relations: Sequence[str] = ()

    def __init__(
        self,
        entity: type[E],
        *,
        prefetch_chunk_size: int = DEFAULT_PREFETCH_CHUNK_SIZE,
    ) -> None:
        if prefetch_chunk_size <= 0:
            raise ValueError("prefetch_chunk_size must be positive")
        self.entity = entity
        self._prefetch_chunk_size = prefetch_chunk_size
        self._store: EntityStore | None = None
        self._flushed = False
        self._entities: dict[str, E] = {}
        # ids the store was already asked for and did not have
        self._missing: set[str] = set()
        self._prefetch_ids: list[str] = []

    @property
    def kind(self) -> str:
        return self.entity.__name__

    def init(self, store: EntityStore) -> "EntityCache[E]":
        self._store = store
        self._flushed = False
        self._entities.clear()
        self._missing.clear()
        self._prefetch_ids.clear()
        self._on_init()
        return self

    def _on_init(self) -> None:
        """Hook for subclasses holding extra per-batch state."""

    @property
    def store(self) -> EntityStore:
        if self._store is None:
            raise NotInitializedError(f"{self.kind} cache is not bound to a store")
        return self._store

    def __len__(self) -> int:
        return len(self._entities)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def cached(self) -> list[E]:
        return list(self._entities.values())

    def add(self, entity: E) -> None:
        _ = self.store
        if self._flushed:
            raise CacheFlushedError(
                f"{self.kind} cache was already flushed for this batch; cannot add {entity.id!r}"
            )
        self._entities[entity.id] = entity
        self._missing.discard(entity.id)

    def add_prefetch_id(self, entity_id: str | Sequence[str]) -> None:
        """Add entity id(s) to the list for the prefetch pass."""
        _ = self.store
        if isinstance(entity_id, str):
            self._prefetch_ids.append(entity_id)
        else:
            self._prefetch_ids.extend(entity_id)

    @property
    def prefetch_ids(self) -> list[str]:
        return list(self._prefetch_ids)

    async def prefetch_all(self, relations: Sequence[str] | None = None) -> None:
        """
        Load every collected id with chunked bulk `find` calls and cache the results.

        Ids already cached are not requested again. The collected list is
        cleared afterwards; with nothing collected this is a no-op.
        """
        store = self.store
        if not self._prefetch_ids:
            return

        ids = [
            i
            for i in dict.fromkeys(self._prefetch_ids)
            if i not in self._entities and i not in self._missing
        ]
        self._prefetch_ids.clear()
        if not ids:
            return

        found = 0
        for chunk in _chunks(ids, self._prefetch_chunk_size):
            for entity in await store.find(self.entity, chunk, self._relations(relations)):
                self._entities[entity.id] = entity
                found += 1

        self._missing.update(i for i in ids if i not in self._entities)

        logger.debug(
            "Prefetched %s: requested=%s found=%s",
            self.kind,
            len(ids),
            found,
        )

    async def get(self, entity_id: str, relations: Sequence[str] | None = None) -> E | None:
        """
        Get entity from the batch cache, or from the store when not cached.

        Each id goes to the store at most once per batch: a store hit is cached,
        a store miss is remembered. No placeholder is cached on a miss.
        """
        store = self.store
        entity = self._entities.get(entity_id)
        if entity is not None:
            return entity
        if entity_id in self._missing:
            return None

        entity = await store.get(self.entity, entity_id, self._relations(relations))
        if entity is None:
            self._missing.add(entity_id)
        elif not self._flushed:
            self._entities[entity_id] = entity
        return entity

    def _relations(self, relations: Sequence[str] | None) -> Sequence[str] | None:
        if relations is not None:
            return relations
        return self.relations or None

    async def flush_all(self) -> None:
        """
        Save all cached entities at once and clear the cache.

        Must be the last operation of the batch.
        """
        store = self.store
        entities = list(self._entities.values())
        if entities:
            await store.save(self.entity, entities)
            logger.debug("Flushed %s: saved=%s", self.kind, len(entities))
        self._entities.clear()
        self._missing.clear()
        self._prefetch_ids.clear()
        self._flushed = True
