from __future__ import annotations


class TokenIndexerError(Exception):
    """Base class for token indexer errors."""


class NotInitializedError(TokenIndexerError):
    """Entity cache used before it was bound to a store for the batch."""


class CacheFlushedError(TokenIndexerError):
    """Entity cache mutated after the batch was flushed."""


class MissingEntityError(TokenIndexerError):
    """An event references an entity that must already exist but does not."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"{kind} {entity_id!r} does not exist")
        self.kind = kind
        self.entity_id = entity_id


class InvalidEventError(TokenIndexerError):
    """Decoded event payload is structurally unusable."""


class StoreError(TokenIndexerError):
    """The durable entity store failed; the batch cannot be committed."""
