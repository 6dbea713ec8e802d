from __future__ import annotations

from token_indexer.app.application.services.entities.accounts import AccountsManager
from token_indexer.app.application.services.entities.balances import (
    AccountFTokenBalancesManager,
)
from token_indexer.app.application.services.entities.entity_cache import (
    DEFAULT_PREFETCH_CHUNK_SIZE,
    EntityCache,
)
from token_indexer.app.application.services.entities.tokens import (
    CollectionsManager,
    FTokensManager,
    NfTokensManager,
)
from token_indexer.app.application.services.entities.transfers import (
    AccountFtTransfersManager,
    AccountNftTransfersManager,
    FtTransfersManager,
    NftTransfersManager,
    UriUpdateActionsManager,
)
from token_indexer.app.domain.ports.out import EntityStore, TokenContractFetcher


class EntityManagers:
    """
    Per-batch unit of work: one entity cache per kind.

    `caches` is ordered parents-first so flushing in that order never writes a
    row before the rows it references.
    """

    def __init__(
        self,
        *,
        fetcher: TokenContractFetcher,
        prefetch_chunk_size: int = DEFAULT_PREFETCH_CHUNK_SIZE,
    ) -> None:
        chunk = prefetch_chunk_size
        self.accounts = AccountsManager(prefetch_chunk_size=chunk)
        self.collections = CollectionsManager(prefetch_chunk_size=chunk)
        self.f_tokens = FTokensManager(fetcher=fetcher, prefetch_chunk_size=chunk)
        self.nf_tokens = NfTokensManager(
            fetcher=fetcher,
            collections=self.collections,
            prefetch_chunk_size=chunk,
        )
        self.uri_update_actions = UriUpdateActionsManager(prefetch_chunk_size=chunk)
        self.ft_transfers = FtTransfersManager(prefetch_chunk_size=chunk)
        self.nft_transfers = NftTransfersManager(prefetch_chunk_size=chunk)
        self.account_ft_transfers = AccountFtTransfersManager(prefetch_chunk_size=chunk)
        self.account_nft_transfers = AccountNftTransfersManager(prefetch_chunk_size=chunk)
        self.account_f_token_balances = AccountFTokenBalancesManager(
            fetcher=fetcher,
            prefetch_chunk_size=chunk,
        )

    @property
    def caches(self) -> tuple[EntityCache, ...]:
        return (
            self.accounts,
            self.collections,
            self.f_tokens,
            self.nf_tokens,
            self.uri_update_actions,
            self.ft_transfers,
            self.nft_transfers,
            self.account_ft_transfers,
            self.account_nft_transfers,
            self.account_f_token_balances,
        )

    def init(self, store: EntityStore) -> "EntityManagers":
        for cache in self.caches:
            cache.init(store)
        return self

    async def prefetch_all(self) -> None:
        for cache in self.caches:
            await cache.prefetch_all()

    async def flush_all(self) -> None:
        for cache in self.caches:
            await cache.flush_all()
