from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import os

from infodoc.api.handlers.deps import ApiDeps
from infodoc.domain.contracts import DocumentStore
from infodoc.repositories.postgres import AsyncpgPoolManager, PostgresDocumentStore
from infodoc.repositories.stub import InMemoryDocumentStore
from infodoc.services.info_docs import InfoDocService, initialize
from infodoc.services.retry import retry_policy_from_env

DEFAULT_CANONICAL_DB = "infodoc"
DEFAULT_LEGACY_DB = "legacy"


@dataclass(frozen=True)
class StoreSettings:
    database_url: str | None = None
    canonical_db: str = DEFAULT_CANONICAL_DB
    legacy_db: str = DEFAULT_LEGACY_DB

    @property
    def mode(self) -> str:
        return "postgres" if self.database_url else "memory"


@dataclass
class RuntimeContainer:
    canonical: DocumentStore
    legacy: DocumentStore
    service: InfoDocService
    api_deps: ApiDeps
    settings: StoreSettings
    on_startup: Callable[[], Awaitable[None]] | None
    on_shutdown: Callable[[], Awaitable[None]] | None


def store_settings_from_env() -> StoreSettings:
    return StoreSettings(
        database_url=os.getenv("DATABASE_URL") or None,
        canonical_db=os.getenv("INFODOC_CANONICAL_DB") or DEFAULT_CANONICAL_DB,
        legacy_db=os.getenv("INFODOC_LEGACY_DB") or DEFAULT_LEGACY_DB,
    )


def build_runtime_container(settings: StoreSettings | None = None) -> RuntimeContainer:
    settings = settings or store_settings_from_env()
    on_startup: Callable[[], Awaitable[None]] | None = None
    on_shutdown: Callable[[], Awaitable[None]] | None = None
    canonical: DocumentStore
    legacy: DocumentStore
    if settings.database_url:
        pool_manager = AsyncpgPoolManager(dsn=settings.database_url)
        canonical = PostgresDocumentStore(pool_manager=pool_manager, name=settings.canonical_db)
        legacy = PostgresDocumentStore(pool_manager=pool_manager, name=settings.legacy_db)
        on_startup = pool_manager.startup
        on_shutdown = pool_manager.shutdown
    else:
        canonical = InMemoryDocumentStore(name=settings.canonical_db)
        legacy = InMemoryDocumentStore(name=settings.legacy_db)

    service = initialize(canonical, legacy, retry_policy=retry_policy_from_env())
    return RuntimeContainer(
        canonical=canonical,
        legacy=legacy,
        service=service,
        api_deps=ApiDeps(service=service),
        settings=settings,
        on_startup=on_startup,
        on_shutdown=on_shutdown,
    )
