from __future__ import annotations

from dataclasses import dataclass
import importlib
import json
from typing import Any

from infodoc.domain.errors import DocumentConflictError, DocumentNotFoundError
from infodoc.domain.error_taxonomy import CONFLICT, NOT_FOUND
from infodoc.domain.ids import new_revision_token
from infodoc.domain.models import BatchRow, WriteResult
from infodoc.repositories.revisions import materialize, next_generation, split_document
from infodoc.repositories.sql_loader import load_sql

try:
    asyncpg_module = importlib.import_module("asyncpg")
except ModuleNotFoundError:  # pragma: no cover
    asyncpg_module = None  # type: ignore[assignment]


SQL_GET_DOCUMENT = load_sql("get_document.sql")
SQL_GET_DOCUMENTS = load_sql("get_documents.sql")
SQL_LOCK_DOCUMENT = load_sql("lock_document.sql")
SQL_INSERT_DOCUMENT = load_sql("insert_document.sql")
SQL_UPDATE_DOCUMENT = load_sql("update_document.sql")


@dataclass
class AsyncpgPoolManager:
    dsn: str
    pool: Any | None = None

    async def startup(self) -> None:
        if asyncpg_module is None:  # pragma: no cover
            raise RuntimeError("asyncpg is required for postgres store mode")

        async def _init_connection(conn: Any) -> None:
            await conn.set_type_codec(
                "json",
                encoder=json.dumps,
                decoder=json.loads,
                schema="pg_catalog",
            )
            await conn.set_type_codec(
                "jsonb",
                encoder=json.dumps,
                decoder=json.loads,
                schema="pg_catalog",
            )

        self.pool = await asyncpg_module.create_pool(
            dsn=self.dsn,
            min_size=1,
            max_size=5,
            init=_init_connection,
        )

    async def shutdown(self) -> None:
        if self.pool is None:
            return
        await self.pool.close()
        self.pool = None


@dataclass
class PostgresDocumentStore:
    """Document store over a shared JSONB table, one logical database per `name`."""

    pool_manager: AsyncpgPoolManager
    name: str

    def _pool(self) -> Any:
        if self.pool_manager.pool is None:
            raise RuntimeError("postgres pool is not initialized")
        return self.pool_manager.pool

    async def get(self, doc_id: str) -> dict[str, Any]:
        pool = self._pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(SQL_GET_DOCUMENT, self.name, doc_id)
        if row is None:
            raise DocumentNotFoundError("missing", doc_id=doc_id)
        return materialize(row["doc_id"], row["rev"], dict(row["body"]))

    async def put(self, doc: dict[str, Any]) -> str:
        pool = self._pool()
        async with pool.acquire() as conn:
            return await self._write(conn, doc)

    async def batch_get(self, doc_ids: list[str]) -> list[BatchRow]:
        if not doc_ids:
            return []
        pool = self._pool()
        async with pool.acquire() as conn:
            rows = await conn.fetch(SQL_GET_DOCUMENTS, self.name, list(doc_ids))
        found = {row["doc_id"]: materialize(row["doc_id"], row["rev"], dict(row["body"])) for row in rows}
        return [
            BatchRow(key=doc_id, doc=found[doc_id]) if doc_id in found else BatchRow(key=doc_id, error=NOT_FOUND)
            for doc_id in doc_ids
        ]

    async def batch_write(self, docs: list[dict[str, Any]]) -> list[WriteResult]:
        results: list[WriteResult] = []
        if not docs:
            return results
        pool = self._pool()
        async with pool.acquire() as conn:
            for doc in docs:
                doc_id = str(doc.get("_id"))
                try:
                    rev = await self._write(conn, doc)
                except DocumentConflictError as exc:
                    results.append(WriteResult(id=doc_id, error=CONFLICT, reason=str(exc)))
                    continue
                results.append(WriteResult(id=doc_id, rev=rev))
        return results

    async def _write(self, conn: Any, doc: dict[str, Any]) -> str:
        doc_id, incoming_rev, deleted, body = split_document(doc)
        async with conn.transaction():
            current = await conn.fetchrow(SQL_LOCK_DOCUMENT, self.name, doc_id)
            generation = next_generation(
                doc_id=doc_id,
                current_rev=current["rev"] if current is not None else None,
                current_deleted=bool(current["deleted"]) if current is not None else False,
                incoming_rev=incoming_rev,
            )
            rev = new_revision_token(generation)
            if current is None:
                written = await conn.fetchval(SQL_INSERT_DOCUMENT, self.name, doc_id, rev, body, deleted)
            else:
                written = await conn.fetchval(SQL_UPDATE_DOCUMENT, self.name, doc_id, rev, body, deleted)
            if written is None:
                # Lost an insert race against another writer.
                raise DocumentConflictError("Document update conflict.", doc_id=doc_id)
            return str(written)
