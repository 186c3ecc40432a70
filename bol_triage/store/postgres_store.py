from typing import Any

from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import AsyncConnectionPool

from bol_triage.documents.exceptions import DocumentNotFoundError, StaleGenerationError
from bol_triage.documents.models import (
    Document,
    DocumentDraft,
    DocumentStatus,
    ProcessingStage,
)
from bol_triage.documents.serialization import (
    errors_from_list,
    errors_to_list,
    issues_from_list,
    issues_to_list,
    record_from_dict,
    record_to_dict,
)
from bol_triage.store.base import BaseDocumentStore

_COLUMNS = (
    "id, filename, file_size, mime_type, status, uploaded_at, processed_at, "
    "confidence, extracted_data, validation_issues, processing_errors, "
    "processing_progress, processing_stage, generation, rejected"
)

_UPDATABLE_COLUMNS = frozenset({
    "filename",
    "file_size",
    "mime_type",
    "uploaded_at",
    "status",
    "processed_at",
    "confidence",
    "extracted_data",
    "validation_issues",
    "processing_errors",
    "processing_progress",
    "processing_stage",
    "generation",
    "rejected",
})


class PostgresDocumentStore(BaseDocumentStore):
    """Document store on a ``bol_documents`` table with JSONB payload columns."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def create(self, draft: DocumentDraft) -> Document:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"""
                    INSERT INTO bol_documents (filename, file_size, mime_type, status)
                    VALUES (%s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (draft.filename, draft.file_size, draft.mime_type, str(DocumentStatus.PROCESSING)),
                )
                row = await cur.fetchone()
            await conn.commit()
        return _row_to_document(row)

    async def get(self, document_id: int) -> Document:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"SELECT {_COLUMNS} FROM bol_documents WHERE id = %s",
                    (document_id,),
                )
                row = await cur.fetchone()
        if row is None:
            raise DocumentNotFoundError(f"Document {document_id} not found")
        return _row_to_document(row)

    async def list_all(self) -> list[Document]:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"SELECT {_COLUMNS} FROM bol_documents ORDER BY uploaded_at DESC, id DESC"
                )
                rows = await cur.fetchall()
        return [_row_to_document(row) for row in rows]

    async def list_by_status(self, status: DocumentStatus) -> list[Document]:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(
                    f"""
                    SELECT {_COLUMNS} FROM bol_documents
                    WHERE status = %s
                    ORDER BY uploaded_at DESC, id DESC
                    """,
                    (str(status),),
                )
                rows = await cur.fetchall()
        return [_row_to_document(row) for row in rows]

    async def update(
        self,
        document_id: int,
        changes: dict[str, Any],
        *,
        expected_generation: int | None = None,
    ) -> Document:
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        if not changes:
            return await self.get(document_id)

        assignments = sql.SQL(", ").join(
            sql.SQL("{} = %s").format(sql.Identifier(name)) for name in changes
        )
        params: list[Any] = [_to_column_value(name, value) for name, value in changes.items()]
        condition = sql.SQL("id = %s")
        params.append(document_id)
        if expected_generation is not None:
            condition = sql.SQL("id = %s AND generation = %s")
            params.append(expected_generation)
        query = sql.SQL("UPDATE bol_documents SET {} WHERE {} RETURNING {}").format(
            assignments, condition, sql.SQL(_COLUMNS)
        )

        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                row = await cur.fetchone()
            await conn.commit()

        if row is None:
            current = await self.get(document_id)
            raise StaleGenerationError(
                f"Document {document_id} is on generation {current.generation}, "
                f"not {expected_generation}"
            )
        return _row_to_document(row)

    async def close(self) -> None:
        await self._pool.close()

    async def delete(self, document_id: int) -> bool:
        async with self._pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("DELETE FROM bol_documents WHERE id = %s", (document_id,))
                deleted = cur.rowcount > 0
            await conn.commit()
        return deleted


def _to_column_value(name: str, value: Any) -> Any:
    if name == "extracted_data":
        return Jsonb(record_to_dict(value)) if value is not None else None
    if name == "validation_issues":
        issues = issues_to_list(value)
        return Jsonb(issues) if issues is not None else None
    if name == "processing_errors":
        errors = errors_to_list(value)
        return Jsonb(errors) if errors is not None else None
    if name in ("status", "processing_stage"):
        return str(value)
    return value


def _row_to_document(row: dict[str, Any]) -> Document:
    extracted = row["extracted_data"]
    return Document(
        id=row["id"],
        filename=row["filename"],
        file_size=row["file_size"],
        mime_type=row["mime_type"],
        uploaded_at=row["uploaded_at"],
        status=DocumentStatus(row["status"]),
        processed_at=row["processed_at"],
        confidence=row["confidence"],
        extracted_data=record_from_dict(extracted) if extracted is not None else None,
        validation_issues=issues_from_list(row["validation_issues"]),
        processing_errors=errors_from_list(row["processing_errors"]),
        processing_progress=row["processing_progress"],
        processing_stage=ProcessingStage(row["processing_stage"]),
        generation=row["generation"],
        rejected=row["rejected"],
    )
