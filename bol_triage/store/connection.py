from psycopg_pool import AsyncConnectionPool

from bol_triage.config.settings import Settings

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS bol_documents (
    id SERIAL PRIMARY KEY,
    filename TEXT NOT NULL,
    file_size INTEGER NOT NULL,
    mime_type TEXT NOT NULL,
    status TEXT NOT NULL,
    uploaded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    processed_at TIMESTAMPTZ,
    confidence DOUBLE PRECISION,
    extracted_data JSONB,
    validation_issues JSONB,
    processing_errors JSONB,
    processing_progress INTEGER NOT NULL DEFAULT 10,
    processing_stage TEXT NOT NULL DEFAULT 'upload_complete',
    generation INTEGER NOT NULL DEFAULT 1,
    rejected BOOLEAN NOT NULL DEFAULT FALSE
)
"""


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


async def open_pool(settings: Settings, timeout: float = 10.0) -> AsyncConnectionPool:
    """Open an async connection pool and make sure the documents table exists.

    Raises:
        psycopg_pool.PoolTimeout: if no connection is made within ``timeout`` seconds.
    """
    pool = AsyncConnectionPool(build_conninfo(settings), min_size=1, max_size=10, open=False)
    try:
        await pool.open(wait=True, timeout=timeout)
        async with pool.connection() as conn:
            await conn.execute(SCHEMA_SQL)
            await conn.commit()
    except Exception:
        await pool.close()
        raise
    return pool
