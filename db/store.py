"""
Relational store - Bulk load, truncate and FK-check toggling on top of a
Database handle.

A load goes through a temporary staging table:

    COPY local CSV (or aws_s3 import for s3:// refs) -> stage
    INSERT ... SELECT FROM stage [ON CONFLICT ...] -> target

so a failed load leaves the target table untouched.
"""

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Iterable, Literal, Optional, Sequence, Tuple, Union

import asyncpg
from loguru import logger

from db.client import SCHEMA, Database
from db.queries.bulk import (
    CREATE_STAGE,
    DISABLE_FK_CHECKS,
    IMPORT_STAGE_FROM_S3,
    INSERT_FROM_STAGE,
    MERGE_FROM_STAGE,
    ON_CONFLICT_IGNORE,
    ON_CONFLICT_UPSERT,
    TRUNCATE_TABLE,
)

LoadMode = Literal["insert", "insert-ignore", "upsert"]

# Errors that mean the store itself went away, not that the data was bad
CONNECTION_ERRORS = (
    asyncpg.exceptions.PostgresConnectionError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.InterfaceError,
    ConnectionError,
)


def parse_s3_ref(ref: str) -> Tuple[str, str]:
    """s3://bucket/key -> (bucket, key)."""
    if not ref.startswith("s3://"):
        raise ValueError(f"Not an S3 reference: {ref}")
    bucket, _, key = ref[len("s3://"):].partition("/")
    if not bucket or not key:
        raise ValueError(f"Not an S3 reference: {ref}")
    return bucket, key


def rows_from_status(status: str) -> int:
    """Row count from a command tag such as 'INSERT 0 42'."""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


def conflict_clause(mode: LoadMode, columns: Sequence[str], key: Sequence[str]) -> str:
    key_list = ", ".join(key)
    if mode == "insert-ignore":
        return ON_CONFLICT_IGNORE.format(key=key_list)
    updates = [c for c in columns if c not in key]
    if not updates:
        return ON_CONFLICT_IGNORE.format(key=key_list)
    assignments = ", ".join(f"{c} = EXCLUDED.{c}" for c in updates)
    return ON_CONFLICT_UPSERT.format(key=key_list, assignments=assignments)


class RelationalStore:
    """
    Bulk operations against the hotelbeds schema.

    Usage:
        store = RelationalStore(db)
        async with store.fk_checks_disabled():
            rows = await store.bulk_load("hotels", cols, ("id",), "/tmp/csv/hotels.csv", "upsert")
    """

    def __init__(
        self,
        db: Database,
        schema: str = SCHEMA,
        region: Optional[str] = None,
        retries: int = 2,
        backoff_base: float = 1.0,
    ):
        self.db = db
        self.schema = schema
        self.region = region
        self.retries = retries
        self.backoff_base = backoff_base
        self._fk_checks_disabled = False

    @property
    def fk_checks_enabled(self) -> bool:
        return not self._fk_checks_disabled

    @asynccontextmanager
    async def fk_checks_disabled(self, disabled: bool = True):
        """Skip FK triggers in every load started inside the block."""
        previous = self._fk_checks_disabled
        self._fk_checks_disabled = disabled
        try:
            yield self
        finally:
            self._fk_checks_disabled = previous

    async def ping(self) -> bool:
        async with self.db.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1

    async def bulk_load(
        self,
        table: str,
        columns: Sequence[str],
        key: Sequence[str],
        source: Union[str, Path],
        mode: LoadMode = "insert-ignore",
    ) -> int:
        """
        Load one CSV into table and return the number of rows inserted or updated.

        Connection-class errors are retried with exponential backoff, then
        re-raised. Anything else (bad data, constraint violations) raises at once.
        """
        attempt = 0
        while True:
            try:
                return await self._load_once(table, columns, key, str(source), mode)
            except CONNECTION_ERRORS as e:
                if attempt >= self.retries:
                    raise
                delay = self.backoff_base * (2 ** attempt)
                attempt += 1
                logger.warning(
                    f"Load of {table} lost its connection ({e}), retry {attempt}/{self.retries} in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

    async def _load_once(
        self, table: str, columns: Sequence[str], key: Sequence[str], source: str, mode: LoadMode
    ) -> int:
        stage = f"stage_{table}"
        column_list = ", ".join(columns)

        async with self.db.transaction() as conn:
            if self._fk_checks_disabled:
                await conn.execute(DISABLE_FK_CHECKS)

            await conn.execute(CREATE_STAGE.format(stage=stage, schema=self.schema, table=table))

            if source.startswith("s3://"):
                bucket, s3_key = parse_s3_ref(source)
                await conn.execute(IMPORT_STAGE_FROM_S3, stage, column_list, bucket, s3_key, self.region)
            else:
                await conn.copy_to_table(
                    stage, source=source, columns=list(columns), format="csv", header=True
                )

            if mode == "insert":
                sql = INSERT_FROM_STAGE.format(
                    schema=self.schema, table=table, columns=column_list, stage=stage
                )
            else:
                sql = MERGE_FROM_STAGE.format(
                    schema=self.schema,
                    table=table,
                    columns=column_list,
                    key=", ".join(key),
                    stage=stage,
                    conflict=conflict_clause(mode, columns, key),
                )
            status = await conn.execute(sql)

        rows = rows_from_status(status)
        logger.debug(f"Loaded {table} ({mode}): {rows} rows")
        return rows

    async def truncate(self, tables: Iterable[str]) -> None:
        """Truncate tables in the order given."""
        async with self.db.transaction() as conn:
            for table in tables:
                await conn.execute(TRUNCATE_TABLE.format(schema=self.schema, table=table))
                logger.info(f"  Truncated {table}")
