"""
SQLite implementation of the build history repository.

Uses aiosqlite for async operations. Can be easily replaced with a
PostgreSQL/MySQL implementation of BuildRepository.
"""

from datetime import datetime

import aiosqlite

from ci_common.models import BuildRecord, ItemState
from ci_common.repository import BuildRepository

_COLUMNS = (
    "id, kind, repository, commit_sha, attr_path, state, success, plan_id, "
    "error, queued_at, started_at, finished_at"
)


class SQLiteBuildRepository(BuildRepository):
    """
    SQLite-based build history storage.

    Uses a single `builds` table with one row per scheduled commit event
    or job.
    """

    def __init__(self, db_path: str = "ci_builds.db"):
        """
        Initialize the SQLite repository.

        Args:
            db_path: Path to the SQLite database file
        """
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    async def _get_connection(self) -> aiosqlite.Connection:
        """Get or create database connection."""
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
        return self._connection

    async def initialize(self) -> None:
        """Create the builds table and its index if they don't exist."""
        conn = await self._get_connection()

        await conn.execute("""
            CREATE TABLE IF NOT EXISTS builds (
                id TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                repository TEXT NOT NULL,
                commit_sha TEXT NOT NULL,
                attr_path TEXT,
                state TEXT NOT NULL,
                success INTEGER,
                plan_id TEXT,
                error TEXT,
                queued_at TEXT NOT NULL,
                started_at TEXT,
                finished_at TEXT
            )
        """)

        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_builds_queued_at
            ON builds(queued_at)
        """)

        await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def create_record(self, record: BuildRecord) -> None:
        conn = await self._get_connection()

        await conn.execute(
            f"INSERT INTO builds ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                record.id,
                record.kind,
                record.repository,
                record.commit,
                record.attr_path,
                record.state.value,
                None if record.success is None else int(record.success),
                record.plan_id,
                record.error,
                record.queued_at.isoformat(),
                record.started_at.isoformat() if record.started_at else None,
                record.finished_at.isoformat() if record.finished_at else None,
            ),
        )
        await conn.commit()

    async def mark_processing(self, record_id: str, started_at: datetime) -> None:
        conn = await self._get_connection()

        await conn.execute(
            "UPDATE builds SET state = ?, started_at = ? WHERE id = ?",
            (ItemState.PROCESSING.value, started_at.isoformat(), record_id),
        )
        await conn.commit()

    async def complete_record(
        self,
        record_id: str,
        state: ItemState,
        finished_at: datetime,
        success: bool | None = None,
        plan_id: str | None = None,
        error: str | None = None,
    ) -> None:
        """
        Move a record to a terminal state.

        Raises:
            ValueError: If state is not terminal
        """
        if state not in (ItemState.COMPLETED, ItemState.FAILED):
            raise ValueError(f"{state.value} is not a terminal state")

        conn = await self._get_connection()

        await conn.execute(
            """
            UPDATE builds
            SET state = ?, finished_at = ?, success = ?, plan_id = ?, error = ?
            WHERE id = ?
            """,
            (
                state.value,
                finished_at.isoformat(),
                None if success is None else int(success),
                plan_id,
                error,
                record_id,
            ),
        )
        await conn.commit()

    async def get_record(self, record_id: str) -> BuildRecord | None:
        conn = await self._get_connection()

        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM builds WHERE id = ?", (record_id,)
        )
        row = await cursor.fetchone()

        if row is None:
            return None
        return self._row_to_record(row)

    async def list_records(self, limit: int = 50) -> list[BuildRecord]:
        conn = await self._get_connection()

        # rowid breaks ties between records queued in the same instant
        cursor = await conn.execute(
            f"SELECT {_COLUMNS} FROM builds ORDER BY queued_at DESC, rowid DESC LIMIT ?",
            (limit,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_record(row) for row in rows]

    @staticmethod
    def _row_to_record(row: tuple) -> BuildRecord:
        (
            record_id,
            kind,
            repository,
            commit,
            attr_path,
            state,
            success,
            plan_id,
            error,
            queued_at_str,
            started_at_str,
            finished_at_str,
        ) = row

        return BuildRecord(
            id=record_id,
            kind=kind,
            repository=repository,
            commit=commit,
            attr_path=attr_path,
            state=ItemState(state),
            success=bool(success) if success is not None else None,
            plan_id=plan_id,
            error=error,
            queued_at=datetime.fromisoformat(queued_at_str),
            started_at=datetime.fromisoformat(started_at_str)
            if started_at_str
            else None,
            finished_at=datetime.fromisoformat(finished_at_str)
            if finished_at_str
            else None,
        )
