"""Document store backends: plain files on disk and SQLite."""

import asyncio
import os
import sqlite3
import tempfile
from datetime import datetime
from pathlib import Path, PurePosixPath

import aiosqlite

from recollect.core.logging import get_logger
from recollect.memory.base import DocumentStore

logger = get_logger("memory.store")


def _adapt_datetime(dt: datetime) -> str:
    """Convert datetime to ISO format string for SQLite storage."""
    return dt.isoformat()


def _convert_datetime(val: bytes) -> datetime:
    """Convert ISO format string from SQLite to datetime."""
    return datetime.fromisoformat(val.decode())


# Python 3.12+ deprecates the implicit datetime adapters
sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("DATETIME", _convert_datetime)


def normalize_path(path: str) -> str:
    """Normalize a vault path and reject escapes outside the vault."""
    parts = [p for p in PurePosixPath(path.replace("\\", "/")).parts if p not in ("", ".", "/")]
    if any(p == ".." for p in parts):
        raise ValueError(f"Path escapes vault: {path}")
    return "/".join(parts)


def _write_atomic(target: Path, text: str) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    # Write to a sibling temp file, then atomically swap it in
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FileDocumentStore(DocumentStore):
    """Documents as UTF-8 files under a root directory.

    Reads and writes run in a worker thread so large documents do not stall
    the event loop.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _resolve(self, path: str) -> Path:
        return self.root / normalize_path(path)

    async def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self._resolve(path).read_text, encoding="utf-8")

    async def write(self, path: str, text: str) -> None:
        await asyncio.to_thread(_write_atomic, self._resolve(path), text)
        logger.debug(f"Wrote {path} ({len(text)} chars)")

    async def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        return True

    async def create_folder(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    async def list(self, folder: str) -> list[str]:
        directory = self._resolve(folder)
        if not directory.is_dir():
            return []
        prefix = normalize_path(folder)
        return sorted(
            f"{prefix}/{child.name}" if prefix else child.name
            for child in directory.iterdir()
            if child.is_file() and not child.name.startswith(".")
        )


SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    path TEXT PRIMARY KEY,
    content TEXT NOT NULL,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS folders (
    path TEXT PRIMARY KEY
);
"""


class SQLiteDocumentStore(DocumentStore):
    """Documents as rows in a single SQLite database."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Initialize database connection and schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(
            self.db_path,
            detect_types=sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES,
        )
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()
        logger.info(f"Connected to document store: {self.db_path}")

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    @property
    def conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Document store not connected. Call connect() first.")
        return self._conn

    async def exists(self, path: str) -> bool:
        key = normalize_path(path)
        async with self.conn.execute(
            "SELECT 1 FROM documents WHERE path = ? UNION ALL SELECT 1 FROM folders WHERE path = ?",
            (key, key),
        ) as cursor:
            return await cursor.fetchone() is not None

    async def read(self, path: str) -> str:
        async with self.conn.execute(
            "SELECT content FROM documents WHERE path = ?", (normalize_path(path),)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            raise FileNotFoundError(path)
        return row[0]

    async def write(self, path: str, text: str) -> None:
        now = datetime.now()
        await self.conn.execute(
            """INSERT INTO documents (path, content, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(path) DO UPDATE SET content=?, updated_at=?""",
            (normalize_path(path), text, now, text, now),
        )
        await self.conn.commit()

    async def delete(self, path: str) -> bool:
        cursor = await self.conn.execute(
            "DELETE FROM documents WHERE path = ?", (normalize_path(path),)
        )
        await self.conn.commit()
        return cursor.rowcount > 0

    async def create_folder(self, path: str) -> None:
        await self.conn.execute(
            "INSERT OR IGNORE INTO folders (path) VALUES (?)", (normalize_path(path),)
        )
        await self.conn.commit()

    async def list(self, folder: str) -> list[str]:
        prefix = normalize_path(folder)
        prefix = f"{prefix}/" if prefix else ""
        results = []
        async with self.conn.execute(
            "SELECT path FROM documents WHERE substr(path, 1, ?) = ? ORDER BY path",
            (len(prefix), prefix),
        ) as cursor:
            async for row in cursor:
                if "/" not in row[0][len(prefix):]:
                    results.append(row[0])
        return results
