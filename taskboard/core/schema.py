"""SQLite schema management (code-first approach)."""

import logging

from taskboard.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema
COLLECTIONS = ["tasks", "projects", "comments", "attachments"]

_TIMESTAMPS = """
    created TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
"""

_TABLES = {
    "tasks": f"""
        CREATE TABLE IF NOT EXISTS tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            due_date TEXT,
            priority TEXT NOT NULL DEFAULT 'medium' CHECK (priority IN ('low', 'medium', 'high')),
            status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'in-progress', 'completed')),
            category TEXT NOT NULL DEFAULT '',
            project TEXT NOT NULL DEFAULT '',
            estimated_hours REAL NOT NULL DEFAULT 1.0,
            position INTEGER NOT NULL DEFAULT 0 CHECK (position >= 0),
            created_at TEXT,
            updated_at TEXT,
            {_TIMESTAMPS}
        )
    """,
    "projects": f"""
        CREATE TABLE IF NOT EXISTS projects (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'planning',
            priority TEXT NOT NULL DEFAULT 'medium',
            progress INTEGER NOT NULL DEFAULT 0,
            start_date TEXT,
            end_date TEXT,
            budget REAL NOT NULL DEFAULT 0,
            spent REAL NOT NULL DEFAULT 0,
            category TEXT NOT NULL DEFAULT 'development',
            team TEXT NOT NULL DEFAULT '[]',
            tags TEXT NOT NULL DEFAULT '[]',
            created_at TEXT,
            {_TIMESTAMPS}
        )
    """,
    "comments": f"""
        CREATE TABLE IF NOT EXISTS comments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            uid TEXT NOT NULL UNIQUE,
            task INTEGER NOT NULL,
            parent_comment TEXT,
            text TEXT NOT NULL,
            author TEXT NOT NULL,
            avatar TEXT,
            created_at TEXT NOT NULL,
            {_TIMESTAMPS}
        )
    """,
    "attachments": f"""
        CREATE TABLE IF NOT EXISTS attachments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            task INTEGER NOT NULL,
            name TEXT NOT NULL,
            size INTEGER NOT NULL,
            type TEXT NOT NULL,
            url TEXT NOT NULL DEFAULT '',
            uploaded_at TEXT NOT NULL,
            {_TIMESTAMPS}
        )
    """,
}

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_position ON tasks (position)",
    "CREATE INDEX IF NOT EXISTS idx_comments_task ON comments (task)",
    "CREATE INDEX IF NOT EXISTS idx_attachments_task ON attachments (task)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create every collection table and index if missing."""
    conn = await db_client.get_connection(db_path=db_path)
    for name in COLLECTIONS:
        await conn.execute(_TABLES[name])
    for statement in _INDEXES:
        await conn.execute(statement)
    await conn.commit()
    logger.info("Schema initialized", extra={"collections": COLLECTIONS})
