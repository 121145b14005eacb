"""SQLite-backed record store client with CRUD operations.

Services talk to the store only through these functions, passing a collection
name and plain field dicts. Filters use a small expression language:
``field = "value" && (other ~ "x" || other = "y")``; sorts use ``+field`` or
``-field``.
"""

import asyncio
import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from taskboard.core.config import constants, settings


logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """A record store operation failed."""


class RecordNotFoundError(KeyError):
    """The requested record does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Record not found"


_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_SQL_OPERATORS = {"=": "=", "!=": "!=", ">": ">", "<": "<", ">=": ">=", "<=": "<=", "~": "LIKE"}
_COMPARISON = re.compile(r"""(\w+)\s*(!=|>=|<=|=|>|<|~)\s*(['"])([^'"]*)\3""")


def _validate_collection_name(collection: str) -> None:
    """Validate that a collection name contains only alphanumeric characters and underscores."""
    if not _IDENTIFIER.match(collection):
        msg = f"Invalid collection name: {collection}. Only alphanumeric characters and underscores are allowed."
        raise ValueError(msg)


def sanitize_param(value: str | int | float | bool | None) -> str:
    """Escape a value for safe embedding in filter expressions via json.dumps."""
    return json.dumps(str(value))[1:-1]


def _stringify_ids(record: dict[str, Any]) -> dict[str, Any]:
    """Convert integer primary and foreign keys to strings for Pydantic compatibility."""
    fk_fields = {"id", "task", "project"}
    return {
        key: str(value) if isinstance(value, int) and (key in fk_fields or key.endswith("_id")) else value
        for key, value in record.items()
    }


def _to_column_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict | list):
        return json.dumps(value)
    return value


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    return Path(db_path or settings.sqlite_db_path).resolve()


def _parse_value(value: str, *, is_like: bool = False) -> str | int | float | bool | None:
    """Parse a string value to the appropriate Python type for SQLite."""
    if is_like:
        escaped = value.replace("%", "\\%").replace("_", "\\_")
        return f"%{escaped}%"
    if value.isdigit():
        return int(value)
    if value.replace(".", "", 1).isdigit():
        return float(value)
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    return value


def _parse_comparison(comparison: str) -> tuple[str, str | int | float | bool | None]:
    match = _COMPARISON.fullmatch(comparison.strip())
    if not match:
        msg = f"Invalid filter syntax: {comparison}"
        raise ValueError(msg)

    field, op, _, raw_value = match.groups()
    sql_op = _SQL_OPERATORS[op]
    if sql_op == "LIKE":
        return f"{field} LIKE ? ESCAPE '\\'", _parse_value(raw_value, is_like=True)
    return f"{field} {sql_op} ?", _parse_value(raw_value)


def _split_top_level(filter_query: str, separator: str) -> list[str]:
    """Split on ``separator`` outside parentheses."""
    parts = []
    current = ""
    depth = 0
    for char in filter_query:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
        if depth == 0 and current.endswith(separator):
            parts.append(current[: -len(separator)].strip())
            current = ""
    if current.strip():
        parts.append(current.strip())
    return parts


def parse_filter(filter_query: str) -> tuple[str, list[Any]]:
    """Parse filter syntax into a SQL WHERE clause and parameter list."""
    if not filter_query:
        return "", []

    conditions = []
    params: list[Any] = []
    for part in _split_top_level(filter_query, "&&"):
        if part.startswith("(") and part.endswith(")"):
            or_conditions = []
            for or_part in _split_top_level(part[1:-1], "||"):
                cond, value = _parse_comparison(or_part)
                or_conditions.append(cond)
                params.append(value)
            conditions.append(f"({' OR '.join(or_conditions)})")
        else:
            cond, value = _parse_comparison(part)
            conditions.append(cond)
            params.append(value)

    return " AND ".join(conditions), params


def parse_sort(sort: str) -> str:
    """Translate ``+field`` / ``-field`` into an ORDER BY clause."""
    safe_sort = "id ASC"
    if not sort:
        return safe_sort
    direction = "DESC" if sort.startswith("-") else "ASC"
    field = sort.lstrip("+-").strip()
    if not _IDENTIFIER.match(field):
        logger.warning("Invalid sort parameter, using default", extra={"sort": sort})
        return safe_sort
    return f"{field} {direction}, id ASC"


_connections: dict[tuple[int, str], aiosqlite.Connection] = {}
_connection_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the running loop and db path."""
    loop = asyncio.get_running_loop()
    path = get_db_path(db_path)
    cache_key = (id(loop), str(path))

    if cache_key in _connections:
        return _connections[cache_key]

    async with _connection_lock:
        if cache_key in _connections:
            return _connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(str(path))
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA journal_mode = WAL")
        _connections[cache_key] = conn

        logger.info("Created new SQLite connection", extra={"db_path": str(path)})
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the running loop and db path."""
    loop = asyncio.get_running_loop()
    cache_key = (id(loop), str(get_db_path(db_path)))

    async with _connection_lock:
        conn = _connections.pop(cache_key, None)
    if conn is None:
        return
    try:
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": cache_key[1]})
    except aiosqlite.Error as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    from taskboard.core import schema  # noqa: PLC0415 - schema imports this module

    await schema.init_db(db_path=db_path)


async def create_record(*, collection: str, data: dict[str, Any]) -> dict[str, Any]:
    """Insert a new record and return it with its assigned id."""
    _validate_collection_name(collection)
    try:
        conn = await get_connection()
        columns = list(data)
        query = (
            f"INSERT INTO {collection} ({', '.join(columns)}) "  # noqa: S608 - collection is validated
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        cursor = await conn.execute(query, [_to_column_value(data[key]) for key in columns])
        await conn.commit()
        record_id = cursor.lastrowid
    except aiosqlite.Error as e:
        logger.error("create_record_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to create record in {collection}: {e}"
        raise DatabaseError(msg) from e

    logger.info("Created record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=str(record_id))


async def get_record(*, collection: str, record_id: str) -> dict[str, Any]:
    """Fetch a single record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    if not record_id.isdigit():
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    try:
        conn = await get_connection()
        cursor = await conn.execute(
            f"SELECT * FROM {collection} WHERE id = ?",  # noqa: S608 - collection is validated
            (int(record_id),),
        )
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        logger.error("get_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to get record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    return _stringify_ids(dict(row))


async def update_record(*, collection: str, record_id: str, data: dict[str, Any]) -> dict[str, Any]:
    """Update a record by ID and return the updated record."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)
    _validate_collection_name(collection)
    await get_record(collection=collection, record_id=record_id)

    try:
        conn = await get_connection()
        set_clause = ", ".join(f"{key} = ?" for key in data)
        values = [_to_column_value(value) for value in data.values()]
        values.append(int(record_id))
        await conn.execute(
            f"UPDATE {collection} SET {set_clause}, updated = CURRENT_TIMESTAMP WHERE id = ?",  # noqa: S608
            values,
        )
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("update_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to update record in {collection}: {e}"
        raise DatabaseError(msg) from e

    logger.info("Updated record", extra={"collection": collection, "record_id": record_id})
    return await get_record(collection=collection, record_id=record_id)


async def delete_record(*, collection: str, record_id: str) -> None:
    """Delete a record by ID, raising RecordNotFoundError if not found."""
    _validate_collection_name(collection)
    if not record_id.isdigit():
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    try:
        conn = await get_connection()
        cursor = await conn.execute(
            f"DELETE FROM {collection} WHERE id = ?",  # noqa: S608 - collection is validated
            (int(record_id),),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("delete_record_failed", extra={"collection": collection, "record_id": record_id, "error": str(e)})
        msg = f"Failed to delete record from {collection}: {e}"
        raise DatabaseError(msg) from e

    if cursor.rowcount == 0:
        msg = f"Record not found in {collection}: {record_id}"
        raise RecordNotFoundError(msg)
    logger.info("Deleted record", extra={"collection": collection, "record_id": record_id})


async def list_records(
    *,
    collection: str,
    page: int = 1,
    per_page: int = 50,
    filter_query: str = "",
    sort: str = "",
) -> list[dict[str, Any]]:
    """List records with optional filtering, sorting, and pagination."""
    _validate_collection_name(collection)
    where_clause, params = parse_filter(filter_query)
    where_sql = f"WHERE {where_clause}" if where_clause else ""
    offset = (page - 1) * per_page

    try:
        conn = await get_connection()
        cursor = await conn.execute(
            f"SELECT * FROM {collection} {where_sql} ORDER BY {parse_sort(sort)} LIMIT ? OFFSET ?",  # noqa: S608
            [*params, per_page, offset],
        )
        rows = await cursor.fetchall()
    except aiosqlite.Error as e:
        logger.error("list_records_failed", extra={"collection": collection, "error": str(e)})
        msg = f"Failed to list records from {collection}: {e}"
        raise DatabaseError(msg) from e

    records = [_stringify_ids(dict(row)) for row in rows]
    logger.debug("Listed records", extra={"collection": collection, "count": len(records)})
    return records


async def list_all_records(*, collection: str, filter_query: str = "", sort: str = "") -> list[dict[str, Any]]:
    """Page through ``list_records`` until the collection is exhausted."""
    per_page = constants.DEFAULT_PER_PAGE_LIMIT
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await list_records(
            collection=collection, page=page, per_page=per_page, filter_query=filter_query, sort=sort
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


async def get_first_record(*, collection: str, filter_query: str) -> dict[str, Any] | None:
    """Return the first record matching the filter, or None."""
    records = await list_records(collection=collection, filter_query=filter_query, per_page=1)
    return records[0] if records else None
