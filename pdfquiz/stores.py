"""
Storage collaborators: an object store for uploaded files and a row store for
documents, questions and quiz attempts.

The base classes are the narrow interface the rest of the package depends on.
`LocalObjectStore` and `SqliteRowStore` back it with the local filesystem and
a SQLite database.
"""
import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    file_name TEXT NOT NULL,
    file_path TEXT NOT NULL,
    file_size INTEGER DEFAULT 0,
    uploaded_at TEXT,
    processed INTEGER DEFAULT 0
);

CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    question TEXT NOT NULL,
    option_a TEXT NOT NULL,
    option_b TEXT NOT NULL,
    option_c TEXT NOT NULL,
    option_d TEXT NOT NULL,
    correct_answer TEXT NOT NULL CHECK (correct_answer IN ('A', 'B', 'C', 'D')),
    created_at TEXT,
    seq INTEGER
);

CREATE TABLE IF NOT EXISTS quiz_attempts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    score INTEGER NOT NULL,
    total_questions INTEGER NOT NULL,
    answers TEXT NOT NULL,
    completed_at TEXT
);
"""

COLUMNS = {
    "documents": ("id", "user_id", "file_name", "file_path", "file_size", "uploaded_at", "processed"),
    "questions": ("id", "document_id", "question", "option_a", "option_b", "option_c",
                  "option_d", "correct_answer", "created_at"),
    "quiz_attempts": ("id", "user_id", "document_id", "score", "total_questions", "answers",
                      "completed_at"),
}
TIMESTAMP_COLUMN = {
    "documents": "uploaded_at",
    "questions": "created_at",
    "quiz_attempts": "completed_at",
}
JSON_COLUMNS = {"quiz_attempts": {"answers"}}
BOOL_COLUMNS = {"documents": {"processed"}}

Row = Dict[str, object]


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class ObjectStore:
    def upload(self, path: str, data: bytes, content_type: str) -> str:
        raise NotImplementedError

    def download(self, path: str) -> bytes:
        raise NotImplementedError

    def remove(self, paths: Iterable[str]) -> None:
        raise NotImplementedError


class RowStore:
    def insert(self, table: str, rows: Union[Row, List[Row]]) -> List[Row]:
        raise NotImplementedError

    def select(self, table: str, filters: Optional[Row] = None,
               order_by: Optional[str] = None, descending: bool = False) -> List[Row]:
        raise NotImplementedError

    def update(self, table: str, patch: Row, filters: Row) -> List[Row]:
        raise NotImplementedError


class LocalObjectStore(ObjectStore):
    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if self.root.resolve() not in target.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        return target

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)
        if target.exists():
            raise FileExistsError(f"Object already exists: {path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        return path

    def download(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def remove(self, paths: Iterable[str]) -> None:
        for path in paths:
            self._resolve(path).unlink(missing_ok=True)


class SqliteRowStore(RowStore):
    def __init__(self, db_path: str):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        conn.executescript(SCHEMA)
        conn.commit()
        conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @staticmethod
    def _check(table: str, names: Iterable[str]) -> None:
        if table not in COLUMNS:
            raise ValueError(f"Unknown table: {table}")
        unknown = set(names) - set(COLUMNS[table])
        if unknown:
            raise ValueError(f"Unknown columns for {table}: {sorted(unknown)}")

    @staticmethod
    def _encode(table: str, row: Row) -> Row:
        out = dict(row)
        for col in JSON_COLUMNS.get(table, ()):
            if col in out:
                out[col] = json.dumps(out[col])
        for col in BOOL_COLUMNS.get(table, ()):
            if col in out:
                out[col] = int(bool(out[col]))
        return out

    @staticmethod
    def _decode(table: str, row: sqlite3.Row) -> Row:
        out = {key: row[key] for key in COLUMNS[table]}
        for col in JSON_COLUMNS.get(table, ()):
            out[col] = json.loads(out[col]) if out[col] is not None else None
        for col in BOOL_COLUMNS.get(table, ()):
            out[col] = bool(out[col])
        return out

    @staticmethod
    def _where(filters: Optional[Row]):
        if not filters:
            return "", []
        clause = " AND ".join(f"{col} = ?" for col in filters)
        return f" WHERE {clause}", list(filters.values())

    def insert(self, table: str, rows: Union[Row, List[Row]]) -> List[Row]:
        batch = [rows] if isinstance(rows, dict) else list(rows)
        stamp = utcnow()
        prepared = []
        for row in batch:
            self._check(table, row)
            row = dict(row)
            row.setdefault("id", uuid.uuid4().hex)
            row.setdefault(TIMESTAMP_COLUMN[table], stamp)
            prepared.append(row)

        conn = self._connect()
        try:
            # Rows of one batch share a timestamp; seq keeps their insertion order
            for seq, row in enumerate(prepared):
                encoded = self._encode(table, row)
                if table == "questions":
                    encoded["seq"] = seq
                cols = ", ".join(encoded)
                marks = ", ".join("?" for _ in encoded)
                conn.execute(
                    f"INSERT INTO {table} ({cols}) VALUES ({marks})",
                    list(encoded.values()),
                )
            conn.commit()
        finally:
            conn.close()
        return [dict(row) for row in prepared]

    def select(self, table: str, filters: Optional[Row] = None,
               order_by: Optional[str] = None, descending: bool = False) -> List[Row]:
        self._check(table, list(filters or {}) + ([order_by] if order_by else []))
        where, params = self._where(self._encode(table, filters or {}))
        sql = f"SELECT * FROM {table}{where}"
        if order_by:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY {order_by} {direction}"
            if table == "questions":
                sql += f", seq {direction}"
        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()
        return [self._decode(table, row) for row in rows]

    def update(self, table: str, patch: Row, filters: Row) -> List[Row]:
        self._check(table, list(patch) + list(filters))
        encoded = self._encode(table, patch)
        assignments = ", ".join(f"{col} = ?" for col in encoded)
        where, params = self._where(self._encode(table, filters))
        conn = self._connect()
        try:
            conn.execute(f"UPDATE {table} SET {assignments}{where}",
                         list(encoded.values()) + params)
            conn.commit()
        finally:
            conn.close()
        return self.select(table, filters)
