"""SQLite-backed document store."""

import json
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from ..exceptions import StoreError
from ..logging_config import get_logger
from .base import DocumentStore, Hit
from .query import matches, sort_documents

logger = get_logger(__name__)

# Current schema version (bump when tables change).
_SCHEMA_VERSION = 1


class SQLiteDocumentStore(DocumentStore):
    """Documents as JSON rows in one SQLite table.

    Queries are evaluated in Python over the rows of one document type; the
    table is keyed by (doc_type, doc_id) so point reads stay cheap.

    Usage::

        with SQLiteDocumentStore(".dephistory/store.db") as store:
            store.put("repository", "org_repo", {...})
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self.connect()

    @property
    def conn(self) -> sqlite3.Connection:
        """Return the active connection. Raises if not connected."""
        if self._conn is None:
            raise StoreError("connect", "store is closed")
        return self._conn

    # ── lifecycle ─────────────────────────────────────────────────

    def _ensure_dir(self) -> None:
        """Create the parent directory; a .dephistory/ parent also gets a .gitignore."""
        parent = self.db_path.parent
        parent.mkdir(parents=True, exist_ok=True)
        gitignore = parent / ".gitignore"
        if parent.name == ".dephistory" and not gitignore.exists():
            gitignore.write_text("*\n")

    def connect(self) -> sqlite3.Connection:
        """Open (or create) the database and run migrations."""
        try:
            self._ensure_dir()
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.row_factory = sqlite3.Row
        except (OSError, sqlite3.Error) as e:
            raise StoreError("connect", str(e))
        self._conn = conn
        self._migrate()
        logger.debug("Document store connected at %s", self.db_path)
        return conn

    def close(self) -> None:
        """Close the connection if open."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    # ── migration ─────────────────────────────────────────────────

    def _migrate(self) -> None:
        """Idempotently create all tables."""
        c = self.conn
        try:
            c.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = c.execute("SELECT version FROM schema_version").fetchone()
            if row is None:
                c.execute("INSERT INTO schema_version (version) VALUES (?)", (_SCHEMA_VERSION,))

            c.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    doc_type  TEXT NOT NULL,
                    doc_id    TEXT NOT NULL,
                    body      TEXT NOT NULL,
                    PRIMARY KEY (doc_type, doc_id)
                )
                """
            )
            c.commit()
        except sqlite3.Error as e:
            raise StoreError("migrate", str(e))

    # ── documents ─────────────────────────────────────────────────

    def _execute(self, operation: str, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            try:
                cur = self.conn.execute(sql, params)
                self.conn.commit()
                return cur
            except sqlite3.Error as e:
                self.conn.rollback()
                raise StoreError(operation, str(e))

    def get(self, doc_type: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            try:
                row = self.conn.execute(
                    "SELECT body FROM documents WHERE doc_type = ? AND doc_id = ?",
                    (doc_type, doc_id),
                ).fetchone()
            except sqlite3.Error as e:
                raise StoreError("get", str(e))
        return json.loads(row["body"]) if row is not None else None

    def create_or_skip(self, doc_type: str, doc_id: str, doc: dict) -> bool:
        cur = self._execute(
            "create",
            "INSERT OR IGNORE INTO documents (doc_type, doc_id, body) VALUES (?, ?, ?)",
            (doc_type, doc_id, json.dumps(doc, sort_keys=True)),
        )
        return cur.rowcount == 1

    def put(self, doc_type: str, doc_id: str, doc: dict) -> None:
        self._execute(
            "put",
            "INSERT OR REPLACE INTO documents (doc_type, doc_id, body) VALUES (?, ?, ?)",
            (doc_type, doc_id, json.dumps(doc, sort_keys=True)),
        )

    def search(
        self,
        doc_type: str,
        query: Optional[dict] = None,
        size: Optional[int] = None,
        sort: Optional[list[tuple[str, str]]] = None,
    ) -> list[Hit]:
        with self._lock:
            try:
                rows = self.conn.execute(
                    "SELECT doc_id, body FROM documents WHERE doc_type = ? ORDER BY doc_id",
                    (doc_type,),
                ).fetchall()
            except sqlite3.Error as e:
                raise StoreError("search", str(e))
        hits = []
        for row in rows:
            source = json.loads(row["body"])
            if matches(source, query):
                hits.append(Hit(row["doc_id"], source))
        hits = sort_documents(hits, sort)
        return hits[:size] if size is not None else hits

    def count(self, doc_type: str) -> int:
        with self._lock:
            row = self.conn.execute(
                "SELECT COUNT(*) AS n FROM documents WHERE doc_type = ?", (doc_type,)
            ).fetchone()
        return row["n"]
