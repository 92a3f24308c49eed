"""
Dedup Store — SQLite-based persistence for postings that were already delivered.
The pipeline consults it so a posting is only ever relayed once.

Rows are plain text (ISO-8601 UTC timestamps) so the database can be
inspected and hand-edited with the sqlite3 CLI for recovery.
"""

import logging
import os
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from models.errors import StoreUnavailable
from models.posting import Posting, SeenRecord, utc_now


logger = logging.getLogger(__name__)

# Records are evicted this long after first delivery, even if still re-observed
RETENTION = timedelta(days=30)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS seen_postings (
        id TEXT PRIMARY KEY,
        title TEXT,
        company TEXT,
        url TEXT,
        source TEXT,
        first_seen TEXT NOT NULL,
        last_seen TEXT NOT NULL
    )
"""

COLUMNS = "id, title, company, url, source, first_seen, last_seen"


def _iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    # Fixed width so text comparison in SQL matches time order
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


class DedupStore:
    """
    Persistent set of delivered posting ids with first/last seen metadata.

    Every write commits before returning. A lock serializes statements on the
    shared connection, so readers never observe a half-written record.
    """

    def __init__(self, db_path: str, clock: Callable[[], datetime] = utc_now):
        self.db_path = db_path
        self._clock = clock
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None

    # ── Lifecycle ────────────────────────────────────────────

    def open(self) -> "DedupStore":
        """
        Open (or create) the database and evict expired records.

        A corrupt database file is moved aside and replaced by an empty one.
        If the path cannot be opened at all, an in-memory store is used for
        this process. Either way previously delivered postings may be sent
        again, which is logged as an error.

        Raises:
            StoreUnavailable: If not even an empty store can be created.
        """
        try:
            directory = os.path.dirname(self.db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._conn = self._connect(self.db_path)
        except sqlite3.OperationalError as e:
            logger.error(
                "Dedup: Cannot open %s (%s); using an in-memory store. "
                "Seen postings will not survive a restart.",
                self.db_path, e,
            )
            self._conn = self._connect_or_raise(":memory:")
        except sqlite3.DatabaseError as e:
            corrupt_path = f"{self.db_path}.corrupt-{self._clock().strftime('%Y%m%d%H%M%S')}"
            logger.error(
                "Dedup: Store at %s is unreadable (%s); moved to %s and starting empty. "
                "Previously delivered postings may be sent again.",
                self.db_path, e, corrupt_path,
            )
            try:
                os.replace(self.db_path, corrupt_path)
            except OSError as e2:
                raise StoreUnavailable(f"Cannot move corrupt store {self.db_path}: {e2}") from e2
            self._conn = self._connect_or_raise(self.db_path)
        except OSError as e:
            logger.error("Dedup: Cannot create directory for %s (%s); using an in-memory store.", self.db_path, e)
            self._conn = self._connect_or_raise(":memory:")

        self.evict_expired()
        logger.info("Dedup: Loaded %d tracked postings", self.stats()["total"])
        return self

    def _connect_or_raise(self, path: str) -> sqlite3.Connection:
        try:
            return self._connect(path)
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Cannot create dedup store at {path}: {e}") from e

    @staticmethod
    def _connect(path: str) -> sqlite3.Connection:
        conn = sqlite3.connect(path, check_same_thread=False)
        try:
            conn.execute(SCHEMA)
            # Forces a read of the file so corruption shows up here
            conn.execute("SELECT COUNT(*) FROM seen_postings").fetchone()
            conn.commit()
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
        logger.info("Dedup: Store closed")

    def __enter__(self) -> "DedupStore":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    # ── Operations ───────────────────────────────────────────

    def _query(self, sql: str, params: tuple = ()) -> list:
        with self._lock:
            if self._conn is None:
                raise StoreUnavailable("Dedup store is not open")
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                raise StoreUnavailable(f"Dedup store read failed: {e}") from e

    def _write(self, sql: str, params: tuple = ()) -> int:
        """Run one statement and commit it. Returns the affected row count."""
        with self._lock:
            if self._conn is None:
                raise StoreUnavailable("Dedup store is not open")
            try:
                cursor = self._conn.execute(sql, params)
                self._conn.commit()
                return cursor.rowcount
            except sqlite3.Error as e:
                self._conn.rollback()
                raise StoreUnavailable(f"Dedup store write failed: {e}") from e

    def has_seen(self, posting_id: str) -> bool:
        """Return True if the posting id has already been recorded."""
        return bool(self._query("SELECT 1 FROM seen_postings WHERE id = ?", (posting_id,)))

    def mark_seen(self, posting_id: str, posting: Posting) -> bool:
        """
        Record a posting as seen.

        Creates the record with first_seen = last_seen = now, or, if it
        already exists, only moves last_seen forward.

        Returns:
            True if this call created the record, False if it already existed.
        """
        now = _iso(self._clock())
        created = self._write(
            """
            INSERT INTO seen_postings (id, title, company, url, source, first_seen, last_seen)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO NOTHING
            """,
            (posting_id, posting.title, posting.company, posting.url, posting.source.value, now, now),
        )
        if created == 1:
            logger.debug("Dedup: Marked %s as seen", posting_id)
            return True

        self._write("UPDATE seen_postings SET last_seen = ? WHERE id = ?", (now, posting_id))
        return False

    def evict_expired(self, now: datetime = None) -> int:
        """Delete records first seen more than RETENTION before now. Returns the count removed."""
        cutoff = _iso((now or self._clock()) - RETENTION)
        removed = self._write("DELETE FROM seen_postings WHERE first_seen < ?", (cutoff,))
        if removed > 0:
            logger.info("Dedup: Cleaned up %d old posting entries", removed)
        return removed

    def get(self, posting_id: str) -> Optional[SeenRecord]:
        rows = self._query(f"SELECT {COLUMNS} FROM seen_postings WHERE id = ?", (posting_id,))
        return SeenRecord.from_row(rows[0]) if rows else None

    def all_ids(self) -> list[str]:
        return [row[0] for row in self._query("SELECT id FROM seen_postings ORDER BY first_seen")]

    def stats(self) -> dict:
        """Return {'total': int, 'by_source': {source: count}}."""
        rows = self._query(
            "SELECT COALESCE(source, 'Unknown'), COUNT(*) FROM seen_postings GROUP BY 1"
        )
        by_source = {source: count for source, count in rows}
        return {"total": sum(by_source.values()), "by_source": by_source}
