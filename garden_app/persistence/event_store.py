"""Event persistence layer for the ownership audit trail and registry restore."""

import sqlite3
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import orjson
import structlog

from ..errors import PersistenceError
from ..registry.models import PlotEvent, RegistrySnapshot
from ..utils.identity import normalize_address
from ..utils.time import format_timestamp, utc_now


@dataclass
class StoredEvent:
    """Stored event with metadata."""
    sequence: int
    event_type: str
    plot: int
    owner: str
    timestamp: str
    event_data: dict[str, Any]
    created_at: str

    def to_event(self) -> PlotEvent:
        return PlotEvent.from_dict(self.event_data)


class EventStore:
    """SQLite-based event and snapshot persistence layer."""

    def __init__(self, db_path: str = "garden_events.db"):
        self.db_path = Path(db_path)
        self.logger = structlog.get_logger("garden.event_store")
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init_schema") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS events (
                    sequence INTEGER PRIMARY KEY,
                    event_type TEXT NOT NULL,
                    plot INTEGER NOT NULL,
                    owner TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    event_data TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    last_sequence INTEGER NOT NULL,
                    snapshot_data TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_plot ON events(plot)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_owner ON events(owner)
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_events_type ON events(event_type)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self, operation: str):
        """Get database connection, translating sqlite errors to PersistenceError."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error(
                "Database error",
                operation=operation,
                db_path=str(self.db_path),
                error=str(e)
            )
            raise PersistenceError(
                f"Database error during {operation}: {e}",
                operation=operation,
                target=str(self.db_path)
            ) from e
        finally:
            if conn:
                conn.close()

    def store_event(self, event: PlotEvent) -> int:
        """
        Store an event in the database.

        Storing the same sequence number twice keeps the first copy.

        Args:
            event: Event to store

        Returns:
            Sequence number of the stored event
        """
        with self._lock:
            with self._get_connection("store_event") as conn:
                conn.execute("""
                    INSERT OR IGNORE INTO events (
                        sequence, event_type, plot, owner, timestamp,
                        event_data, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    event.sequence,
                    event.event_type.value,
                    event.plot,
                    event.owner,
                    format_timestamp(event.timestamp),
                    orjson.dumps(event.to_dict()).decode(),
                    format_timestamp(utc_now())
                ))
                conn.commit()

        self.logger.info(
            "Event stored",
            sequence=event.sequence,
            event_type=event.event_type.value,
            plot=event.plot
        )
        return event.sequence

    def store_events(self, events: list[PlotEvent]) -> list[int]:
        """
        Store multiple events in the database.

        Args:
            events: Events to store

        Returns:
            Sequence numbers of the stored events
        """
        return [self.store_event(event) for event in events]

    def get_event(self, sequence: int) -> Optional[StoredEvent]:
        """Get an event by sequence number."""
        with self._get_connection("get_event") as conn:
            row = conn.execute("""
                SELECT * FROM events WHERE sequence = ?
            """, (sequence,)).fetchone()

        return self._row_to_stored_event(row) if row else None

    def get_events_by_plot(self, plot: int) -> list[StoredEvent]:
        """Get the ownership history of a plot."""
        with self._get_connection("get_events_by_plot") as conn:
            rows = conn.execute("""
                SELECT * FROM events WHERE plot = ? ORDER BY sequence
            """, (plot,)).fetchall()

        return [self._row_to_stored_event(row) for row in rows]

    def get_events_by_owner(self, owner: str) -> list[StoredEvent]:
        """Get every event naming `owner` as new or previous owner."""
        with self._get_connection("get_events_by_owner") as conn:
            rows = conn.execute("""
                SELECT * FROM events WHERE owner = ? ORDER BY sequence
            """, (normalize_address(owner),)).fetchall()

        return [self._row_to_stored_event(row) for row in rows]

    def get_events_since(self, sequence: int = 0, limit: int = 1000) -> list[StoredEvent]:
        """Get events after a sequence number, oldest first."""
        with self._get_connection("get_events_since") as conn:
            rows = conn.execute("""
                SELECT * FROM events WHERE sequence > ?
                ORDER BY sequence LIMIT ?
            """, (sequence, limit)).fetchall()

        return [self._row_to_stored_event(row) for row in rows]

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics."""
        with self._get_connection("get_stats") as conn:
            total_count = conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]

            type_counts = {}
            for row in conn.execute("""
                SELECT event_type, COUNT(*) as count FROM events GROUP BY event_type
            """):
                type_counts[row[0]] = row[1]

            last_sequence = conn.execute("SELECT MAX(sequence) FROM events").fetchone()[0]
            snapshot_count = conn.execute("SELECT COUNT(*) FROM snapshots").fetchone()[0]

        return {
            "total_events": total_count,
            "events_by_type": type_counts,
            "last_sequence": last_sequence or 0,
            "snapshots": snapshot_count
        }

    def save_snapshot(self, snapshot: RegistrySnapshot) -> int:
        """Persist a registry snapshot and return its row id."""
        with self._lock:
            with self._get_connection("save_snapshot") as conn:
                cursor = conn.execute("""
                    INSERT INTO snapshots (last_sequence, snapshot_data, created_at)
                    VALUES (?, ?, ?)
                """, (
                    snapshot.last_sequence,
                    orjson.dumps(snapshot.to_dict()).decode(),
                    format_timestamp(utc_now())
                ))
                conn.commit()
                snapshot_id = cursor.lastrowid

        self.logger.info(
            "Registry snapshot saved",
            snapshot_id=snapshot_id,
            last_sequence=snapshot.last_sequence,
            claimed_plots=len(snapshot.owners)
        )
        return snapshot_id

    def load_latest_snapshot(self) -> Optional[RegistrySnapshot]:
        """Load the most recently saved snapshot, if any."""
        with self._get_connection("load_latest_snapshot") as conn:
            row = conn.execute("""
                SELECT snapshot_data FROM snapshots ORDER BY id DESC LIMIT 1
            """).fetchone()

        if row is None:
            return None
        return RegistrySnapshot.from_dict(orjson.loads(row["snapshot_data"]))

    def _row_to_stored_event(self, row: sqlite3.Row) -> StoredEvent:
        """Convert database row to StoredEvent object."""
        return StoredEvent(
            sequence=row["sequence"],
            event_type=row["event_type"],
            plot=row["plot"],
            owner=row["owner"],
            timestamp=row["timestamp"],
            event_data=orjson.loads(row["event_data"]),
            created_at=row["created_at"]
        )
