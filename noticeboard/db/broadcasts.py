"""
Noticeboard Broadcast Database Operations

CRUD, filtered listing and aggregate statistics for broadcasts.
"""

import sqlite3
import time
import logging
from typing import Optional

from .connection import Database
from .models import (
    Author,
    Broadcast,
    BroadcastStats,
    BroadcastStatus,
    BroadcastType,
    RecentBroadcast,
    Urgency,
)
from ..errors import ValidationError

logger = logging.getLogger(__name__)


# Public sort keys -> columns
SORT_FIELDS = {
    "createdAt": "b.created_at_us",
    "updatedAt": "b.updated_at_us",
    "title": "b.title",
    "urgency": "b.urgency",
    "type": "b.type",
    "status": "b.status",
    "views": "b.views",
    "priority": "b.priority",
    "expiryDate": "b.expiry_date_us",
}

RECENT_ACTIVITY_LIMIT = 5

_SELECT_WITH_AUTHOR = """
    SELECT b.*, u.username AS author_username, u.email AS author_email
    FROM broadcasts b
    LEFT JOIN users u ON u.id = b.created_by
"""


class BroadcastRepository:
    """Repository for broadcast-related database operations."""

    def __init__(self, db: Database):
        self.db = db

    def create_broadcast(self, broadcast: Broadcast) -> Broadcast:
        """
        Insert a broadcast and its tags.

        The caller has already validated the fields and settled the status.
        """
        now_us = int(time.time() * 1_000_000)

        try:
            with self.db.transaction():
                cursor = self.db.execute("""
                    INSERT INTO broadcasts (
                        title, message, urgency, type, created_by, expiry_date_us,
                        status, views, priority, created_at_us, updated_at_us
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    broadcast.title,
                    broadcast.message,
                    broadcast.urgency.value,
                    broadcast.type.value,
                    broadcast.created_by,
                    broadcast.expiry_date_us,
                    broadcast.status.value,
                    broadcast.views,
                    broadcast.priority,
                    now_us,
                    now_us
                ))
                broadcast_id = cursor.lastrowid
                self._write_tags(broadcast_id, broadcast.tags)
        except sqlite3.IntegrityError as e:
            raise self._translate_integrity_error(e)

        logger.debug(f"Inserted broadcast {broadcast_id}")
        return self.get_broadcast_by_id(broadcast_id)

    def get_broadcast_by_id(self, broadcast_id: int) -> Optional[Broadcast]:
        """Get broadcast by ID, with tags and author."""
        row = self.db.fetchone(
            _SELECT_WITH_AUTHOR + " WHERE b.id = ?",
            (broadcast_id,)
        )
        if not row:
            return None
        tags = self._load_tags([broadcast_id])
        return self._row_to_broadcast(row, tags.get(broadcast_id, []))

    def increment_views(self, broadcast_id: int) -> bool:
        """
        Atomically add one view.

        A single UPDATE so concurrent readers never lose an increment and
        unrelated columns are never rewritten.
        """
        cursor = self.db.execute(
            "UPDATE broadcasts SET views = views + 1 WHERE id = ?",
            (broadcast_id,)
        )
        return cursor.rowcount > 0

    def save_broadcast(self, broadcast: Broadcast) -> Optional[Broadcast]:
        """
        Overwrite every mutable column of an existing broadcast.

        Returns the stored broadcast, or None if it no longer exists.
        """
        now_us = int(time.time() * 1_000_000)

        try:
            with self.db.transaction():
                cursor = self.db.execute("""
                    UPDATE broadcasts
                    SET title = ?, message = ?, urgency = ?, type = ?,
                        created_by = ?, expiry_date_us = ?, status = ?,
                        views = ?, priority = ?, updated_at_us = ?
                    WHERE id = ?
                """, (
                    broadcast.title,
                    broadcast.message,
                    broadcast.urgency.value,
                    broadcast.type.value,
                    broadcast.created_by,
                    broadcast.expiry_date_us,
                    broadcast.status.value,
                    broadcast.views,
                    broadcast.priority,
                    now_us,
                    broadcast.id
                ))
                if cursor.rowcount == 0:
                    return None
                self.db.execute(
                    "DELETE FROM broadcast_tags WHERE broadcast_id = ?",
                    (broadcast.id,)
                )
                self._write_tags(broadcast.id, broadcast.tags)
        except sqlite3.IntegrityError as e:
            raise self._translate_integrity_error(e)

        return self.get_broadcast_by_id(broadcast.id)

    def delete_broadcast(self, broadcast_id: int) -> bool:
        """Permanently delete a broadcast (tags cascade)."""
        cursor = self.db.execute("DELETE FROM broadcasts WHERE id = ?", (broadcast_id,))
        return cursor.rowcount > 0

    def query_broadcasts(
        self,
        type: Optional[BroadcastType] = None,
        urgency: Optional[Urgency] = None,
        status: Optional[BroadcastStatus] = None,
        search: Optional[str] = None,
        sort_field: str = "createdAt",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[Broadcast], int]:
        """
        Filtered, sorted, paginated listing.

        Exact filters are AND'ed; the search term matches title, message or
        any tag as a case-insensitive substring.

        Returns:
            (page of broadcasts, total number of matches)
        """
        where = []
        params: list = []

        if type is not None:
            where.append("b.type = ?")
            params.append(type.value)

        if urgency is not None:
            where.append("b.urgency = ?")
            params.append(urgency.value)

        if status is not None:
            where.append("b.status = ?")
            params.append(status.value)

        if search:
            term = search.lower()
            where.append("""(
                instr(lower(b.title), ?) > 0
                OR instr(lower(b.message), ?) > 0
                OR EXISTS (
                    SELECT 1 FROM broadcast_tags t
                    WHERE t.broadcast_id = b.id AND instr(lower(t.tag), ?) > 0
                )
            )""")
            params.extend([term, term, term])

        where_sql = f" WHERE {' AND '.join(where)}" if where else ""
        direction = "DESC" if descending else "ASC"
        order_sql = f" ORDER BY {SORT_FIELDS[sort_field]} {direction}, b.id {direction}"

        with self.db.transaction():
            total = self.db.fetchone(
                "SELECT COUNT(*) FROM broadcasts b" + where_sql,
                tuple(params)
            )[0]
            rows = self.db.fetchall(
                _SELECT_WITH_AUTHOR + where_sql + order_sql + " LIMIT ? OFFSET ?",
                tuple(params) + (limit, offset)
            )
            tags = self._load_tags([row["id"] for row in rows])

        return [self._row_to_broadcast(row, tags.get(row["id"], [])) for row in rows], total

    def summary_stats(self) -> BroadcastStats:
        """Aggregate counts and recent activity from one consistent snapshot."""
        stats = BroadcastStats()

        with self.db.transaction():
            stats.total = self.db.fetchone("SELECT COUNT(*) FROM broadcasts")[0]

            for row in self.db.fetchall(
                "SELECT urgency, COUNT(*) AS n FROM broadcasts GROUP BY urgency"
            ):
                stats.by_urgency[row["urgency"]] = row["n"]

            for row in self.db.fetchall(
                "SELECT type, COUNT(*) AS n FROM broadcasts GROUP BY type"
            ):
                stats.by_type[row["type"]] = row["n"]

            stats.active = self.db.fetchone(
                "SELECT COUNT(*) FROM broadcasts WHERE status = ?",
                (BroadcastStatus.ACTIVE.value,)
            )[0]

            rows = self.db.fetchall("""
                SELECT title, created_at_us, urgency FROM broadcasts
                ORDER BY created_at_us DESC, id DESC
                LIMIT ?
            """, (RECENT_ACTIVITY_LIMIT,))

        stats.recent_activity = [
            RecentBroadcast(
                title=row["title"],
                created_at_us=row["created_at_us"],
                urgency=Urgency(row["urgency"])
            )
            for row in rows
        ]
        return stats

    def _write_tags(self, broadcast_id: int, tags: list[str]):
        """Insert tags keeping their order."""
        if not tags:
            return
        self.db.executemany(
            "INSERT INTO broadcast_tags (broadcast_id, position, tag) VALUES (?, ?, ?)",
            [(broadcast_id, position, tag) for position, tag in enumerate(tags)]
        )

    def _load_tags(self, broadcast_ids: list[int]) -> dict[int, list[str]]:
        """Load ordered tags for a set of broadcasts in one query."""
        if not broadcast_ids:
            return {}
        placeholders = ",".join("?" for _ in broadcast_ids)
        rows = self.db.fetchall(f"""
            SELECT broadcast_id, tag FROM broadcast_tags
            WHERE broadcast_id IN ({placeholders})
            ORDER BY broadcast_id, position
        """, tuple(broadcast_ids))

        tags: dict[int, list[str]] = {}
        for row in rows:
            tags.setdefault(row["broadcast_id"], []).append(row["tag"])
        return tags

    def _translate_integrity_error(self, error: sqlite3.IntegrityError) -> Exception:
        """Map a constraint violation to the error callers expect."""
        if "FOREIGN KEY" in str(error):
            return ValidationError.single("createdBy", "Owner does not exist")
        return error

    def _row_to_broadcast(self, row, tags: list[str]) -> Broadcast:
        """Convert database row to Broadcast object."""
        author = None
        if row["author_username"] is not None:
            author = Author(
                id=row["created_by"],
                username=row["author_username"],
                email=row["author_email"]
            )

        return Broadcast(
            id=row["id"],
            title=row["title"],
            message=row["message"],
            urgency=Urgency(row["urgency"]),
            type=BroadcastType(row["type"]),
            tags=tags,
            created_by=row["created_by"],
            expiry_date_us=row["expiry_date_us"],
            status=BroadcastStatus(row["status"]),
            views=row["views"],
            priority=row["priority"],
            created_at_us=row["created_at_us"],
            updated_at_us=row["updated_at_us"],
            author=author
        )
