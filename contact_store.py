"""
Store access for Contact rows.

A ContactStore is bound to one database file. Each call to
``ContactStore.transaction()`` opens a fresh connection and yields a
ContactQueries object whose reads and writes all belong to that transaction.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from db_models import Contact, LinkPrecedence
from db_setup import transaction


def _now() -> str:
    # UTC with a space separator, the same shape sqlite writes for CURRENT_TIMESTAMP
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S.%f")


class ContactQueries:
    """Contact reads and writes inside a single open transaction."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def find_matching(self, email: Optional[str] = None, phone: Optional[str] = None) -> List[Contact]:
        """Rows sharing the email or the phone number, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute("""
            SELECT * FROM Contact
            WHERE (email = ? AND ? IS NOT NULL)
               OR (phoneNumber = ? AND ? IS NOT NULL)
            ORDER BY createdAt ASC, id ASC
        """, (email, email, phone, phone))
        return [Contact(**dict(row)) for row in cursor.fetchall()]

    def get_by_id(self, contact_id: int) -> Optional[Contact]:
        cursor = self.conn.cursor()
        cursor.execute("SELECT * FROM Contact WHERE id = ?", (contact_id,))
        row = cursor.fetchone()
        return Contact(**dict(row)) if row else None

    def get_linked(self, primary_id: int) -> List[Contact]:
        """Every secondary pointing at the given primary, oldest first."""
        cursor = self.conn.cursor()
        cursor.execute("""
            SELECT * FROM Contact
            WHERE linkedId = ?
            ORDER BY createdAt ASC, id ASC
        """, (primary_id,))
        return [Contact(**dict(row)) for row in cursor.fetchall()]

    def create(
        self,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        linked_id: Optional[int] = None,
        precedence: LinkPrecedence = LinkPrecedence.PRIMARY,
    ) -> Contact:
        now = _now()
        cursor = self.conn.cursor()
        cursor.execute("""
            INSERT INTO Contact (phoneNumber, email, linkedId, linkPrecedence, createdAt, updatedAt)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (phone, email, linked_id, precedence.value, now, now))
        return self.get_by_id(cursor.lastrowid)

    def demote_to_secondary(self, contact_id: int, primary_id: int):
        self.conn.execute("""
            UPDATE Contact
            SET linkedId = ?, linkPrecedence = ?, updatedAt = ?
            WHERE id = ?
        """, (primary_id, LinkPrecedence.SECONDARY.value, _now(), contact_id))

    def relink_secondaries(self, old_primary_id: int, new_primary_id: int) -> int:
        """Point every row linked to ``old_primary_id`` at ``new_primary_id``."""
        cursor = self.conn.execute("""
            UPDATE Contact
            SET linkedId = ?, updatedAt = ?
            WHERE linkedId = ?
        """, (new_primary_id, _now(), old_primary_id))
        return cursor.rowcount


class ContactStore:
    """Hands out one transaction per unit of work against a sqlite database."""

    def __init__(self, db_path: str, immediate: bool = False):
        self.db_path = db_path
        self.immediate = immediate

    @contextmanager
    def transaction(self) -> Iterator[ContactQueries]:
        with transaction(self.db_path, immediate=self.immediate) as conn:
            yield ContactQueries(conn)
