import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator

from config import settings
from errors import StoreError

logger = logging.getLogger(__name__)


def init_db(db_path: str = None):
    """Create the Contact table if it does not exist yet."""
    conn = sqlite3.connect(db_path or settings.DATABASE_PATH)
    try:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS Contact (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                phoneNumber TEXT,
                email TEXT,
                linkedId INTEGER,
                linkPrecedence TEXT NOT NULL DEFAULT 'primary'
                    CHECK(linkPrecedence IN ('secondary', 'primary')),
                createdAt DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
                updatedAt DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP,
                deletedAt DATETIME,
                FOREIGN KEY (linkedId) REFERENCES Contact (id)
            )
        ''')
        conn.commit()
    finally:
        conn.close()

    logger.info("Contact table ready in %s", db_path or settings.DATABASE_PATH)


def get_db_connection(db_path: str = None) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path or settings.DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(db_path: str = None, immediate: bool = False) -> Iterator[sqlite3.Connection]:
    """
    Open a connection and run one transaction on it.

    Commits when the block exits normally and rolls back on any exception.
    The connection is closed on every exit path. sqlite failures, including
    a failed commit, are raised as StoreError.
    """
    try:
        conn = get_db_connection(db_path)
    except sqlite3.Error as exc:
        raise StoreError(f"Could not open contact store: {exc}") from exc

    try:
        conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        logger.exception("Transaction rolled back after store failure")
        raise StoreError(str(exc)) from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
