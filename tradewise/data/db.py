import os
import sqlite3
from typing import Optional


DB_PATH = os.getenv("DB_PATH", "tradewise.sqlite3")


def get_connection(path: Optional[str] = None) -> sqlite3.Connection:
    """Return a sqlite3 connection with sensible defaults."""
    db_path = path or DB_PATH
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    """Create tables if they do not exist."""
    cur = conn.cursor()
    # Settings record (single row, JSON payload)
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS settings (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            payload TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )
    conn.commit()


def bootstrap_db(path: Optional[str] = None) -> None:
    """Ensure the SQLite database exists with the expected schema."""
    conn = get_connection(path)
    try:
        init_db(conn)
    finally:
        conn.close()
