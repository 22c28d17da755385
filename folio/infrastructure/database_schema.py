"""
Database schema initialization for Folio.

Contains the SQL schema and initialization logic, kept apart from
database.py so connection handling stays small.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from folio.observability.logging import get_logger

logger = get_logger(__name__)


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Safe to run multiple times - uses CREATE TABLE IF NOT EXISTS.

    Side Effects:
    - Creates the parent directory if needed
    - Creates users, blacklist, access_logs and cooldowns tables and indexes
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)

    conn.executescript("""
        -- Source of truth for access: -1 blocked, 0 public, 1+ tiers (5 = VIP)
        CREATE TABLE IF NOT EXISTS users (
            uuid TEXT PRIMARY KEY,
            email TEXT UNIQUE,
            name TEXT,
            access_level INTEGER DEFAULT 0,
            notes TEXT,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
            last_seen DATETIME DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS blacklist (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT UNIQUE NOT NULL,
            reason TEXT,
            timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
        );

        -- Append-only
        CREATE TABLE IF NOT EXISTS access_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            uuid TEXT,
            email TEXT,
            name TEXT,
            ip TEXT,
            user_agent TEXT,
            payload TEXT,
            timestamp DATETIME DEFAULT CURRENT_TIMESTAMP
        );

        -- timestamp is epoch milliseconds
        CREATE TABLE IF NOT EXISTS cooldowns (
            key TEXT PRIMARY KEY,
            timestamp INTEGER NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_users_last_seen ON users(last_seen);
        CREATE INDEX IF NOT EXISTS idx_access_logs_uuid ON access_logs(uuid);
    """)

    conn.commit()
    conn.close()

    logger.info("Database initialized: %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Validate database has expected schema

    Raises:
        ValueError: If tables or columns are missing
    """
    required_tables = {
        "users": ["uuid", "email", "name", "access_level", "created_at", "last_seen"],
        "blacklist": ["id", "email", "reason", "timestamp"],
        "access_logs": ["id", "uuid", "email", "ip", "payload", "timestamp"],
        "cooldowns": ["key", "timestamp"],
    }

    cursor = conn.cursor()

    cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
    existing_tables = {row[0] for row in cursor.fetchall()}

    missing_tables = set(required_tables.keys()) - existing_tables
    if missing_tables:
        raise ValueError(f"Database missing tables: {missing_tables}")

    for table, required_cols in required_tables.items():
        # Identifiers cannot be parameterized; names come from the dict above
        if not table.replace("_", "").isalnum():
            raise ValueError(f"Invalid table name: {table}")

        cursor.execute(f"PRAGMA table_info({table})")
        existing_cols = {row[1] for row in cursor.fetchall()}

        missing_cols = set(required_cols) - existing_cols
        if missing_cols:
            raise ValueError(f"Table '{table}' missing columns: {missing_cols}")

    return True
