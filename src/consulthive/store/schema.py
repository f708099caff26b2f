"""SQLite schema for the marketplace lifecycle records.

Follows the same pattern as ``init_audit_table()`` in
``consulthive.audit.store``: idempotent ``CREATE ... IF NOT EXISTS`` DDL
executed on an open connection.  Unique constraints carry the 1:1 and
"at most one" invariants so the database rejects duplicates even if a
caller skips the service-level checks.
"""

from __future__ import annotations

import sqlite3

from consulthive.audit.store import init_audit_table

_TABLES: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        first_name TEXT,
        last_name TEXT,
        role TEXT NOT NULL DEFAULT 'CLIENT',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS skill_tags (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS consultant_profiles (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE REFERENCES users (id),
        headline TEXT,
        bio TEXT,
        hourly_rate TEXT NOT NULL,
        currency TEXT NOT NULL,
        is_available INTEGER NOT NULL DEFAULT 1,
        consent_directory INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS consultant_skills (
        profile_id TEXT NOT NULL REFERENCES consultant_profiles (id),
        skill_tag_id TEXT NOT NULL REFERENCES skill_tags (id),
        PRIMARY KEY (profile_id, skill_tag_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS requests (
        id TEXT PRIMARY KEY,
        creator_id TEXT NOT NULL REFERENCES users (id),
        title TEXT NOT NULL,
        raw_description TEXT NOT NULL,
        refined_summary TEXT,
        constraints TEXT,
        desired_outcome TEXT,
        suggested_duration INTEGER,
        urgency TEXT NOT NULL DEFAULT 'NORMAL',
        budget TEXT,
        currency TEXT NOT NULL,
        is_public INTEGER NOT NULL DEFAULT 1,
        status TEXT NOT NULL DEFAULT 'DRAFT',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS request_skills (
        request_id TEXT NOT NULL REFERENCES requests (id),
        skill_tag_id TEXT NOT NULL REFERENCES skill_tags (id),
        PRIMARY KEY (request_id, skill_tag_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS offers (
        id TEXT PRIMARY KEY,
        request_id TEXT NOT NULL REFERENCES requests (id),
        consultant_id TEXT NOT NULL REFERENCES consultant_profiles (id),
        message TEXT,
        proposed_rate TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'PENDING',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (request_id, consultant_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bookings (
        id TEXT PRIMARY KEY,
        request_id TEXT REFERENCES requests (id),
        offer_id TEXT UNIQUE REFERENCES offers (id),
        client_id TEXT NOT NULL REFERENCES users (id),
        consultant_id TEXT NOT NULL REFERENCES users (id),
        scheduled_start TEXT,
        duration INTEGER NOT NULL,
        status TEXT NOT NULL DEFAULT 'PENDING',
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        id TEXT PRIMARY KEY,
        booking_id TEXT NOT NULL UNIQUE REFERENCES bookings (id),
        status TEXT NOT NULL DEFAULT 'PENDING',
        external_reference TEXT,
        amount TEXT,
        currency TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS engagements (
        id TEXT PRIMARY KEY,
        booking_id TEXT NOT NULL UNIQUE REFERENCES bookings (id),
        status TEXT NOT NULL DEFAULT 'ACTIVE',
        agenda TEXT,
        video_link TEXT,
        started_at TEXT NOT NULL,
        ended_at TEXT,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        seq INTEGER NOT NULL,
        engagement_id TEXT NOT NULL REFERENCES engagements (id),
        author_id TEXT NOT NULL REFERENCES users (id),
        content TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE (engagement_id, seq)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notes (
        id TEXT PRIMARY KEY,
        engagement_id TEXT NOT NULL REFERENCES engagements (id),
        author_id TEXT NOT NULL REFERENCES users (id),
        title TEXT,
        content TEXT NOT NULL,
        is_private INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS checklist_items (
        id TEXT PRIMARY KEY,
        engagement_id TEXT NOT NULL REFERENCES engagements (id),
        text TEXT NOT NULL,
        is_completed INTEGER NOT NULL DEFAULT 0,
        position INTEGER NOT NULL CHECK (position >= 0),
        created_at TEXT NOT NULL,
        UNIQUE (engagement_id, position)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transfer_packs (
        id TEXT PRIMARY KEY,
        engagement_id TEXT NOT NULL UNIQUE REFERENCES engagements (id),
        summary TEXT,
        key_decisions TEXT,
        runbook TEXT,
        next_steps TEXT,
        internalization_checklist TEXT,
        ai_generated INTEGER NOT NULL DEFAULT 0,
        is_finalized INTEGER NOT NULL DEFAULT 0,
        finalized_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reviews (
        id TEXT PRIMARY KEY,
        engagement_id TEXT NOT NULL REFERENCES engagements (id),
        author_id TEXT NOT NULL REFERENCES users (id),
        target_id TEXT NOT NULL REFERENCES users (id),
        type TEXT NOT NULL,
        rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
        comment TEXT,
        is_public INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        UNIQUE (engagement_id, author_id, type)
    )
    """,
)

_INDEXES: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS idx_requests_creator ON requests (creator_id)",
    "CREATE INDEX IF NOT EXISTS idx_requests_status ON requests (status, is_public)",
    "CREATE INDEX IF NOT EXISTS idx_offers_request ON offers (request_id, status)",
    # At most one ACCEPTED offer per request, whatever path wrote it.
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_offers_one_accepted "
        "ON offers (request_id) WHERE status = 'ACCEPTED'"
    ),
    "CREATE INDEX IF NOT EXISTS idx_bookings_client ON bookings (client_id)",
    "CREATE INDEX IF NOT EXISTS idx_bookings_consultant ON bookings (consultant_id)",
    "CREATE INDEX IF NOT EXISTS idx_notes_engagement ON notes (engagement_id)",
)


def init_marketplace_schema(conn: sqlite3.Connection) -> None:
    """Create every marketplace table, index and the audit log.

    Args:
        conn: An open sqlite3.Connection (WAL mode recommended).
    """
    for ddl in _TABLES:
        conn.execute(ddl)
    for ddl in _INDEXES:
        conn.execute(ddl)
    init_audit_table(conn)
    conn.commit()
