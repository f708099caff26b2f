"""Connection management and the transactional unit of work.

The :class:`Database` object holds configuration only (path and busy
timeout).  Every unit of work opens its own connection, runs inside one
SQLite transaction and closes the connection afterwards, so no connection
is ever shared between threads or callers.

Write transactions start with ``BEGIN IMMEDIATE``: SQLite takes the write
lock up front, concurrent writers queue on the busy timeout, and any state
read inside the transaction is still current when it commits.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import structlog

from consulthive.audit.logger import AuditLogger
from consulthive.store.bookings import BookingRepository, PaymentRepository
from consulthive.store.engagements import EngagementRepository, WorkspaceRepository
from consulthive.store.offers import OfferRepository
from consulthive.store.requests import RequestRepository
from consulthive.store.reviews import ReviewRepository
from consulthive.store.schema import init_marketplace_schema
from consulthive.store.transfer_packs import TransferPackRepository
from consulthive.store.users import ProfileRepository, SkillRepository, UserRepository

logger = structlog.get_logger()


class UnitOfWork:
    """One open transaction plus the repositories bound to it."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.users = UserRepository(conn)
        self.skills = SkillRepository(conn)
        self.profiles = ProfileRepository(conn)
        self.requests = RequestRepository(conn)
        self.offers = OfferRepository(conn)
        self.bookings = BookingRepository(conn)
        self.payments = PaymentRepository(conn)
        self.engagements = EngagementRepository(conn)
        self.workspace = WorkspaceRepository(conn)
        self.transfer_packs = TransferPackRepository(conn)
        self.reviews = ReviewRepository(conn)
        self.audit = AuditLogger(conn)


class Database:
    """SQLite database opened per unit of work.

    Args:
        path: Path to the database file.
        busy_timeout: Seconds a writer waits for the lock before failing.
    """

    def __init__(self, path: Path | str, *, busy_timeout: float = 5.0) -> None:
        self._path = Path(path)
        self._busy_timeout = busy_timeout

    @property
    def path(self) -> Path:
        return self._path

    def connect(self) -> sqlite3.Connection:
        """Open a configured connection in autocommit mode.

        Transactions are managed explicitly with ``BEGIN``/``COMMIT``.
        """
        conn = sqlite3.connect(
            str(self._path),
            timeout=self._busy_timeout,
            isolation_level=None,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        conn.execute(f"PRAGMA busy_timeout={int(self._busy_timeout * 1000)}")
        return conn

    def initialize(self) -> None:
        """Create the database file, enable WAL and create every table."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = self.connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            init_marketplace_schema(conn)
        finally:
            conn.close()
        logger.info("Database initialized", path=str(self._path))

    @contextmanager
    def transaction(self, *, immediate: bool = True) -> Iterator[UnitOfWork]:
        """Run a block inside one transaction.

        Commits when the block exits normally; rolls back and re-raises on
        any exception.

        Args:
            immediate: Take the write lock at ``BEGIN`` (default).  Pass
                False for read-only work.

        Yields:
            A :class:`UnitOfWork` bound to the transaction.
        """
        conn = self.connect()
        try:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield UnitOfWork(conn)
            except BaseException:
                conn.rollback()
                raise
            conn.commit()
        finally:
            conn.close()

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            conn = self.connect()
            try:
                conn.execute("SELECT 1").fetchone()
            finally:
                conn.close()
        except sqlite3.Error:
            logger.warning("Database ping failed", path=str(self._path), exc_info=True)
            return False
        return True
