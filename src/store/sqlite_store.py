"""
InterventionStore: SQLite + WAL mode system of record for students,
daily logs, and interventions.
"""

import sqlite3
import uuid
from pathlib import Path
from typing import Optional, List, Iterator, Iterable, Tuple
from datetime import datetime, timezone
from contextlib import contextmanager

from src.shared.config import settings
from src.shared.exceptions import StoreError
from src.shared.logging import get_logger
from src.store.models import (
    DailyLog,
    Intervention,
    InterventionStatus,
    OPEN_INTERVENTION_STATUSES,
    Student,
    StudentStatus,
)

logger = get_logger(__name__)

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS students (
        student_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'Normal',
        current_task TEXT,
        current_intervention_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS daily_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        student_id TEXT NOT NULL,
        quiz_score INTEGER NOT NULL,
        focus_minutes INTEGER NOT NULL,
        status TEXT NOT NULL,
        logged_at TEXT NOT NULL,
        FOREIGN KEY (student_id) REFERENCES students(student_id)
    );

    CREATE TABLE IF NOT EXISTS interventions (
        id TEXT PRIMARY KEY,
        student_id TEXT NOT NULL,
        reason TEXT NOT NULL,
        assigned_task TEXT,
        assigned_by TEXT,
        assigned_at TEXT,
        completed_at TEXT,
        status TEXT NOT NULL DEFAULT 'Pending',
        created_at TEXT NOT NULL,
        FOREIGN KEY (student_id) REFERENCES students(student_id)
    );

    CREATE INDEX IF NOT EXISTS idx_daily_logs_student ON daily_logs(student_id);
    CREATE INDEX IF NOT EXISTS idx_interventions_student ON interventions(student_id);
    CREATE INDEX IF NOT EXISTS idx_interventions_status ON interventions(status);

    -- At most one open (Pending/Assigned) episode per student
    CREATE UNIQUE INDEX IF NOT EXISTS idx_interventions_one_open
        ON interventions(student_id)
        WHERE status IN ('Pending', 'Assigned');
"""

_OPEN_PLACEHOLDERS = ", ".join("?" for _ in OPEN_INTERVENTION_STATUSES)
_OPEN_VALUES = tuple(s.value for s in OPEN_INTERVENTION_STATUSES)


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class StoreTransaction:
    """Reads and writes bound to one open write transaction."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def get_student(self, student_id: str) -> Optional[Student]:
        row = self.conn.execute(
            "SELECT * FROM students WHERE student_id = ?",
            (student_id,)
        ).fetchone()
        return Student(**dict(row)) if row else None

    def update_student(
        self,
        student_id: str,
        status: StudentStatus,
        current_task: Optional[str],
        current_intervention_id: Optional[str]
    ) -> None:
        """Overwrite the student's workflow facets in one statement."""
        self.conn.execute(
            """UPDATE students
               SET status = ?,
                   current_task = ?,
                   current_intervention_id = ?,
                   updated_at = ?
               WHERE student_id = ?""",
            (
                StudentStatus(status).value,
                current_task,
                current_intervention_id,
                utc_now(),
                student_id
            )
        )

    def insert_daily_log(
        self,
        student_id: str,
        quiz_score: int,
        focus_minutes: int,
        status: str
    ) -> DailyLog:
        logged_at = utc_now()
        cursor = self.conn.execute(
            """INSERT INTO daily_logs (student_id, quiz_score, focus_minutes, status, logged_at)
               VALUES (?, ?, ?, ?, ?)""",
            (student_id, quiz_score, focus_minutes, status, logged_at)
        )
        return DailyLog(
            id=cursor.lastrowid,
            student_id=student_id,
            quiz_score=quiz_score,
            focus_minutes=focus_minutes,
            status=status,
            logged_at=logged_at
        )

    def get_intervention(self, intervention_id: str) -> Optional[Intervention]:
        row = self.conn.execute(
            "SELECT * FROM interventions WHERE id = ?",
            (intervention_id,)
        ).fetchone()
        return Intervention(**dict(row)) if row else None

    def find_open_intervention(self, student_id: str) -> Optional[Intervention]:
        """Return the student's Pending or Assigned intervention, if any."""
        row = self.conn.execute(
            f"""SELECT * FROM interventions
                WHERE student_id = ? AND status IN ({_OPEN_PLACEHOLDERS})
                ORDER BY created_at DESC, rowid DESC
                LIMIT 1""",
            (student_id, *_OPEN_VALUES)
        ).fetchone()
        return Intervention(**dict(row)) if row else None

    def find_intervention(
        self,
        student_id: str,
        status: InterventionStatus
    ) -> Optional[Intervention]:
        """Most recent intervention for a student in the given status."""
        row = self.conn.execute(
            """SELECT * FROM interventions
               WHERE student_id = ? AND status = ?
               ORDER BY created_at DESC, rowid DESC
               LIMIT 1""",
            (student_id, InterventionStatus(status).value)
        ).fetchone()
        return Intervention(**dict(row)) if row else None

    def insert_intervention(self, student_id: str, reason: str) -> Optional[Intervention]:
        """
        Open a new Pending intervention.

        Returns None when the student already has an open intervention
        (conflict on the one-open-episode index is a no-op).
        """
        intervention = Intervention(
            id=uuid.uuid4().hex,
            student_id=student_id,
            reason=reason,
            status=InterventionStatus.PENDING,
            created_at=utc_now()
        )

        self.conn.execute("SAVEPOINT open_intervention")
        try:
            self.conn.execute(
                """INSERT INTO interventions (id, student_id, reason, status, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    intervention.id,
                    intervention.student_id,
                    intervention.reason,
                    intervention.status.value,
                    intervention.created_at
                )
            )
        except sqlite3.IntegrityError:
            self.conn.execute("ROLLBACK TO SAVEPOINT open_intervention")
            self.conn.execute("RELEASE SAVEPOINT open_intervention")
            if self.find_open_intervention(student_id) is None:
                raise
            logger.debug(f"Open intervention already exists for {student_id}, skipping insert")
            return None

        self.conn.execute("RELEASE SAVEPOINT open_intervention")
        return intervention

    def mark_assigned(
        self,
        intervention_id: str,
        task: str,
        assigned_by: str
    ) -> None:
        self.conn.execute(
            """UPDATE interventions
               SET assigned_task = ?,
                   assigned_by = ?,
                   assigned_at = ?,
                   status = ?
               WHERE id = ?""",
            (task, assigned_by, utc_now(), InterventionStatus.ASSIGNED.value, intervention_id)
        )

    def mark_completed(self, intervention_id: str) -> None:
        self.conn.execute(
            """UPDATE interventions
               SET completed_at = ?,
                   status = ?
               WHERE id = ?""",
            (utc_now(), InterventionStatus.COMPLETED.value, intervention_id)
        )


class InterventionStore:
    """System of record for the intervention workflow."""

    def __init__(self, db_path: Optional[Path] = None, timeout: Optional[float] = None):
        self.db_path = Path(db_path or settings.store.db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout if timeout is not None else settings.store.busy_timeout_seconds

        self._init_database()

    def _init_database(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get database connection; sqlite errors surface as StoreError."""
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        except sqlite3.Error as e:
            raise StoreError(f"Failed to open store {self.db_path}: {e}") from e

        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """
        Open a write transaction. All writes commit together or not at all.

        BEGIN IMMEDIATE takes the write lock up front so concurrent writers
        serialize instead of failing at commit time.
        """
        with self._get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StoreError(f"Failed to begin transaction: {e}") from e
            yield StoreTransaction(conn)

    def health_check(self) -> bool:
        """Check the store answers queries."""
        try:
            with self._get_connection() as conn:
                return conn.execute("SELECT 1").fetchone()[0] == 1
        except StoreError as e:
            logger.error(f"Store health check failed: {e}")
            return False

    # Roster provisioning

    def upsert_student(self, student_id: str, name: str) -> Student:
        """Create a student (status Normal) or rename an existing one."""
        now = utc_now()
        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO students (student_id, name, status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(student_id) DO UPDATE SET name = excluded.name, updated_at = excluded.updated_at""",
                (student_id, name, StudentStatus.NORMAL.value, now, now)
            )
            row = conn.execute(
                "SELECT * FROM students WHERE student_id = ?",
                (student_id,)
            ).fetchone()
        return Student(**dict(row))

    def upsert_students(self, roster: Iterable[Tuple[str, str]]) -> List[Student]:
        return [self.upsert_student(student_id, name) for student_id, name in roster]

    # Reads

    def list_students(self) -> List[Student]:
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM students ORDER BY student_id").fetchall()
        return [Student(**dict(row)) for row in rows]

    def get_student(self, student_id: str) -> Optional[Student]:
        with self._get_connection() as conn:
            return StoreTransaction(conn).get_student(student_id)

    def get_intervention(self, intervention_id: str) -> Optional[Intervention]:
        with self._get_connection() as conn:
            return StoreTransaction(conn).get_intervention(intervention_id)

    def latest_intervention(
        self,
        student_id: str,
        status: InterventionStatus
    ) -> Optional[Intervention]:
        with self._get_connection() as conn:
            return StoreTransaction(conn).find_intervention(student_id, status)

    def list_interventions(
        self,
        student_id: str,
        statuses: Optional[Iterable[InterventionStatus]] = None
    ) -> List[Intervention]:
        """Interventions for a student, oldest first."""
        query = "SELECT * FROM interventions WHERE student_id = ?"
        params: list = [student_id]
        if statuses is not None:
            values = [InterventionStatus(s).value for s in statuses]
            query += f" AND status IN ({', '.join('?' for _ in values)})"
            params.extend(values)
        query += " ORDER BY created_at ASC, rowid ASC"

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [Intervention(**dict(row)) for row in rows]

    def list_daily_logs(self, student_id: str) -> List[DailyLog]:
        """Daily logs for a student, oldest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM daily_logs WHERE student_id = ? ORDER BY id ASC",
                (student_id,)
            ).fetchall()
        return [DailyLog(**dict(row)) for row in rows]
