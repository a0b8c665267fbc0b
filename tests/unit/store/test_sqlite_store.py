"""
Tests for InterventionStore: WAL mode, atomic multi-writes, open-episode uniqueness.
"""

import pytest

from src.shared.exceptions import StoreError
from src.store.models import InterventionStatus, StudentStatus
from src.store.sqlite_store import InterventionStore


def test_wal_mode_enabled(store):
    """Test that WAL mode is enabled."""
    with store._get_connection() as conn:
        result = conn.execute("PRAGMA journal_mode").fetchone()
        assert result[0].upper() == "WAL"


def test_upsert_student_is_idempotent(store):
    store.upsert_student("S001", "Alice J.")

    students = store.list_students()
    assert len(students) == 3
    alice = store.get_student("S001")
    assert alice.name == "Alice J."
    assert alice.status is StudentStatus.NORMAL


def test_upsert_does_not_reset_status(store):
    with store.transaction() as tx:
        tx.update_student("S002", StudentStatus.REMEDIAL, "Read chapter 2", None)

    store.upsert_student("S002", "Bob Smith")

    assert store.get_student("S002").status is StudentStatus.REMEDIAL


def test_transaction_rolls_back_all_writes(store):
    """A failure mid-operation leaves neither the log nor the status change behind."""
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.insert_daily_log("S001", 3, 20, "Needs Intervention")
            tx.update_student("S001", StudentStatus.NEEDS_INTERVENTION, None, None)
            raise RuntimeError("interrupted")

    assert store.list_daily_logs("S001") == []
    assert store.get_student("S001").status is StudentStatus.NORMAL


def test_sqlite_failure_surfaces_as_store_error(store):
    """Unknown students violate the daily log foreign key."""
    with pytest.raises(StoreError):
        with store.transaction() as tx:
            tx.insert_daily_log("S404", 3, 20, "Needs Intervention")


def test_second_open_episode_is_noop(store):
    with store.transaction() as tx:
        first = tx.insert_intervention("S001", "Low performance: Quiz 5/10, Focus 30 mins")
        second = tx.insert_intervention("S001", "Low performance: Quiz 4/10, Focus 10 mins")

    assert first is not None
    assert second is None
    assert [i.id for i in store.list_interventions("S001")] == [first.id]


def test_completed_episode_frees_the_slot(store):
    with store.transaction() as tx:
        first = tx.insert_intervention("S001", "first")
        tx.mark_assigned(first.id, "Read notes", "Mentor")
        tx.mark_completed(first.id)
        second = tx.insert_intervention("S001", "second")

    assert second is not None
    assert store.get_intervention(first.id).status is InterventionStatus.COMPLETED
    assert store.latest_intervention("S001", InterventionStatus.PENDING).id == second.id


def test_latest_intervention_filters_by_status(store):
    with store.transaction() as tx:
        episode = tx.insert_intervention("S002", "reason")

    assert store.latest_intervention("S002", InterventionStatus.PENDING).id == episode.id
    assert store.latest_intervention("S002", InterventionStatus.ASSIGNED) is None
    assert store.latest_intervention("S003", InterventionStatus.PENDING) is None


def test_daily_logs_are_append_only_in_order(store):
    with store.transaction() as tx:
        tx.insert_daily_log("S001", 9, 70, "On Track")
        tx.insert_daily_log("S001", 5, 30, "Needs Intervention")

    logs = store.list_daily_logs("S001")
    assert [(l.quiz_score, l.focus_minutes, l.status) for l in logs] == [
        (9, 70, "On Track"),
        (5, 30, "Needs Intervention"),
    ]
    assert all(l.logged_at for l in logs)


def test_reopening_existing_database_keeps_records(tmp_path):
    db_path = tmp_path / "engine.db"
    InterventionStore(db_path).upsert_student("S010", "Dana Lee")

    reopened = InterventionStore(db_path)

    assert reopened.get_student("S010").name == "Dana Lee"
    assert reopened.health_check()


def test_explicit_zero_busy_timeout_is_kept(tmp_path):
    store = InterventionStore(tmp_path / "zero.db", timeout=0)
    assert store.timeout == 0
    assert store.health_check()
