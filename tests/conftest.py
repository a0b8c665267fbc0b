"""
Pytest fixtures for intervention engine tests.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.store.models import Student, StudentStatus
from src.store.sqlite_store import InterventionStore
from src.workflow.controller import InterventionWorkflow

SAMPLE_ROSTER = [
    ("S001", "Alice Johnson"),
    ("S002", "Bob Smith"),
    ("S003", "Charlie Davis"),
]


def assert_task_invariant(student: Student):
    """current_task is set iff the student is Remedial."""
    assert bool(student.current_task) == (student.status is StudentStatus.REMEDIAL)


@pytest.fixture
def store(tmp_path):
    """Store on a temporary SQLite file, seeded with the sample roster."""
    store = InterventionStore(tmp_path / "engine.db")
    store.upsert_students(SAMPLE_ROSTER)
    return store


@pytest.fixture
def mock_dispatcher():
    """Dispatcher that records notifications instead of sending them."""
    mock = MagicMock()
    mock.dispatch = MagicMock()
    mock.aclose = AsyncMock()
    mock.configured = True
    return mock


@pytest.fixture
def workflow(store, mock_dispatcher):
    """Workflow controller wired to the temporary store and mock dispatcher."""
    return InterventionWorkflow(
        store,
        mock_dispatcher,
        assigned_by="Mentor",
        poll_interval_seconds=5.0,
    )


@pytest.fixture
def check_invariant(store):
    """Assert the current_task invariant for a student as stored now."""

    def _check(student_id: str) -> Student:
        student = store.get_student(student_id)
        assert_task_invariant(student)
        return student

    return _check
