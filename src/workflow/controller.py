"""
Intervention workflow controller: reacts to check-ins, mentor assignments,
and task completions.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

from src.notify.dispatcher import InterventionNotification, NotificationDispatcher
from src.shared.config import settings
from src.shared.exceptions import NotFoundError, ValidationError
from src.shared.logging import get_logger, log_with_context
from src.store.models import (
    Intervention,
    InterventionStatus,
    Student,
    StudentStatus,
)
from src.store.sqlite_store import InterventionStore, StoreTransaction
from src.workflow.gate import Outcome, evaluate
from src.workflow.observation import StatusSnapshot

logger = get_logger(__name__)

STATUS_ON_TRACK = "On Track"
STATUS_PENDING_REVIEW = "Pending Mentor Review"

MESSAGE_ON_TRACK = "Great job! Keep up the good work."
MESSAGE_PENDING_REVIEW = "Your performance needs attention. A mentor will review shortly."
MESSAGE_ASSIGNED = "Intervention assigned successfully"
MESSAGE_COMPLETED = "Task completed! You are back to normal mode."

QUIZ_SCORE_RANGE = (0, 10)


@dataclass
class CheckinResult:
    """Outcome of a daily check-in."""
    status: str
    message: str
    outcome: Outcome
    intervention_id: Optional[str] = None


@dataclass
class AssignResult:
    """Outcome of a mentor task assignment."""
    message: str
    task: str
    intervention_id: Optional[str] = None


@dataclass
class CompleteResult:
    """Outcome of a remedial task completion."""
    message: str
    intervention_id: Optional[str] = None


class StudentLocks:
    """Per-student critical sections. Different students never contend."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, student_id: str) -> AsyncIterator[None]:
        async with self._locks[student_id]:
            yield


def _require(value: Any, field_name: str) -> None:
    """Absent means None; 0 and other falsy values count as present."""
    if value is None:
        raise ValidationError(f"Missing required field: {field_name}")


def _require_text(value: Optional[str], field_name: str) -> str:
    _require(value, field_name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required field: {field_name}")
    return value


def _require_int(value: Any, field_name: str) -> int:
    _require(value, field_name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer")
    return value


class InterventionWorkflow:
    """Composition root of the intervention state machine."""

    def __init__(
        self,
        store: InterventionStore,
        dispatcher: NotificationDispatcher,
        locks: Optional[StudentLocks] = None,
        assigned_by: Optional[str] = None,
        poll_interval_seconds: Optional[float] = None
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.locks = locks or StudentLocks()
        self.assigned_by = (
            assigned_by if assigned_by is not None else settings.notification.assigned_by
        )
        self.poll_interval_seconds = (
            poll_interval_seconds if poll_interval_seconds is not None
            else settings.observer.poll_interval_seconds
        )

    async def submit_checkin(
        self,
        student_id: Optional[str],
        quiz_score: Optional[int],
        focus_minutes: Optional[int]
    ) -> CheckinResult:
        """
        Record a check-in and drive the student through the decision gate.

        Raises:
            ValidationError: a field is missing or out of range
            NotFoundError: student_id is not on the roster
            StoreError: the store failed; no write of this check-in is kept
        """
        student_id = _require_text(student_id, "student_id")
        quiz_score = _require_int(quiz_score, "quiz_score")
        focus_minutes = _require_int(focus_minutes, "focus_minutes")

        low, high = QUIZ_SCORE_RANGE
        if not low <= quiz_score <= high:
            raise ValidationError(f"quiz_score must be between {low} and {high}")
        if focus_minutes < 0:
            raise ValidationError("focus_minutes must be non-negative")

        outcome = evaluate(quiz_score, focus_minutes)
        notification: Optional[InterventionNotification] = None
        episode: Optional[Intervention] = None

        async with self.locks.hold(student_id):
            with self.store.transaction() as tx:
                student = self._get_student(tx, student_id)
                tx.insert_daily_log(student_id, quiz_score, focus_minutes, outcome.label)

                if outcome is Outcome.PASS:
                    tx.update_student(
                        student_id,
                        StudentStatus.NORMAL,
                        current_task=None,
                        current_intervention_id=student.current_intervention_id
                    )
                else:
                    episode, created = self._open_episode(tx, student_id, quiz_score, focus_minutes)
                    tx.update_student(
                        student_id,
                        StudentStatus.NEEDS_INTERVENTION,
                        current_task=None,
                        current_intervention_id=episode.id
                    )
                    if created:
                        notification = InterventionNotification.for_checkin(
                            student_id=student_id,
                            student_name=student.name,
                            quiz_score=quiz_score,
                            focus_minutes=focus_minutes,
                            intervention_id=episode.id
                        )

        if outcome is Outcome.PASS:
            log_with_context(
                logger, logging.INFO, "Check-in passed",
                student_id=student_id, action="checkin_passed",
                quiz_score=quiz_score, focus_minutes=focus_minutes
            )
            return CheckinResult(
                status=STATUS_ON_TRACK,
                message=MESSAGE_ON_TRACK,
                outcome=outcome
            )

        log_with_context(
            logger, logging.INFO, "Check-in failed, intervention open",
            student_id=student_id, action="checkin_failed",
            intervention_id=episode.id,
            quiz_score=quiz_score, focus_minutes=focus_minutes,
            reused_episode=notification is None
        )
        if notification is not None:
            self.dispatcher.dispatch(notification)

        return CheckinResult(
            status=STATUS_PENDING_REVIEW,
            message=MESSAGE_PENDING_REVIEW,
            outcome=outcome,
            intervention_id=episode.id
        )

    async def assign_task(
        self,
        student_id: Optional[str],
        task: Optional[str],
        intervention_id: Optional[str] = None
    ) -> AssignResult:
        """
        Attach a remedial task and move the student to Remedial.

        The episode updated is intervention_id when it names an open episode of
        this student, otherwise the student's current open episode.
        """
        student_id = _require_text(student_id, "student_id")
        task = _require_text(task, "task")

        async with self.locks.hold(student_id):
            with self.store.transaction() as tx:
                self._get_student(tx, student_id)
                episode = self._resolve_open_episode(tx, student_id, intervention_id)

                if episode is not None:
                    tx.mark_assigned(episode.id, task, self.assigned_by)
                else:
                    log_with_context(
                        logger, logging.WARNING,
                        "No open intervention to assign, updating student only",
                        student_id=student_id, action="assign_without_episode",
                        requested_intervention_id=intervention_id
                    )

                tx.update_student(
                    student_id,
                    StudentStatus.REMEDIAL,
                    current_task=task,
                    current_intervention_id=episode.id if episode else None
                )

        log_with_context(
            logger, logging.INFO, f"Intervention assigned to {student_id}: {task}",
            student_id=student_id, action="task_assigned",
            intervention_id=episode.id if episode else None
        )
        return AssignResult(
            message=MESSAGE_ASSIGNED,
            task=task,
            intervention_id=episode.id if episode else None
        )

    async def complete_task(self, student_id: Optional[str]) -> CompleteResult:
        """Close the student's Assigned episode (if any) and return them to Normal."""
        student_id = _require_text(student_id, "student_id")

        async with self.locks.hold(student_id):
            with self.store.transaction() as tx:
                student = self._get_student(tx, student_id)
                episode = self._current_assigned_episode(tx, student)

                if episode is not None:
                    tx.mark_completed(episode.id)

                remaining = tx.find_open_intervention(student_id)
                tx.update_student(
                    student_id,
                    StudentStatus.NORMAL,
                    current_task=None,
                    current_intervention_id=remaining.id if remaining else None
                )

        log_with_context(
            logger, logging.INFO, f"Task completed by {student_id}",
            student_id=student_id, action="task_completed",
            intervention_id=episode.id if episode else None
        )
        return CompleteResult(
            message=MESSAGE_COMPLETED,
            intervention_id=episode.id if episode else None
        )

    def list_students(self) -> List[Student]:
        return self.store.list_students()

    def get_status(self, student_id: str) -> StatusSnapshot:
        """
        Current student snapshot plus the most recent Pending intervention.

        Raises:
            NotFoundError: student_id is not on the roster
        """
        student = self.store.get_student(student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")

        pending = self.store.latest_intervention(student_id, InterventionStatus.PENDING)
        return StatusSnapshot.build(student, pending, self.poll_interval_seconds)

    def _get_student(self, tx: StoreTransaction, student_id: str) -> Student:
        student = tx.get_student(student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")
        return student

    def _open_episode(
        self,
        tx: StoreTransaction,
        student_id: str,
        quiz_score: int,
        focus_minutes: int
    ) -> tuple[Intervention, bool]:
        """Return (episode, created). An already open episode is reused."""
        existing = tx.find_open_intervention(student_id)
        if existing is not None:
            return existing, False

        created = tx.insert_intervention(
            student_id,
            reason=f"Low performance: Quiz {quiz_score}/10, Focus {focus_minutes} mins"
        )
        if created is None:
            # Lost a race on the one-open-episode index
            return tx.find_open_intervention(student_id), False
        return created, True

    def _resolve_open_episode(
        self,
        tx: StoreTransaction,
        student_id: str,
        intervention_id: Optional[str]
    ) -> Optional[Intervention]:
        if intervention_id:
            requested = tx.get_intervention(intervention_id)
            if requested is not None and requested.student_id == student_id and requested.is_open:
                return requested
            log_with_context(
                logger, logging.WARNING,
                "Requested intervention is not an open episode of this student",
                student_id=student_id, action="assign_episode_mismatch",
                requested_intervention_id=intervention_id
            )
        return tx.find_open_intervention(student_id)

    def _current_assigned_episode(
        self,
        tx: StoreTransaction,
        student: Student
    ) -> Optional[Intervention]:
        if student.current_intervention_id:
            current = tx.get_intervention(student.current_intervention_id)
            if current is not None and current.status is InterventionStatus.ASSIGNED:
                return current
        return tx.find_intervention(student.student_id, InterventionStatus.ASSIGNED)
