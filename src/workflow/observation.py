"""
Status observation protocol: what an observer sees and when it must re-poll.
"""

from dataclasses import dataclass
from typing import Optional

from src.store.models import Intervention, Student, StudentStatus

DEFAULT_POLL_INTERVAL_SECONDS = 5.0


def should_poll(status: StudentStatus) -> bool:
    """Observers re-poll only while a student awaits mentor review."""
    return StudentStatus(status) is StudentStatus.NEEDS_INTERVENTION


@dataclass
class StatusSnapshot:
    """Current student state plus the most recent Pending intervention."""
    student: Student
    intervention: Optional[Intervention]
    poll_after_seconds: Optional[float]

    @classmethod
    def build(
        cls,
        student: Student,
        pending: Optional[Intervention],
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    ) -> "StatusSnapshot":
        return cls(
            student=student,
            intervention=pending,
            poll_after_seconds=poll_interval_seconds if should_poll(student.status) else None
        )
