"""
Pydantic models for students, daily logs, and interventions.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class StudentStatus(str, Enum):
    """Student workflow status."""
    NORMAL = "Normal"
    NEEDS_INTERVENTION = "Needs Intervention"
    REMEDIAL = "Remedial"


class InterventionStatus(str, Enum):
    """Intervention episode status."""
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    COMPLETED = "Completed"


OPEN_INTERVENTION_STATUSES = (InterventionStatus.PENDING, InterventionStatus.ASSIGNED)


class Student(BaseModel):
    """Student record model."""
    student_id: str
    name: str
    status: StudentStatus = StudentStatus.NORMAL
    current_task: Optional[str] = None
    current_intervention_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DailyLog(BaseModel):
    """Daily check-in log. Append-only."""
    id: Optional[int] = None
    student_id: str
    quiz_score: int
    focus_minutes: int
    status: str  # "On Track" | "Needs Intervention"
    logged_at: Optional[str] = None


class Intervention(BaseModel):
    """Remediation episode record."""
    id: str
    student_id: str
    reason: str
    assigned_task: Optional[str] = None
    assigned_by: Optional[str] = None
    assigned_at: Optional[str] = None
    completed_at: Optional[str] = None
    status: InterventionStatus = InterventionStatus.PENDING
    created_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_INTERVENTION_STATUSES
