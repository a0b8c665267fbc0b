"""
Student roster and status observation endpoints.
"""

from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from src.api.dependencies import WorkflowDep
from src.store.models import Intervention, Student

router = APIRouter(prefix="/api", tags=["students"])


class StudentsResponse(BaseModel):
    success: bool = True
    students: List[Student]


class StudentStatusResponse(BaseModel):
    """Student snapshot plus the most recent Pending intervention.

    poll_after_seconds is set while the student awaits mentor review;
    observers re-poll after that many seconds and stop once it is null.
    """

    success: bool = True
    student: Student
    intervention: Optional[Intervention] = None
    poll_after_seconds: Optional[float] = None


@router.get("/students", response_model=StudentsResponse)
async def list_students(workflow: WorkflowDep):
    return StudentsResponse(students=workflow.list_students())


@router.get("/student/{student_id}", response_model=StudentStatusResponse)
async def get_student_status(student_id: str, workflow: WorkflowDep):
    snapshot = workflow.get_status(student_id)
    return StudentStatusResponse(
        student=snapshot.student,
        intervention=snapshot.intervention,
        poll_after_seconds=snapshot.poll_after_seconds,
    )
