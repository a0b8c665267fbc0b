"""
Check-in, mentor assignment, and task completion endpoints.
"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, StrictInt

from src.api.dependencies import WorkflowDep

router = APIRouter(prefix="/api", tags=["workflow"])


class CheckinRequest(BaseModel):
    # Presence is checked by the workflow so every missing field gets the same error.
    # Scores are strict: "9" or 9.0 is rejected rather than coerced.
    student_id: Optional[str] = None
    quiz_score: Optional[StrictInt] = None
    focus_minutes: Optional[StrictInt] = None


class CheckinResponse(BaseModel):
    success: bool = True
    status: str
    message: str
    intervention_id: Optional[str] = None


class AssignRequest(BaseModel):
    student_id: Optional[str] = None
    task: Optional[str] = None
    intervention_id: Optional[str] = None


class AssignResponse(BaseModel):
    success: bool = True
    message: str
    task: str
    intervention_id: Optional[str] = None


class CompleteRequest(BaseModel):
    student_id: Optional[str] = None


class CompleteResponse(BaseModel):
    success: bool = True
    message: str


@router.post("/daily-checkin", response_model=CheckinResponse)
async def daily_checkin(body: CheckinRequest, workflow: WorkflowDep):
    result = await workflow.submit_checkin(body.student_id, body.quiz_score, body.focus_minutes)
    return CheckinResponse(
        status=result.status,
        message=result.message,
        intervention_id=result.intervention_id,
    )


@router.post("/assign-intervention", response_model=AssignResponse)
async def assign_intervention(body: AssignRequest, workflow: WorkflowDep):
    """Called by the reviewer automation after mentor approval."""
    result = await workflow.assign_task(body.student_id, body.task, body.intervention_id)
    return AssignResponse(
        message=result.message,
        task=result.task,
        intervention_id=result.intervention_id,
    )


@router.post("/complete-task", response_model=CompleteResponse)
async def complete_task(body: CompleteRequest, workflow: WorkflowDep):
    result = await workflow.complete_task(body.student_id)
    return CompleteResponse(message=result.message)
