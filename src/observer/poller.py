"""
Status observer client: polls a student's status while a mentor review is pending.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from src.shared.config import settings
from src.shared.logging import get_logger
from src.store.models import StudentStatus
from src.workflow.observation import should_poll

logger = get_logger(__name__)


@dataclass
class ObservedStatus:
    """One status observation as returned by the API."""
    student_id: str
    status: StudentStatus
    current_task: Optional[str]
    intervention: Optional[Dict[str, Any]]
    poll_after_seconds: Optional[float]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObservedStatus":
        student = data.get("student") or {}
        return cls(
            student_id=student.get("student_id", ""),
            status=StudentStatus(student.get("status", StudentStatus.NORMAL.value)),
            current_task=student.get("current_task"),
            intervention=data.get("intervention"),
            poll_after_seconds=data.get("poll_after_seconds"),
        )


class StatusPoller:
    """Pull-based observer. No push channel; staleness is one polling interval."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        interval_seconds: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.observer.base_url).rstrip("/")
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None
            else settings.observer.poll_interval_seconds
        )
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                timeout_seconds if timeout_seconds is not None
                else settings.observer.request_timeout_seconds
            ),
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def fetch_status(self, student_id: str) -> ObservedStatus:
        """
        Fetch the current status once.

        Raises:
            httpx.HTTPError: On API communication failure
        """
        try:
            response = await self.client.get(f"{self.base_url}/api/student/{student_id}")
            response.raise_for_status()
            return ObservedStatus.from_dict(response.json())
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch status for {student_id}: {e}")
            raise

    async def watch(
        self,
        student_id: str,
        max_polls: Optional[int] = None
    ) -> List[ObservedStatus]:
        """
        Observe until the student leaves Needs Intervention.

        Fetches once; while the status is Needs Intervention, waits one interval
        and fetches again. Returns every observation in order, the last one
        being the first non-waiting status (or the max_polls-th observation).
        """
        observations = [await self.fetch_status(student_id)]

        while should_poll(observations[-1].status):
            if max_polls is not None and len(observations) >= max_polls:
                logger.info(
                    f"Stopped observing {student_id} after {len(observations)} polls",
                    extra={"student_id": student_id, "action": "observer_gave_up"}
                )
                break
            await asyncio.sleep(self.interval_seconds)
            observations.append(await self.fetch_status(student_id))

        return observations
