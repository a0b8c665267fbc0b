"""
Fire-and-forget reviewer notifications over an HTTP webhook.
"""

import asyncio
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Protocol, Set

import httpx

from src.shared.config import settings
from src.shared.exceptions import DispatchError
from src.shared.logging import get_logger

logger = get_logger(__name__)


@dataclass
class InterventionNotification:
    """Payload sent to the reviewer channel when a check-in fails."""
    student_id: str
    student_name: str
    quiz_score: int
    focus_minutes: int
    intervention_id: str
    reason: str

    @classmethod
    def for_checkin(
        cls,
        student_id: str,
        student_name: str,
        quiz_score: int,
        focus_minutes: int,
        intervention_id: str
    ) -> "InterventionNotification":
        return cls(
            student_id=student_id,
            student_name=student_name,
            quiz_score=quiz_score,
            focus_minutes=focus_minutes,
            intervention_id=intervention_id,
            reason=f"Quiz Score: {quiz_score}/10, Focus Time: {focus_minutes} mins"
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class NotificationDispatcher(Protocol):
    """Sends reviewer notifications without blocking or raising."""

    def dispatch(self, notification: InterventionNotification) -> None:
        ...

    async def aclose(self) -> None:
        ...


class WebhookDispatcher:
    """POSTs notifications to a webhook on background tasks. At-most-once, no retry."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url if url is not None else settings.notification.webhook_url
        self.timeout_seconds = (
            timeout_seconds if timeout_seconds is not None
            else settings.notification.timeout_seconds
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def configured(self) -> bool:
        return bool(self.url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            )
        return self._client

    def dispatch(self, notification: InterventionNotification) -> None:
        """Schedule delivery and return immediately. Requires a running event loop."""
        if not self.configured:
            logger.warning(
                "Webhook URL not configured, skipping reviewer notification",
                extra={"student_id": notification.student_id, "action": "notify_skipped"}
            )
            return

        task = asyncio.get_running_loop().create_task(self._deliver_safely(notification))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver_safely(self, notification: InterventionNotification) -> None:
        try:
            await self.deliver(notification)
        except DispatchError as e:
            logger.error(
                f"Reviewer notification failed: {e}",
                extra={
                    "student_id": notification.student_id,
                    "intervention_id": notification.intervention_id,
                    "action": "notify_failed",
                }
            )

    async def deliver(self, notification: InterventionNotification) -> None:
        """
        POST one notification.

        Raises:
            DispatchError on transport failure, timeout, or non-2xx response
        """
        try:
            response = await self._get_client().post(self.url, json=notification.to_dict())
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DispatchError(f"Webhook delivery to {self.url} failed: {e}") from e

        logger.info(
            "Reviewer notification delivered",
            extra={
                "student_id": notification.student_id,
                "intervention_id": notification.intervention_id,
                "action": "notify_delivered",
            }
        )

    async def drain(self) -> None:
        """Wait for in-flight deliveries."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._client is not None:
            await self._client.aclose()
            self._client = None
