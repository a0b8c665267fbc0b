"""
Tests for the webhook dispatcher: payload, fire-and-forget, failure isolation.
"""

import asyncio
import json
import logging

import httpx
import pytest

from src.notify.dispatcher import InterventionNotification, WebhookDispatcher
from src.shared.exceptions import DispatchError
from src.store.models import StudentStatus
from src.workflow.controller import InterventionWorkflow, STATUS_PENDING_REVIEW

WEBHOOK_URL = "http://reviewer.test/webhook/intervention"


def _notification():
    return InterventionNotification.for_checkin(
        student_id="S001",
        student_name="Alice Johnson",
        quiz_score=5,
        focus_minutes=30,
        intervention_id="abc123",
    )


@pytest.mark.asyncio
async def test_delivers_payload_to_webhook():
    received = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append((str(request.url), json.loads(request.content)))
        return httpx.Response(200, json={"ok": True})

    dispatcher = WebhookDispatcher(WEBHOOK_URL, transport=httpx.MockTransport(handler))
    dispatcher.dispatch(_notification())
    await dispatcher.aclose()

    assert received == [(
        WEBHOOK_URL,
        {
            "student_id": "S001",
            "student_name": "Alice Johnson",
            "quiz_score": 5,
            "focus_minutes": 30,
            "intervention_id": "abc123",
            "reason": "Quiz Score: 5/10, Focus Time: 30 mins",
        },
    )]


@pytest.mark.asyncio
async def test_dispatch_does_not_wait_for_delivery():
    release = asyncio.Event()
    received = []

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        received.append(request)
        return httpx.Response(200)

    dispatcher = WebhookDispatcher(WEBHOOK_URL, transport=httpx.MockTransport(handler))
    dispatcher.dispatch(_notification())

    # Returned before the receiver answered
    assert received == []

    release.set()
    await dispatcher.aclose()
    assert len(received) == 1


@pytest.mark.asyncio
async def test_deliver_raises_dispatch_error_on_server_error():
    dispatcher = WebhookDispatcher(
        WEBHOOK_URL,
        transport=httpx.MockTransport(lambda request: httpx.Response(502)),
    )

    with pytest.raises(DispatchError):
        await dispatcher.deliver(_notification())
    await dispatcher.aclose()


@pytest.mark.asyncio
async def test_failed_delivery_is_logged_not_raised(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    dispatcher = WebhookDispatcher(WEBHOOK_URL, transport=httpx.MockTransport(handler))

    with caplog.at_level(logging.ERROR):
        dispatcher.dispatch(_notification())
        await dispatcher.aclose()

    assert any("Reviewer notification failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_timeout_is_a_dispatch_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("receiver too slow", request=request)

    dispatcher = WebhookDispatcher(
        WEBHOOK_URL, timeout_seconds=0.5, transport=httpx.MockTransport(handler)
    )

    with pytest.raises(DispatchError):
        await dispatcher.deliver(_notification())
    await dispatcher.aclose()


@pytest.mark.asyncio
async def test_missing_url_skips_dispatch(caplog):
    calls = []
    dispatcher = WebhookDispatcher(
        "", transport=httpx.MockTransport(lambda request: calls.append(request))
    )

    assert not dispatcher.configured
    with caplog.at_level(logging.WARNING):
        dispatcher.dispatch(_notification())
        await dispatcher.aclose()

    assert calls == []
    assert any("not configured" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_checkin_succeeds_when_webhook_is_down(store):
    """Dispatch failure never rolls back the check-in or changes its result."""
    dispatcher = WebhookDispatcher(
        WEBHOOK_URL,
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    workflow = InterventionWorkflow(store, dispatcher)

    result = await workflow.submit_checkin("S001", 4, 20)
    await dispatcher.aclose()

    assert result.status == STATUS_PENDING_REVIEW
    assert store.get_student("S001").status is StudentStatus.NEEDS_INTERVENTION
    assert len(store.list_interventions("S001")) == 1


def test_explicit_zero_timeout_is_kept():
    dispatcher = WebhookDispatcher(WEBHOOK_URL, timeout_seconds=0)
    assert dispatcher.timeout_seconds == 0
