"""Unit tests for run report emails."""

import json

import httpx
import pytest

from bjj_curator.models.curation_run import CurationRun, RunStatus, RunType
from bjj_curator.services.notification_service import (
    RESEND_API_URL,
    NotificationService,
    build_run_report,
)


def make_run(**overrides) -> CurationRun:
    fields = {
        "id": "run-123",
        "run_type": RunType.SCHEDULED,
        "status": RunStatus.COMPLETED,
        "created_at": "2026-03-10T18:00:00+00:00",
        "started_at": "2026-03-10T18:00:01+00:00",
        "completed_at": "2026-03-10T18:12:00+00:00",
        "videos_analyzed": 80,
        "videos_added": 8,
        "videos_rejected": 72,
        "videos_skipped_duration": 12,
        "quota_used": 503,
        "acceptance_rate": 10.0,
        "guardrail_status": "ok",
    }
    fields.update(overrides)
    return CurationRun(**fields)


class TestBuildRunReport:
    def test_completed_report(self):
        subject, body = build_run_report(make_run())
        assert subject == "✅ Scheduled Curation Complete: 8 videos added"
        assert "Approval rate: 10.0% (ok)" in body
        assert "Quota used: 503 units" in body
        assert "  duration: 12" in body

    def test_failed_report(self):
        run = make_run(status=RunStatus.FAILED, run_type=RunType.MANUAL, error_message="Worker timed out after 1200 seconds")
        subject, body = build_run_report(run)
        assert subject == "❌ Manual Curation Failed"
        assert "Error: Worker timed out after 1200 seconds" in body

    def test_missing_rate(self):
        _, body = build_run_report(make_run(acceptance_rate=None, guardrail_status=None, videos_analyzed=0))
        assert "Approval rate: n/a (no-data)" in body


class TestNotificationService:
    def test_disabled_without_credentials(self):
        assert not NotificationService(None, "me@example.com", "bot@example.com").enabled
        assert not NotificationService("key", None, "bot@example.com").enabled
        assert NotificationService("key", "me@example.com", "bot@example.com").enabled

    @pytest.mark.asyncio
    async def test_disabled_service_sends_nothing(self):
        service = NotificationService(None, None, "bot@example.com")
        assert await service.send_run_report(make_run()) is False

    @pytest.mark.asyncio
    async def test_posts_report_to_resend(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"id": "email-1"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = NotificationService("re_test", "coach@example.com", "bot@example.com", client=client)
            assert await service.send_run_report(make_run()) is True

        assert len(requests) == 1
        request = requests[0]
        assert str(request.url) == RESEND_API_URL
        assert request.headers["Authorization"] == "Bearer re_test"
        payload = json.loads(request.content)
        assert payload["to"] == ["coach@example.com"]
        assert payload["from"] == "bot@example.com"
        assert payload["subject"].startswith("✅")

    @pytest.mark.asyncio
    async def test_provider_error_is_swallowed(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "invalid"}))
        async with httpx.AsyncClient(transport=transport) as client:
            service = NotificationService("re_test", "coach@example.com", "bot@example.com", client=client)
            assert await service.send_run_report(make_run()) is False

    @pytest.mark.asyncio
    async def test_connection_error_is_swallowed(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            service = NotificationService("re_test", "coach@example.com", "bot@example.com", client=client)
            assert await service.send_run_report(make_run()) is False
