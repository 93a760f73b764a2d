from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from conftest import FakeAuditor, TestSessionLocal, make_page, make_rule, run_in_fresh_loop

from app.features.scan.exceptions import ScanConsistencyError, ScanExecutionError
from app.features.scan.models.scan import Scan

HOME = "https://example.com/"


def seed_scan(user_id, url=HOME, created_at=None, critical=0, serious=0, moderate=0, minor=0):
    async def _seed():
        async with TestSessionLocal() as session:
            scan = Scan(
                user_id=user_id,
                url=url,
                scan_type="single-page",
                status="completed",
                total_violations=critical + serious + moderate + minor,
                critical_count=critical,
                serious_count=serious,
                moderate_count=moderate,
                minor_count=minor,
                unknown_count=0,
                pages_scanned=1,
                scan_duration=900,
                created_at=created_at or datetime.now(timezone.utc),
            )
            session.add(scan)
            await session.commit()
            return scan.id

    return run_in_fresh_loop(_seed())


class TestStartScan:

    def test_scan_completes_and_is_retrievable(self, auth_client):
        auditor = FakeAuditor({
            HOME: make_page(HOME, [
                make_rule("image-alt", "critical", node_count=2),
                make_rule("color-contrast", "serious"),
            ]),
        })

        with patch(
            "app.features.scan.services.orchestration.scan_pipeline.AxePageAuditor",
            return_value=auditor,
        ):
            response = auth_client.post("/api/v1/scan", json={"url": HOME})

        assert response.status_code == 200
        payload = response.json()
        assert payload["message"] == "Scan completed"
        data = payload["data"]
        assert data["summary"] == {
            "totalViolations": 3, "critical": 2, "serious": 1, "moderate": 0, "minor": 0
        }
        assert data["pagesAudited"] == 1

        detail = auth_client.get(f"/api/v1/scans/{data['scanId']}").json()["data"]
        assert detail["total_violations"] == 3
        assert detail["compliance_score"] == 75
        assert [v["impact"] for v in detail["violations"]] == ["critical", "critical", "serious"]

    def test_scheme_is_added_to_bare_domain(self, auth_client):
        with patch(
            "app.features.scan.routes.scan.run_accessibility_scan", new_callable=AsyncMock
        ) as mock_run:
            mock_run.side_effect = ScanExecutionError("All 1 planned pages failed to audit", url="https://example.com")
            auth_client.post("/api/v1/scan", json={"url": "example.com"})

        assert mock_run.call_args.kwargs["url"] == "https://example.com"

    def test_invalid_url_returns_400(self, auth_client):
        response = auth_client.post("/api/v1/scan", json={"url": "ftp://example.com"})

        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid URL")

    def test_unknown_scan_type_returns_422(self, auth_client):
        response = auth_client.post("/api/v1/scan", json={"url": HOME, "scanType": "whole-internet"})

        assert response.status_code == 422

    def test_all_pages_failing_returns_502(self, auth_client):
        with patch(
            "app.features.scan.routes.scan.run_accessibility_scan",
            new=AsyncMock(side_effect=ScanExecutionError("All 1 planned pages failed to audit", url=HOME)),
        ):
            response = auth_client.post("/api/v1/scan", json={"url": HOME})

        assert response.status_code == 502
        payload = response.json()
        assert payload["status"] == "error"
        assert payload["data"]["stage"] == "aggregation"

    def test_lost_violations_reported_with_scan_id(self, auth_client):
        error = ScanConsistencyError("Failed to save violations", url=HOME, scan_id="scan-1")
        with patch(
            "app.features.scan.routes.scan.run_accessibility_scan", new=AsyncMock(side_effect=error)
        ):
            response = auth_client.post("/api/v1/scan", json={"url": HOME})

        assert response.status_code == 500
        payload = response.json()
        assert payload["message"] == "Scan saved without its violations"
        assert payload["data"]["scan_id"] == "scan-1"

    def test_requires_authentication(self, client):
        response = client.post("/api/v1/scan", json={"url": HOME})
        assert response.status_code in (401, 403)


class TestQueuedScans:

    def test_queue_scan_returns_task_id(self, auth_client, test_user):
        with patch("app.features.scan.routes.scan.run_accessibility_scan_task") as mock_task:
            mock_task.delay.return_value = MagicMock(id="task-123")
            response = auth_client.post(
                "/api/v1/scan/queue", json={"url": HOME, "scanType": "multi-page", "maxPages": 4}
            )

        assert response.status_code == 202
        assert response.json()["data"] == {"task_id": "task-123", "status": "queued"}
        mock_task.delay.assert_called_once_with(test_user.id, HOME, "multi-page", 4)

    def test_task_status_success(self, auth_client, test_user):
        task = MagicMock(state="SUCCESS")
        task.successful.return_value = True
        task.result = {"status": "completed", "user_id": test_user.id, "result": {"scanId": "scan-1"}}

        with patch("app.features.scan.routes.scan.AsyncResult", return_value=task):
            response = auth_client.get("/api/v1/scan/tasks/task-123")

        data = response.json()["data"]
        assert data["state"] == "SUCCESS"
        assert data["result"]["result"]["scanId"] == "scan-1"
        assert data["error"] is None

    def test_foreign_task_is_not_found(self, auth_client, other_user):
        task = MagicMock(state="SUCCESS")
        task.successful.return_value = True
        task.result = {
            "status": "completed",
            "user_id": other_user.id,
            "result": {"scanId": "someone-elses-scan", "summary": {"totalViolations": 4}},
        }

        with patch("app.features.scan.routes.scan.AsyncResult", return_value=task):
            response = auth_client.get("/api/v1/scan/tasks/task-123")

        assert response.status_code == 404
        assert response.json()["message"] == "Task not found"
        assert "someone-elses-scan" not in response.text

    def test_crashed_task_hides_exception_details(self, auth_client):
        task = MagicMock(state="FAILURE")
        task.successful.return_value = False
        task.failed.return_value = True
        task.result = RuntimeError("postgres://admin:secret@db/scans unreachable")

        with patch("app.features.scan.routes.scan.AsyncResult", return_value=task):
            response = auth_client.get("/api/v1/scan/tasks/task-123")

        data = response.json()["data"]
        assert data["state"] == "FAILURE"
        assert data["error"] == "Scan task failed"
        assert "secret" not in response.text

    def test_task_status_pending(self, auth_client):
        task = MagicMock(state="PENDING")
        task.successful.return_value = False
        task.failed.return_value = False

        with patch("app.features.scan.routes.scan.AsyncResult", return_value=task):
            response = auth_client.get("/api/v1/scan/tasks/task-123")

        data = response.json()["data"]
        assert data["state"] == "PENDING"
        assert data["result"] is None


class TestScanHistory:

    def test_history_newest_first_with_scores(self, auth_client, test_user):
        now = datetime.now(timezone.utc)
        older = seed_scan(test_user.id, url="https://old.example.com/", created_at=now - timedelta(days=1), critical=1)
        newer = seed_scan(test_user.id, url="https://new.example.com/", created_at=now, minor=3)

        response = auth_client.get("/api/v1/scans")

        assert response.status_code == 200
        history = response.json()["data"]
        assert [item["id"] for item in history] == [newer, older]
        assert [item["compliance_score"] for item in history] == [97, 90]

    def test_history_only_shows_own_scans(self, auth_client, other_user):
        seed_scan(other_user.id)

        assert auth_client.get("/api/v1/scans").json()["data"] == []

    def test_other_users_scan_is_not_found(self, auth_client, other_user):
        scan_id = seed_scan(other_user.id, critical=1)

        response = auth_client.get(f"/api/v1/scans/{scan_id}")

        assert response.status_code == 404
        assert response.json()["message"] == "Scan not found"

    def test_missing_scan_is_not_found(self, auth_client):
        assert auth_client.get("/api/v1/scans/does-not-exist").status_code == 404


class TestDashboard:

    def test_stats_average_counts_before_scoring(self, auth_client, test_user, other_user):
        now = datetime.now(timezone.utc)
        seed_scan(test_user.id, created_at=now - timedelta(hours=2))
        latest = seed_scan(test_user.id, created_at=now, critical=20)
        seed_scan(other_user.id, critical=1)

        response = auth_client.get("/api/v1/dashboard/stats")

        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["total_scans"] == 2
        assert stats["total_issues"] == 20
        # Mean critical count is 10, which scores 0; the mean of scores would be 50
        assert stats["average_score"] == 0
        assert len(stats["recent_scans"]) == 2
        assert stats["recent_scans"][0]["id"] == latest
        assert stats["recent_scans"][0]["violations"] == 20
        assert stats["recent_scans"][0]["score"] == 0

    def test_stats_without_scans(self, auth_client):
        stats = auth_client.get("/api/v1/dashboard/stats").json()["data"]

        assert stats == {"total_scans": 0, "total_issues": 0, "average_score": 100, "recent_scans": []}

    def test_recent_scans_capped_at_five(self, auth_client, test_user):
        now = datetime.now(timezone.utc)
        for i in range(7):
            seed_scan(test_user.id, created_at=now - timedelta(minutes=i))

        stats = auth_client.get("/api/v1/dashboard/stats").json()["data"]

        assert stats["total_scans"] == 7
        assert len(stats["recent_scans"]) == 5
