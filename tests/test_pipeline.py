"""Tests for the middleware pipeline, status monitor and app surface."""

import pytest

from hackathon_starter.config import get_settings
from hackathon_starter.middleware import build_pipeline
from hackathon_starter.middleware.csrf import CSRFMiddleware
from hackathon_starter.middleware.flash import FlashMessages, FlashMiddleware
from hackathon_starter.middleware.headers import SecurityHeadersMiddleware
from hackathon_starter.middleware.monitor import StatusMonitor, StatusMonitorMiddleware
from hackathon_starter.middleware.principal import AuthenticationMiddleware
from hackathon_starter.middleware.request_log import RequestLoggingMiddleware
from hackathon_starter.middleware.return_to import ReturnToMiddleware
from hackathon_starter.middleware.sessions import MemorySessionStore, SessionMiddleware
from starlette.middleware.gzip import GZipMiddleware


class TestPipelineOrder:
    def test_order(self):
        pipeline = build_pipeline(get_settings(), MemorySessionStore(), StatusMonitor())
        assert [entry.cls for entry in pipeline] == [
            StatusMonitorMiddleware,
            GZipMiddleware,
            RequestLoggingMiddleware,
            SessionMiddleware,
            AuthenticationMiddleware,
            FlashMiddleware,
            CSRFMiddleware,
            SecurityHeadersMiddleware,
            ReturnToMiddleware,
        ]

    def test_upload_path_exempt(self):
        pipeline = build_pipeline(get_settings(), MemorySessionStore(), StatusMonitor())
        csrf = next(entry for entry in pipeline if entry.cls is CSRFMiddleware)
        assert csrf.kwargs["exempt_paths"] == ("/api/api/upload",)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestStatusMonitor:
    def test_counts_status_classes(self):
        monitor = StatusMonitor()
        monitor.record(200, 0.005)
        monitor.record(302, 0.001)
        monitor.record(404, 0.002)
        monitor.record(201, 0.004)

        snapshot = monitor.snapshot()
        assert snapshot["totals"] == {"2xx": 2, "3xx": 1, "4xx": 1}
        assert snapshot["count"] == 4
        assert snapshot["mean_response_ms"] == 3.0

    def test_latency_buckets(self):
        monitor = StatusMonitor()
        monitor.record(200, 0.003)
        monitor.record(200, 0.2)
        monitor.record(500, 30.0)

        buckets = monitor.snapshot()["latency_buckets"]
        assert buckets["0.005"] == 1
        assert buckets["0.25"] == 2
        assert buckets["10.0"] == 2
        assert buckets["+Inf"] == 3

    def test_empty(self):
        snapshot = StatusMonitor().snapshot()
        assert snapshot["totals"] == {}
        assert snapshot["count"] == 0
        assert snapshot["mean_response_ms"] == 0.0

    def test_monitors_do_not_share_registries(self):
        first = StatusMonitor()
        second = StatusMonitor()
        first.record(200, 0.01)
        assert second.snapshot()["totals"] == {}

    def test_uptime(self):
        clock = FakeClock()
        monitor = StatusMonitor(clock=clock)
        clock.now += 12.5
        assert monitor.snapshot()["uptime_seconds"] == 12.5

    def test_text_exposition(self):
        monitor = StatusMonitor()
        monitor.record(404, 0.01)
        text = monitor.render().decode()
        assert 'http_responses_total{status_class="4xx"} 1.0' in text
        assert "http_response_duration_seconds_count 1.0" in text


class TestFlashMessages:
    def test_consume_once(self):
        session = {}
        messages = FlashMessages(session)
        messages.add("errors", "first")
        messages.add("errors", "second")
        messages.add("info", "note")

        assert messages.peek()["errors"] == [{"msg": "first"}, {"msg": "second"}]
        assert messages.consume() == {
            "errors": [{"msg": "first"}, {"msg": "second"}],
            "info": [{"msg": "note"}],
        }
        assert messages.consume() == {}
        assert "flash" not in session


class TestAppSurface:
    def test_security_headers(self, client):
        response = client.get("/")
        assert response.headers["x-frame-options"] == "SAMEORIGIN"
        assert response.headers["x-xss-protection"] == "1; mode=block"

    def test_home_page(self, client):
        body = client.get("/api/").json()
        assert body["page"] == "home"
        assert body["user"] is None
        assert body["csrf_token"]

    def test_status_counts_requests(self, client):
        client.get("/")
        client.get("/api/account")
        body = client.get("/status").json()
        assert body["status"] == "healthy"
        assert body["totals"]["2xx"] >= 1
        assert body["totals"]["3xx"] == 1

    def test_status_metrics_exposition(self, client):
        client.get("/")
        response = client.get("/status/metrics")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "http_responses_total" in response.text

    def test_static_files_cached(self, client):
        response = client.get("/robots.txt")
        assert response.status_code == 200
        assert response.headers["cache-control"] == "public, max-age=31557600"

    def test_stylesheet_served(self, client):
        response = client.get("/css/main.css")
        assert response.status_code == 200
        assert "text/css" in response.headers["content-type"]

    def test_unknown_path(self, client):
        assert client.get("/no/such/page").status_code == 404

    def test_gzip_large_responses(self, client):
        response = client.get("/api/api", headers={"Accept-Encoding": "gzip"})
        assert response.status_code == 200
        assert response.headers.get("content-encoding") == "gzip"

    @pytest.mark.parametrize("path", ["/api/api/stripe", "/api/api/twilio", "/api/api/clockwork"])
    def test_keyed_demo_submission_not_implemented(self, client, path):
        from conftest import csrf_token

        token = csrf_token(client, path)
        response = client.post(
            path,
            data={
                "stripeToken": "tok_visa",
                "stripeEmail": "buyer@example.com",
                "telephone": "+15555550123",
                "_csrf": token,
            },
        )
        assert response.status_code == 501

    def test_keyed_demo_submission_validates(self, client):
        from conftest import csrf_token

        token = csrf_token(client, "/api/api/twilio")
        response = client.post("/api/api/twilio", data={"_csrf": token})
        assert response.status_code == 302
        assert response.headers["location"] == "/api/api/twilio"
        errors = client.get("/api/api/twilio").json()["messages"]["errors"]
        assert errors[0]["msg"] == "Phone number is required."
