"""Tests for CSRF protection."""

from hackathon_starter.middleware.csrf import SESSION_KEY, ensure_csrf_token

from conftest import csrf_token


class TestEnsureCsrfToken:
    def test_creates_token_once(self):
        session = {}
        token = ensure_csrf_token(session)
        assert token
        assert session[SESSION_KEY] == token
        assert ensure_csrf_token(session) == token

    def test_keeps_existing_token(self):
        session = {SESSION_KEY: "existing"}
        assert ensure_csrf_token(session) == "existing"


class TestCsrfGate:
    """Tests for the gate through the full pipeline."""

    def test_safe_methods_pass(self, client):
        assert client.get("/api/contact").status_code == 200

    def test_post_without_token_rejected(self, client):
        response = client.post("/api/contact", data={"name": "A", "email": "a@b.co", "message": "hi"})
        assert response.status_code == 403
        assert response.json()["detail"] == "CSRF token missing"

    def test_post_with_wrong_token_rejected(self, client):
        csrf_token(client, "/api/contact")
        response = client.post(
            "/api/contact",
            data={"name": "A", "email": "a@b.co", "message": "hi", "_csrf": "forged"},
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "CSRF token mismatch"

    def test_form_field_accepted(self, client):
        token = csrf_token(client, "/api/contact")
        response = client.post(
            "/api/contact",
            data={"name": "Ada", "email": "ada@example.com", "message": "Hello", "_csrf": token},
        )
        assert response.status_code == 302
        assert response.headers["location"] == "/api/contact"

        page = client.get("/api/contact").json()
        assert page["messages"]["success"][0]["msg"] == "Thanks! Your message has been received."

    def test_header_accepted(self, client):
        token = csrf_token(client, "/api/contact")
        response = client.post(
            "/api/contact",
            data={"name": "Ada", "email": "ada@example.com", "message": "Hello"},
            headers={"X-CSRF-Token": token},
        )
        assert response.status_code == 302

    def test_xsrf_header_accepted(self, client):
        token = csrf_token(client, "/api/contact")
        response = client.post(
            "/api/contact",
            data={"name": "Ada", "email": "ada@example.com", "message": "Hello"},
            headers={"X-XSRF-Token": token},
        )
        assert response.status_code == 302

    def test_token_from_other_session_rejected(self, app, client):
        from fastapi.testclient import TestClient

        token = csrf_token(client, "/api/contact")
        other = TestClient(app, follow_redirects=False)
        response = other.post(
            "/api/contact",
            data={"name": "Ada", "email": "ada@example.com", "message": "Hello", "_csrf": token},
        )
        assert response.status_code == 403

    def test_multipart_needs_header(self, client):
        token = csrf_token(client, "/api/contact")
        response = client.post(
            "/api/contact",
            data={"name": "Ada", "email": "ada@example.com", "message": "Hello", "_csrf": token},
            files={"attachment": ("note.txt", b"hello")},
        )
        assert response.status_code == 403


class TestUploadExemption:
    """The file-upload submission is never rejected by the CSRF gate."""

    def test_upload_without_token(self, upload_dir, client):
        response = client.post(
            "/api/api/upload",
            files={"myFile": ("hello.txt", b"hello world", "text/plain")},
        )
        assert response.status_code == 302
        assert response.headers["location"] == "/api/api/upload"

        stored = list(upload_dir.iterdir())
        assert len(stored) == 1
        assert stored[0].read_bytes() == b"hello world"

    def test_upload_with_bogus_token(self, upload_dir, client):
        response = client.post(
            "/api/api/upload",
            files={"myFile": ("hello.txt", b"data", "text/plain")},
            headers={"X-CSRF-Token": "bogus"},
        )
        assert response.status_code != 403

    def test_upload_page_renders(self, client):
        response = client.get("/api/api/upload")
        assert response.status_code == 200
        assert response.json()["page"] == "api/upload"
