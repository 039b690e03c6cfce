"""
Tests for api/app.py — create_app() factory

Verifies the FastAPI app is created with correct configuration,
routers are registered, and middleware is functional.
"""
import logging
import json

import pytest
from fastapi.testclient import TestClient

from api.app import _JsonFormatter, create_app, init_db


class TestCreateApp:
    def test_creates_fastapi_instance(self, db_path):
        app = create_app(db_path=db_path)
        assert app.title == "BankIt API"
        assert app.version == "1.0.0"

    def test_registers_routes(self, db_path):
        client = TestClient(create_app(db_path=db_path, context_path="/"),
                            raise_server_exceptions=False)
        assert client.post("/account/update_cat.json",
                           data={"op": "2", "cat": "3"}).status_code == 200
        assert client.get("/account/list").status_code == 200
        assert client.get("/use").status_code == 200
        assert client.get("/health").status_code == 200

    @pytest.mark.parametrize("context_path", ["bankit", "/bankit", "/bankit/"])
    def test_context_path_prefixes_routes(self, db_path, context_path):
        client = TestClient(create_app(db_path=db_path, context_path=context_path),
                            raise_server_exceptions=False)
        resp = client.post("/bankit/account/update_cat.json", data={"op": "2", "cat": "3"})
        assert resp.json() == {"isOk": True}
        assert client.get("/bankit/use").status_code == 200
        assert client.get("/use").status_code == 404

    def test_apps_keep_their_own_context_path(self, db_path):
        first = TestClient(create_app(db_path=db_path, context_path="/bankit/"))
        second = TestClient(create_app(db_path=db_path, context_path="/"))
        assert 'data-ctx-path="/bankit/"' in first.get("/bankit/account/list").text
        assert 'data-ctx-path="/"' in second.get("/account/list").text
        assert 'data-ctx-path="/bankit/"' in first.get("/bankit/use").text


class TestMiddleware:
    def test_request_id_header(self, app_client):
        resp = app_client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 8

    def test_security_headers(self, app_client):
        resp = app_client.get("/use")
        assert resp.headers["X-Frame-Options"] == "DENY"
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert "script-src 'self'" in resp.headers["Content-Security-Policy"]

    def test_request_is_logged(self, app_client, caplog):
        with caplog.at_level(logging.INFO, logger="bankit_api"):
            app_client.get("/use")
        assert any("path=/use" in r.getMessage() for r in caplog.records)


class TestHealth:
    def test_ok(self, app_client):
        resp = app_client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["operations"] == 4

    def test_no_database(self, tmp_path):
        client = TestClient(create_app(db_path=tmp_path / "missing.sqlite"))
        resp = client.get("/health")
        assert resp.status_code == 503
        assert resp.json()["status"] == "no_database"


class TestErrorPages:
    def test_html_404_for_browsers(self, app_client):
        resp = app_client.get("/nowhere", headers={"Accept": "text/html"})
        assert resp.status_code == 404
        assert "Page introuvable" in resp.text

    def test_json_404_for_api_clients(self, app_client):
        resp = app_client.get("/nowhere", headers={"Accept": "application/json"})
        assert resp.status_code == 404
        assert resp.json()["status_code"] == 404


class TestInitDb:
    def test_creates_tables(self, tmp_path):
        path = tmp_path / "new.sqlite"
        init_db(path)
        client = TestClient(create_app(db_path=path))
        assert client.get("/health").json()["operations"] == 0


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("bankit_api", logging.INFO, __file__, 1,
                               "request", None, None)
    record.path = "/use"
    record.status = 200
    data = json.loads(_JsonFormatter().format(record))
    assert data["message"] == "request"
    assert data["path"] == "/use"
    assert data["status"] == 200
