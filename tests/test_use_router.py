"""
Tests for the "use" help page router (api/routes/use.py).

    GET /use?s=<page>.htm
    GET /?p=use.htm&s=<page>.htm
"""
import re

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.routes.use import UsePage, build_sidebar, template_for

RECOGNISED = {
    "first.htm": UsePage.FIRST,
    "costs.htm": UsePage.COSTS,
    "operations.htm": UsePage.OPERATIONS,
    "sync.htm": UsePage.SYNC,
}


def _active_items(html: str) -> list[str]:
    return re.findall(r'<li class="active"><a href="[^"]*">([^<]*)</a></li>', html)


# ── UsePage.from_param ────────────────────────────────────────────────────────

class TestFromParam:
    @pytest.mark.parametrize("value,expected", RECOGNISED.items())
    def test_recognised_values(self, value, expected):
        assert UsePage.from_param(value) is expected

    @pytest.mark.parametrize("value", [
        None, "", "first", "FIRST.HTM", " costs.htm", "use.htm", "../sync.htm",
    ])
    def test_unrecognised_values_default_to_first(self, value):
        assert UsePage.from_param(value) is UsePage.FIRST

    def test_param_round_trips_for_every_page(self):
        for page in UsePage:
            assert UsePage.from_param(page.param) is page


# ── Sidebar ───────────────────────────────────────────────────────────────────

class TestSidebar:
    def test_four_entries_in_order(self):
        labels = [e.label for e in build_sidebar(UsePage.FIRST)]
        assert labels == [
            "Premier lancement", "Charges/Revenus", "Operations", "Synchronisation",
        ]

    @pytest.mark.parametrize("page", list(UsePage))
    def test_exactly_one_active(self, page):
        entries = build_sidebar(page)
        active = [e for e in entries if e.active]
        assert len(active) == 1
        assert active[0].label == page.label

    def test_links_carry_whitelist_values(self):
        hrefs = [e.href for e in build_sidebar(UsePage.SYNC)]
        assert hrefs == [
            "?p=use.htm&s=first.htm",
            "?p=use.htm&s=costs.htm",
            "?p=use.htm&s=operations.htm",
            "?p=use.htm&s=sync.htm",
        ]

    def test_template_path(self):
        assert template_for(UsePage.OPERATIONS) == "use/operations.html"


# ── Rendered page ─────────────────────────────────────────────────────────────

class TestUseRoute:
    @pytest.mark.parametrize("value,expected", RECOGNISED.items())
    def test_selects_matching_page(self, app_client, value, expected):
        resp = app_client.get("/use", params={"s": value})
        assert resp.status_code == 200
        assert f'id="use-{expected.value}"' in resp.text
        assert _active_items(resp.text) == [expected.label]

    def test_missing_param_renders_first(self, app_client):
        resp = app_client.get("/use")
        assert resp.status_code == 200
        assert 'id="use-first"' in resp.text
        assert _active_items(resp.text) == ["Premier lancement"]

    def test_unknown_param_renders_first(self, app_client):
        resp = app_client.get("/use", params={"s": "nope.htm"})
        assert resp.status_code == 200
        assert 'id="use-first"' in resp.text

    def test_operations_example(self, app_client):
        resp = app_client.get("/?p=use.htm&s=operations.htm")
        assert resp.status_code == 200
        assert _active_items(resp.text) == ["Operations"]
        assert "<h2>Operations</h2>" in resp.text

    def test_sidebar_links_present(self, app_client):
        resp = app_client.get("/use")
        for value in RECOGNISED:
            assert f'href="?p=use.htm&amp;s={value}"' in resp.text


class TestIndexDispatch:
    def test_other_p_redirects_to_account_list(self, app_client):
        resp = app_client.get("/?p=other.htm", follow_redirects=False)
        assert resp.status_code == 302
        assert resp.headers["location"].endswith("/account/list")

    def test_no_p_redirects_to_account_list(self, app_client):
        resp = app_client.get("/", follow_redirects=False)
        assert resp.status_code == 302


class TestMissingSubTemplate:
    def test_missing_template_is_a_server_error(self, db_path, tmp_path):
        templates = tmp_path / "templates"
        (templates / "use").mkdir(parents=True)
        (templates / "base.html").write_text("{% block content %}{% endblock %}")
        (templates / "use.html").write_text(
            '{% extends "base.html" %}{% block content %}'
            "{% include body_template %}{% endblock %}"
        )
        app = create_app(db_path=db_path, context_path="/", templates_dir=templates)
        client = TestClient(app, raise_server_exceptions=False)
        resp = client.get("/use", params={"s": "sync.htm"})
        assert resp.status_code == 500
