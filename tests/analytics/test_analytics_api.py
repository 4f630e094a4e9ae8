"""Tests for the analytics API endpoints.

Covers:
- POST /api/analytics/table: classified, sorted dimension tables
- POST /api/analytics/content-groups: groups derived from page rows
- POST /api/analytics/overview: totals and normalized chart
- POST /api/analytics/positions: position buckets
- POST /api/analytics/chart: ad-hoc normalization
- GET /api/health
- 422 handling for invalid categories, columns and bands
"""

import pytest
from fastapi.testclient import TestClient

from src.analytics.api import get_engine_config
from src.analytics.config import EngineConfig
from src.dashboard_api import app

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


QUERY_ROWS = {
    "current": [
        {"query": "running shoes", "impressions": 200, "clicks": 20, "position": 3.2},
        {"query": "trail shoes", "impressions": 50, "clicks": 8, "position": 7.5},
        {"query": "socks", "impressions": 90, "clicks": 1, "position": 12.0},
    ],
    "previous": [
        {"query": "running shoes", "impressions": 100, "clicks": 10, "position": 4.0},
        {"query": "socks", "impressions": 100, "clicks": 2, "position": 10.0},
    ],
}


# ---------------------------------------------------------------------------
# /table
# ---------------------------------------------------------------------------


class TestTableEndpoint:
    def test_popular(self, client):
        resp = client.post("/api/analytics/table", json={**QUERY_ROWS, "dimension": "query"})
        assert resp.status_code == 200
        data = resp.json()

        assert [row["key"] for row in data["rows"]] == ["running shoes", "socks", "trail shoes"]
        assert data["counts"] == {"popular": 3, "growing": 2, "decaying": 1}
        assert data["total"] == 3
        assert data["sort_column"] == "impressions"
        assert data["sort_direction"] == "desc"

    def test_new_entity_has_null_change(self, client):
        resp = client.post("/api/analytics/table", json={**QUERY_ROWS, "dimension": "query"})
        trail = next(row for row in resp.json()["rows"] if row["key"] == "trail shoes")

        assert trail["metrics"]["clicks"] == {
            "value": 8.0,
            "change": None,
            "is_new": True,
            "value_label": "8",
            "change_label": "New",
        }

    def test_finite_change(self, client):
        resp = client.post("/api/analytics/table", json={**QUERY_ROWS, "dimension": "query"})
        socks = next(row for row in resp.json()["rows"] if row["key"] == "socks")

        assert socks["metrics"]["clicks"]["change"] == -50.0
        assert socks["metrics"]["clicks"]["is_new"] is False

    def test_position_defaults_ascending(self, client):
        resp = client.post(
            "/api/analytics/table",
            json={**QUERY_ROWS, "dimension": "query", "sort_column": "position"},
        )
        data = resp.json()
        assert data["sort_direction"] == "asc"
        assert [row["key"] for row in data["rows"]] == ["running shoes", "trail shoes", "socks"]

    def test_decaying_tab(self, client):
        resp = client.post(
            "/api/analytics/table",
            json={**QUERY_ROWS, "dimension": "query", "category": "decaying"},
        )
        assert [row["key"] for row in resp.json()["rows"]] == ["socks"]

    def test_filters_and_limit(self, client):
        resp = client.post(
            "/api/analytics/table",
            json={
                **QUERY_ROWS,
                "dimension": "query",
                "filters": [{"dimension": "query", "expression": "shoes", "operator": "contains"}],
                "limit": 1,
            },
        )
        data = resp.json()
        assert [row["key"] for row in data["rows"]] == ["running shoes"]
        assert data["total"] == 2

    def test_unknown_category_422(self, client):
        resp = client.post("/api/analytics/table", json={**QUERY_ROWS, "category": "trending"})
        assert resp.status_code == 422
        assert resp.json()["detail"] == "Unknown category 'trending'"

    def test_unknown_sort_column_422(self, client):
        resp = client.post("/api/analytics/table", json={**QUERY_ROWS, "sort_column": "bounce_rate"})
        assert resp.status_code == 422

    def test_bad_limit_422(self, client):
        resp = client.post("/api/analytics/table", json={**QUERY_ROWS, "limit": 0})
        assert resp.status_code == 422

    def test_engine_config_override(self, client):
        app.dependency_overrides[get_engine_config] = lambda: EngineConfig(
            tracked_metrics=("sessions", "goals"),
            averaged_metrics=(),
            ascending_metrics=(),
        )
        payload = {
            "dimension": "channel",
            "current": [{"channel": "organic", "sessions": 120, "goals": 6}],
            "previous": [{"channel": "organic", "sessions": 100, "goals": 8}],
        }

        resp = client.post("/api/analytics/table", json=payload)

        assert resp.status_code == 200
        data = resp.json()
        assert data["sort_column"] == "sessions"
        assert data["rows"][0]["metrics"]["sessions"]["change"] == 20.0
        assert data["counts"] == {"popular": 1, "growing": 1, "decaying": 1}


# ---------------------------------------------------------------------------
# /content-groups
# ---------------------------------------------------------------------------


def test_content_groups(client):
    payload = {
        "current": [
            {"page": "https://example.com/blog/a", "impressions": 100, "clicks": 10, "position": 2.0},
            {"page": "https://example.com/blog/b", "impressions": 100, "clicks": 5, "position": 4.0},
        ],
        "previous": [{"page": "https://example.com/blog/a", "impressions": 100, "clicks": 10, "position": 3.0}],
    }

    resp = client.post("/api/analytics/content-groups", json=payload)

    assert resp.status_code == 200
    row = resp.json()["rows"][0]
    assert row["key"] == "/blog"
    assert row["display_name"] == "Blog"
    assert row["metrics"]["impressions"] == {
        "value": 200.0,
        "change": 100.0,
        "is_new": False,
        "value_label": "200",
        "change_label": "+100%",
    }


# ---------------------------------------------------------------------------
# /overview, /positions
# ---------------------------------------------------------------------------


def test_overview(client):
    payload = {
        "period": "7 days",
        "current": [
            {"date": "2024-03-01", "impressions": 100, "clicks": 10},
            {"date": "2024-03-02", "impressions": 300, "clicks": 30},
        ],
        "previous": [],
    }

    resp = client.post("/api/analytics/overview", json=payload)

    assert resp.status_code == 200
    data = resp.json()
    assert data["totals"]["impressions"]["value"] == 400.0
    assert data["totals"]["impressions"]["trend"]["is_new"] is True
    assert [p["label"] for p in data["chart"]] == ["Mar 1", "Mar 2"]
    assert data["chart"][1]["normalized"] == {"impressions": 100.0, "clicks": 50.0}


def test_overview_infinite_values_read_as_zero(client):
    body = (
        '{"period": "7 days", "current": ['
        '{"date": "2024-03-01", "impressions": Infinity, "clicks": 2},'
        '{"date": "2024-03-02", "impressions": "1e400", "clicks": 4}]}'
    )

    resp = client.post("/api/analytics/overview", content=body, headers={"content-type": "application/json"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["totals"]["impressions"]["value"] == 0.0
    for point in data["chart"]:
        assert point["normalized"]["impressions"] is not None
        assert point["normalized"]["clicks"] is not None


def test_overview_bad_period_422(client):
    resp = client.post("/api/analytics/overview", json={"period": "5 days"})
    assert resp.status_code == 422


def test_positions(client):
    payload = {
        "current": [{"date": f"2024-03-{d:02d}", "pos1_3": 10, "pos4_20": 3, "pos20_plus": 1} for d in range(1, 8)],
        "previous": [{"date": f"2024-02-{d:02d}", "pos1_3": 5, "pos4_20": 3, "pos20_plus": 2} for d in range(1, 8)],
    }

    resp = client.post("/api/analytics/positions", json=payload)

    assert resp.status_code == 200
    buckets = resp.json()["buckets"]
    assert [b["label"] for b in buckets] == ["Pos 1-3", "Pos 4-20", "Pos 20+"]
    assert buckets[0]["daily_average"] == 10
    assert buckets[0]["trend"] == {"direction": "up", "magnitude_percent": 100.0, "is_new": False}
    assert buckets[2]["trend"]["direction"] == "down"
    assert len(resp.json()["chart"]) == 7


# ---------------------------------------------------------------------------
# /chart
# ---------------------------------------------------------------------------


class TestChartEndpoint:
    def test_normalizes(self, client):
        payload = {
            "points": [{"label": "a", "values": {"x": 0}}, {"label": "b", "values": {"x": 10}}],
            "metrics": ["x"],
        }
        resp = client.post("/api/analytics/chart", json=payload)
        assert resp.status_code == 200
        assert [p["normalized"]["x"] for p in resp.json()] == [0.0, 100.0]

    def test_zoomed(self, client):
        payload = {
            "points": [{"label": str(i), "values": {"x": i * i}} for i in range(6)],
            "metrics": ["x"],
            "zoom_level": 3.0,
            "zoom_center": 1,
        }
        resp = client.post("/api/analytics/chart", json=payload)
        data = resp.json()
        assert [p["label"] for p in data] == ["0", "1", "2"]
        assert data[-1]["normalized"]["x"] == 100.0

    def test_non_finite_values_422(self, client):
        body = '{"points": [{"label": "a", "values": {"x": Infinity}}], "metrics": ["x"]}'
        resp = client.post("/api/analytics/chart", content=body, headers={"content-type": "application/json"})
        assert resp.status_code == 422

    def test_band_mismatch_422(self, client):
        payload = {
            "points": [{"label": "a", "values": {"x": 1, "y": 2}}],
            "metrics": ["x", "y"],
            "bands": [[0, 100]],
        }
        resp = client.post("/api/analytics/chart", json=payload)
        assert resp.status_code == 422

    def test_overlapping_bands_422(self, client):
        payload = {
            "points": [{"label": "a", "values": {"x": 1, "y": 2}}],
            "metrics": ["x", "y"],
            "bands": [[0, 60], [40, 100]],
        }
        resp = client.post("/api/analytics/chart", json=payload)
        assert resp.status_code == 422
        assert "overlap" in resp.json()["detail"]


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["tracked_metrics"] == ["impressions", "clicks"]
    assert "positions" in data["band_presets"]
