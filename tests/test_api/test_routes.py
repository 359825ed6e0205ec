"""Tests for the JSON API routes using FastAPI's TestClient."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from niftyniti.api.app import create_app
from niftyniti.data.database import NiftyNitiDatabase
from niftyniti.data.store import BlogStore, PredictionStore
from niftyniti.exceptions import TransportFailure
from niftyniti.market_data.client import QuoteSource
from niftyniti.prediction.client import PredictionClient

CLOSES = [float(24000 + i) for i in range(20)]


@pytest.fixture
def quote_source(make_chart_payload) -> AsyncMock:
    source = AsyncMock(spec=QuoteSource)
    source.fetch_chart.return_value = make_chart_payload(CLOSES)
    return source


@pytest.fixture
def prediction_client() -> AsyncMock:
    client = AsyncMock(spec=PredictionClient)
    client.predict.return_value = 24100.0
    return client


@pytest.fixture
def client(tmp_path, settings, quote_source, prediction_client):
    """TestClient whose lifespan opens a temporary database and mock clients."""

    @asynccontextmanager
    async def lifespan(app):
        database = NiftyNitiDatabase(str(tmp_path / "api.db"))
        await database.connect()
        app.state.blog_store = BlogStore(database)
        app.state.prediction_store = PredictionStore(database)
        app.state.quote_source = quote_source
        app.state.prediction_client = prediction_client
        app.state.feature_names = ["Prev_Close", "5MA", "10MA", "Return"]
        try:
            yield
        finally:
            await database.close()

    app = create_app(lifespan=lifespan)
    app.state.settings = settings
    with TestClient(app) as test_client:
        yield test_client


class TestMarketRoutes:
    """Tests for health, quote proxy and dashboard."""

    def test_health(self, client) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_quotes_proxy(self, client, quote_source) -> None:
        response = client.get("/api/quotes", params={"period1": 1700000000, "period2": 1710000000})

        assert response.status_code == 200
        assert "chart" in response.json()
        symbol, start, end, interval = quote_source.fetch_chart.await_args.args
        assert symbol == "^NSEI"
        assert int(start.timestamp()) == 1700000000
        assert int(end.timestamp()) == 1710000000
        assert interval == "1d"

    def test_quotes_proxy_failure(self, client, quote_source) -> None:
        quote_source.fetch_chart.side_effect = TransportFailure("down")

        response = client.get("/api/quotes")

        assert response.status_code == 502
        assert response.json() == {"error": "Quote source fetch failed"}

    def test_quotes_out_of_range_period(self, client, quote_source) -> None:
        response = client.get("/api/quotes", params={"period1": 10**15})

        assert response.status_code == 400
        assert "error" in response.json()
        quote_source.fetch_chart.assert_not_awaited()

    def test_dashboard(self, client, prediction_client) -> None:
        response = client.get("/api/dashboard", params={"range": "1m"})

        assert response.status_code == 200
        body = response.json()
        assert body["range"] == "1M"
        assert body["state"] == "settled_success"
        assert body["data_source"] == "live"
        assert list(body["features"]) == ["Prev_Close", "5MA", "10MA", "Return"]
        assert body["prediction"]["signal"] == "bullish"
        prediction_client.fetch_feature_names.assert_not_awaited()

    def test_dashboard_records_forecast(self, client) -> None:
        client.get("/api/dashboard")

        records = client.get("/api/predictions").json()

        assert len(records) == 1
        assert records[0]["close"] == "24100.0"

    def test_dashboard_unknown_range(self, client) -> None:
        response = client.get("/api/dashboard", params={"range": "2W"})

        assert response.status_code == 400


class TestPredictionRoutes:
    """Tests for daily prediction records."""

    def test_save_and_list(self, client) -> None:
        response = client.post(
            "/api/predictions",
            json={
                "date": "2025-03-14T10:30:00",
                "start": "24000",
                "close": "24100",
                "weights": {"5MA": 24010.0},
            },
        )

        assert response.status_code == 200
        assert response.json()["date"] == "2025-03-14"

        records = client.get("/api/predictions").json()
        assert [r["date"] for r in records] == ["2025-03-14"]
        assert records[0]["high"] == "24100"
        assert records[0]["low"] == "24000"

    @pytest.mark.parametrize("limit", [0, -1])
    def test_limit_below_one_rejected(self, client, limit: int) -> None:
        response = client.get("/api/predictions", params={"limit": limit})

        assert response.status_code == 400

    def test_missing_fields(self, client) -> None:
        response = client.post("/api/predictions", json={"date": "2025-03-14", "start": 1})

        assert response.status_code == 400
        assert "required" in response.json()["error"]


class TestBlogRoutes:
    """Tests for blog CRUD."""

    def test_crud_flow(self, client) -> None:
        created = client.post(
            "/api/blogs",
            json={"title": "Weekly Outlook", "content": "Nifty closed higher.", "published": True},
        )
        assert created.status_code == 201
        assert created.json()["slug"] == "weekly-outlook"

        listing = client.get("/api/blogs").json()
        assert listing["pagination"]["total"] == 1
        assert listing["pagination"]["has_more"] is False
        assert listing["data"][0]["slug"] == "weekly-outlook"

        updated = client.put("/api/blogs/weekly-outlook", json={"title": "Weekly Outlook (rev)"})
        assert updated.status_code == 200
        assert updated.json()["title"] == "Weekly Outlook (rev)"

        assert client.get("/api/blogs/weekly-outlook").status_code == 200
        assert client.delete("/api/blogs/weekly-outlook").status_code == 204
        assert client.get("/api/blogs/weekly-outlook").status_code == 404

    @pytest.mark.parametrize("params", [{"take": 0}, {"take": -1}, {"skip": -1}])
    def test_bad_paging_rejected(self, client, params: dict) -> None:
        client.post("/api/blogs", json={"title": "Live", "content": "a", "published": True})

        response = client.get("/api/blogs", params=params)

        assert response.status_code == 400

    def test_explicit_take(self, client) -> None:
        for i in range(3):
            client.post("/api/blogs", json={"title": f"Post {i}", "content": "a", "published": True})

        body = client.get("/api/blogs", params={"take": 1}).json()

        assert len(body["data"]) == 1
        assert body["pagination"]["has_more"] is True

    def test_duplicate_slug(self, client) -> None:
        client.post("/api/blogs", json={"title": "Same", "content": "a"})
        response = client.post("/api/blogs", json={"title": "Same", "content": "b"})

        assert response.status_code == 400
        assert "already exists" in response.json()["error"]

    def test_invalid_body(self, client) -> None:
        response = client.post("/api/blogs", json={"title": "No content"})

        assert response.status_code == 400

    def test_draft_not_found(self, client) -> None:
        client.post("/api/blogs", json={"title": "Draft", "content": "a"})

        assert client.get("/api/blogs/draft").status_code == 404
