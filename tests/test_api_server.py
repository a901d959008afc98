"""Tests for the FastAPI surface (fastapi.testclient, container overrides)."""

from __future__ import annotations

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from course_search import __version__
from course_search.container import ApplicationContainer
from course_search.domain.entities import Platform
from course_search.infrastructure.ratelimit import RateLimitConfig, RateWindow, SearchRateLimiter
from course_search.presentation.api import create_api_server


@pytest.fixture
def listings(make_listing):
    return [
        make_listing("Python Basics", Platform.EDX, price="Free"),
        make_listing("Python Pro", Platform.EDX, price="$150"),
        make_listing("Python on SWAYAM", Platform.SWAYAM, price="Free"),
    ]


@pytest.fixture
def container(fake_provider, listings):
    container = ApplicationContainer()
    container.config.from_dict({"providers": [], "openai_api_key": None})
    container.platform_providers.override(providers.Object([fake_provider("edx", listings)]))
    return container


@pytest.fixture
def client(container):
    with TestClient(create_api_server(container=container)) as test_client:
        yield test_client


USER = {"X-User-Id": "u1"}


def _search(client, query="python", **body):
    return client.post("/search/courses", json={"query": query, **body})


def _limited_client(container, config):
    container.rate_limiter.override(providers.Object(SearchRateLimiter(config)))
    return TestClient(create_api_server(container=container))


# ============================================================
# POST /search/courses
# ============================================================


class TestSearchCourses:
    def test_success_envelope(self, client):
        response = _search(client, limit=2)

        assert response.status_code == 200
        payload = response.json()
        assert payload["success"] is True
        data = payload["data"]
        assert data["query"] == "python"
        assert data["total_results"] == 2
        assert [c["title"] for c in data["courses"]] == ["Python Basics", "Python Pro"]
        assert data["search_id"]
        assert data["from_cache"] is False
        assert response.headers["X-RateLimit-Remaining"] == "19"

    def test_second_call_from_cache(self, client):
        first = _search(client).json()["data"]
        second = _search(client).json()["data"]

        assert second["from_cache"] is True
        assert second["search_id"] == first["search_id"]

    def test_camel_case_filters(self, client):
        data = _search(client, filters={"maxPrice": 0, "platforms": ["SWAYAM"]}).json()["data"]

        assert [c["title"] for c in data["courses"]] == ["Python on SWAYAM"]
        assert data["filters"] == {"max_price": 0.0, "platforms": ["SWAYAM"]}

    def test_blank_query_is_400(self, client):
        response = _search(client, query="   ")

        assert response.status_code == 400
        payload = response.json()
        assert payload["success"] is False
        assert payload["category"] == "validation"

    def test_unknown_platform_is_400(self, client):
        response = _search(client, filters={"platforms": ["Hogwarts"]})
        assert response.status_code == 400

    @pytest.mark.parametrize("body", [{"query": ""}, {"query": "x" * 201}, {"query": "python", "limit": 21}])
    def test_malformed_body_is_422(self, client, body):
        assert client.post("/search/courses", json=body).status_code == 422

    def test_rate_limited(self, container):
        config = RateLimitConfig(burst=RateWindow("burst", 2, 60.0))
        container.rate_limiter.override(providers.Object(SearchRateLimiter(config)))

        with TestClient(create_api_server(container=container)) as client:
            assert _search(client, "a").status_code == 200
            assert _search(client, "b").status_code == 200
            response = _search(client, "c")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"
        assert response.json()["retry_after"] == 60

    def test_user_header_recorded(self, client):
        _search(client, query="java", limit=3)
        client.post("/search/courses", json={"query": "rust"}, headers={"X-User-Id": "u1"})

        history = client.get("/search/history", headers={"X-User-Id": "u1"}).json()["data"]

        assert [r["query"] for r in history] == ["rust"]


# ============================================================
# Supplementary routes
# ============================================================


class TestOtherRoutes:
    def test_recommendations_from_interests(self, client):
        response = client.get(
            "/search/recommendations",
            params={"interests": ["python"], "limit": 2},
            headers=USER,
        )

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["total"] == 2

    def test_recommendations_require_user(self, client):
        response = client.get("/search/recommendations", params={"interests": ["python"]})
        assert response.status_code == 401

    def test_insights(self, client):
        course_id = _search(client).json()["data"]["courses"][0]["id"]

        data = client.get(f"/search/courses/{course_id}/insights").json()["data"]

        assert data["course"]["id"] == course_id
        assert data["analysis"] == "Analysis not available."

    def test_insights_unknown_course(self, client):
        assert client.get("/search/courses/unknown/insights").status_code == 404

    def test_platforms(self, client):
        data = client.get("/search/platforms").json()["data"]
        by_name = {p["name"]: p for p in data}

        assert by_name["edX"]["active"] is True
        assert by_name["SWAYAM"]["active"] is False

    def test_history_requires_user(self, client):
        assert client.get("/search/history").status_code == 401

    def test_track_click(self, client):
        data = _search(client).json()["data"]
        course_id = data["courses"][0]["id"]

        response = client.post("/search/track-click", json={"courseId": course_id, "searchId": data["search_id"]})

        assert response.json()["data"] == {
            "listing_id": course_id,
            "search_id": data["search_id"],
            "recorded": True,
            "views": 1,
        }

    def test_popular_and_analytics(self, client):
        _search(client)
        _search(client, limit=3)

        popular = client.get("/search/popular").json()["data"]
        analytics = client.get("/search/analytics", params={"days": 30}, headers=USER).json()["data"]

        assert popular[0] == {"query": "python", "count": 2, "avg_results": 3.0}
        assert analytics["period_days"] == 30
        assert analytics["platform_stats"][0]["platform"] == "edX"

    def test_analytics_days_validated(self, client):
        assert client.get("/search/analytics", params={"days": 0}, headers=USER).status_code == 422

    def test_analytics_require_user(self, client):
        assert client.get("/search/analytics").status_code == 401

    def test_health(self, client):
        payload = client.get("/search/health").json()

        assert payload == {
            "status": "ok",
            "version": __version__,
            "providers": ["edx"],
            "enhancer": False,
            "ranker": False,
        }


# ============================================================
# Rate limiting beyond search
# ============================================================


class TestRouteRateLimits:
    BURST_OF_TWO = RateLimitConfig(burst=RateWindow("burst", 2, 60.0))

    def test_recommendations_limited(self, container):
        params = {"interests": ["python"], "limit": 2}

        with _limited_client(container, self.BURST_OF_TWO) as client:
            assert client.get("/search/recommendations", params=params, headers=USER).status_code == 200
            assert client.get("/search/recommendations", params=params, headers=USER).status_code == 200
            response = client.get("/search/recommendations", params=params, headers=USER)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "60"

    def test_anonymous_recommendations_consume_no_quota(self, container):
        with _limited_client(container, self.BURST_OF_TWO) as client:
            for _ in range(3):
                assert client.get("/search/recommendations", params={"interests": ["python"]}).status_code == 401
            assert _search(client).status_code == 200

    def test_insights_limited(self, container):
        with _limited_client(container, self.BURST_OF_TWO) as client:
            course_id = _search(client).json()["data"]["courses"][0]["id"]
            assert client.get(f"/search/courses/{course_id}/insights").status_code == 200
            response = client.get(f"/search/courses/{course_id}/insights")

        assert response.status_code == 429

    def test_track_click_limited(self, container):
        with _limited_client(container, self.BURST_OF_TWO) as client:
            course_id = _search(client).json()["data"]["courses"][0]["id"]
            assert client.post("/search/track-click", json={"courseId": course_id}).status_code == 200
            response = client.post("/search/track-click", json={"courseId": course_id})

        assert response.status_code == 429

    def test_forwarded_for_does_not_reset_identity(self, container):
        with _limited_client(container, self.BURST_OF_TWO) as client:
            statuses = [
                client.post(
                    "/search/courses",
                    json={"query": f"q{i}"},
                    headers={"X-Forwarded-For": f"203.0.113.{i}"},
                ).status_code
                for i in range(3)
            ]

        assert statuses == [200, 200, 429]

    def test_analytics_hourly_window(self, container):
        config = RateLimitConfig(analytics=RateWindow("analytics", 1, 3600.0))

        with _limited_client(container, config) as client:
            assert client.get("/search/analytics", headers=USER).status_code == 200
            response = client.get("/search/analytics", headers=USER)
            # search traffic has its own windows
            assert _search(client).status_code == 200

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "3600"
