import pytest

from app import app
from errors import EpisodeNotFoundError, IndexForbiddenError, IndexUnavailableError


class FakeService:
    def __init__(self, error=None):
        self.error = error
        self.calls = []
        self.cleared = []

    def search(self, q, exact=False):
        self.calls.append(("search", q, exact))
        if self.error:
            raise self.error
        return {"results": [
            {"episodeId": "a", "rank": 1.0, "publishedAt": "2024-01-01"},
            {"episodeId": "b", "rank": 2.0, "publishedAt": "2023-01-01"},
        ], "count": 2}

    def episode_detail(self, episode_id, q=None, exact=False):
        self.calls.append(("episode", episode_id, q, exact))
        if self.error:
            raise self.error
        return {"episode": {"episodeId": episode_id}, "allMatchPositions": [], "searchQuery": q}

    def invalidate_cache(self, q=None):
        self.cleared.append(q)

    def cache_stats(self):
        return {"size": 0, "keys": []}


@pytest.fixture
def service():
    svc = FakeService()
    app.extensions["search"] = svc
    yield svc
    app.extensions.pop("search", None)


@pytest.fixture
def client(service):
    app.config["TESTING"] = True
    return app.test_client()


def test_search_requires_query(client, service):
    resp = client.get("/api/search?q=%20%20")

    assert resp.status_code == 400
    assert "error" in resp.get_json()
    assert service.calls == []


def test_search_passes_trimmed_query_and_exact_flag(client, service):
    resp = client.get("/api/search", query_string={"q": "  hello ", "exact": "1"})

    assert resp.status_code == 200
    assert resp.get_json()["count"] == 2
    assert service.calls == [("search", "hello", True)]


def test_search_sort_parameter(client):
    resp = client.get("/api/search", query_string={"q": "x", "sort": "date-asc"})

    assert [r["episodeId"] for r in resp.get_json()["results"]] == ["b", "a"]


@pytest.mark.parametrize(
    "error, status",
    [(IndexUnavailableError(), 503), (IndexForbiddenError(), 403), (EpisodeNotFoundError(), 404)],
)
def test_typed_errors_map_to_status_codes(client, service, error, status):
    service.error = error

    resp = client.get("/api/search?q=x")

    assert resp.status_code == status
    assert resp.get_json()["error"] == str(error)


def test_unexpected_error_is_500(client, service):
    service.error = RuntimeError("kaboom")

    resp = client.get("/api/episode/ep-1?q=x")

    assert resp.status_code == 500
    assert "kaboom" in resp.get_json()["error"]


def test_episode_detail_route(client, service):
    resp = client.get("/api/episode/ep-1", query_string={"q": "テスト"})

    assert resp.status_code == 200
    assert resp.get_json()["searchQuery"] == "テスト"
    assert service.calls == [("episode", "ep-1", "テスト", False)]


def test_episode_detail_without_query(client, service):
    client.get("/api/episode/ep-1")

    assert service.calls == [("episode", "ep-1", None, False)]


def test_cache_admin_routes(client, service):
    assert client.post("/admin/cache/clear").get_json() == {"ok": True, "cleared": "all"}
    assert client.post("/admin/cache/clear?q=Foo").get_json()["cleared"] == "Foo"
    assert service.cleared == [None, "Foo"]
    assert client.get("/admin/cache").get_json() == {"size": 0, "keys": []}


def test_unknown_route_is_404(client):
    assert client.get("/nope").status_code == 404
