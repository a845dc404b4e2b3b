"""Test the HTTP API against an injected corpus."""
import pytest
from fastapi.testclient import TestClient

from tempus.api import app, get_corpus
from tempus.errors import CorpusLoadError

from conftest import build_corpus, make_era, make_post, make_profile


@pytest.fixture
def corpus():
    return build_corpus(
        posts=[
            make_post("p1", author_id="a", timestamp="2024-01-01T00:00:00Z", hashtags=["Tea"], likes=100),
            make_post("p2", author_id="a", timestamp="2024-01-02T00:00:00Z", hashtags=["Tea", "Tax"], likes=60),
            make_post("p3", author_id="b", timestamp="2024-01-03T00:00:00Z", era="other", content="Liberty now"),
        ],
        profiles=[
            make_profile("a", handle="@Alpha", isVerified=True, followers=10,
                         relationships=[{"profileId": "b", "type": "mentor"}]),
            make_profile("b", handle="@Beta", era=["modern", "other"]),
        ],
        eras=[make_era("modern"), make_era("other", name="Other Times")],
    )


@pytest.fixture
def client(corpus):
    app.dependency_overrides[get_corpus] = lambda: corpus
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:
    """Test the root endpoint."""

    def test_root(self, client, corpus):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["posts"] == 3
        assert body["corpusVersion"] == corpus.version

    def test_unloadable_corpus_is_503(self):
        def broken():
            raise CorpusLoadError("Missing corpus file: posts")

        app.dependency_overrides[get_corpus] = broken
        try:
            response = TestClient(app).get("/posts")
        finally:
            app.dependency_overrides.clear()
        assert response.status_code == 503
        assert "Missing corpus file" in response.json()["detail"]


class TestPosts:
    """Test post listing, lookup and paging."""

    def test_list_uses_camel_case(self, client):
        body = client.get("/posts").json()
        assert [p["id"] for p in body] == ["p3", "p2", "p1"]
        assert body[0]["authorId"] == "b"
        assert "displayDate" in body[0]

    def test_filters(self, client):
        assert [p["id"] for p in client.get("/posts", params={"era": "modern"}).json()] == ["p2", "p1"]
        assert [p["id"] for p in client.get("/posts", params={"authorId": "b"}).json()] == ["p3"]
        assert [p["id"] for p in client.get("/posts", params={"tag": "tax"}).json()] == ["p2"]
        params = {"startDate": "2024-01-02"}
        assert [p["id"] for p in client.get("/posts", params=params).json()] == ["p3", "p2"]

    def test_invalid_enum_is_422(self, client):
        assert client.get("/posts", params={"type": "meme"}).status_code == 422

    def test_strict_bad_date_is_400(self, client):
        response = client.get("/posts", params={"startDate": "soon", "strict": "true"})
        assert response.status_code == 400

    def test_lenient_bad_date_is_ignored(self, client):
        response = client.get("/posts", params={"startDate": "soon", "strict": "false"})
        assert len(response.json()) == 3

    def test_get_post(self, client):
        assert client.get("/posts/p1").json()["likes"] == 100
        assert client.get("/posts/missing").status_code == 404

    def test_feed_paging(self, client):
        first = client.get("/feed", params={"limit": 2}).json()
        assert [p["id"] for p in first["posts"]] == ["p3", "p2"]
        assert first["hasMore"] is True
        second = client.get("/feed", params={"limit": 2, "cursor": first["nextCursor"]}).json()
        assert [p["id"] for p in second["posts"]] == ["p1"]
        assert second["hasMore"] is False

    def test_stale_cursor_strict_is_400(self, client):
        response = client.get("/feed", params={"cursor": "gone", "strict": "true"})
        assert response.status_code == 400
        assert response.json()["cursor"] == "gone"

    def test_on_this_day(self, client):
        body = client.get("/on-this-day", params={"month": 1, "day": 2}).json()
        assert [p["id"] for p in body] == ["p2"]

    def test_timeline(self, client):
        body = client.get("/timeline").json()
        assert [m["month"] for m in body] == ["2024-01"]


class TestProfiles:
    """Test profile and relationship endpoints."""

    def test_handle_lookup(self, client):
        assert client.get("/profiles/handle/alpha").json()["id"] == "a"
        assert client.get("/profiles/handle/@ALPHA").json()["id"] == "a"
        assert client.get("/profiles/handle/nobody").status_code == 404

    def test_profile_posts(self, client):
        assert [p["id"] for p in client.get("/profiles/a/posts").json()] == ["p2", "p1"]
        assert client.get("/profiles/zzz/posts").status_code == 404

    def test_connections_incoming(self, client):
        body = client.get("/profiles/b/connections").json()
        assert body[0]["type"] == "mentor"
        conn = body[0]["connections"][0]
        assert conn["direction"] == "incoming"
        assert conn["profile"]["id"] == "a"

    def test_connections_inverted(self, client):
        body = client.get("/profiles/b/connections", params={"invert": "true"}).json()
        assert body[0]["type"] == "student"

    def test_relationship_between(self, client):
        assert client.get("/relationships/between", params={"a": "b", "b": "a"}).json()["type"] == "mentor"
        missing = client.get("/relationships/between", params={"a": "a", "b": "zzz"})
        assert missing.status_code == 404

    def test_simulated_likes(self, client):
        """b is connected to a through the incoming mentor edge."""
        body = client.get("/profiles/b/likes").json()
        assert [s["post"]["id"] for s in body] == ["p1", "p2"]
        assert client.get("/profiles/zzz/likes").status_code == 404

    def test_suggested(self, client):
        assert [p["id"] for p in client.get("/suggested").json()] == ["a"]

    def test_era_profiles(self, client):
        assert [p["id"] for p in client.get("/eras/other/profiles").json()] == ["b"]
        assert client.get("/eras/none/profiles").status_code == 404


class TestSearchAndTrending:
    """Test search and ranking endpoints."""

    def test_search(self, client):
        body = client.get("/search", params={"q": "liberty"}).json()
        assert [p["id"] for p in body["posts"]] == ["p3"]

    def test_trending(self, client):
        assert client.get("/trending").json() == [{"tag": "Tea", "count": 2}, {"tag": "Tax", "count": 1}]

    def test_trending_hashtags(self, client):
        body = client.get("/trending/hashtags").json()
        assert body[0]["tag"] == "Tea"
        assert body[0]["trendScore"] == 160
        assert body[0]["topPostId"] == "p1"

    def test_top_posts_by_era(self, client):
        assert [p["id"] for p in client.get("/trending/posts", params={"era": "other"}).json()] == ["p3"]

    def test_top_profiles(self, client):
        body = client.get("/trending/profiles").json()
        assert body[0]["profile"]["id"] == "a"
        assert body[0]["engagementScore"] == 160

    def test_summary(self, client):
        body = client.get("/trending/summary").json()
        assert body["totalPosts"] == 3
        assert body["avgLikesPerPost"] == 53


class TestNotifications:
    """Test the notification generation endpoint."""

    def test_generate(self, client):
        payload = {"followedIds": ["a"], "likedPostIds": ["p1"], "today": "2024-03-10"}
        body = client.post("/notifications/generate", json=payload).json()
        assert [n["id"] for n in body["notifications"]] == ["newpost-p2", "newpost-p1", "trending-p1"]
        assert body["lastGenerated"] == "2024-03-10"

    def test_same_day_returns_existing(self, client):
        payload = {"followedIds": ["a"], "today": "2024-03-10"}
        first = client.post("/notifications/generate", json=payload).json()
        second = client.post("/notifications/generate", json={
            **payload,
            "existing": first["notifications"],
            "lastGenerated": first["lastGenerated"],
        }).json()
        assert second["notifications"] == first["notifications"]
        assert second["added"] == []
