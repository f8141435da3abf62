"""Endpoint tests for the article read API."""
from datetime import datetime
from unittest.mock import Mock, patch

from fastapi.testclient import TestClient

from services.news_api.app import crud
from services.news_api.app.deps import get_read_cache
from services.news_api.app.main import app
from shared.utils.cache import ReadThroughCache
from shared.utils.redis_client import RedisClient


@patch("services.news_api.app.main.init_db")
def test_app_creation(mock_init_db):
    assert app.title == "NewsHub News API"


def test_liveness(client):
    response = client.get("/news/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "alive"


def test_list_articles_envelope(client, make_article):
    make_article(title="Laravel 11 released", published_at=datetime(2024, 1, 3, 8, 0))

    response = client.get("/articles")

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["current_page"] == 1
    assert body["from"] == 1 and body["to"] == 1
    assert body["path"] == "http://testserver/articles"
    assert body["first_page_url"] == "http://testserver/articles?page=1"
    article = body["data"][0]
    assert article["title"] == "Laravel 11 released"
    assert article["publishedAt"] == "2024-01-03T08:00:00"
    assert article["news_source"] == "Tech Daily"
    assert article["categories"] == ["general"]
    assert article["authors"] == ["Jane Smith"]
    assert response.headers["X-Correlation-ID"]


def test_search_endpoint(client, make_article):
    make_article(title="Laravel Testing")
    make_article(title="React Development")

    body = client.get("/articles", params={"search": "Laravel"}).json()
    assert body["total"] == 1
    assert [article["title"] for article in body["data"]] == ["Laravel Testing"]


def test_no_match_is_404(client, make_article):
    make_article(title="Markets rally")

    response = client.get("/articles", params={"search": "Laravel"})

    assert response.status_code == 404
    assert response.json() == {"message": "No articles found"}


def test_page_past_the_end_is_empty(client, make_article):
    make_article(title="Markets rally")

    response = client.get("/articles", params={"page": 5})

    assert response.status_code == 200
    assert response.json()["data"] == []
    assert response.json()["total"] == 1


def test_unknown_filter_keys_are_ignored(client, make_article):
    make_article(title="Markets rally")
    make_article(title="Summit ends")

    filtered = client.get("/articles", params={"colour": "blue", "limit": 1}).json()
    assert filtered["total"] == 2


def test_invalid_date_is_422(client, make_article):
    make_article()
    response = client.get("/articles", params={"from": "not-a-date"})
    assert response.status_code == 422
    assert "from" in response.json()["message"]


def test_repeated_categories_param(client, make_article):
    make_article(title="Summit ends", categories=("world",))
    make_article(title="Markets rally", categories=("business",))
    make_article(title="Recipe of the day", categories=("food",))

    response = client.get("/articles?categories=world&categories=business")
    assert [a["title"] for a in response.json()["data"]] == ["Summit ends", "Markets rally"]


def test_show_article(client, make_article):
    article = make_article(title="Summit ends")

    response = client.get(f"/articles/{article.id}")

    assert response.status_code == 200
    assert response.json()["id"] == article.id


def test_show_missing_article_is_404(client):
    response = client.get("/articles/999")
    assert response.status_code == 404
    assert response.json() == {"message": "Article not found"}


def test_show_article_is_served_from_cache(client, make_article, monkeypatch):
    article = make_article(title="Summit ends")
    real_get_article = crud.get_article
    reads = []

    def counting_get_article(db, article_id):
        reads.append(article_id)
        return real_get_article(db, article_id)

    monkeypatch.setattr(crud, "get_article", counting_get_article)

    first = client.get(f"/articles/{article.id}")
    second = client.get(f"/articles/{article.id}")

    assert first.status_code == second.status_code == 200
    assert first.content == second.content
    assert reads == [article.id]


def test_listing_is_served_from_cache(client, make_article):
    make_article(title="Markets rally")
    first = client.get("/articles", params={"search": "markets"}).json()

    # written after the snapshot, so invisible until the entry expires
    make_article(title="Markets slump")
    second = client.get("/articles", params={"search": "markets"}).json()

    assert second == first
    assert second["total"] == 1


def test_cache_outage_falls_back_to_database(client, make_article):
    broken = Mock()
    broken.get.side_effect = ConnectionError("redis down")
    broken.set.side_effect = ConnectionError("redis down")

    app.dependency_overrides[get_read_cache] = lambda: ReadThroughCache(RedisClient("tests", client=broken))
    article = make_article(title="Summit ends")

    response = client.get(f"/articles/{article.id}")

    assert response.status_code == 200
    assert response.json()["title"] == "Summit ends"


def test_disabled_cache_reads_through(client, make_article, fake_redis):
    app.dependency_overrides[get_read_cache] = lambda: ReadThroughCache(
        RedisClient("tests", client=fake_redis), enabled=False
    )
    make_article(title="Markets rally")
    client.get("/articles")
    make_article(title="Markets slump")

    assert client.get("/articles").json()["total"] == 2
    assert fake_redis.keys("*") == []


def test_reference_lists(client, make_article):
    make_article(title="Summit ends", source="New York Times", categories=("world", "politics"),
                 authors=("Alice Walker", "Bob Stone"))

    assert [row["name"] for row in client.get("/categories").json()] == ["world", "politics"]
    assert [row["name"] for row in client.get("/authors").json()] == ["Alice Walker", "Bob Stone"]
    sources = client.get("/sources").json()
    assert sources == [{"id": sources[0]["id"], "name": "New York Times"}]


def test_listing_cache_is_keyed_by_host(client, make_article):
    make_article(title="Markets rally")
    other_host = TestClient(app, base_url="http://mirror.example")

    first = client.get("/articles").json()
    second = other_host.get("/articles").json()

    assert first["path"] == "http://testserver/articles"
    assert second["path"] == "http://mirror.example/articles"
    assert second["first_page_url"] == "http://mirror.example/articles?page=1"
