"""Tests for the article query layer against an in-memory database."""
from datetime import datetime

import pytest

from services.news_api.app import crud
from services.news_api.app.schema import ArticleFilters, InvalidFilterError


def _filters(**params):
    return ArticleFilters.from_query({key: value if isinstance(value, list) else [value] for key, value in params.items()})


def _titles(page):
    return [article.title for article in page.data]


@pytest.fixture
def corpus(make_article):
    make_article(title="Laravel 11 released", provider="newsapi", source="Tech Daily",
                 categories=("technology",), published_at=datetime(2024, 1, 3, 8, 0))
    make_article(title="Markets rally", description="Stocks up after laravel-free week",
                 provider="The Guardian", source="The Guardian",
                 categories=("business",), published_at=datetime(2024, 1, 5, 23, 30))
    make_article(title="Summit ends", content="No mention", provider="New York Times",
                 source="New York Times", categories=("world", "politics"),
                 authors=("Alice Walker",), published_at=datetime(2024, 1, 7, 12, 0))
    make_article(title="Framework roundup", provider="newsapi", source="Dev Weekly",
                 categories=("technology",), authors=("Taylor Laravel",),
                 published_at=datetime(2024, 1, 9, 6, 0))


def test_no_filters_returns_everything_in_insertion_order(db_session, corpus):
    page = crud.list_articles(db_session, ArticleFilters())
    assert page.total == 4
    assert _titles(page) == ["Laravel 11 released", "Markets rally", "Summit ends", "Framework roundup"]


def test_search_matches_title_description_content_and_author(db_session, corpus):
    page = crud.list_articles(db_session, _filters(search="Laravel"))
    assert _titles(page) == ["Laravel 11 released", "Markets rally", "Framework roundup"]


def test_search_treats_wildcards_literally(db_session, make_article):
    make_article(title="100% growth")
    make_article(title="1000 growth")
    page = crud.list_articles(db_session, _filters(search="100%"))
    assert _titles(page) == ["100% growth"]


def test_provider_filter(db_session, corpus):
    page = crud.list_articles(db_session, _filters(provider="newsapi"))
    assert _titles(page) == ["Laravel 11 released", "Framework roundup"]


def test_source_filter(db_session, corpus):
    page = crud.list_articles(db_session, _filters(source="guardian"))
    assert _titles(page) == ["Markets rally"]


def test_categories_match_any_of(db_session, corpus):
    page = crud.list_articles(db_session, _filters(categories=["politics", "business"]))
    assert _titles(page) == ["Markets rally", "Summit ends"]


def test_categories_bracket_form(db_session, corpus):
    filters = ArticleFilters.from_query({"categories[]": ["world", "business"], "categories": ["world"]})
    assert filters.categories == ["world", "business"]
    assert crud.list_articles(db_session, filters).total == 2


def test_category_name_with_comma_is_matched_whole(db_session, make_article):
    make_article(title="Senate hearing", categories=("Trump, Donald J",))
    make_article(title="Campaign trail", categories=("Trump",))

    filters = ArticleFilters.from_query({"categories": ["Trump, Donald J"]})

    assert filters.categories == ["Trump, Donald J"]
    assert _titles(crud.list_articles(db_session, filters)) == ["Senate hearing"]


def test_filters_are_anded(db_session, corpus):
    page = crud.list_articles(db_session, _filters(search="laravel", provider="newsapi", categories="technology"))
    assert _titles(page) == ["Laravel 11 released", "Framework roundup"]
    assert crud.list_articles(db_session, _filters(search="laravel", provider="New York Times")).total == 0


@pytest.mark.parametrize(
    "params, expected",
    [
        ({"from": "2024-01-05"}, ["Markets rally", "Summit ends", "Framework roundup"]),
        ({"to": "2024-01-05"}, ["Laravel 11 released", "Markets rally"]),
        ({"from": "2024-01-04", "to": "2024-01-07"}, ["Markets rally", "Summit ends"]),
        ({"from": "2024-01-07T12:00:00", "to": "2024-01-07T12:00:00"}, ["Summit ends"]),
        ({"to": "2024-01-05T12:00:00Z"}, ["Laravel 11 released"]),
        ({"from": "2024-02-01"}, []),
    ],
)
def test_date_range(db_session, corpus, params, expected):
    assert _titles(crud.list_articles(db_session, _filters(**params))) == expected


def test_invalid_date_is_rejected():
    with pytest.raises(InvalidFilterError):
        _filters(**{"from": "last tuesday"})


def test_blank_values_are_ignored():
    filters = _filters(search="  ", provider="", **{"from": ""})
    assert filters == ArticleFilters()


def test_pagination_envelope(db_session, make_article):
    for i in range(120):
        make_article(title=f"Story {i}", url=f"https://news.example/{i}")

    first = crud.list_articles(db_session, ArticleFilters(), page=1, path="http://testserver/articles")
    second = crud.list_articles(db_session, ArticleFilters(), page=2, path="http://testserver/articles")
    beyond = crud.list_articles(db_session, ArticleFilters(), page=3, path="http://testserver/articles")

    assert (first.total, len(first.data), first.from_, first.to) == (120, 100, 1, 100)
    assert first.last_page == 2
    assert first.prev_page_url is None
    assert first.next_page_url == "http://testserver/articles?page=2"
    assert (len(second.data), second.from_, second.to) == (20, 101, 120)
    assert second.next_page_url is None
    assert second.data[0].title == "Story 100"
    assert beyond.total == 120 and beyond.data == [] and beyond.from_ is None


def test_get_article(db_session, make_article):
    article = make_article(title="Summit ends", categories=("world", "politics"), authors=("Alice Walker",))

    view = crud.get_article(db_session, article.id)

    assert view.title == "Summit ends"
    assert view.news_source == "Tech Daily"
    assert view.categories == ["world", "politics"]
    assert view.authors == ["Alice Walker"]
    assert crud.get_article(db_session, article.id + 1) is None
