import os

# Must be in place before shared.config.settings is first imported.
os.environ.setdefault("MAX_RETRIES", "1")
os.environ.setdefault("RETRY_DELAY", "0")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("NEWS_API_URL", "http://newsapi.test/v2/top-headlines")
os.environ.setdefault("GUARDIAN_API_URL", "http://guardian.test/search")
os.environ.setdefault("NYT_FEED_URL", "http://nyt.test/rss/HomePage.xml")

from datetime import datetime

import fakeredis
import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from shared.database.base import Base
from shared.database.models.article import Article
from shared.database.models.entities import Author, Category, NewsSource
from shared.database.models.user import User  # noqa: F401
from shared.utils.cache import ReadThroughCache
from shared.utils.redis_client import RedisClient


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite needs explicit BEGIN for SAVEPOINTs to nest correctly
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def cache(fake_redis):
    return ReadThroughCache(RedisClient("tests", client=fake_redis), enabled=True, namespace="test")


def _get_or_create(session, model, name):
    entity = session.query(model).filter_by(name=name).one_or_none()
    if entity is None:
        entity = model(name=name)
        session.add(entity)
        session.flush()
    return entity


@pytest.fixture
def make_article(db_session):
    """Insert an article the way ingestion would; returns the persisted row."""

    def _make(
        title="Sample headline",
        description="Sample description",
        content="Sample content",
        url=None,
        provider="newsapi",
        source="Tech Daily",
        categories=("general",),
        authors=("Jane Smith",),
        published_at=datetime(2024, 1, 15, 9, 30),
    ):
        article = Article(
            title=title,
            description=description,
            content=content,
            url=url or f"https://news.example/{title.lower().replace(' ', '-')}",
            url_to_image="",
            published_at=published_at,
            provider=provider,
            source=_get_or_create(db_session, NewsSource, source),
            categories=[_get_or_create(db_session, Category, name) for name in categories],
            authors=[_get_or_create(db_session, Author, name) for name in authors],
        )
        db_session.add(article)
        db_session.commit()
        return article

    return _make
