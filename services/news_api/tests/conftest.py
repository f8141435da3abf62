import pytest
from fastapi.testclient import TestClient

from services.news_api.app.deps import get_db, get_read_cache
from services.news_api.app.main import app
from shared.database.models.entities import Author, Category, NewsSource
from shared.database.models.user import User


@pytest.fixture
def client(db_session, cache):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_read_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    def _make(name="Reader", email="reader@example.com", categories=(), authors=(), sources=()):
        def named(model, names):
            return [db_session.query(model).filter_by(name=n).one() for n in names]

        user = User(
            name=name,
            email=email,
            preferred_categories=named(Category, categories),
            preferred_authors=named(Author, authors),
            preferred_sources=named(NewsSource, sources),
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make
