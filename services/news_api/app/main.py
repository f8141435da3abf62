from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from services.news_api.app import crud
from services.news_api.app.deps import get_current_user, get_db, get_read_cache
from services.news_api.app.schema import ArticleFilters, InvalidFilterError, PreferenceOverrides
from shared.app_logging.logger import CorrelationContext, setup_logging
from shared.config.settings import get_settings
from shared.database.models.entities import Author, Category, NewsSource
from shared.database.models.user import User
from shared.database.session import init_db
from shared.schemas.articles import NamedEntity, PreferencesOut, PreferencesUpdate
from shared.utils.cache import ReadThroughCache, make_cache_key
from shared.utils.health import create_news_api_health_checker
from shared.utils.redis_client import close_all_redis_clients

# Setup logging
logger = setup_logging("news_api")

# Get configuration
settings = get_settings()

# Create health checker
health_checker = create_news_api_health_checker()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("News API started")
    try:
        yield
    finally:
        close_all_redis_clients()
        logger.info("Redis connections closed")


app = FastAPI(title="NewsHub News API", lifespan=lifespan)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    with CorrelationContext(request.headers.get("X-Correlation-ID")) as correlation_id:
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


@app.exception_handler(InvalidFilterError)
async def invalid_filter_handler(request: Request, exc: InvalidFilterError):
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"message": str(exc)})


@app.exception_handler(crud.PreferenceOverrideNotFound)
async def override_not_found_handler(request: Request, exc: crud.PreferenceOverrideNotFound):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"message": f"No articles found for the specified {exc.dimension}"},
    )


@app.exception_handler(crud.UnknownPreferenceIds)
async def unknown_preference_handler(request: Request, exc: crud.UnknownPreferenceIds):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"message": str(exc), "field": exc.field, "missing": exc.missing},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unexpected error in %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


@app.get("/news/health")
def health():
    """Comprehensive health check endpoint."""
    return health_checker.run_all_checks()


@app.get("/news/health/live")
def liveness_check():
    """Liveness check endpoint."""
    return {"status": "alive", "service": "news_api"}


@app.get("/news/health/ready")
def readiness_check():
    """Readiness check endpoint."""
    return health_checker.readiness()


def _page_number(raw) -> int:
    return int(raw) if raw and str(raw).isdigit() and int(raw) > 0 else 1


@app.get("/articles")
def list_articles(
    request: Request,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_read_cache),
):
    """Filtered, paginated articles: search, provider, source, categories, from, to.

    A filter set that matches nothing is a 404, not an empty page.
    """
    params = {}
    for key, value in request.query_params.multi_items():
        params.setdefault(key, []).append(value)

    filters = ArticleFilters.from_query(params)
    page = _page_number(request.query_params.get("page"))
    path = str(request.url.replace(query=""))
    key = make_cache_key("articles", {**filters.cache_params(), "page": page, "path": path})

    result = cache.get_or_compute(
        key,
        settings.cache.articles_ttl,
        lambda: crud.list_articles(db, filters, page=page, path=path).model_dump(mode="json", by_alias=True),
    )

    if result["total"] == 0:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": "No articles found"})
    return result


@app.get("/articles/{article_id}")
def show_article(
    article_id: int,
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_read_cache),
):
    def compute():
        article = crud.get_article(db, article_id)
        return article.model_dump(mode="json") if article else None

    article = cache.get_or_compute(f"article_{article_id}", settings.cache.article_ttl, compute)
    if article is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": "Article not found"})
    return article


def _reference_list(db: Session, cache: ReadThroughCache, key: str, model):
    return cache.get_or_compute(
        key,
        settings.cache.reference_ttl,
        lambda: [entity.model_dump() for entity in crud.list_named(db, model)],
    )


@app.get("/authors")
def list_authors(db: Session = Depends(get_db), cache: ReadThroughCache = Depends(get_read_cache)):
    return _reference_list(db, cache, "authors", Author)


@app.get("/categories")
def list_categories(db: Session = Depends(get_db), cache: ReadThroughCache = Depends(get_read_cache)):
    return _reference_list(db, cache, "categories", Category)


@app.get("/sources")
def list_sources(db: Session = Depends(get_db), cache: ReadThroughCache = Depends(get_read_cache)):
    return _reference_list(db, cache, "sources", NewsSource)


@app.get("/user-preferences")
def preference_feed(
    source: str = None,
    category: str = None,
    author: str = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    cache: ReadThroughCache = Depends(get_read_cache),
):
    """Articles matching the caller's stored preferences, or the given override."""
    overrides = PreferenceOverrides(
        source=source.strip() if source else None,
        category=category.strip() if category else None,
        author=author.strip() if author else None,
    )
    key = make_cache_key(f"user_{user.id}_preferences", overrides.model_dump())

    def compute():
        articles = crud.list_by_preferences(
            db,
            category_ids=[category.id for category in user.preferred_categories],
            author_ids=[author.id for author in user.preferred_authors],
            source_ids=[source.id for source in user.preferred_sources],
            overrides=overrides,
        )
        return [article.model_dump(mode="json") for article in articles]

    return cache.get_or_compute(key, settings.cache.preferences_ttl, compute)


def _preferences_out(user: User) -> PreferencesOut:
    return PreferencesOut(
        user_id=user.id,
        preferred_categories=[NamedEntity.model_validate(row) for row in user.preferred_categories],
        preferred_authors=[NamedEntity.model_validate(row) for row in user.preferred_authors],
        preferred_sources=[NamedEntity.model_validate(row) for row in user.preferred_sources],
    )


@app.get("/user/preferences", response_model=PreferencesOut)
def get_preferences(user: User = Depends(get_current_user)):
    return _preferences_out(user)


@app.put("/user/preferences", response_model=PreferencesOut)
def update_preferences(
    update: PreferencesUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not any((update.preferred_categories, update.preferred_authors, update.preferred_sources)):
        raise HTTPException(status.HTTP_422_UNPROCESSABLE_ENTITY, "No preferences supplied")
    return _preferences_out(crud.sync_preferences(db, user, update))
