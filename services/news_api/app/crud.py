import math
from typing import Dict, List, Optional, Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session, selectinload

from services.news_api.app.schema import ArticleFilters, PreferenceOverrides
from shared.app_logging.logger import get_logger
from shared.config.settings import get_settings
from shared.database.models.article import Article
from shared.database.models.entities import Author, Category, NewsSource
from shared.database.models.user import User
from shared.schemas.articles import ArticlePage, ArticleView, NamedEntity, PreferencesUpdate

logger = get_logger("news_api.crud")


class PreferenceOverrideNotFound(Exception):
    """An override names a source, category or author that does not exist."""

    def __init__(self, dimension: str, name: str):
        super().__init__(f"No {dimension} named {name!r}")
        self.dimension = dimension
        self.name = name


class UnknownPreferenceIds(Exception):
    def __init__(self, field: str, missing: Sequence[int]):
        super().__init__(f"Unknown ids for {field}: {sorted(missing)}")
        self.field = field
        self.missing = sorted(missing)


def _contains(value: str) -> str:
    """LIKE pattern for a literal substring."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _with_relations(stmt: Select) -> Select:
    return stmt.options(
        selectinload(Article.source),
        selectinload(Article.categories),
        selectinload(Article.authors),
    )


def build_article_query(filters: ArticleFilters) -> Select:
    """SELECT over articles with every supplied filter applied."""
    stmt = select(Article)

    if filters.search:
        pattern = _contains(filters.search)
        stmt = stmt.where(
            or_(
                Article.title.ilike(pattern, escape="\\"),
                Article.description.ilike(pattern, escape="\\"),
                Article.content.ilike(pattern, escape="\\"),
                Article.authors.any(Author.name.ilike(pattern, escape="\\")),
            )
        )

    if filters.provider:
        stmt = stmt.where(Article.provider.ilike(_contains(filters.provider), escape="\\"))

    if filters.source:
        stmt = stmt.where(Article.source.has(NewsSource.name.ilike(_contains(filters.source), escape="\\")))

    if filters.categories:
        stmt = stmt.where(Article.categories.any(Category.name.in_(filters.categories)))

    if filters.published_from and filters.published_to:
        stmt = stmt.where(Article.published_at.between(filters.published_from, filters.published_to))
    elif filters.published_from:
        stmt = stmt.where(Article.published_at >= filters.published_from)
    elif filters.published_to:
        stmt = stmt.where(Article.published_at <= filters.published_to)

    return stmt


def list_articles(
    db: Session,
    filters: ArticleFilters,
    page: int = 1,
    path: str = "/articles",
    per_page: Optional[int] = None,
) -> ArticlePage:
    """One page of matching articles in insertion order.

    ``total == 0`` means nothing matched; a page past the end with a
    non-zero total is an ordinary empty page.
    """
    per_page = per_page or get_settings().service.page_size
    page = max(page, 1)
    stmt = build_article_query(filters)

    total = db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    offset = (page - 1) * per_page
    rows = db.scalars(
        _with_relations(stmt).order_by(Article.id).offset(offset).limit(per_page)
    ).all()
    logger.debug(f"list_articles page={page} total={total} rows={len(rows)}")

    last_page = max(1, math.ceil(total / per_page))

    def page_url(number: int) -> str:
        return f"{path}?page={number}"

    return ArticlePage(
        current_page=page,
        data=[ArticleView.from_orm_article(article) for article in rows],
        first_page_url=page_url(1),
        from_=offset + 1 if rows else None,
        last_page=last_page,
        last_page_url=page_url(last_page),
        next_page_url=page_url(page + 1) if page < last_page else None,
        path=path,
        per_page=per_page,
        prev_page_url=page_url(page - 1) if page > 1 else None,
        to=offset + len(rows) if rows else None,
        total=total,
    )


def get_article(db: Session, article_id: int) -> Optional[ArticleView]:
    article = db.scalars(_with_relations(select(Article).where(Article.id == article_id))).first()
    if article is None:
        return None
    return ArticleView.from_orm_article(article)


def _ids_named(db: Session, model, name: str) -> List[int]:
    return list(db.scalars(select(model.id).where(model.name == name)))


def list_by_preferences(
    db: Session,
    category_ids: Sequence[int],
    author_ids: Sequence[int],
    source_ids: Sequence[int],
    overrides: Optional[PreferenceOverrides] = None,
) -> List[ArticleView]:
    """Articles for a user's feed.

    With any override, stored preferences are ignored and each supplied
    override must match (AND). Without overrides an article qualifies by
    matching ANY preferred category, author or source.
    """
    stmt = select(Article)

    if overrides is not None and overrides.supplied:
        if overrides.source:
            ids = _ids_named(db, NewsSource, overrides.source)
            if not ids:
                raise PreferenceOverrideNotFound("source", overrides.source)
            stmt = stmt.where(Article.news_source_id.in_(ids))

        if overrides.category:
            ids = _ids_named(db, Category, overrides.category)
            if not ids:
                raise PreferenceOverrideNotFound("category", overrides.category)
            stmt = stmt.where(Article.categories.any(Category.id.in_(ids)))

        if overrides.author:
            ids = _ids_named(db, Author, overrides.author)
            if not ids:
                raise PreferenceOverrideNotFound("author", overrides.author)
            stmt = stmt.where(Article.authors.any(Author.id.in_(ids)))
    else:
        stmt = stmt.where(
            or_(
                Article.categories.any(Category.id.in_(list(category_ids))),
                Article.authors.any(Author.id.in_(list(author_ids))),
                Article.news_source_id.in_(list(source_ids)),
            )
        )

    rows = db.scalars(_with_relations(stmt).order_by(Article.id)).all()
    return [ArticleView.from_orm_article(article) for article in rows]


def list_named(db: Session, model) -> List[NamedEntity]:
    """Full reference list for authors, categories or sources."""
    return [NamedEntity.model_validate(row) for row in db.scalars(select(model).order_by(model.id))]


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def sync_preferences(db: Session, user: User, update: PreferencesUpdate) -> User:
    """Replace each preference list that is supplied non-empty; leave the rest alone."""
    plan: Dict[str, tuple] = {
        "preferred_categories": (Category, update.preferred_categories),
        "preferred_authors": (Author, update.preferred_authors),
        "preferred_sources": (NewsSource, update.preferred_sources),
    }

    resolved = {}
    for field, (model, ids) in plan.items():
        if not ids:
            continue
        wanted = set(ids)
        rows = list(db.scalars(select(model).where(model.id.in_(wanted))))
        missing = wanted - {row.id for row in rows}
        if missing:
            raise UnknownPreferenceIds(field, missing)
        resolved[field] = sorted(rows, key=lambda row: row.id)

    try:
        for field, rows in resolved.items():
            setattr(user, field, rows)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Error syncing preferences for user {user.id}: {e}")
        raise

    db.refresh(user)
    logger.info(f"Synced preferences for user {user.id}: {', '.join(resolved) or 'nothing'}")
    return user
