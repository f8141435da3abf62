from typing import Callable

from sqlalchemy.orm import Session

from services.collector.app.resolver import EntityResolver
from shared.app_logging.logger import get_logger
from shared.database.models.article import Article
from shared.schemas.articles import NormalizedArticle

logger = get_logger("collector.db")


def save_article(session_factory: Callable[[], Session], record: NormalizedArticle) -> int:
    """Persist one article with its source, categories and authors as a single unit.

    Either the article row and all of its join rows are committed, or nothing
    from this record is.
    """
    session = session_factory()
    try:
        resolver = EntityResolver(session)
        source = resolver.resolve_source(record.source_name)
        categories = resolver.resolve_categories(record.categories)
        authors = resolver.resolve_authors(record.authors)

        article = Article(
            title=record.title,
            description=record.description,
            url=record.url,
            url_to_image=record.url_to_image,
            published_at=record.published_at,
            content=record.content,
            provider=record.provider,
            source=source,
            categories=categories,
            authors=authors,
        )
        session.add(article)
        session.commit()
        logger.debug(f"✅ Article saved: {article.title[:50]}...")
        return article.id

    except Exception as e:
        session.rollback()
        logger.error(f"❌ Error saving article {record.title[:50]!r}: {e}")
        raise
    finally:
        session.close()
