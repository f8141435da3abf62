from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Text, func
from sqlalchemy.orm import relationship

from ..base import Base

article_category = Table(
    "article_category",
    Base.metadata,
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

article_author = Table(
    "article_author",
    Base.metadata,
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("author_id", Integer, ForeignKey("authors.id", ondelete="CASCADE"), primary_key=True),
)


class Article(Base):
    """Canonical article row. Rows are append-only; url is not unique."""

    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    url = Column(Text, nullable=False, index=True)
    url_to_image = Column("urlToImage", Text, nullable=False, default="")
    published_at = Column("publishedAt", DateTime, nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    provider = Column(String(100), nullable=False, index=True)
    news_source_id = Column(Integer, ForeignKey("news_sources.id"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    source = relationship("NewsSource")
    categories = relationship("Category", secondary=article_category, order_by="Category.id")
    authors = relationship("Author", secondary=article_author, order_by="Author.id")
