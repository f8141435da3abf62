from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, func
from sqlalchemy.orm import relationship

from ..base import Base

# Users are provisioned by the external auth service; only their
# preferences are managed here.

category_user = Table(
    "category_user",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)

author_user = Table(
    "author_user",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("author_id", Integer, ForeignKey("authors.id", ondelete="CASCADE"), primary_key=True),
)

news_source_user = Table(
    "news_source_user",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("news_source_id", Integer, ForeignKey("news_sources.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    preferred_categories = relationship("Category", secondary=category_user, order_by="Category.id")
    preferred_authors = relationship("Author", secondary=author_user, order_by="Author.id")
    preferred_sources = relationship("NewsSource", secondary=news_source_user, order_by="NewsSource.id")
