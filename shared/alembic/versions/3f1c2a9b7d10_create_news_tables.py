"""create news tables

Revision ID: 3f1c2a9b7d10
Revises:
Create Date: 2025-01-23 02:12:23.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c2a9b7d10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _named_table(name: str) -> None:
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("name", name=f"uq_{name}_name"),
    )


def upgrade() -> None:
    """Create sources, categories, authors, articles and their join tables."""
    _named_table("news_sources")
    _named_table("categories")
    _named_table("authors")

    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("urlToImage", sa.Text(), nullable=False),
        sa.Column("publishedAt", sa.DateTime(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("provider", sa.String(length=100), nullable=False),
        sa.Column("news_source_id", sa.Integer(), sa.ForeignKey("news_sources.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index(op.f("ix_articles_url"), "articles", ["url"], unique=False)
    op.create_index(op.f("ix_articles_publishedAt"), "articles", ["publishedAt"], unique=False)
    op.create_index(op.f("ix_articles_provider"), "articles", ["provider"], unique=False)
    op.create_index(op.f("ix_articles_news_source_id"), "articles", ["news_source_id"], unique=False)

    op.create_table(
        "article_category",
        sa.Column("article_id", sa.Integer(), sa.ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
    )
    op.create_table(
        "article_author",
        sa.Column("article_id", sa.Integer(), sa.ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("authors.id", ondelete="CASCADE"), primary_key=True),
    )


def downgrade() -> None:
    """Drop the news tables."""
    op.drop_table("article_author")
    op.drop_table("article_category")
    op.drop_index(op.f("ix_articles_news_source_id"), table_name="articles")
    op.drop_index(op.f("ix_articles_provider"), table_name="articles")
    op.drop_index(op.f("ix_articles_publishedAt"), table_name="articles")
    op.drop_index(op.f("ix_articles_url"), table_name="articles")
    op.drop_table("articles")
    op.drop_table("authors")
    op.drop_table("categories")
    op.drop_table("news_sources")
