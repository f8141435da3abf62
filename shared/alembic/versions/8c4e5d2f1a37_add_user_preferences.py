"""Add users and preference tables"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8c4e5d2f1a37"
down_revision: Union[str, Sequence[str], None] = "3f1c2a9b7d10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_PREFERENCE_TABLES = (
    ("category_user", "category_id", "categories"),
    ("author_user", "author_id", "authors"),
    ("news_source_user", "news_source_id", "news_sources"),
)


def upgrade() -> None:
    """Create users and preference join tables if they do not already exist."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = set(inspector.get_table_names())

    if "users" not in existing:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=False, unique=True),
            sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        )

    for table, column, target in _PREFERENCE_TABLES:
        if table in existing:
            continue
        op.create_table(
            table,
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
            sa.Column(column, sa.Integer(), sa.ForeignKey(f"{target}.id", ondelete="CASCADE"), primary_key=True),
        )


def downgrade() -> None:
    """Drop preference tables and users."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    existing = set(inspector.get_table_names())

    for table, _, _ in _PREFERENCE_TABLES:
        if table in existing:
            op.drop_table(table)
    if "users" in existing:
        op.drop_table("users")
