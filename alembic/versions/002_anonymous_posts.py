"""Add anonymous authorship columns to posts.

Revision ID: 002
Create Date: 2026-10-14
"""

import sqlalchemy as sa
from alembic import op

revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "posts",
        sa.Column("is_anonymous", sa.SmallInteger, nullable=False, server_default="0"),
    )
    op.add_column(
        "posts",
        sa.Column("real_uid", sa.BigInteger, nullable=True),
    )
    op.add_column(
        "posts",
        sa.Column("anonymous_alias_id", sa.Integer, nullable=True),
    )


def downgrade() -> None:
    op.drop_column("posts", "anonymous_alias_id")
    op.drop_column("posts", "real_uid")
    op.drop_column("posts", "is_anonymous")
