"""Initial migration – create posts and object_fields tables.

Revision ID: 001
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── posts ─────────────────────────────────────────────────────────
    op.create_table(
        "posts",
        sa.Column("pid", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("tid", sa.BigInteger(), nullable=False),
        sa.Column("uid", sa.BigInteger(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_posts_tid", "posts", ["tid"])

    # ── object_fields ─────────────────────────────────────────────────
    op.create_table(
        "object_fields",
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("field", sa.String(255), nullable=False),
        sa.Column("value", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("key", "field"),
    )


def downgrade() -> None:
    op.drop_table("object_fields")
    op.drop_index("idx_posts_tid", table_name="posts")
    op.drop_table("posts")
