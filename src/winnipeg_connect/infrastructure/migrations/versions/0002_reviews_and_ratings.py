"""reviews and derived user ratings

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 15:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

Json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
Stamp = sa.DateTime(timezone=True)


def upgrade() -> None:
    op.add_column(
        "users",
        sa.Column("rating_average", sa.Numeric(3, 2), nullable=False, server_default="0"),
    )
    op.add_column(
        "users", sa.Column("rating_count", sa.Integer(), nullable=False, server_default="0")
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "job_id", sa.Uuid(), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("reviewer_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reviewee_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("reviewer_type", sa.String(20), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("would_recommend", sa.Boolean(), nullable=False),
        sa.Column("would_hire_again", sa.Boolean(), nullable=True),
        sa.Column("tags", Json, nullable=False),
        sa.Column("created_at", Stamp, nullable=False),
        sa.UniqueConstraint("job_id", "reviewer_id", name="uq_review_job_reviewer"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating_range"),
        sa.CheckConstraint(
            "reviewer_type IN ('seeker', 'provider')", name="ck_review_valid_reviewer_type"
        ),
    )
    op.create_index("idx_review_reviewee", "reviews", ["reviewee_id", "created_at"])


def downgrade() -> None:
    op.drop_table("reviews")
    op.drop_column("users", "rating_count")
    op.drop_column("users", "rating_average")
