"""initial marketplace schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

Json = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
Money = sa.Numeric(12, 2)
Stamp = sa.DateTime(timezone=True)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("first_name", sa.String(80), nullable=False),
        sa.Column("last_name", sa.String(80), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("created_at", Stamp, nullable=False),
        sa.CheckConstraint("role IN ('seeker', 'provider')", name="ck_user_valid_role"),
    )

    op.create_table(
        "jobs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("posted_by_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(80), nullable=False),
        sa.Column("subcategories", Json, nullable=False),
        sa.Column("budget", Json, nullable=False),
        sa.Column("timeline", Json, nullable=True),
        sa.Column("location", Json, nullable=True),
        sa.Column("requirements", Json, nullable=True),
        sa.Column("priority", sa.String(10), nullable=False),
        sa.Column("is_urgent", sa.Boolean(), nullable=False),
        sa.Column("response_time", sa.String(20), nullable=False),
        sa.Column("views", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("selected_provider_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("selected_quote_id", sa.Uuid(), nullable=True),
        sa.Column("completion_date", Stamp, nullable=True),
        sa.Column("created_at", Stamp, nullable=False),
        sa.Column("updated_at", Stamp, nullable=False),
        sa.CheckConstraint(
            "status IN ('open', 'in_progress', 'completed', 'cancelled', 'disputed')",
            name="ck_job_valid_status",
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')", name="ck_job_valid_priority"
        ),
    )
    op.create_index("idx_job_status", "jobs", ["status"])
    op.create_index("idx_job_posted_by", "jobs", ["posted_by_id"])
    op.create_index("idx_job_category", "jobs", ["category"])
    op.create_index("idx_job_created_at", "jobs", ["created_at"])

    op.create_table(
        "quotes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "job_id", sa.Uuid(), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("provider_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("seeker_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("price_amount", Money, nullable=False),
        sa.Column("price_type", sa.String(10), nullable=False),
        sa.Column("price_breakdown", Json, nullable=False),
        sa.Column("estimated_duration", Json, nullable=True),
        sa.Column("start_date", Stamp, nullable=True),
        sa.Column("completion_date", Stamp, nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("includes_supplies", sa.Boolean(), nullable=False),
        sa.Column("supply_details", sa.Text(), nullable=True),
        sa.Column("warranty", Json, nullable=True),
        sa.Column("availability", Json, nullable=True),
        sa.Column("terms", sa.Text(), nullable=True),
        sa.Column("payment_terms", Json, nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("viewed_by_seeker", sa.Boolean(), nullable=False),
        sa.Column("viewed_at", Stamp, nullable=True),
        sa.Column("responded_at", Stamp, nullable=True),
        sa.Column("expires_at", Stamp, nullable=False),
        sa.Column("created_at", Stamp, nullable=False),
        sa.Column("updated_at", Stamp, nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'withdrawn', 'expired')",
            name="ck_quote_valid_status",
        ),
        sa.CheckConstraint("price_type IN ('fixed', 'hourly')", name="ck_quote_valid_price_type"),
        sa.CheckConstraint("price_amount >= 0", name="ck_quote_non_negative_price"),
    )
    op.create_index(
        "uq_quote_active_per_provider",
        "quotes",
        ["job_id", "provider_id"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'accepted')"),
        sqlite_where=sa.text("status IN ('pending', 'accepted')"),
    )
    op.create_index("idx_quote_job", "quotes", ["job_id"])
    op.create_index("idx_quote_provider", "quotes", ["provider_id"])
    op.create_index("idx_quote_seeker", "quotes", ["seeker_id"])
    op.create_index("idx_quote_status", "quotes", ["status"])
    op.create_index("idx_quote_expires_at", "quotes", ["expires_at"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("job_id", sa.Uuid(), sa.ForeignKey("jobs.id"), nullable=False),
        sa.Column("quote_id", sa.Uuid(), sa.ForeignKey("quotes.id"), nullable=False),
        sa.Column("payer_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("payee_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("subtotal", Money, nullable=False),
        sa.Column("platform_fee", Money, nullable=False),
        sa.Column("processor_fee", Money, nullable=False),
        sa.Column("total", Money, nullable=False),
        sa.Column("payment_type", sa.String(20), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("milestone", Json, nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("escrow_status", sa.String(20), nullable=True),
        sa.Column("gateway_intent_id", sa.String(255), nullable=True, unique=True),
        sa.Column("gateway_refund_id", sa.String(255), nullable=True),
        sa.Column("hold_until", Stamp, nullable=True),
        sa.Column("requires_both_approval", sa.Boolean(), nullable=False),
        sa.Column("seeker_approval", sa.Boolean(), nullable=False),
        sa.Column("provider_confirmation", sa.Boolean(), nullable=False),
        sa.Column("released_at", Stamp, nullable=True),
        sa.Column("released_by_id", sa.Uuid(), nullable=True),
        sa.Column("release_reason", sa.String(20), nullable=True),
        sa.Column("refunded_at", Stamp, nullable=True),
        sa.Column("refund_reason", sa.Text(), nullable=True),
        sa.Column("refund_amount", Money, nullable=True),
        sa.Column("is_disputed", sa.Boolean(), nullable=False),
        sa.Column("disputed_at", Stamp, nullable=True),
        sa.Column("disputed_by_id", sa.Uuid(), nullable=True),
        sa.Column("dispute_reason", sa.Text(), nullable=True),
        sa.Column("dispute_status", sa.String(20), nullable=True),
        sa.Column("dispute_resolution", sa.Text(), nullable=True),
        sa.Column("dispute_resolved_at", Stamp, nullable=True),
        sa.Column("dispute_resolved_by", sa.String(20), nullable=True),
        sa.Column("created_at", Stamp, nullable=False),
        sa.Column("updated_at", Stamp, nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'authorized', 'captured', 'released', "
            "'refunded', 'failed', 'disputed')",
            name="ck_payment_valid_status",
        ),
        sa.CheckConstraint(
            "escrow_status IS NULL OR escrow_status IN "
            "('held', 'released', 'refunded', 'disputed')",
            name="ck_payment_valid_escrow_status",
        ),
        sa.CheckConstraint(
            "payment_type IN ('deposit', 'milestone', 'final', 'full')",
            name="ck_payment_valid_type",
        ),
        sa.CheckConstraint("subtotal > 0", name="ck_payment_positive_subtotal"),
    )
    op.create_index(
        "uq_payment_active_per_quote_type",
        "payments",
        ["quote_id", "payment_type"],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'authorized', 'captured')"),
        sqlite_where=sa.text("status IN ('pending', 'authorized', 'captured')"),
    )
    op.create_index("idx_payment_job", "payments", ["job_id"])
    op.create_index("idx_payment_payer", "payments", ["payer_id"])
    op.create_index("idx_payment_payee", "payments", ["payee_id"])
    op.create_index("idx_payment_status", "payments", ["status"])
    op.create_index("idx_payment_escrow_status", "payments", ["escrow_status"])
    op.create_index("idx_payment_hold_until", "payments", ["hold_until"])

    op.create_table(
        "payment_approvals",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "payment_id",
            sa.Uuid(),
            sa.ForeignKey("payments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("user_type", sa.String(10), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("approved_at", Stamp, nullable=False),
        sa.UniqueConstraint("payment_id", "user_id", name="uq_approval_payment_user"),
        sa.CheckConstraint(
            "user_type IN ('seeker', 'provider')", name="ck_approval_valid_user_type"
        ),
    )

    op.create_table(
        "earnings_entries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("payment_id", sa.Uuid(), sa.ForeignKey("payments.id"), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False),
        sa.Column("amount", Money, nullable=False),
        sa.Column("created_at", Stamp, nullable=False),
        sa.UniqueConstraint("payment_id", "kind", name="uq_earnings_payment_kind"),
    )
    op.create_index("idx_earnings_user", "earnings_entries", ["user_id"])

    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("chat_id", sa.String(120), nullable=False),
        sa.Column("sender_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("receiver_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "job_id", sa.Uuid(), sa.ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("message_type", sa.String(20), nullable=False),
        sa.Column("system_type", sa.String(30), nullable=True),
        sa.Column("system_data", Json, nullable=True),
        sa.Column("is_delivered", sa.Boolean(), nullable=False),
        sa.Column("delivered_at", Stamp, nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False),
        sa.Column("created_at", Stamp, nullable=False),
    )
    op.create_index("idx_message_chat", "messages", ["chat_id", "created_at"])
    op.create_index("idx_message_job", "messages", ["job_id"])

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("entity_type", sa.String(10), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("event_type", sa.String(40), nullable=False),
        sa.Column("old_status", sa.String(20), nullable=True),
        sa.Column("new_status", sa.String(20), nullable=True),
        sa.Column("actor", sa.String(64), nullable=False),
        sa.Column("metadata", Json, nullable=True),
        sa.Column("created_at", Stamp, nullable=False),
    )
    op.create_index("idx_audit_entity", "audit_events", ["entity_type", "entity_id"])
    op.create_index("idx_audit_created_at", "audit_events", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("messages")
    op.drop_table("earnings_entries")
    op.drop_table("payment_approvals")
    op.drop_table("payments")
    op.drop_table("quotes")
    op.drop_table("jobs")
    op.drop_table("users")
