"""Initial schema: users, card catalog, owned cards and binders."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("display_name", sa.String(length=120), nullable=True),
        sa.Column("locale", sa.String(length=16), nullable=True),
        sa.Column("api_token_hash", sa.String(length=64), nullable=True),
        sa.Column("api_token_hint", sa.String(length=12), nullable=True),
        sa.Column("api_token_created_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("api_token_hash", name="uq_users_api_token_hash"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(length=120), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])

    op.create_table(
        "sets",
        sa.Column("id", sa.String(length=16), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("series", sa.String(length=255), nullable=True),
        sa.Column("abbreviation", sa.String(length=16), nullable=True),
        sa.Column("logo", sa.Text(), nullable=True),
        sa.Column("symbol", sa.Text(), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column("total", sa.Integer(), nullable=True),
        sa.Column("total_with_secret_rares", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_sets_name", "sets", ["name"])

    op.create_table(
        "cards",
        sa.Column("id", sa.String(length=16), primary_key=True),
        sa.Column("set_id", sa.String(length=16), sa.ForeignKey("sets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("number", sa.String(length=16), nullable=False),
        sa.Column("rarity", sa.String(length=64), nullable=True),
        sa.Column("image_small", sa.Text(), nullable=True),
        sa.Column("image_large", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_cards_set_id", "cards", ["set_id"])
    op.create_index("ix_cards_name", "cards", ["name"])
    op.create_index("ix_cards_set_number", "cards", ["set_id", "number"])

    op.create_table(
        "localizations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("table_name", sa.String(length=64), nullable=False),
        sa.Column("column_name", sa.String(length=64), nullable=False),
        sa.Column("record_id", sa.String(length=64), nullable=False),
        sa.Column("language", sa.String(length=8), nullable=False),
        sa.Column("value", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("table_name", "column_name", "record_id", "language", name="uq_localizations_key"),
    )
    op.create_index("ix_localizations_table_record", "localizations", ["table_name", "record_id"])

    op.create_table(
        "user_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("card_id", sa.String(length=16), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("language", sa.String(length=8), nullable=True),
        sa.Column("variant", sa.String(length=32), nullable=True),
        sa.Column("condition", sa.String(length=32), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_user_cards_user_id", "user_cards", ["user_id"])
    op.create_index("ix_user_cards_card_id", "user_cards", ["card_id"])

    op.create_table(
        "user_sets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("preferred_language", sa.String(length=8), nullable=True),
        sa.Column("preferred_variant", sa.String(length=32), nullable=True),
        sa.Column("preferred_condition", sa.String(length=32), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_user_sets_user_id", "user_sets", ["user_id"])
    op.create_index("ix_user_sets_created_at", "user_sets", ["created_at"])

    op.create_table(
        "user_set_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_set_id", sa.Integer(), sa.ForeignKey("user_sets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("card_id", sa.String(length=16), sa.ForeignKey("cards.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_card_id", sa.Integer(), sa.ForeignKey("user_cards.id", ondelete="SET NULL"), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("preferred_language", sa.String(length=8), nullable=True),
        sa.Column("preferred_variant", sa.String(length=32), nullable=True),
        sa.Column("preferred_condition", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_set_id", "order", name="uq_user_set_cards_set_order"),
        sa.UniqueConstraint("user_card_id", name="uq_user_set_cards_user_card_id"),
    )
    op.create_index("ix_user_set_cards_user_set_id", "user_set_cards", ["user_set_id"])
    op.create_index("ix_user_set_cards_card_id", "user_set_cards", ["card_id"])


def downgrade() -> None:
    op.drop_table("user_set_cards")
    op.drop_table("user_sets")
    op.drop_table("user_cards")
    op.drop_table("localizations")
    op.drop_table("cards")
    op.drop_table("sets")
    op.drop_table("audit_logs")
    op.drop_table("users")
