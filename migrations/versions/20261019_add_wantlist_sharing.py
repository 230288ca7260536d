"""Add wantlist_share_links and trade_connections."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_add_wantlist_sharing"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "wantlist_share_links",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("token", sa.String(length=64), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("label", sa.String(length=128), nullable=True),
        sa.Column("set_ids", sa.JSON(), nullable=True),
        sa.Column("is_snapshot", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("snapshot_data", sa.JSON(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("last_accessed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_wantlist_share_links_token", "wantlist_share_links", ["token"], unique=True)
    op.create_index("ix_wantlist_share_links_user_id", "wantlist_share_links", ["user_id"])
    op.create_index("ix_wantlist_share_links_created_at", "wantlist_share_links", ["created_at"])

    op.create_table(
        "trade_connections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invite_token", sa.String(length=64), nullable=False),
        sa.Column("requester_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("target_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column(
            "requester_share_link_id",
            sa.Integer(),
            sa.ForeignKey("wantlist_share_links.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "target_share_link_id",
            sa.Integer(),
            sa.ForeignKey("wantlist_share_links.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_trade_connections_invite_token", "trade_connections", ["invite_token"], unique=True)
    op.create_index("ix_trade_connections_requester_id", "trade_connections", ["requester_id"])
    op.create_index("ix_trade_connections_target_id", "trade_connections", ["target_id"])


def downgrade() -> None:
    op.drop_table("trade_connections")
    op.drop_table("wantlist_share_links")
