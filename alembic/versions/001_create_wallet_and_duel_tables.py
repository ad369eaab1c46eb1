"""Create wallet and duel tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

Adds Wallet (balance, daily cooldown, progression), ChatMember (who has
been seen in which chat, for opponent lookup) and DuelRecord (append-only
history of concluded duels).
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ============================================
    # Create wallets table
    # ============================================
    op.create_table(
        "wallets",
        sa.Column("user_id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column("username", sa.String(64), nullable=True, index=True),
        sa.Column("display_name", sa.String(128), nullable=True),
        sa.Column("balance", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("last_daily", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("balance >= 0", name="ck_wallet_balance_non_negative"),
    )

    # ============================================
    # Create chat_members table
    # ============================================
    op.create_table(
        "chat_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("chat_id", sa.BigInteger(), nullable=False, index=True),
        sa.Column(
            "user_id",
            sa.BigInteger(),
            sa.ForeignKey("wallets.user_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("chat_id", "user_id", name="uq_chat_member"),
    )

    # ============================================
    # Create duel_records table
    # ============================================
    op.create_table(
        "duel_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("challenger_name", sa.String(128), nullable=False),
        sa.Column("opponent_name", sa.String(128), nullable=False),
        sa.Column("winner_name", sa.String(128), nullable=False, index=True),
        sa.Column("wager", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("duel_records")
    op.drop_table("chat_members")
    op.drop_table("wallets")
