"""create friendships table

Revision ID: 8c4f0a3e6b21
Revises: 5b1e2c7d9a10
Create Date: 2026-10-19 10:14:05.881342

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8c4f0a3e6b21'
down_revision: Union[str, Sequence[str], None] = '5b1e2c7d9a10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "friendships",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("friend_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("tier", sa.String(20), nullable=False, server_default="acquaintances"),
        sa.Column("custom_tier_label", sa.String(50), nullable=True),
        sa.Column("action_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("accepted_at", sa.DateTime, nullable=True),
        sa.Column("cooling_period", sa.DateTime, nullable=True),
        sa.Column("request_count", sa.Integer, nullable=False, server_default="1"),
        sa.Column("expires_at", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=True),
        sa.UniqueConstraint("user_id", "friend_id", name="unique_friendship"),
    )
    op.create_index("ix_friendships_user_status", "friendships", ["user_id", "status"])
    op.create_index("ix_friendships_friend_status", "friendships", ["friend_id", "status"])


def downgrade() -> None:
    op.drop_index("ix_friendships_friend_status", table_name="friendships")
    op.drop_index("ix_friendships_user_status", table_name="friendships")
    op.drop_table("friendships")
