"""create users table

Revision ID: 5b1e2c7d9a10
Revises: 
Create Date: 2026-10-19 10:12:41.204118

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy import func

# revision identifiers, used by Alembic.
revision: str = '5b1e2c7d9a10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("username", sa.String(50), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True, unique=True, index=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("avatar_url", sa.String(255), server_default="/static/images/avatar.webp"),
        sa.Column("last_active", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=func.now()),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
    )


def downgrade() -> None:
    op.drop_table("users")
