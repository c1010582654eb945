"""initial whitelist schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 12:00:00.000000
"""
from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "whitelist_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("player_id", sa.Uuid(), nullable=False),
        sa.Column("player_name", sa.String(length=32), nullable=False),
        sa.Column("server_name", sa.String(length=64), nullable=False),
        sa.Column("registration_type", sa.String(length=16), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=True),
        sa.Column("added_by", sa.String(length=64), nullable=True),
        sa.Column("inviter_chat_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.UniqueConstraint("player_id", "server_name", name="uq_whitelist_entries_player_server"),
    )
    op.create_index("ix_whitelist_entries_player_id", "whitelist_entries", ["player_id"])
    op.create_index("ix_whitelist_entries_server_name", "whitelist_entries", ["server_name"])

    op.create_table(
        "registration_codes",
        sa.Column("code", sa.String(length=16), primary_key=True),
        sa.Column("chat_id", sa.String(length=64), nullable=False),
        sa.Column("chat_username", sa.String(length=64), nullable=True),
        sa.Column("player_name", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False),
        sa.Column("used_by_id", sa.Uuid(), nullable=True),
        sa.Column("used_by_name", sa.String(length=32), nullable=True),
        sa.Column("used_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_registration_codes_chat_id", "registration_codes", ["chat_id"])

    op.create_table(
        "player_links",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("player_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("player_name", sa.String(length=32), nullable=False),
        sa.Column("chat_id", sa.String(length=64), nullable=False),
        sa.Column("chat_username", sa.String(length=64), nullable=True),
        sa.Column("linked_at", sa.DateTime(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_player_links_chat_id", "player_links", ["chat_id"], unique=True)

    op.create_table(
        "whitelist_servers",
        sa.Column("name", sa.String(length=64), primary_key=True),
        sa.Column("display_name", sa.String(length=100), nullable=False),
        sa.Column("whitelist_enabled", sa.Boolean(), nullable=False),
        sa.Column("last_heartbeat", sa.DateTime(), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("whitelist_servers")
    op.drop_index("ix_player_links_chat_id", table_name="player_links")
    op.drop_table("player_links")
    op.drop_index("ix_registration_codes_chat_id", table_name="registration_codes")
    op.drop_table("registration_codes")
    op.drop_index("ix_whitelist_entries_server_name", table_name="whitelist_entries")
    op.drop_index("ix_whitelist_entries_player_id", table_name="whitelist_entries")
    op.drop_table("whitelist_entries")
