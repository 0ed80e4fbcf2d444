"""Dispatch state schema."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20241021_000001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("prefix", sa.String(length=16), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("next_sequence", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("employee_ids", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
    )

    op.create_table(
        "stations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("number", sa.Integer(), nullable=False, unique=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("category_ids", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("employee_id", sa.String(length=64), nullable=True),
    )

    op.create_table(
        "staff",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False, server_default=sa.text("''")),
        sa.Column("availability", sa.String(length=20), nullable=True),
        sa.Column("current_ticket", sa.String(length=64), nullable=True),
        sa.Column("completed_tickets", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("access_level", sa.Integer(), nullable=True),
    )

    op.create_table(
        "clients",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("contact", sa.String(length=255), nullable=True),
    )

    op.create_table(
        "tickets",
        sa.Column("code", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("generated_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("attended_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("completed_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("served_by", sa.String(length=64), nullable=True),
        sa.Column("station_number", sa.Integer(), nullable=True),
    )
    op.create_index("ix_tickets_category_id", "tickets", ["category_id"])
    op.create_index("ix_tickets_client_id", "tickets", ["client_id"])


def downgrade() -> None:
    op.drop_index("ix_tickets_client_id", table_name="tickets")
    op.drop_index("ix_tickets_category_id", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("clients")
    op.drop_table("staff")
    op.drop_table("stations")
    op.drop_table("categories")
