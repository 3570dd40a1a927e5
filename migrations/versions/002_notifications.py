"""Notifications table for worker-delivered in-app notifications.

Revision ID: 002_notifications
Revises: 001_initial_schema
Create Date: 2026-10-19
"""

from __future__ import annotations

from pathlib import Path

from alembic import op

revision = "002_notifications"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None

_SQL_FILE = Path(__file__).resolve().parent.parent / "sql" / "002_notifications.sql"


def upgrade() -> None:
    op.execute(_SQL_FILE.read_text())


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS notifications")
