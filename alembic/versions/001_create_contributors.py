"""Create the contributors table.

One row per (page, user id, user name) with the visible, attributed
revision count, net characters added and first/last edit timestamps.
The table starts empty; fill it with ``scripts/populate_contributors.py``.

Revision ID: 001
Revises:
Create Date: 2026-10-16
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "contributors",
        sa.Column("cn_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("cn_page_id", sa.Integer(), nullable=False),
        sa.Column("cn_user_id", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cn_user_text", sa.String(255), nullable=False),
        sa.Column("cn_revision_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cn_characters_added", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cn_first_edit", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cn_last_edit", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "cn_page_id", "cn_user_id", "cn_user_text", name="uq_contributors_page_user"
        ),
    )
    op.create_index("ix_contributors_page_id", "contributors", ["cn_page_id"])
    op.create_index("ix_contributors_user_id", "contributors", ["cn_user_id"])


def downgrade() -> None:
    op.drop_index("ix_contributors_user_id", table_name="contributors")
    op.drop_index("ix_contributors_page_id", table_name="contributors")
    op.drop_table("contributors")
