"""ORM model for the materialised per-page contributor aggregate.

One row exists per (page, user id, user name) that has at least one
visible, attributed revision on the page.  Rows whose revision count would
drop to zero are deleted rather than kept as zero rows.

Column names carry the ``cn_`` prefix of the wiki's extension tables so the
table can live in the same schema as the wiki's own ``revision`` table.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from wiki_contributors.core.models.base import Base

CONTRIBUTOR_KEY_COLUMNS: tuple[str, ...] = ("cn_page_id", "cn_user_id", "cn_user_text")
"""Column names of the unique key used as the upsert conflict target."""


class Contributor(Base):
    """Aggregate of one user's visible, attributed revisions on one page.

    Attributes:
        id: Surrogate primary key.
        page_id: Wiki page id.
        user_id: Wiki user id; ``0`` for anonymous (IP) editors.
        user_text: User name, or the IP address for anonymous editors.
        revision_count: Number of visible, attributed revisions.  Always > 0.
        characters_added: Sum of ``max(0, size - parent_size)`` over those
            revisions whose text is not hidden.
        first_edit: Timestamp of the earliest counted revision.
        last_edit: Timestamp of the latest counted revision.
    """

    __tablename__ = "contributors"

    id: Mapped[int] = mapped_column("cn_id", sa.Integer, primary_key=True, autoincrement=True)
    page_id: Mapped[int] = mapped_column("cn_page_id", sa.Integer, nullable=False)
    user_id: Mapped[int] = mapped_column("cn_user_id", sa.Integer, nullable=False, default=0)
    user_text: Mapped[str] = mapped_column("cn_user_text", sa.String(255), nullable=False)
    revision_count: Mapped[int] = mapped_column(
        "cn_revision_count", sa.Integer, nullable=False, default=0
    )
    characters_added: Mapped[int] = mapped_column(
        "cn_characters_added", sa.Integer, nullable=False, default=0
    )
    first_edit: Mapped[Optional[datetime]] = mapped_column(
        "cn_first_edit", sa.DateTime(timezone=True), nullable=True
    )
    last_edit: Mapped[Optional[datetime]] = mapped_column(
        "cn_last_edit", sa.DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        sa.UniqueConstraint(*CONTRIBUTOR_KEY_COLUMNS, name="uq_contributors_page_user"),
        sa.Index("ix_contributors_page_id", "cn_page_id"),
        sa.Index("ix_contributors_user_id", "cn_user_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Contributor page={self.page_id} user={self.user_text!r} "
            f"revisions={self.revision_count} chars={self.characters_added}>"
        )
