"""SQLAlchemy ORM models for Wiki Contributors.

All models are imported here so that Alembic autogenerate can discover them
via ``Base.metadata`` and application code can write
``from wiki_contributors.core.models import Contributor``.
"""

from __future__ import annotations

from wiki_contributors.core.models.base import Base
from wiki_contributors.core.models.contributor import CONTRIBUTOR_KEY_COLUMNS, Contributor

__all__ = [
    "Base",
    "Contributor",
    "CONTRIBUTOR_KEY_COLUMNS",
]
