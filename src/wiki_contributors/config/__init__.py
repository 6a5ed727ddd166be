"""Configuration package for Wiki Contributors.

Re-exports the configuration symbols so that callers can write::

    from wiki_contributors.config import get_settings, ContributorsConfig
"""

from __future__ import annotations

from wiki_contributors.config.contributors import SORTABLE_FIELDS, ContributorsConfig, SortField
from wiki_contributors.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "ContributorsConfig",
    "SortField",
    "SORTABLE_FIELDS",
]
