"""Pydantic schemas for contributor listings and revision event payloads.

Event payloads arrive as JSON (Celery task arguments), so they are
validated here before being turned into the frozen dataclasses the core
services work with.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from wiki_contributors.core.revisions import RevisionFact
from wiki_contributors.core.visibility import VisibilityChange


class ContributorRead(BaseModel):
    """A single contributor of a page as returned by the API.

    Attributes:
        user_text: User name, or IP address of an anonymous editor.
        user_id: Wiki user id; 0 for anonymous editors.
        revision_count: Visible, attributed revisions on the page.
        characters_added: Net characters added by those revisions.
        first_edit: Timestamp of the earliest counted revision.
        last_edit: Timestamp of the latest counted revision.
    """

    model_config = ConfigDict(from_attributes=True)

    user_text: str
    user_id: int
    revision_count: int
    characters_added: int
    first_edit: Optional[datetime]
    last_edit: Optional[datetime]


class RevisionCreatedEvent(BaseModel):
    """Payload of a "revision saved" event."""

    revision_id: int
    page_id: int
    user_id: int = 0
    user_text: Optional[str] = None
    timestamp: datetime
    size: int = Field(default=0, ge=0)
    parent_size: Optional[int] = Field(default=None, ge=0)
    visibility_bits: int = Field(default=0, ge=0)

    def to_fact(self) -> RevisionFact:
        return RevisionFact.from_bits(
            revision_id=self.revision_id,
            page_id=self.page_id,
            user_id=self.user_id,
            user_text=self.user_text,
            timestamp=self.timestamp,
            size=self.size,
            parent_size=self.parent_size,
            deleted=self.visibility_bits,
        )


class VisibilityBitsChange(BaseModel):
    """Old and new visibility bits of one revision (wiki field names)."""

    model_config = ConfigDict(populate_by_name=True)

    old_bits: int = Field(default=0, alias="oldBits", ge=0)
    new_bits: int = Field(default=0, alias="newBits", ge=0)

    def to_change(self) -> VisibilityChange:
        return VisibilityChange(self.old_bits, self.new_bits)


class VisibilityChangedEvent(BaseModel):
    """Payload of a "revision visibility changed" event for one page."""

    page_id: int
    revision_ids: list[int]
    change_map: dict[int, VisibilityBitsChange]

    def changes(self) -> dict[int, VisibilityChange]:
        return {revision_id: change.to_change() for revision_id, change in self.change_map.items()}
