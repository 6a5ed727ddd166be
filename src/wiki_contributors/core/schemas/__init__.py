"""Pydantic schemas for request/response and event payload validation.

Sub-modules:
    contributors — ContributorRead, RevisionCreatedEvent, VisibilityChangedEvent
"""

from __future__ import annotations
