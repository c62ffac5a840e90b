"""
Request dependencies for FastAPI.

Wires the ledger's external collaborators (term calendar, member and meeting
directories) and the acting user into endpoints. Tests and embedding
applications swap them with `app.dependency_overrides`.
"""

from typing import Optional
from fastapi import Header

from unitledger.app.core.config import settings
from unitledger.app.services.collaborators import (
    CachedTermCalendar,
    InMemoryMeetingDirectory,
    InMemoryMemberDirectory,
    MeetingDirectory,
    MemberDirectory,
    SettingsTermCalendar,
    TermCalendar,
)

term_calendar = CachedTermCalendar(SettingsTermCalendar(settings), settings.term_cache_ttl_seconds)
member_directory = InMemoryMemberDirectory()
meeting_directory = InMemoryMeetingDirectory()


def get_term_calendar() -> TermCalendar:
    return term_calendar


def get_member_directory() -> MemberDirectory:
    return member_directory


def get_meeting_directory() -> MeetingDirectory:
    return meeting_directory


async def get_actor(x_actor: Optional[str] = Header(default=None)) -> Optional[str]:
    """
    Name of the person making the change, for the audit trail.

    Identity is owned upstream; the calling application forwards it in X-Actor.
    """
    return x_actor
