"""
External collaborators consumed by the ledger.

Members, meetings and term configuration are owned by other parts of the
unit-administration system. The ledger only needs a narrow read view of each,
so they are expressed as Protocols with settings-backed or in-memory defaults
that the API wires in through dependencies.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, NamedTuple, Optional, Protocol

from unitledger.app.core.config import Settings, settings
from unitledger.app.services.cache import TTLCache

logger = logging.getLogger("unitledger.collaborators")


class TermWindow(NamedTuple):
    start: date
    end: date


class MeetingInfo(NamedTuple):
    meeting_id: int
    title: str
    date: Optional[date]


# ===== Term calendar =====

class TermCalendar(Protocol):
    async def current_term(self) -> Optional[TermWindow]:
        ...


class SettingsTermCalendar:
    """Reads CURRENT_TERM_START / CURRENT_TERM_END from settings."""

    def __init__(self, config: Settings = settings):
        self.config = config

    async def current_term(self) -> Optional[TermWindow]:
        start, end = self.config.current_term_start, self.config.current_term_end
        if not start or not end:
            return None
        if end < start:
            logger.warning("Ignoring term window with end %s before start %s", end, start)
            return None
        return TermWindow(start, end)


class CachedTermCalendar:
    """Wraps another calendar and remembers its answer for a short TTL."""

    CACHE_KEY = "current_term"

    def __init__(self, inner: TermCalendar, ttl_seconds: int = 300):
        self.inner = inner
        self.cache = TTLCache(ttl_seconds)

    async def current_term(self) -> Optional[TermWindow]:
        if self.cache.contains(self.CACHE_KEY):
            return self.cache.get(self.CACHE_KEY)
        term = await self.inner.current_term()
        self.cache.set(self.CACHE_KEY, term)
        return term

    def invalidate(self):
        """Call after the term configuration changes."""
        self.cache.invalidate(self.CACHE_KEY)


# ===== Member directory =====

class MemberDirectory(Protocol):
    async def display_name(self, membership_number: str) -> Optional[str]:
        ...


class InMemoryMemberDirectory:

    def __init__(self, names: Optional[Dict[str, str]] = None):
        self.names = dict(names or {})

    async def display_name(self, membership_number: str) -> Optional[str]:
        return self.names.get(membership_number)


async def describe_payment(
    members: MemberDirectory,
    membership_number: Optional[str],
    reference: Optional[str],
    payment_id: int,
) -> str:
    """Ledger narrative for a received payment: "Payment from <name> - <reference>"."""
    if membership_number:
        name = await members.display_name(membership_number) or membership_number
        description = f"Payment from {name}"
    else:
        description = f"Payment #{payment_id}"

    if reference:
        description = f"{description} - {reference}"
    return description


# ===== Meeting directory =====

class MeetingDirectory(Protocol):
    async def get_meeting(self, meeting_id: int) -> Optional[MeetingInfo]:
        ...

    async def paid_income(self, meeting_id: int) -> Decimal:
        ...


class InMemoryMeetingDirectory:

    def __init__(self):
        self.meetings: Dict[int, MeetingInfo] = {}
        self.income: Dict[int, Decimal] = {}

    def add_meeting(self, meeting_id: int, title: str, meeting_date: Optional[date] = None,
                    paid_income: Decimal = Decimal("0.00")):
        self.meetings[meeting_id] = MeetingInfo(meeting_id, title, meeting_date)
        self.income[meeting_id] = paid_income

    async def get_meeting(self, meeting_id: int) -> Optional[MeetingInfo]:
        return self.meetings.get(meeting_id)

    async def paid_income(self, meeting_id: int) -> Decimal:
        return self.income.get(meeting_id, Decimal("0.00"))
