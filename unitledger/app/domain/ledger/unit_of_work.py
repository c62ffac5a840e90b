"""
Unit-of-work decorator for ledger operations.

A decorated operation does all of its reads, validation and ORM changes on the
session it is given and leaves committing to this wrapper: a successful result
commits once, and an unexpected exception rolls back and propagates.

Operations reject before they stage anything. A clean rejection therefore only
ends the read transaction; rows the caller already holds stay loaded. Rolling
back would expire them, and an expired row cannot be lazily refreshed on an
async session. If a rejection does arrive with work staged, that work is
rolled back.
"""

import logging
from functools import wraps

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

logger = logging.getLogger("unitledger.ledger")

FLUSH_COUNT = "unitledger_flush_count"


@event.listens_for(Session, "after_flush")
def count_flushes(session, flush_context):
    session.info[FLUSH_COUNT] = session.info.get(FLUSH_COUNT, 0) + 1


def _flush_count(db: AsyncSession) -> int:
    return db.sync_session.info.get(FLUSH_COUNT, 0)


def has_staged_work(db: AsyncSession, flushes_before: int) -> bool:
    """True if the session holds pending changes or has flushed since flushes_before."""
    return bool(db.new or db.dirty or db.deleted) or _flush_count(db) != flushes_before


def atomic(func):
    """Commit the session if the wrapped operation succeeds, otherwise leave nothing behind."""
    @wraps(func)
    async def wrapper(db: AsyncSession, *args, **kwargs):
        flushes_before = _flush_count(db)
        try:
            result = await func(db, *args, **kwargs)
        except Exception:
            logger.exception("%s failed, rolling back", func.__name__)
            await db.rollback()
            raise

        if result.success:
            await db.commit()
            return result

        logger.warning("%s rejected: %s", func.__name__, result.error_message)
        if has_staged_work(db, flushes_before):
            await db.rollback()
        else:
            # Sessions are built with expire_on_commit=False, so this leaves loaded rows intact
            await db.commit()
        return result
    return wrapper
