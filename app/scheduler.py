"""Background scheduler — follow-up reminder digest.

Runs a tick loop every reminder_interval_minutes. Each tick logs which active
parties are overdue for a follow-up and which are due today, using the same
queries as the /api/follow-ups endpoints.
"""

import asyncio
import logging
from datetime import datetime, timezone

log = logging.getLogger("quotedesk.scheduler")


def build_reminder_digest(db, now: datetime | None = None) -> dict:
    """Overdue and due-today party codes as of now."""
    from .services.follow_up_service import overdue_parties, upcoming_parties

    now = now or datetime.now(timezone.utc)
    overdue = overdue_parties(db, now)
    # Parties already overdue earlier today show up in both queries
    overdue_ids = {p.id for p in overdue}
    due_today = [p for p in upcoming_parties(db, now.date()) if p.id not in overdue_ids]
    return {
        "as_of": now.isoformat(),
        "overdue": [p.party_id for p in overdue],
        "due_today": [p.party_id for p in due_today],
    }


async def start_scheduler():
    """Launch the reminder loop. Call once on app startup."""
    from .config import settings

    interval = max(1, settings.reminder_interval_minutes) * 60
    log.info(
        "Reminder scheduler started — digest every %d min", settings.reminder_interval_minutes
    )

    # Let the app finish booting before the first tick
    await asyncio.sleep(10)

    while True:
        try:
            await asyncio.to_thread(_scheduler_tick)
        except Exception as e:
            log.error("Scheduler tick error: %s", e)
        await asyncio.sleep(interval)


def _scheduler_tick() -> dict:
    """Build and log one reminder digest."""
    from . import database

    db = database.SessionLocal()
    try:
        digest = build_reminder_digest(db)
    finally:
        db.close()

    if digest["overdue"]:
        log.warning(
            "%d party follow-up(s) overdue: %s",
            len(digest["overdue"]),
            ", ".join(digest["overdue"]),
        )
    if digest["due_today"]:
        log.info(
            "%d party follow-up(s) due today: %s",
            len(digest["due_today"]),
            ", ".join(digest["due_today"]),
        )
    if not digest["overdue"] and not digest["due_today"]:
        log.debug("Reminder tick: nothing due")
    return digest
