# core/scheduler.py
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from datetime import timedelta

from core.logging_config import logger
from core.notifications import send_webhook_message
from core.utils import utcnow
from services.entitlements import cleanup_expired_cache
from services.members import expire_stale_invites
from services.share_links import record_expired_links


HOUSEKEEPING_INTERVAL = timedelta(hours=1)

_last_run = None


def run_housekeeping():
    """
    Hourly maintenance:
    - drop expired entitlement cache entries
    - mark stale invites expired
    - log an ``expired`` event for share links that lapsed since the last run
    """
    global _last_run
    now = utcnow()
    since = _last_run or (now - HOUSEKEEPING_INTERVAL)

    try:
        cache_removed = cleanup_expired_cache()
        invites_expired = expire_stale_invites()
        links_expired = record_expired_links(since, now)
        _last_run = now

        logger.info(
            f"[SCHEDULER] Housekeeping done: cache={cache_removed} "
            f"invites_expired={invites_expired} links_expired={links_expired}"
        )
        return {
            "cache_entries_removed": cache_removed,
            "invites_expired": invites_expired,
            "share_links_expired": links_expired,
        }

    except Exception as e:
        logger.error(f"[SCHEDULER] Housekeeping failed: {e}", exc_info=True)
        send_webhook_message(f"Parcel Intelligence housekeeping failed: {e}")
        return None


def start_scheduler() -> BackgroundScheduler:
    """
    Initialize the APScheduler background process.
    Runs housekeeping at the top of every hour.
    """
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_housekeeping,
        trigger=CronTrigger(minute=0),
        id="hourly_housekeeping_job",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started. Housekeeping runs hourly.")
    return scheduler
