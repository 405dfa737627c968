"""Scheduled purge of stale files in the temporary directory."""
import logging
import time
from pathlib import Path
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from picon.config import PURGE_CRON, PURGE_DAYS, TMP_DIR

logger = logging.getLogger("picon.purge")


def purge_directory(directory: Path, days: float, now: Optional[float] = None) -> list[Path]:
    """
    Delete regular, non-hidden files in directory modified strictly before
    now - days. Each deletion is independent; a failure is logged and the
    sweep continues. Returns the deleted paths.
    """
    now = time.time() if now is None else now
    cutoff = now - days * 86400
    deleted: list[Path] = []
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        logger.error("Cannot list %s: %s", directory, e)
        return deleted
    for path in entries:
        if path.name.startswith("."):
            continue
        try:
            st = path.lstat()
        except OSError as e:
            logger.warning("Could not stat %s: %s", path, e)
            continue
        if not path.is_file() or path.is_symlink() or st.st_mtime >= cutoff:
            continue
        try:
            path.unlink()
        except OSError as e:
            logger.error("Could not delete %s: %s", path, e)
            continue
        deleted.append(path)
        logger.info("Deleted %s", path)
    return deleted


def build_trigger(expression: str) -> CronTrigger:
    """Crontab with 5 fields, or 6 with a leading seconds field."""
    fields = expression.split()
    if len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=day_of_week,
        )
    return CronTrigger.from_crontab(expression)


class PurgeScheduler:
    """Runs purge_directory on a cron schedule inside the app's event loop."""

    def __init__(
        self,
        directory: Optional[Path] = None,
        cron: str = PURGE_CRON,
        days: float = PURGE_DAYS,
    ):
        self.directory = Path(directory or TMP_DIR)
        self.cron = cron
        self.days = days
        self.trigger = build_trigger(cron)
        self.scheduler: Optional[AsyncIOScheduler] = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def run_once(self) -> list[Path]:
        deleted = purge_directory(self.directory, self.days)
        logger.info("Purge of %s removed %s file(s)", self.directory, len(deleted))
        return deleted

    def start(self) -> None:
        if self.running:
            logger.warning("Purge scheduler already running")
            return
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.run_once,
            trigger=self.trigger,
            id="purge_tmp",
            name="Purge temporary files",
            replace_existing=True,
        )
        self.scheduler.start()
        job = self.scheduler.get_job("purge_tmp")
        logger.info(
            "Purge scheduled (cron=%r, days=%s, dir=%s, next=%s)",
            self.cron, self.days, self.directory, job.next_run_time,
        )

    def stop(self) -> None:
        if not self.running:
            return
        self.scheduler.shutdown(wait=False)
        self.scheduler = None
        logger.info("Purge scheduler stopped")
