"""Purge job tests."""

import os
import time
from pathlib import Path
from unittest.mock import patch

import pytest
from apscheduler.triggers.cron import CronTrigger

from picon.purge import PurgeScheduler, build_trigger, purge_directory

DAY = 86400


def _touch(path: Path, age_days: float, now: float) -> Path:
    path.write_bytes(b"x")
    mtime = now - age_days * DAY
    os.utime(path, (mtime, mtime))
    return path


def test_deletes_only_old_visible_regular_files(tmp_path):
    now = float(int(time.time()))
    old = _touch(tmp_path / "old.png", 3, now)
    old_upload = _touch(tmp_path / "0a1b2c", 1.5, now)
    fresh = _touch(tmp_path / "fresh.png", 0.5, now)
    hidden = _touch(tmp_path / ".gitkeep", 10, now)
    subdir = tmp_path / "nested"
    subdir.mkdir()
    os.utime(subdir, (now - 10 * DAY, now - 10 * DAY))

    deleted = purge_directory(tmp_path, 1, now=now)

    assert sorted(deleted) == sorted([old, old_upload])
    assert not old.exists() and not old_upload.exists()
    assert fresh.exists() and hidden.exists() and subdir.exists()


def test_cutoff_is_strict(tmp_path):
    now = float(int(time.time()))
    edge = _touch(tmp_path / "edge.png", 1, now)
    assert purge_directory(tmp_path, 1, now=now) == []
    assert edge.exists()


def test_one_failure_does_not_abort_sweep(tmp_path):
    now = float(int(time.time()))
    first = _touch(tmp_path / "a.png", 5, now)
    second = _touch(tmp_path / "b.png", 5, now)
    real_unlink = Path.unlink

    def flaky_unlink(self, *args, **kwargs):
        if self.name == "a.png":
            raise PermissionError("denied")
        return real_unlink(self, *args, **kwargs)

    with patch.object(Path, "unlink", flaky_unlink):
        deleted = purge_directory(tmp_path, 1, now=now)

    assert deleted == [second]
    assert first.exists()
    assert not second.exists()


def test_missing_directory_is_logged_not_raised(tmp_path):
    assert purge_directory(tmp_path / "gone", 1) == []


def test_build_trigger_five_fields():
    trigger = build_trigger("30 2 * * *")
    assert isinstance(trigger, CronTrigger)
    fields = {f.name: str(f) for f in trigger.fields}
    assert fields["minute"] == "30"
    assert fields["hour"] == "2"


def test_build_trigger_six_fields_with_seconds():
    trigger = build_trigger("15 0 0 * * *")
    fields = {f.name: str(f) for f in trigger.fields}
    assert fields["second"] == "15"
    assert fields["minute"] == "0"
    assert fields["hour"] == "0"


def test_build_trigger_rejects_garbage():
    with pytest.raises(ValueError):
        build_trigger("every day")


def test_scheduler_run_once_uses_configured_directory(tmp_path):
    now = float(int(time.time()))
    _touch(tmp_path / "stale.png", 4, now)
    scheduler = PurgeScheduler(directory=tmp_path, cron="0 0 * * *", days=2)
    assert [p.name for p in scheduler.run_once()] == ["stale.png"]
    assert not scheduler.running


def test_scheduler_start_and_stop_inside_event_loop(tmp_path):
    import asyncio

    scheduler = PurgeScheduler(directory=tmp_path, cron="0 0 0 * * *", days=1)

    async def main():
        scheduler.start()
        job = scheduler.scheduler.get_job("purge_tmp")
        started = scheduler.running
        scheduler.stop()
        return started, job

    started, job = asyncio.run(main())
    assert started
    assert job.name == "Purge temporary files"
    assert not scheduler.running
