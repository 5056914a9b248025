"""Tests for services.refresh."""

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from repositories import StorageRepository
from repositories.user_preferences_repository import REFRESH_INTERVAL_KEY
from services.refresh import AutoRefresh, load_refresh_preferences, save_refresh_preferences


class TestPreferences:
    def test_defaults(self, settings) -> None:
        assert load_refresh_preferences(settings) == (False, settings.default_refresh_interval)

    def test_save_and_load(self, settings) -> None:
        assert save_refresh_preferences(enabled=True, interval=60, settings=settings) is True
        assert load_refresh_preferences(settings) == (True, 60)

    def test_partial_update(self, settings) -> None:
        save_refresh_preferences(enabled=True, interval=300, settings=settings)
        save_refresh_preferences(enabled=False, settings=settings)
        assert load_refresh_preferences(settings) == (False, 300)

    def test_disallowed_interval_not_saved(self, settings) -> None:
        assert save_refresh_preferences(enabled=True, interval=45, settings=settings) is False
        assert load_refresh_preferences(settings) == (False, settings.default_refresh_interval)

    def test_legacy_string_interval(self, settings) -> None:
        StorageRepository.set(REFRESH_INTERVAL_KEY, "15")
        assert load_refresh_preferences(settings)[1] == 15


@pytest.fixture
def auto_refresh():
    runs = []
    job = AutoRefresh(lambda: runs.append(1), scheduler=BackgroundScheduler())
    job.runs = runs
    yield job
    job.shutdown()


class TestAutoRefresh:
    def test_scheduled_only_when_enabled_with_transactions(self, auto_refresh) -> None:
        assert auto_refresh.sync(True, 30, has_transactions=False) is False
        assert auto_refresh.sync(False, 30, has_transactions=True) is False
        assert not auto_refresh.is_scheduled

        assert auto_refresh.sync(True, 30, has_transactions=True) is True
        assert auto_refresh.is_scheduled
        assert auto_refresh.interval == 30

    def test_interval_change_replaces_job(self, auto_refresh) -> None:
        auto_refresh.sync(True, 30, True)
        auto_refresh.sync(True, 60, True)
        jobs = auto_refresh.scheduler.get_jobs()
        assert len(jobs) == 1
        assert jobs[0].trigger.interval.total_seconds() == 60

    def test_stops_when_log_empties(self, auto_refresh) -> None:
        auto_refresh.sync(True, 15, True)
        auto_refresh.sync(True, 15, False)
        assert not auto_refresh.is_scheduled
        assert auto_refresh.interval is None

    def test_failed_refresh_is_contained(self) -> None:
        def broken():
            raise RuntimeError("boom")

        job = AutoRefresh(broken, scheduler=BackgroundScheduler())
        job._run()
        job.shutdown()
