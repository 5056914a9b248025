"""
Timer-driven price refresh using APScheduler.
The interval job exists only while auto-refresh is enabled AND the
portfolio has transactions; sync() removes it as soon as either flips.
"""

import logging
from typing import Any, Callable, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import Settings, get_settings
from repositories import UserPreferencesRepository

logger = logging.getLogger(__name__)


def load_refresh_preferences(settings: Optional[Settings] = None) -> Tuple[bool, int]:
    """
    Read the persisted auto-refresh flag and interval.
    An unknown stored interval falls back to the configured default.
    """
    settings = settings or get_settings()
    enabled = UserPreferencesRepository.get_auto_refresh()
    interval = UserPreferencesRepository.get_refresh_interval()
    if interval not in settings.allowed_refresh_intervals:
        interval = settings.default_refresh_interval
    return enabled, interval


def save_refresh_preferences(
    enabled: Optional[bool] = None,
    interval: Optional[int] = None,
    settings: Optional[Settings] = None
) -> bool:
    """
    Persist auto-refresh settings. Only the given values are changed.

    Returns:
        False if the interval is not one of the allowed choices (nothing saved)
    """
    settings = settings or get_settings()
    if interval is not None and interval not in settings.allowed_refresh_intervals:
        logger.warning(f"Refresh interval {interval}s not allowed; choose from {settings.allowed_refresh_intervals}")
        return False
    if enabled is not None:
        UserPreferencesRepository.save_auto_refresh(enabled)
    if interval is not None:
        UserPreferencesRepository.save_refresh_interval(interval)
    return True


class AutoRefresh:
    """Cancellable recurring refresh job."""

    JOB_ID = "price_refresh"

    def __init__(self, refresh: Callable[[], Any], scheduler: Optional[BackgroundScheduler] = None):
        self._refresh = refresh
        self.scheduler = scheduler or BackgroundScheduler()
        self.interval: Optional[int] = None

    @property
    def is_scheduled(self) -> bool:
        return self.scheduler.get_job(self.JOB_ID) is not None

    def _run(self):
        # Runs on the scheduler thread; a failed refresh must not kill the job
        try:
            self._refresh()
        except Exception as e:
            logger.error(f"Scheduled price refresh failed: {e}")

    def sync(self, enabled: bool, interval_seconds: int, has_transactions: bool) -> bool:
        """
        Bring the job in line with the current state.

        Args:
            enabled: Auto-refresh preference
            interval_seconds: Seconds between refreshes
            has_transactions: Whether the active portfolio is non-empty

        Returns:
            True if the job is scheduled afterwards
        """
        if not (enabled and has_transactions):
            self.cancel()
            return False

        if self.is_scheduled and self.interval == interval_seconds:
            return True

        self.scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(seconds=interval_seconds),
            id=self.JOB_ID,
            name='Price Refresh',
            replace_existing=True
        )
        self.interval = interval_seconds
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"Auto refresh scheduled every {interval_seconds}s")
        return True

    def cancel(self):
        """Remove the job if present."""
        if self.is_scheduled:
            self.scheduler.remove_job(self.JOB_ID)
            logger.info("Auto refresh cancelled")
        self.interval = None

    def shutdown(self):
        self.cancel()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
