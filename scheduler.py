import logging
import threading
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from config import Config

logger = logging.getLogger(__name__)

JOB_ID = 'release_check'


class ReleaseScheduler:
    def __init__(self, crawler, config=None, scheduler=None):
        self.crawler = crawler
        self.config = config or Config()
        self.scheduler = scheduler or BackgroundScheduler()
        self.is_running = False
        self.test_mode = self.config.test_mode
        self.last_check = None
        self.latest_releases = []
        self.listeners = []
        self._check_lock = threading.Lock()

    def add_listener(self, callback):
        """Registers a callable receiving each manga with new chapters"""
        self.listeners.append(callback)

    def check_releases(self):
        """Fetches releases since the previous check and notifies listeners"""
        # Manual and scheduled runs must not share a last_check
        with self._check_lock:
            return self._check_releases()

    def _check_releases(self):
        started_at = datetime.now(timezone.utc)
        since = self.last_check
        logger.info('Checking releases since %s', since.isoformat() if since else 'the beginning')

        try:
            releases = self.crawler.get_releases(since)
        except Exception:
            logger.exception('Release check failed')
            return []

        self.last_check = started_at

        if since is None:
            # First run only sets the baseline
            self.latest_releases = releases
            logger.info('Baseline recorded: %d mangas in feed', len(releases))
            return []

        updates = [manga for manga in releases if manga['updated_chapters_count'] > 0]
        self.latest_releases = updates

        if not updates:
            logger.info('No new releases')
            return updates

        logger.info('%d mangas with new chapters', len(updates))
        for manga in updates:
            logger.info('New release: %s (%d chapters)', manga['name'], manga['updated_chapters_count'])
            self._notify(manga)
        return updates

    def _notify(self, manga):
        for listener in self.listeners:
            try:
                listener(manga)
            except Exception:
                logger.exception('Release listener failed for %s', manga.get('source_id'))

    def start(self):
        """Starts polling, every 2 minutes in test mode"""
        if self.is_running:
            logger.warning('Scheduler already running')
            return

        minutes = 2 if self.test_mode else self.config.check_interval_minutes
        self.scheduler.add_job(
            self.check_releases,
            'interval',
            minutes=minutes,
            id=JOB_ID,
            name='MangaRock release check',
            replace_existing=True
        )
        self.scheduler.start()
        self.is_running = True
        logger.info('Release scheduler started, checking every %d minutes', minutes)

    def stop(self):
        if not self.is_running:
            logger.warning('Scheduler already stopped')
            return

        self.scheduler.shutdown()
        self.is_running = False
        logger.info('Release scheduler stopped')

    def run_now(self):
        logger.info('Manual release check')
        return self.check_releases()

    def get_next_run(self):
        if not self.is_running:
            return None

        job = self.scheduler.get_job(JOB_ID)
        if job:
            return job.next_run_time
        return None
