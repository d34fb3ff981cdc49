"""
Background refresh for the Daily Picks Engine.

Two APScheduler interval jobs, run one at a time by a single worker:
- live score refresh (fast while any game is live)
- pending results check (removed once the card is graded)

Both fall back to the idle interval when nothing is live or a cycle
fails. The scheduler is injectable so tests never start a real loop.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from picks_engine.model.config import EngineSettings
from picks_engine.services.scores import GameRecord, GameStatus, ScoreboardService
from picks_engine.utils.dates import parse_game_time, utc_now

logger = logging.getLogger(__name__)


# ============================================================================
# STATUS DISPLAY
# ============================================================================

@dataclass(frozen=True)
class StatusDisplay:
    text: str
    kind: str


_API_STATUS_DISPLAY = {
    GameStatus.FINAL: StatusDisplay("FINAL", "final"),
    GameStatus.LIVE: StatusDisplay("LIVE", "live"),
    GameStatus.HALFTIME: StatusDisplay("HALF", "halftime"),
    GameStatus.POSTPONED: StatusDisplay("PPD", "postponed"),
    GameStatus.DELAYED: StatusDisplay("DELAY", "delayed"),
}


def game_status_display(
    game_time,
    status: Optional[GameStatus] = None,
    now: Optional[datetime] = None,
) -> StatusDisplay:
    """
    Display text for a game: the provider status when it says anything,
    otherwise LOCKED once started or a countdown to the start.
    """
    if status in _API_STATUS_DISPLAY:
        return _API_STATUS_DISPLAY[status]

    start = parse_game_time(game_time)
    if start is None:
        return StatusDisplay("TBD", "upcoming")

    now = now or utc_now()
    if now >= start:
        return StatusDisplay("LOCKED", "locked")

    total_minutes = int((start - now).total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)

    if hours >= 24:
        return StatusDisplay("UPCOMING", "upcoming")
    if hours > 0:
        return StatusDisplay(f"{hours}h {minutes}m", "upcoming")
    if minutes > 30:
        return StatusDisplay(f"{minutes}m", "upcoming")
    if minutes > 0:
        return StatusDisplay(f"{minutes}m", "soon")
    return StatusDisplay("STARTING", "soon")


# ============================================================================
# POLLER
# ============================================================================

SCORES_JOB_ID = "refresh_scores"
RESULTS_JOB_ID = "check_results"


def default_scheduler() -> BlockingScheduler:
    """Blocking scheduler with a single worker, so cycles never overlap."""
    return BlockingScheduler(executors={"default": ThreadPoolExecutor(max_workers=1)}, timezone="UTC")


class RefreshPoller:
    """
    Live score refresh and pending results check as two interval jobs.

    Each cycle picks its next interval: fast while any game is live,
    idle when nothing is live or the cycle failed. The results job is
    removed once the card is graded; score refresh keeps running.

    Args:
        session: GameSession whose card is checked
        service: ScoreboardService used for fetches
        settings: Interval settings
        scheduler: APScheduler scheduler (a blocking one by default)
        on_scores: Optional callback receiving each refreshed game list
    """

    def __init__(
        self,
        session,
        service: ScoreboardService,
        settings: Optional[EngineSettings] = None,
        scheduler: Optional[BaseScheduler] = None,
        on_scores: Optional[Callable[[List[GameRecord]], None]] = None,
    ):
        self.session = session
        self.service = service
        self.settings = settings or service.settings
        self.scheduler = scheduler or default_scheduler()
        self.on_scores = on_scores
        self.has_live_games = False
        self.score_cycles = 0
        self.results_cycles = 0
        self.intervals: Dict[str, int] = {}

    # -- intervals ----------------------------------------------------------

    def score_interval(self, failed: bool = False) -> int:
        if failed or not self.has_live_games:
            return self.settings.poll_idle_interval
        return self.settings.score_refresh_interval

    def results_interval(self, failed: bool = False) -> int:
        if failed or not self.has_live_games:
            return self.settings.poll_idle_interval
        return self.settings.results_check_interval

    # -- cycles -------------------------------------------------------------

    def refresh_scores(self) -> List[GameRecord]:
        """One score refresh, then pick the next interval."""
        self.score_cycles += 1
        failed = False
        games: List[GameRecord] = []
        try:
            sports = self.session.slate.sports if self.session.slate else self.settings.sports
            games = self.service.get_games_for_sports(sports)
            self.has_live_games = self.service.has_live_games(games)
            failed = bool(self.service.status.failed_sports)
            if self.on_scores is not None:
                self.on_scores(games)
        except Exception as e:
            logger.exception("Score refresh failed: %s", e)
            failed = True

        self._set_interval(SCORES_JOB_ID, self.score_interval(failed))
        return games

    def check_results(self):
        """One results check. Removes its own job once the card is graded."""
        self.results_cycles += 1
        failed = False
        report = None
        try:
            report = self.session.check_results(self.service)
            failed = bool(report and report.failed_sports)
        except Exception as e:
            logger.exception("Results check failed: %s", e)
            failed = True

        if self.session.card.graded:
            logger.info("Card graded; results polling stopped")
            self._remove(RESULTS_JOB_ID)
        else:
            self._set_interval(RESULTS_JOB_ID, self.results_interval(failed))
        return report

    # -- scheduling ---------------------------------------------------------

    def _add(self, job_id: str, func, interval: int, name: str):
        self.scheduler.add_job(
            func=func,
            trigger=IntervalTrigger(seconds=interval),
            id=job_id,
            name=name,
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
            misfire_grace_time=interval,
            replace_existing=True,
        )
        self.intervals[job_id] = interval

    def _set_interval(self, job_id: str, interval: int):
        if self.intervals.get(job_id) == interval or self.scheduler.get_job(job_id) is None:
            return
        self.scheduler.reschedule_job(job_id, trigger=IntervalTrigger(seconds=interval))
        self.intervals[job_id] = interval
        logger.debug("%s every %ds", job_id, interval)

    def _remove(self, job_id: str):
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            pass    # already removed
        self.intervals.pop(job_id, None)

    def start(self):
        """Queue both jobs to run immediately at the idle interval."""
        idle = self.settings.poll_idle_interval
        self._add(SCORES_JOB_ID, self.refresh_scores, idle, "Refresh Live Scores")
        if not self.session.card.graded:
            self._add(RESULTS_JOB_ID, self.check_results, idle, "Check Pending Results")

    def stop(self):
        """Remove both jobs and shut the scheduler down if it is running."""
        self._remove(SCORES_JOB_ID)
        self._remove(RESULTS_JOB_ID)
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    def run(self):
        """Start the jobs and block in the scheduler until stopped."""
        if not self.intervals:
            self.start()
        self.scheduler.start()
