"""
Main scheduler service for the stock monitor.

This module provides:
- The run coordinator executing one observe -> diff -> notify cycle
- A single-flight guard so cycles never overlap
- Interval scheduling with APScheduler
"""

import asyncio
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import structlog
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from catalog.models import Item, Snapshot, TrackedCollection
from catalog.reader import CatalogReader
from catalog.snapshot_store import SnapshotStore
from scheduler.alerting import NotificationDispatcher
from scheduler.change_detector import dedupe_items, detect_changes
from scheduler.classifier import Classifier
from scheduler.models import (
    CollectionOutcome, CollectionStatus, CycleResult, SchedulerConfig
)
from scheduler.report_generator import ReportGenerator
from utilities.exceptions import PersistFailure, ReadFailure
from utilities.logger import CycleLogger

logger = structlog.get_logger(__name__)

CYCLE_JOB_ID = "stock_monitor_cycle"


class RunCoordinator:
    """Runs monitor cycles, at most one at a time."""

    def __init__(
        self,
        config: SchedulerConfig,
        reader: CatalogReader,
        store: SnapshotStore,
        dispatcher: NotificationDispatcher,
        classifier: Classifier,
        report_generator: ReportGenerator
    ):
        """
        Initialize run coordinator.

        Args:
            config: Immutable pipeline configuration
            reader: Catalog reader producing observed states
            store: Snapshot store, written only from here
            dispatcher: Notification dispatcher
            classifier: Bucket classifier for new items
            report_generator: Summary message builder
        """
        self.config = config
        self.reader = reader
        self.store = store
        self.dispatcher = dispatcher
        self.classifier = classifier
        self.report_generator = report_generator
        self.logger = logger.bind(component="run_coordinator")
        self.last_result: Optional[CycleResult] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """True while a cycle is in progress."""
        return self._running

    async def run_cycle(self) -> Optional[CycleResult]:
        """
        Run one cycle unless one is already in progress.

        The check and the flag update happen without an await in between, so
        two triggers on the event loop can never both enter. An overlapping
        trigger is dropped, not queued.

        Returns:
            CycleResult, or None if the trigger was skipped
        """
        if self._running:
            self.logger.warning("Cycle already running, skipping trigger")
            return None

        self._running = True
        try:
            result = await self._run_cycle()
            self.last_result = result
            return result
        finally:
            self._running = False

    async def _run_cycle(self) -> CycleResult:
        """Observe every collection, persist, then notify."""
        result = CycleResult(cycle_id=str(uuid.uuid4()))
        cycle_logger = CycleLogger("run_coordinator").bind_context(cycle_id=result.cycle_id)
        cycle_logger.log_cycle_start(len(self.config.collections))

        for index, collection in enumerate(self.config.collections):
            if index > 0 and self.config.collection_cooldown_seconds:
                await asyncio.sleep(self.config.collection_cooldown_seconds)
            outcome = await self._process_collection(collection, cycle_logger)
            result.outcomes.append(outcome)

        new_items = self._collect_new_items(result.outcomes)
        result.new_item_count = len(new_items)

        await self._notify(result, new_items)

        result.finished_at = datetime.utcnow()
        failures = sum(1 for o in result.outcomes if o.status != CollectionStatus.UPDATED)
        cycle_logger.log_cycle_complete(result.duration_seconds, result.new_item_count, failures)
        return result

    async def _process_collection(
        self,
        collection: TrackedCollection,
        cycle_logger: CycleLogger
    ) -> CollectionOutcome:
        """Read, diff and persist one collection."""
        try:
            observed = await asyncio.wait_for(
                self.reader.read(collection),
                timeout=self.config.read_timeout_seconds
            )
        except ReadFailure as e:
            cycle_logger.log_error(str(e), url=collection.url, collection=collection.key)
            return CollectionOutcome(
                collection=collection, status=CollectionStatus.READ_FAILED, error=e.reason
            )
        except asyncio.TimeoutError:
            error = f"Read timed out after {self.config.read_timeout_seconds}s"
            cycle_logger.log_error(error, url=collection.url, collection=collection.key)
            return CollectionOutcome(
                collection=collection, status=CollectionStatus.READ_FAILED, error=error
            )
        except Exception as e:
            error = f"Unexpected reader error: {e}"
            cycle_logger.log_error(error, url=collection.url, collection=collection.key)
            return CollectionOutcome(
                collection=collection, status=CollectionStatus.READ_FAILED, error=error
            )

        snapshot = self.store.load(collection.key)
        change = detect_changes(collection, snapshot, observed)
        cycle_logger.log_collection_read(
            collection.key,
            observed.total_items,
            len(observed.items),
            change.added_count,
            change.removed_count,
            len(change.new_items)
        )
        if change.first_observation:
            self.logger.info(
                "First observation of collection, everything counts as new",
                collection=collection.key
            )

        # Persist before notifying: the snapshot, not delivery, decides what is new next time
        try:
            self.store.save(collection.key, Snapshot.from_observed(observed))
        except PersistFailure as e:
            cycle_logger.log_error(str(e), collection=collection.key)
            return CollectionOutcome(
                collection=collection,
                status=CollectionStatus.PERSIST_FAILED,
                change=change,
                items=list(observed.items),
                error=e.reason
            )

        return CollectionOutcome(
            collection=collection,
            status=CollectionStatus.UPDATED,
            change=change,
            items=list(observed.items)
        )

    def _collect_new_items(self, outcomes: List[CollectionOutcome]) -> List[Item]:
        """New items across collections, each identifier once, in declared order."""
        items: List[Item] = []
        for outcome in outcomes:
            if outcome.change is not None:
                items.extend(outcome.change.new_items)
        return dedupe_items(items)

    def _select_top_links(self, outcomes: List[CollectionOutcome]) -> List[Item]:
        """
        Items listed under the summary's top links.

        The last identifier-tracked collection with anything to show wins: its
        fresh listing, or its stored snapshot when this cycle's read failed.
        """
        limit = self.config.notifier.summary_link_limit
        for outcome in reversed(outcomes):
            if not outcome.collection.track_items:
                continue
            items = outcome.items or self.store.load(outcome.collection.key).items
            if items:
                return list(items[:limit])
        return []

    async def _notify(self, result: CycleResult, new_items: List[Item]) -> None:
        """Send the summary and, for large restocks, the bucket messages."""
        observed = [o for o in result.outcomes if o.change is not None]
        if not observed:
            self.logger.error("No collection could be read, skipping notification")
            return

        has_changes = any(o.change.has_changes for o in observed)
        has_failures = len(observed) != len(result.outcomes) or any(
            o.status != CollectionStatus.UPDATED for o in observed
        )
        if has_changes or has_failures or self.config.notifier.notify_unchanged:
            summary = self.report_generator.build_summary(
                result.outcomes,
                result.started_at,
                top_links=self._select_top_links(result.outcomes)
            )
            result.summary_delivered = await self.dispatcher.deliver(summary)
        else:
            self.logger.info("No changes, summary suppressed")

        if new_items and self.dispatcher.should_split(len(new_items)):
            self.logger.info("Sending category split messages", new_items=len(new_items))
            buckets = self.classifier.classify_into_buckets(new_items)
            result.buckets_delivered = await self.dispatcher.deliver_buckets(
                buckets, self.config.notifier.max_links_per_category
            )


class SchedulerService:
    """Interval scheduler triggering the run coordinator."""

    def __init__(self, config: SchedulerConfig, coordinator: RunCoordinator):
        """
        Initialize scheduler service.

        Args:
            config: Immutable pipeline configuration
            coordinator: Run coordinator to trigger
        """
        self.config = config
        self.coordinator = coordinator
        self.scheduler = AsyncIOScheduler(timezone=config.timezone)
        self.logger = logger.bind(component="scheduler_service")

        self._setup_scheduler_listeners()

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        def job_executed_listener(event):
            retval = event.retval or {}
            self.logger.info(
                "Job executed",
                job_id=event.job_id,
                success=retval.get('success'),
                skipped=retval.get('skipped', False),
                duration=retval.get('duration', 0)
            )

        def job_error_listener(event):
            self.logger.error(
                "Job execution failed",
                job_id=event.job_id,
                error=str(event.exception)
            )

        self.scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)

    def start(self) -> None:
        """Add the cycle job and start the scheduler on the running event loop."""
        first_run = datetime.now(self.scheduler.timezone) + timedelta(
            seconds=self.config.startup_delay_seconds
        )
        self.scheduler.add_job(
            func=self._cycle_job,
            trigger=IntervalTrigger(
                minutes=self.config.interval_minutes,
                timezone=self.config.timezone
            ),
            id=CYCLE_JOB_ID,
            name='Stock Monitor Cycle',
            next_run_time=first_run,
            # Overlaps reach the coordinator, whose guard skips and logs them
            max_instances=2,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.start()

        self.logger.info(
            "Scheduler service started",
            interval_minutes=self.config.interval_minutes,
            first_run=first_run.isoformat(),
            collections=[c.key for c in self.config.collections]
        )

    def stop(self) -> None:
        """Stop the scheduler service."""
        try:
            self.logger.info("Stopping scheduler service")
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            self.logger.info("Scheduler service stopped")
        except Exception as e:
            self.logger.error("Error stopping scheduler service", error=str(e))

    async def run_once(self) -> Dict:
        """Run a single cycle outside the schedule."""
        return await self._cycle_job()

    async def _cycle_job(self) -> Dict:
        """Scheduled job: one cycle, never raising past this point."""
        start_time = datetime.utcnow()
        job_id = f"cycle_{start_time.strftime('%Y%m%d_%H%M%S')}"

        try:
            result = await self.coordinator.run_cycle()
        except Exception as e:
            self.logger.error("Monitor cycle failed", job_id=job_id, error=str(e))
            return {
                'job_id': job_id,
                'success': False,
                'error': str(e),
                'duration': (datetime.utcnow() - start_time).total_seconds()
            }

        if result is None:
            return {'job_id': job_id, 'success': True, 'skipped': True, 'duration': 0}

        return {
            'job_id': job_id,
            'cycle_id': result.cycle_id,
            'success': result.success,
            'new_items': result.new_item_count,
            'summary_delivered': result.summary_delivered,
            'duration': result.duration_seconds
        }

    def get_scheduler_status(self) -> Dict:
        """Get current scheduler status."""
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run_time': job.next_run_time.isoformat() if job.next_run_time else None,
                'trigger': str(job.trigger)
            })

        return {
            'running': self.scheduler.running,
            'timezone': self.config.timezone,
            'cycle_running': self.coordinator.is_running,
            'jobs': jobs,
            'job_count': len(jobs)
        }
