"""Queue export and delete units of work on an APScheduler scheduler."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from ..core import ExportJob, SyncEngine, SyncResult
from ..utils.logging import get_logger


class SchedulerError(Exception):
    """Raised when scheduler operations fail."""
    pass


class ExportJobScheduler:
    """Enqueues sync units of work as run-once scheduler jobs.

    Each bulk export batch is an independent job identified by index, class
    and offset, so a failed batch can be re-run on its own.
    """

    def __init__(self, engine: SyncEngine, scheduler: Optional[AsyncIOScheduler] = None):
        """Initialize job scheduler.

        Args:
            engine: Sync engine running the units of work
            scheduler: Scheduler to add jobs to, a new AsyncIOScheduler by default
        """
        self.engine = engine
        self.logger = get_logger(self.__class__.__name__)

        self.scheduler = scheduler or AsyncIOScheduler(
            job_defaults={
                'coalesce': False,
                'max_instances': 1,
                'misfire_grace_time': None
            }
        )

        self.results: Dict[str, SyncResult] = {}
        self.failed_jobs: Dict[str, ExportJob] = {}

        self.scheduler.add_listener(self._job_executed, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(self._job_error, EVENT_JOB_ERROR)

    def start(self) -> None:
        if self.scheduler.running:
            self.logger.warning("Scheduler is already running")
            return
        self.scheduler.start()
        self.logger.info("Export job scheduler started")

    def stop(self, wait: bool = True) -> None:
        if not self.scheduler.running:
            return
        self.scheduler.shutdown(wait=wait)
        self.logger.info("Export job scheduler stopped")

    def enqueue_bulk_export(self, index_name: str, class_name: Optional[str] = None) -> List[str]:
        """Queue one job per export batch of a class.

        Returns:
            Job ids in offset order
        """
        jobs = self.engine.plan_bulk_export(index_name, class_name)
        job_ids = [self._add(job.job_id, self._run_export_job, job) for job in jobs]

        self.logger.info(
            "Bulk export jobs queued",
            index=index_name,
            class_name=class_name,
            jobs=len(job_ids)
        )
        return job_ids

    def enqueue_export(self, index_name: str, class_name: str, record_id: Any) -> str:
        job_id = f"record:{index_name}:{class_name}:{record_id}"
        return self._add(job_id, self.engine.export_record, index_name, class_name, record_id)

    def enqueue_delete(self, index_name: str, class_name: str, record_id: Any) -> str:
        job_id = f"delete:{index_name}:{class_name}:{record_id}"
        return self._add(job_id, self.engine.delete_record, index_name, class_name, record_id)

    def enqueue_create_index(self, index_name: str) -> str:
        return self._add(f"create_index:{index_name}", self.engine.create_index, index_name)

    def requeue_failed(self) -> List[str]:
        """Queue every failed bulk export batch again."""
        failed = list(self.failed_jobs.values())
        self.failed_jobs.clear()
        return [self._add(job.job_id, self._run_export_job, job) for job in failed]

    def pending_job_ids(self) -> List[str]:
        return [job.id for job in self.scheduler.get_jobs()]

    def _add(self, job_id: str, func, *args) -> str:
        try:
            self.scheduler.add_job(
                func=func,
                trigger=DateTrigger(run_date=datetime.now(timezone.utc)),
                args=list(args),
                id=job_id,
                name=job_id,
                replace_existing=True
            )
        except Exception as e:
            self.logger.error("Failed to queue job", job_id=job_id, error=str(e))
            raise SchedulerError(f"Failed to queue job {job_id}: {e}")

        self.logger.debug("Job queued", job_id=job_id)
        return job_id

    async def _run_export_job(self, job: ExportJob) -> SyncResult:
        try:
            result = await self.engine.run_bulk_export(job)
        except Exception:
            self.failed_jobs[job.job_id] = job
            raise

        if result.success or result.skipped:
            self.failed_jobs.pop(job.job_id, None)
        else:
            self.failed_jobs[job.job_id] = job
        return result

    def _job_executed(self, event) -> None:
        result = event.retval
        if isinstance(result, SyncResult):
            self.results[event.job_id] = result
            if not result.success:
                self.logger.error(
                    "Sync job reported failure",
                    job_id=event.job_id,
                    error=result.error_message
                )

    def _job_error(self, event) -> None:
        self.logger.error(
            "Sync job raised an exception",
            job_id=event.job_id,
            error=str(event.exception),
            requeueable=event.job_id in self.failed_jobs
        )
