"""Scheduler package for queuing sync units of work."""

from .job_scheduler import ExportJobScheduler, SchedulerError

__all__ = [
    "ExportJobScheduler",
    "SchedulerError"
]
