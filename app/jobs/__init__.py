"""Background job scheduler."""

from . import definitions  # noqa: F401  registers the built-in jobs
from .executor import execute_job
from .registry import (
    RegisteredJob,
    get_all_jobs,
    get_job,
    register_job,
)
from .scheduler import (
    JobScheduler,
    ScheduleTrigger,
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)


__all__ = [
    "JobScheduler",
    "RegisteredJob",
    "ScheduleTrigger",
    "execute_job",
    "get_all_jobs",
    "get_job",
    "get_scheduler",
    "register_job",
    "start_scheduler",
    "stop_scheduler",
]
