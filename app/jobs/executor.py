"""Runs one registered job, timing it and wrapping failures in ``JobError``."""

from __future__ import annotations

import time

from app.core.exceptions import JobError
from app.core.logging import get_logger

from .registry import get_job


logger = get_logger("jobs.executor")


async def execute_job(name: str) -> str:
    """Run job ``name`` and return its summary line.

    Used by the scheduler and by the admin "run now" endpoint.
    """
    job = get_job(name)
    if job is None:
        raise JobError(message=f"No job named {name!r}", error_code="UNKNOWN_JOB", status_code=404)

    started = time.monotonic()
    try:
        summary = await job.func() or "done"
    except Exception as e:
        elapsed = round(time.monotonic() - started, 3)
        logger.exception(f"Job {name} failed after {elapsed}s")
        raise JobError(
            message=f"Job {name} failed: {e}",
            error_code="JOB_EXECUTION_FAILED",
            details={"job": name, "elapsed_seconds": elapsed},
        ) from e

    logger.info(f"Job {name} finished in {time.monotonic() - started:.2f}s: {summary}")
    return str(summary)
