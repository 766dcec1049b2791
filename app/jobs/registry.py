"""Named background jobs and the setting that holds each one's cron schedule."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from app.core.config import settings
from app.core.logging import get_logger


logger = get_logger("jobs.registry")

JobFunc = Callable[[], Awaitable[str]]

_registry: dict[str, RegisteredJob] = {}


@dataclass(frozen=True)
class RegisteredJob:
    name: str
    func: JobFunc
    cron_setting: str
    description: str | None = None

    @property
    def cron(self) -> str:
        """Read on every access so a changed setting applies at the next scheduler start."""
        return getattr(settings, self.cron_setting)


def register_job(name: str, cron_setting: str) -> Callable[[JobFunc], JobFunc]:
    """Register an async job; the first docstring line becomes its description."""

    def decorator(func: JobFunc) -> JobFunc:
        if cron_setting not in type(settings).model_fields:
            raise ValueError(f"Job {name} names an unknown schedule setting: {cron_setting}")
        summary = (func.__doc__ or "").strip().partition("\n")[0]
        _registry[name] = RegisteredJob(name, func, cron_setting, summary or None)
        logger.debug(f"Registered job {name} on {cron_setting}")
        return func

    return decorator


def get_job(name: str) -> RegisteredJob | None:
    return _registry.get(name)


def get_all_jobs() -> dict[str, RegisteredJob]:
    """Snapshot of the registry, safe to iterate while jobs register."""
    return dict(_registry)
