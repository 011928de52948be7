"""Post-commit side effects: cache invalidation, mirror sync, realtime events.

A handler queues these only after its primary-store write has committed.
The list runs through FastAPI BackgroundTasks, i.e. after the response has
been sent. Every task gets its own timeout and error boundary: a failing or
slow task is logged and skipped, it never affects the other tasks or the
response that was already sent. No retries.

Usage in a router:

    @router.post("")
    async def create(..., tasks: PostCommitTasks = Depends(get_post_commit)):
        entity = await _service.create(...)          # commits
        tasks.add("mirror.sync", mirror.sync_entity, entity, user_id)
        return success_response(...)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from fastapi import BackgroundTasks

logger = logging.getLogger("et.tasks")

_DEFAULT_TIMEOUT = 5.0


@dataclass
class TaskOutcome:
    name: str
    ok: bool
    error: str | None = None


@dataclass
class _Task:
    name: str
    func: Callable[..., Awaitable[Any]]
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    timeout: float


class PostCommitTasks:
    def __init__(self, default_timeout: float = _DEFAULT_TIMEOUT) -> None:
        self._tasks: list[_Task] = []
        self._default_timeout = default_timeout

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def names(self) -> list[str]:
        return [t.name for t in self._tasks]

    def add(
        self,
        name: str,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> None:
        self._tasks.append(
            _Task(name, func, args, kwargs, timeout or self._default_timeout)
        )

    async def run(self) -> list[TaskOutcome]:
        """Run queued tasks in insertion order, each in its own error boundary."""
        tasks, self._tasks = self._tasks, []
        outcomes: list[TaskOutcome] = []
        for task in tasks:
            try:
                await asyncio.wait_for(task.func(*task.args, **task.kwargs), task.timeout)
                outcomes.append(TaskOutcome(task.name, ok=True))
            except Exception as exc:  # best-effort: log and move on
                logger.warning("post-commit task %s failed: %r", task.name, exc)
                outcomes.append(TaskOutcome(task.name, ok=False, error=repr(exc)))
        return outcomes


def get_post_commit(background: BackgroundTasks) -> PostCommitTasks:
    """FastAPI dependency: a per-request task list that runs after the response."""
    tasks = PostCommitTasks()
    background.add_task(tasks.run)
    return tasks
