"""Ownership of in-flight job tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class UploadJobRunner:
  """Runs each job as its own asyncio task and keeps a handle until it finishes."""

  def __init__(self) -> None:
    self._tasks: dict[str, asyncio.Task[Any]] = {}

  def __len__(self) -> int:
    return len(self._tasks)

  def launch(self, job_id: str, work: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
    """Schedule ``work`` without waiting for it."""
    if job_id in self._tasks:
      work.close()
      raise ValueError(f"Job {job_id} is already running")

    task = asyncio.create_task(work, name=f"upload-{job_id}")
    self._tasks[job_id] = task
    task.add_done_callback(lambda done: self._finished(job_id, done))
    return task

  async def join(self, job_id: str) -> Any:
    """Wait for the task of ``job_id`` and return its result; None when nothing is running."""
    task = self._tasks.get(job_id)
    if task is None:
      return None
    # A cancelled waiter must not cancel the job itself.
    return await asyncio.shield(task)

  async def shutdown(self) -> None:
    """Cancel every running job and wait for the cancellations to settle."""
    tasks = list(self._tasks.values())
    for task in tasks:
      task.cancel()
    if tasks:
      logger.info("Cancelling %d in-flight upload job(s)", len(tasks))
      await asyncio.gather(*tasks, return_exceptions=True)

  def _finished(self, job_id: str, task: asyncio.Task[Any]) -> None:
    self._tasks.pop(job_id, None)
    if task.cancelled():
      return
    exc = task.exception()
    if exc is not None:
      logger.error("Background upload error job_id=%s", job_id, exc_info=exc)
