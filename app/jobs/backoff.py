"""Retry logic with capped exponential backoff for relay attempts."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from app.jobs.errors import TransferError

T = TypeVar("T")
logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
  """Attempt budget and delay curve for the retry controller."""

  max_attempts: int = 3
  base_delay_seconds: float = 1.0
  max_delay_seconds: float = 10.0

  def __post_init__(self) -> None:
    if self.max_attempts < 1:
      raise ValueError("max_attempts must be at least 1.")

  def delay_for(self, attempt: int) -> float:
    """Delay before the attempt following ``attempt`` (1-based): min(base * 2^attempt, cap)."""
    return min(self.base_delay_seconds * (2**attempt), self.max_delay_seconds)


def is_retryable(exc: BaseException) -> bool:
  """Return True for destination 5xx/308, connection resets and timeouts."""
  return isinstance(exc, TransferError) and exc.retryable


async def retry_with_backoff(
  func: Callable[[int], Awaitable[T]],
  policy: RetryPolicy,
  *,
  sleep: Sleep = asyncio.sleep,
  on_attempt: Callable[[int], None] | None = None,
) -> T:
  """
  Run ``func(attempt)`` until it succeeds, fails fatally or the budget runs out.

  Attempts run strictly one after another. The most recent failure is
  re-raised without a further delay once it is fatal or the last attempt.
  """
  attempt = 1
  while True:
    if on_attempt is not None:
      on_attempt(attempt)

    try:
      return await func(attempt)
    except Exception as exc:
      if not is_retryable(exc) or attempt >= policy.max_attempts:
        raise

      delay = policy.delay_for(attempt)
      logger.warning("Upload attempt %d/%d failed, retrying in %.1fs: %s", attempt, policy.max_attempts, delay, exc)
      await sleep(delay)
      attempt += 1
