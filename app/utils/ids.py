"""Identifier utilities."""

from __future__ import annotations

import time
import uuid


def generate_job_id() -> str:
  """Return a new upload job identifier.

  The millisecond prefix keeps ids roughly sortable in logs; the random
  suffix keeps them distinct when many jobs are created in the same tick.
  """
  return f"job_{int(time.time() * 1000)}_{uuid.uuid4().hex[:16]}"
