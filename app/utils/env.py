"""Minimal .env loader used before settings are read."""

from __future__ import annotations

import os
from pathlib import Path


def default_env_path() -> Path:
  """Return the .env path next to pyproject.toml."""

  return Path(__file__).resolve().parents[2] / ".env"


def load_env_file(path: Path, *, override: bool = False) -> None:
  """Copy KEY=value lines from ``path`` into ``os.environ``.

  Blank lines, comments and a leading ``export`` are skipped; one level of
  matching quotes around the value is stripped. Existing variables win unless
  ``override`` is set.
  """

  if not path.is_file():
    return

  for raw_line in path.read_text(encoding="utf-8").splitlines():
    line = raw_line.strip()
    if not line or line.startswith("#"):
      continue
    if line.startswith("export "):
      line = line[len("export ") :].lstrip()
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
      continue
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
      value = value[1:-1]
    if not override and key in os.environ:
      continue
    os.environ[key] = value
