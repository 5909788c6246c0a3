from __future__ import annotations

from typing import List, Sequence

from .models import ExceptionRecord


def build_fingerprint(exceptions: Sequence[ExceptionRecord]) -> List[str]:
  """
  Describe the in-app frames of the first (most important) exception as
  "<filename> in <function> at line <n>".

  Grouping by this list ignores the error text and keys issues on where
  they were logged.
  """
  if not exceptions or not exceptions[0].frames:
    return []
  return [
    f"{f.filename} in {f.function} at line {f.lineno}"
    for f in exceptions[0].frames
    if f.in_app
  ]
