"""
Annotations that can be attached to a log call and are used to route and
shape the resulting error report.

    logger.error("bad thing happened", extra=annotate(AltDestination(OTHER_DSN)))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

# Key under which the logging handler looks for annotations in `extra=`.
ANNOTATIONS_KEY = "sentrylog_data"


@dataclass(frozen=True)
class AltDestination:
  """
  Send the report to the client configured for this DSN instead of the primary.
  """

  dsn: str


class Fingerprint(tuple):
  """
  Explicit grouping key for the tracking service, overriding its default rollup.
  """

  def __new__(cls, *parts: str) -> "Fingerprint":
    return super().__new__(cls, (str(p) for p in parts))


@dataclass(frozen=True)
class ErrorArg:
  """
  An error value passed to the log call.
  """

  error: Any


@dataclass(frozen=True)
class FormatString:
  """
  The printf-style template the log message was rendered from.
  """

  format: str


def annotate(*items: Any) -> Dict[str, Tuple[Any, ...]]:
  """
  Build the `extra=` mapping understood by the sentrylog logging handler.
  """
  return {ANNOTATIONS_KEY: tuple(items)}
