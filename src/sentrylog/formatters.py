from __future__ import annotations

import re
from typing import Any, List, Optional, Tuple, Union

from .chain import walk_chain
from .config import MAX_ERROR_DEPTH
from .frames import source_from_frames
from .models import Severity, StackFrame

# printf-style directives, including mapping keys, flags, width and precision.
_FORMAT_DIRECTIVE_RE = re.compile(
  r"%(?:\([^)]*\))?[#0\- +]*(?:\*|\d+)?(?:\.(?:\*|\d+))?[hlL]?[a-zA-Z%] ?"
)


def error_message(err: Any) -> str:
  try:
    text = str(err)
  except Exception:
    text = ""
  return text or type(err).__name__


def headline(err: Any, max_depth: int = MAX_ERROR_DEPTH) -> str:
  """
  Return a good headline for this error.

  Ideally a succinct summary that best conveys the error. That is usually
  something close to the root cause, but the root cause itself may be
  something boring like "operation cancelled", so the message of the
  second innermost error is used: returned errors are often constants and
  the layer above them carries the context.
  """
  chain = list(walk_chain(err, max_depth))
  if len(chain) > 1:
    return error_message(chain[-2])
  return error_message(err)


def strip_log_prefix(message: Union[bytes, str]) -> str:
  """
  Remove the level/date header ("E1017 12:00:00.000 42 file.py:12] ")
  from a rendered log line.
  """
  if isinstance(message, bytes):
    message = message.decode("utf-8", errors="replace")
  square = message.find("] ")
  if square != -1:
    message = message[square + 2:]
  return message


def split_message(msg: str) -> Tuple[str, str]:
  """
  Split the first line of a message at the first ": " into the part
  before it and the part after it.
  """
  first_line = msg.strip().split("\n", 1)[0]
  head, sep, tail = first_line.partition(": ")
  if sep:
    return head, tail
  return head, ""


def add_exception_source(value: str, frames: Optional[List[StackFrame]]) -> str:
  """
  Append where the exception happened, in parentheses, to a non-empty value.
  """
  source = source_from_frames(frames)
  if not value:
    return source
  if source:
    return f"{value} ({source})"
  return value


def cleanup_format_string(fmt: str) -> str:
  """
  Strip printf directives from a template such as "error performing action %s: %s",
  then trim whitespace and a trailing colon.
  """
  fmt = _FORMAT_DIRECTIVE_RE.sub("", fmt)
  fmt = fmt.strip()
  fmt = fmt.removesuffix(":")
  return fmt.strip()


def prepend_message(prefix: str, full_msg: str) -> str:
  """
  Show `prefix` first, followed by a blank line and whatever `full_msg`
  adds beyond it.
  """
  trimmed = full_msg.removeprefix(prefix).strip()
  trimmed = trimmed.removeprefix(":").strip()
  if trimmed:
    return prefix + "\n\n" + trimmed
  return prefix


def build_level(severity: Severity) -> str:
  return severity.value.lower()
