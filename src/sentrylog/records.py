from __future__ import annotations

from typing import Any, List, Optional, Tuple

from .attributes import ErrorArg, FormatString
from .chain import extract_frames, walk_chain
from .config import ClientConfig
from .formatters import (
  add_exception_source,
  cleanup_format_string,
  error_message,
  headline,
  prepend_message,
  split_message,
  strip_log_prefix,
)
from .frames import build_frame_list
from .models import DiagnosticEvent, ExceptionRecord


def error_value(item: Any) -> Optional[Any]:
  """
  Return the error carried by an annotation, if it is an error annotation.
  """
  if isinstance(item, ErrorArg):
    return item.error
  if isinstance(item, BaseException):
    return item
  return None


class ExceptionListBuilder:
  """
  Builds the ordered exception list of a report from one event.

  The resulting list starts with the log call site, continues with the
  causes of each logged error from the innermost outwards, and ends with
  the outermost wrapping error.
  """

  def __init__(self, config: ClientConfig) -> None:
    self._config = config

  def build(self, event: DiagnosticEvent) -> Tuple[List[ExceptionRecord], str]:
    """
    Return the exception records and the top-line message for the event.
    """
    message = strip_log_prefix(event.message)
    format_type = ""
    records: List[ExceptionRecord] = []

    for item in event.data:
      if isinstance(item, FormatString):
        # A template carries no unique identifiers, so it makes a stable title.
        format_type = cleanup_format_string(item.format)
        continue

      err = error_value(item)
      if err is None:
        continue

      # The innermost headline leads the message, so it becomes the summary line.
      message = prepend_message(headline(err, self._config.max_error_depth), message)
      records.extend(self._chain_records(err))

    call_site = build_frame_list(event.stack, self._config)
    if call_site is not None:
      if format_type:
        msg_type = format_type
        _, msg_value = split_message(message)
      else:
        msg_type, msg_value = split_message(message)
      records.append(ExceptionRecord(
        type=msg_type,
        value=add_exception_source(msg_value, call_site),
        frames=call_site,
      ))

    records.reverse()
    return records, message

  def _chain_records(self, err: Any) -> List[ExceptionRecord]:
    records: List[ExceptionRecord] = []
    depth = self._config.max_error_depth
    for link in walk_chain(err, depth):
      frames = extract_frames(link, self._config) or None
      full_msg = prepend_message(headline(link, depth), error_message(link))

      # Identifiers usually follow the first colon; keep them out of the title.
      msg_type, msg_value = split_message(full_msg)
      records.append(ExceptionRecord(
        type=msg_type,
        value=add_exception_source(msg_value, frames),
        frames=frames,
      ))
    return records
