from __future__ import annotations

import logging
from logging import Formatter, Handler, LogRecord
from typing import Any, List, Optional, Sequence

from .attributes import ANNOTATIONS_KEY, ErrorArg, FormatString
from .config import ClientConfig
from .dispatch import ReportDispatcher
from .frames import capture_stack, detach_stack
from .models import DiagnosticEvent, Severity
from .queue import EventQueue

# Header in the style of glog ("E1017 12:00:00.000000 4242 app.py:12] "),
# stripped again when the report is built.
LOG_PREFIX_FORMAT = (
  "%(levelname).1s%(asctime)s %(process)d %(filename)s:%(lineno)d] %(message)s"
)
LOG_PREFIX_DATEFMT = "%m%d %H:%M:%S"


def severity_for(levelno: int) -> Severity:
  if levelno >= logging.CRITICAL:
    return Severity.FATAL
  if levelno >= logging.ERROR:
    return Severity.ERROR
  if levelno >= logging.WARNING:
    return Severity.WARNING
  return Severity.INFO


def _is_own_record(record: LogRecord) -> bool:
  return record.name == "sentrylog" or record.name.startswith("sentrylog.")


class _SentrylogHandler(Handler):
  """
  Logging handler that turns records into diagnostic events and enqueues
  them for delivery.
  """

  def __init__(self, config: ClientConfig, queue: EventQueue, level: int = logging.ERROR) -> None:
    super().__init__(level=level)
    self._config = config
    self._queue = queue
    self.setFormatter(Formatter(LOG_PREFIX_FORMAT, LOG_PREFIX_DATEFMT))

  def _render(self, record: LogRecord) -> str:
    # Formatter.format() minus the exception text: the traceback travels as
    # an error annotation instead.
    fmt = self.formatter or Formatter(LOG_PREFIX_FORMAT, LOG_PREFIX_DATEFMT)
    record.message = record.getMessage()
    if fmt.usesTime():
      record.asctime = fmt.formatTime(record, fmt.datefmt)
    return fmt.formatMessage(record)

  def to_event(self, record: LogRecord, stack: Sequence[Any] = ()) -> DiagnosticEvent:
    data: List[Any] = list(getattr(record, ANNOTATIONS_KEY, ()) or ())

    if record.args:
      data.append(FormatString(str(record.msg)))
      args = record.args if isinstance(record.args, tuple) else (record.args,)
      for arg in args:
        if isinstance(arg, BaseException):
          data.append(ErrorArg(arg))
    elif isinstance(record.msg, BaseException):
      data.append(ErrorArg(record.msg))

    if record.exc_info and record.exc_info[1] is not None:
      exc = record.exc_info[1]
      if not any(isinstance(d, ErrorArg) and d.error is exc for d in data):
        data.append(ErrorArg(exc))

    return DiagnosticEvent(
      severity=severity_for(record.levelno),
      message=self._render(record),
      stack=tuple(stack),
      data=tuple(data),
    )

  def emit(self, record: LogRecord) -> None:
    try:
      # Our own delivery failures must not loop back into the pipeline.
      if _is_own_record(record):
        return
      self._queue.enqueue(self.to_event(record, detach_stack(capture_stack())))
    except Exception:
      # Never break application logging.
      self.handleError(record)


def setup_logging(
  logger: Optional[logging.Logger] = None,
  *,
  project: Optional[str] = None,
  dsns: Optional[Sequence[str]] = None,
  source_root: Optional[str] = None,
  debug: Optional[bool] = None,
  fingerprinting: Optional[bool] = None,
) -> Optional[ReportDispatcher]:
  """
  Attach the sentrylog handler to the standard logging module.

  This does not replace existing handlers; it adds an additional handler
  that turns ERROR records into reports and delivers them from a
  background queue. Raises ConfigurationError when no DSN is configured.
  """
  config = ClientConfig.from_params_or_env(
    project=project,
    dsns=dsns,
    source_root=source_root,
    debug=debug,
    fingerprinting=fingerprinting,
  )
  dispatcher = ReportDispatcher(config)

  if config.debug:
    logging.getLogger("sentrylog").setLevel(logging.DEBUG)

  target_logger = logger or logging.getLogger()

  # Avoid attaching duplicate client handlers to the same logger.
  for existing in target_logger.handlers:
    if isinstance(existing, _SentrylogHandler):
      return None

  event_queue = EventQueue(consumer=dispatcher.dispatch)
  event_queue.start()

  handler = _SentrylogHandler(config=config, queue=event_queue)
  target_logger.addHandler(handler)
  return dispatcher
