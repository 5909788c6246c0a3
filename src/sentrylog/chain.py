"""
Error-chain walking.

Error values carry their own stack in one of several incompatible ways. Each
probe below recognizes one of them and returns `(frames, ok)`; the walker
tries them in order and keeps the first non-empty result.

Supported conventions, in probe order:

1. A `stack_trace()` accessor returning raw frame handles innermost first,
   or, for native exceptions, the `__traceback__` chain.
2. The detail-formatter protocol: `format_error(printer)` writes the error
   through a printer and returns the next error to format. Location data is
   written only after `printer.detail()` returns True, as alternating calls:

     printer.printf("%s\\n    ", "pkg.module.func")
     printer.printf("%s:%d\\n", "/abs/path/to/module.py", 47)

   Values without `format_error` are unwrapped until one that has it.

3. A tuple of raw frame handles stored on the instance by an "annotate with
   caller" helper, whose first entry is the helper's own frame.
"""

from __future__ import annotations

import logging
import traceback
from types import TracebackType
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .config import MAX_ERROR_DEPTH, ClientConfig
from .frame_filter import filter_frames
from .frames import build_frame_list, is_placeholder, is_raw_frame, make_frame
from .models import StackFrame

_logger = logging.getLogger("sentrylog.chain")

ProbeResult = Tuple[List[StackFrame], bool]
Probe = Callable[[Any, ClientConfig], ProbeResult]


def unwrap(err: Any) -> Any:
  """
  Return the next error in the chain, or None when the chain ends.
  """
  try:
    for name in ("unwrap", "cause"):
      accessor = getattr(err, name, None)
      if callable(accessor):
        return accessor()
    if isinstance(err, BaseException):
      if err.__cause__ is not None:
        return err.__cause__
      if not err.__suppress_context__:
        return err.__context__
  except Exception:
    _logger.debug("Unable to unwrap %r", type(err), exc_info=True)
  return None


def walk_chain(err: Any, max_depth: int = MAX_ERROR_DEPTH) -> Iterator[Any]:
  """
  Yield `err` and its successive causes, at most `max_depth` values.

  Stops early if a value reappears, so self-referential chains end. Visited
  values are kept alive until the walk ends so their ids cannot be reused
  by causes built on demand.
  """
  seen: Dict[int, Any] = {}
  depth = 0
  while err is not None and depth < max_depth and id(err) not in seen:
    seen[id(err)] = err
    yield err
    depth += 1
    err = unwrap(err)


class DetailPrinter:
  """
  Printer handed to `format_error` that keeps only the stack frames written
  as detail output and discards everything else.
  """

  AWAITING_FUNCTION = "awaiting_function"
  AWAITING_LOCATION = "awaiting_location"

  def __init__(self, config: ClientConfig) -> None:
    self._config = config
    self._detail = False
    self.state = self.AWAITING_FUNCTION
    self.function = ""
    self.frames: List[StackFrame] = []

  def next_error(self) -> None:
    self._detail = False

  def print(self, *args: Any) -> None:
    pass

  def printf(self, format: str, *args: Any) -> None:
    if not self._detail:
      return
    if len(args) == 1:
      if isinstance(args[0], str):
        self.function = args[0]
        self.state = self.AWAITING_LOCATION
    elif len(args) == 2:
      path, lineno = args
      if not isinstance(path, str) or not isinstance(lineno, int) or isinstance(lineno, bool):
        _logger.warning("unexpected: printf(%r, %r)", format, args)
        return
      self.frames.append(make_frame(path, self.function, None, lineno, self._config))
      self.state = self.AWAITING_FUNCTION

  def detail(self) -> bool:
    self._detail = True
    self.state = self.AWAITING_FUNCTION
    return True


def _found(frames: List[StackFrame]) -> bool:
  # Placeholders alone mean the handles were unreadable, not that there was a stack.
  return any(not is_placeholder(f) for f in frames)


def structured_stack_probe(err: Any, config: ClientConfig) -> ProbeResult:
  accessor = getattr(err, "stack_trace", None)
  if callable(accessor):
    raw = accessor()
    if raw:
      frames = build_frame_list(raw, config) or []
      if _found(frames):
        return frames, True

  tb = getattr(err, "__traceback__", None)
  if isinstance(tb, TracebackType):
    frames = build_frame_list(traceback.walk_tb(tb), config, innermost_first=False) or []
    return frames, _found(frames)
  return [], False


def detail_formatter_probe(err: Any, config: ClientConfig) -> ProbeResult:
  printer = DetailPrinter(config)
  formatted = False
  current = err
  seen: Dict[int, Any] = {}
  depth = 0
  while current is not None and depth < config.max_error_depth and id(current) not in seen:
    seen[id(current)] = current
    depth += 1
    printer.next_error()
    format_error = getattr(current, "format_error", None)
    if callable(format_error):
      formatted = True
      current = format_error(printer)
    else:
      current = unwrap(current)

  if not formatted:
    return [], False
  frames = filter_frames(printer.frames)
  return frames, bool(frames)


def caller_field_probe(err: Any, config: ClientConfig) -> ProbeResult:
  try:
    fields = vars(err)
  except TypeError:
    return [], False

  for value in fields.values():
    if not isinstance(value, tuple) or len(value) < 2:
      continue
    if not all(is_raw_frame(h) for h in value):
      continue
    frames = build_frame_list(value[1:], config)
    if frames and _found(frames):
      return frames, True
  return [], False


DEFAULT_PROBES: Sequence[Probe] = (
  structured_stack_probe,
  detail_formatter_probe,
  caller_field_probe,
)


def extract_frames(
  err: Any,
  config: ClientConfig,
  probes: Optional[Sequence[Probe]] = None,
) -> List[StackFrame]:
  """
  Return the frames carried by an error value, or an empty list.

  Never raises: a probe that fails counts as having found nothing.
  """
  for probe in probes or DEFAULT_PROBES:
    try:
      frames, ok = probe(err, config)
    except Exception:
      _logger.debug("Stack probe %s failed on %r", getattr(probe, "__name__", probe), type(err), exc_info=True)
      continue
    if ok and frames:
      return frames
  return []
