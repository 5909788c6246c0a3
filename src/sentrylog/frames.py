from __future__ import annotations

import logging
import sys
import traceback
from dataclasses import dataclass
from types import FrameType, TracebackType
from typing import Any, Iterable, List, Optional, Tuple

from .config import ClientConfig
from .frame_filter import filter_frames
from .models import StackFrame
from .paths import canonicalize, is_in_app, reconstruct_absolute

UNKNOWN_FUNCTION = "<unknown>"

RawFrame = Tuple[FrameType, int]

_logger = logging.getLogger("sentrylog.frames")


def capture_stack(skip: int = 0) -> Tuple[RawFrame, ...]:
  """
  Capture the caller's stack as (frame, lineno) pairs, innermost first.

  `skip` drops that many additional frames of capture machinery above the caller.
  """
  try:
    frame = sys._getframe(skip + 1)
  except ValueError:
    return ()
  return tuple(traceback.walk_stack(frame))


@dataclass(frozen=True)
class FrameRecord:
  """
  A source location detached from its live frame, so the frame's locals
  can be released while the event waits in the queue.
  """

  filename: str
  function: str
  module: Optional[str]
  lineno: int


def _is_frame_pair(handle: Any) -> bool:
  return (
    isinstance(handle, tuple)
    and len(handle) == 2
    and isinstance(handle[0], FrameType)
    and isinstance(handle[1], int)
  )


def is_raw_frame(handle: Any) -> bool:
  """
  Whether a value looks like something `resolve_frames` understands.
  """
  if isinstance(handle, (FrameType, TracebackType, traceback.FrameSummary, FrameRecord)):
    return True
  if _is_frame_pair(handle):
    return True
  return isinstance(getattr(handle, "frame", None), FrameType)


def make_frame(
  path: str,
  function: str,
  module: Optional[str],
  lineno: int,
  config: Optional[ClientConfig] = None,
) -> StackFrame:
  """
  Build a StackFrame from a source location, normalizing its paths.
  """
  root = config.source_root if config else None
  vendored = config.vendored_prefixes if config else ()
  abs_path = reconstruct_absolute(path, root, vendored)
  return StackFrame(
    abs_path=abs_path,
    filename=canonicalize(path, vendored),
    function=function,
    module=module,
    lineno=lineno,
    in_app=is_in_app(abs_path, vendored),
  )


def _unpack(handle: Any) -> Tuple[str, str, Optional[str], int]:
  if isinstance(handle, FrameRecord):
    return handle.filename, handle.function, handle.module, handle.lineno
  if isinstance(handle, traceback.FrameSummary):
    return handle.filename, handle.name, None, handle.lineno or 0

  if isinstance(handle, FrameType):
    frame, lineno = handle, handle.f_lineno
  elif isinstance(handle, TracebackType):
    frame, lineno = handle.tb_frame, handle.tb_lineno
  elif isinstance(getattr(handle, "frame", None), FrameType):
    # inspect.FrameInfo and friends expose the frame as a named field. They
    # are tuples too, so this must be checked before the pair case.
    frame = handle.frame
    lineno = getattr(handle, "lineno", None) or frame.f_lineno
  elif _is_frame_pair(handle):
    frame, lineno = handle
  else:
    raise TypeError(f"not a frame handle: {type(handle).__name__}")

  code = frame.f_code
  function = getattr(code, "co_qualname", code.co_name)
  module = frame.f_globals.get("__name__")
  return code.co_filename, function, module, lineno or 0


def resolve_frames(raw: Iterable[Any], config: Optional[ClientConfig] = None) -> List[StackFrame]:
  """
  Resolve raw frame handles into StackFrames, preserving input order.

  A handle that cannot be resolved yields a placeholder frame instead of
  failing the whole trace.
  """
  frames: List[StackFrame] = []
  for handle in raw:
    try:
      path, function, module, lineno = _unpack(handle)
    except Exception:
      _logger.debug("Unable to resolve stack frame %r", handle, exc_info=True)
      frames.append(StackFrame(function=UNKNOWN_FUNCTION))
      continue
    frames.append(make_frame(path, function, module, lineno, config))
  return frames


def detach_stack(raw: Iterable[Any]) -> Tuple[Any, ...]:
  """
  Replace live frame handles with FrameRecords, preserving order.

  Handles that cannot be read are kept as they are and become placeholders
  when resolved.
  """
  detached: List[Any] = []
  for handle in raw:
    try:
      detached.append(FrameRecord(*_unpack(handle)))
    except Exception:
      detached.append(handle)
  return tuple(detached)


def is_placeholder(frame: StackFrame) -> bool:
  return frame.function == UNKNOWN_FUNCTION and not frame.abs_path


def build_frame_list(
  raw: Iterable[Any],
  config: Optional[ClientConfig] = None,
  *,
  innermost_first: bool = True,
) -> Optional[List[StackFrame]]:
  """
  Resolve, order outermost-first and filter a raw stack.

  Returns None when no frame survives filtering.
  """
  frames = resolve_frames(raw, config)
  if innermost_first:
    frames.reverse()
  frames = filter_frames(frames)
  return frames or None


def source_from_frames(frames: Optional[List[StackFrame]]) -> str:
  """
  Describe where the innermost frame was, as "function:118 (pkg/file.py)".
  """
  if not frames:
    return ""

  f = frames[-1]
  filename = ""
  if f.filename:
    filename = " (" + canonicalize(f.filename) + ")"
  elif f.abs_path:
    filename = " (" + canonicalize(f.abs_path) + ")"
  return f"{f.function}:{f.lineno}{filename}"
