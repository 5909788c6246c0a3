from __future__ import annotations

import os
import sys
from typing import Iterable, List

from .models import StackFrame
from .paths import canonicalize, is_library_path, is_stdlib_path

_OWN_PACKAGE = "sentrylog"

_HARNESS_PACKAGES = frozenset({"_pytest", "pytest", "pluggy", "unittest", "py"})
_HARNESS_SCRIPTS = frozenset({"pytest", "py.test"})

_STDLIB_NAMES = frozenset(getattr(sys, "stdlib_module_names", ()))


def _is_test_module(module: str) -> bool:
  leaf = module.rpartition(".")[2]
  return leaf.startswith("test_") or leaf.endswith("_test")


def _is_runtime(frame: StackFrame) -> bool:
  path = frame.abs_path
  if frame.module:
    top = frame.module.partition(".")[0]
    if top in _STDLIB_NAMES and (is_library_path(path) or path.startswith("<")):
      return True
  return is_stdlib_path(path)


def _is_harness(frame: StackFrame) -> bool:
  if frame.module:
    if frame.module.partition(".")[0] in _HARNESS_PACKAGES:
      return True
    if frame.module == "__main__":
      # Console scripts (bin/pytest) and `python -m pytest`.
      if os.path.basename(frame.abs_path) in _HARNESS_SCRIPTS:
        return True
      return canonicalize(frame.abs_path).partition("/")[0] in _HARNESS_PACKAGES
    return False
  return "/_pytest/" in frame.abs_path or "/pluggy/" in frame.abs_path


def _is_instrumentation(frame: StackFrame) -> bool:
  if frame.module:
    if frame.module.partition(".")[0] != _OWN_PACKAGE:
      return False
    return not _is_test_module(frame.module)
  marker = "/" + _OWN_PACKAGE + "/"
  if marker not in frame.abs_path:
    return False
  stem = os.path.splitext(os.path.basename(frame.abs_path))[0]
  return not _is_test_module(stem)


def is_internal(frame: StackFrame) -> bool:
  """
  Whether a frame belongs to the interpreter, a test harness, or this
  package's own instrumentation rather than to the code that logged.
  """
  return _is_runtime(frame) or _is_harness(frame) or _is_instrumentation(frame)


def filter_frames(frames: Iterable[StackFrame]) -> List[StackFrame]:
  return [f for f in frames if not is_internal(f)]
