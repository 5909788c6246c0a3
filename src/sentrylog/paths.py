from __future__ import annotations

import os
import sysconfig
from typing import Iterable, Optional, Tuple

# Segments after which the remainder of a path is its import path.
_SOURCE_MARKERS = ("/src/", "/site-packages/", "/dist-packages/")

# Build-system and vendored prefixes that never map onto the source tree.
DEFAULT_VENDORED_PREFIXES: Tuple[str, ...] = ("external/", "bazel-")

_LIBRARY_SEGMENTS = ("/site-packages/", "/dist-packages/")


def _stdlib_dir() -> str:
  path = sysconfig.get_paths().get("stdlib") or ""
  return path.rstrip("/") + "/" if path else ""


_STDLIB_DIR = _stdlib_dir()


def canonicalize(path: str, vendored_prefixes: Iterable[str] = ()) -> str:
  """
  Rewrite an absolute build-time path into a stable display path.

  Takes the text after the last source marker ("/src/", "/site-packages/",
  "/dist-packages/"). This may omit part of the path when a package itself
  contains a src directory. Standard library paths become library-relative
  and vendored paths collapse to their base name; anything else is returned
  unchanged.
  """
  if not path:
    return path

  cut = -1
  for marker in _SOURCE_MARKERS:
    idx = path.rfind(marker)
    if idx != -1 and idx + len(marker) > cut:
      cut = idx + len(marker)
  if cut != -1:
    return path[cut:]

  if _STDLIB_DIR and path.startswith(_STDLIB_DIR):
    return path[len(_STDLIB_DIR):]

  if is_vendored(path, vendored_prefixes):
    return os.path.basename(path)

  return path


def reconstruct_absolute(
  path: str,
  source_root: Optional[str],
  vendored_prefixes: Iterable[str] = (),
) -> str:
  """
  Best-effort guess of the absolute path for a relative one, so the
  tracking service can fetch surrounding source.

  Returns the input unchanged when no source root is configured, when the
  path is already absolute, or when it is a vendored or synthetic path.
  """
  if not source_root or not path or os.path.isabs(path):
    return path

  root = source_root.rstrip("/") or source_root
  if path.startswith(root) or is_vendored(path, vendored_prefixes):
    return path

  base = os.path.basename(root)
  if base and path.startswith(base + "/"):
    return os.path.join(os.path.dirname(root), path)
  return os.path.join(root, path)


def is_vendored(path: str, extra_prefixes: Iterable[str] = ()) -> bool:
  """
  Whether the path belongs to vendored, build-generated or synthetic code.
  """
  if path.startswith("<"):
    # <frozen importlib._bootstrap>, <string>, <stdin>, ...
    return True
  prefixes = DEFAULT_VENDORED_PREFIXES + tuple(extra_prefixes)
  return any(path.startswith(p) for p in prefixes if p)


def is_stdlib_path(path: str) -> bool:
  return bool(_STDLIB_DIR) and path.startswith(_STDLIB_DIR)


def is_library_path(path: str) -> bool:
  """
  Whether the path lives in the standard library or an installed distribution.
  """
  if any(seg in path for seg in _LIBRARY_SEGMENTS):
    return True
  return is_stdlib_path(path)


def is_in_app(path: str, extra_prefixes: Iterable[str] = ()) -> bool:
  return bool(path) and not is_library_path(path) and not is_vendored(path, extra_prefixes)
