from __future__ import annotations

import json
import os
import socket
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from .paths import canonicalize


# The maximum number of wrapped errors processed per error annotation.
MAX_ERROR_DEPTH = 10

_CONFIG_FILE = Path("_sentrylog/config.json")


class ConfigurationError(ValueError):
  """
  Raised for startup faults such as a missing or malformed DSN.
  """


@dataclass(frozen=True)
class ClientConfig:
  """
  Read-only configuration for turning log events into error reports.

  Built once at process start and passed explicitly to the builder,
  assembler and dispatcher.
  """

  project: str
  dsns: Tuple[str, ...] = ()
  server_name: str = ""
  logger_name: str = ""
  source_root: Optional[str] = None
  debug: bool = False
  fingerprinting: bool = False
  vendored_prefixes: Tuple[str, ...] = field(default_factory=tuple)
  max_error_depth: int = MAX_ERROR_DEPTH

  @classmethod
  def from_env(cls) -> "ClientConfig":
    """
    Load configuration from environment variables.

    Optional:
      - SENTRYLOG_PROJECT (default: "my-app")
      - SENTRYLOG_DSNS (comma-separated, first one is primary)
      - SENTRYLOG_SOURCE_ROOT
      - SENTRYLOG_DEBUG, SENTRYLOG_FINGERPRINTING
      - SENTRYLOG_VENDORED_PREFIXES (comma-separated)
    """
    return cls.from_params_or_env()

  @classmethod
  def from_params_or_env(
    cls,
    project: Optional[str] = None,
    dsns: Optional[Sequence[str]] = None,
    source_root: Optional[str] = None,
    debug: Optional[bool] = None,
    fingerprinting: Optional[bool] = None,
    vendored_prefixes: Optional[Sequence[str]] = None,
  ) -> "ClientConfig":
    """
    Build configuration from explicit parameters, falling back to environment variables.

    Priority:
      1. Explicit function arguments
      2. Environment variables
      3. Config file (_sentrylog/config.json)
      4. Defaults
    """
    file_cfg = _read_config_file()

    name = project or os.getenv("SENTRYLOG_PROJECT") or file_cfg.get("project") or "my-app"

    if dsns is None:
      dsns = _split_list(os.getenv("SENTRYLOG_DSNS"))
      if not dsns:
        dsns = list(file_cfg.get("dsns") or [])

    root = source_root or os.getenv("SENTRYLOG_SOURCE_ROOT") or file_cfg.get("source_root")

    if vendored_prefixes is None:
      vendored_prefixes = _split_list(os.getenv("SENTRYLOG_VENDORED_PREFIXES"))
      if not vendored_prefixes:
        vendored_prefixes = list(file_cfg.get("vendored_prefixes") or [])

    if debug is None:
      debug = _get_flag("SENTRYLOG_DEBUG", bool(file_cfg.get("debug", False)))
    if fingerprinting is None:
      fingerprinting = _get_flag(
        "SENTRYLOG_FINGERPRINTING", bool(file_cfg.get("fingerprinting", False))
      )

    return cls(
      project=name,
      dsns=tuple(dsns),
      server_name=hostname(),
      logger_name=canonicalize(sys.argv[0]) if sys.argv and sys.argv[0] else "",
      source_root=root or None,
      debug=debug,
      fingerprinting=fingerprinting,
      vendored_prefixes=tuple(vendored_prefixes),
    )


def hostname() -> str:
  """
  Return the host name truncated at the first '.'.
  """
  name = socket.gethostname()
  short = name.find(".")
  if short != -1:
    name = name[:short]
  return name


def _read_config_file() -> Dict[str, Any]:
  if not _CONFIG_FILE.exists():
    return {}
  try:
    data = json.loads(_CONFIG_FILE.read_text())
  except (OSError, ValueError):
    return {}
  return data if isinstance(data, dict) else {}


def _split_list(raw: Optional[str]) -> list:
  if not raw:
    return []
  return [part.strip() for part in raw.split(",") if part.strip()]


def _get_flag(name: str, default: bool) -> bool:
  """
  Read a boolean flag from the environment.

  Accepts common truthy/falsey strings; unknown values keep the default.
  """
  raw = os.getenv(name)
  if raw is None:
    return default

  value = raw.strip().lower()
  if value in ("1", "true", "yes", "on"):
    return True
  if value in ("0", "false", "no", "off"):
    return False
  return default
