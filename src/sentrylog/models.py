from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, Field


class Severity(str, enum.Enum):
  INFO = "INFO"
  WARNING = "WARNING"
  ERROR = "ERROR"
  FATAL = "FATAL"


@dataclass(frozen=True)
class DiagnosticEvent:
  """
  One captured log call: severity, raw message, the raw stack at the call
  site (innermost frame first) and the annotations passed along with it.
  """

  severity: Severity
  message: Union[bytes, str]
  stack: Tuple[Any, ...] = ()
  data: Tuple[Any, ...] = field(default_factory=tuple)


class StackFrame(BaseModel):
  abs_path: str = ""
  filename: str = ""
  function: str = ""
  module: Optional[str] = None
  lineno: int = 0
  in_app: bool = False


class ExceptionRecord(BaseModel):
  """
  One causal layer of a report.

  `type` is the bolded issue title and takes part in server-side grouping,
  so identifiers are moved out of it into `value` where possible.
  """

  type: str
  value: str = ""
  frames: Optional[List[StackFrame]] = None


class RequestInfo(BaseModel):
  url: str = ""
  method: str = ""
  headers: Dict[str, str] = Field(default_factory=dict)
  cookies: str = ""
  query_string: str = ""
  data: Any = None


def _new_event_id() -> str:
  return uuid4().hex


def _utc_timestamp() -> str:
  # ISO 8601 without a timezone suffix, which is what the store endpoint expects.
  return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")


class Report(BaseModel):
  """
  Normalized error report ready to be handed to a transport.
  """

  event_id: str = Field(default_factory=_new_event_id)
  project: str = ""
  message: str = ""
  timestamp: str = Field(default_factory=_utc_timestamp)
  level: str = "error"
  logger: str = ""
  server_name: str = ""
  exception: List[ExceptionRecord] = Field(default_factory=list)
  request: Optional[RequestInfo] = None
  extra: Dict[str, Any] = Field(default_factory=dict)
  tags: Dict[str, str] = Field(default_factory=dict)
  fingerprint: Optional[List[str]] = None
