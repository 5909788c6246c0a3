from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from .attributes import AltDestination, Fingerprint
from .config import ClientConfig
from .fingerprint import build_fingerprint
from .formatters import build_level
from .models import DiagnosticEvent, Report, RequestInfo
from .records import ExceptionListBuilder
from .request import build_http_request, is_http_request


class EventAssembler:
  """
  Turns a DiagnosticEvent into a Report and the DSN it should be sent to.

  Holds only read-only configuration and is safe to share between threads.
  """

  def __init__(self, config: ClientConfig, builder: Optional[ExceptionListBuilder] = None) -> None:
    self._config = config
    self._builder = builder or ExceptionListBuilder(config)

  def assemble(self, event: DiagnosticEvent) -> Tuple[Report, str]:
    """
    Build the report for `event`.

    The returned destination is "" unless an AltDestination annotation was
    attached, in which case it is that annotation's DSN.
    """
    destination = ""
    fingerprint: Optional[List[str]] = None
    request: Optional[RequestInfo] = None
    data: Dict[str, Any] = {}

    for item in event.data:
      if isinstance(item, AltDestination):
        destination = item.dsn
      elif isinstance(item, Fingerprint):
        fingerprint = list(item)
      elif isinstance(item, Mapping):
        data.update(item)
      elif is_http_request(item):
        request = build_http_request(item)

    exceptions, message = self._builder.build(event)

    # Group on where the error was logged rather than on its message.
    if not fingerprint and self._config.fingerprinting:
      fingerprint = build_fingerprint(exceptions) or None

    report = Report(
      project=self._config.project,
      message=message,
      level=build_level(event.severity),
      logger=self._config.logger_name,
      server_name=self._config.server_name,
      exception=exceptions,
      request=request,
      fingerprint=fingerprint,
    )
    if data:
      report.extra["Data"] = data
    return report, destination
