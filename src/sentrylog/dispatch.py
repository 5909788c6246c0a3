from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Optional, Protocol

from .assembler import EventAssembler
from .config import ClientConfig, ConfigurationError
from .models import DiagnosticEvent, Report, Severity
from .transport import HttpTransport

_logger = logging.getLogger("sentrylog.dispatch")


class Transport(Protocol):
  def send(self, report: Report) -> None: ...


TransportFactory = Callable[[str], Transport]


class ReportDispatcher:
  """
  Routes ERROR events to one transport per configured DSN.

  The first DSN is the primary destination. An event tagged with an
  AltDestination naming another configured DSN goes there; anything else,
  including an unknown DSN, goes to the primary.
  """

  def __init__(
    self,
    config: ClientConfig,
    transport_factory: TransportFactory = HttpTransport.from_dsn,
    assembler: Optional[EventAssembler] = None,
  ) -> None:
    if not config.dsns:
      raise ConfigurationError("must specify at least one Sentry DSN")

    self._assembler = assembler or EventAssembler(config)
    self._transports: Dict[str, Transport] = {}
    for dsn in config.dsns:
      self._transports[dsn] = transport_factory(dsn)
    self._primary = self._transports[config.dsns[0]]

  def transport_for(self, destination: str) -> Transport:
    return self._transports.get(destination, self._primary)

  def dispatch(self, event: DiagnosticEvent) -> Optional[Report]:
    """
    Assemble and send the report for an ERROR event; other severities are ignored.
    """
    if event.severity is not Severity.ERROR:
      return None

    report, destination = self._assembler.assemble(event)
    if destination and destination not in self._transports:
      _logger.debug("Unknown destination %s, using primary", destination)
    self.transport_for(destination).send(report)
    return report


def capture_errors(events: Iterable[DiagnosticEvent], dispatcher: ReportDispatcher) -> int:
  """
  Dispatch every event until the source is exhausted.

  Returns the number of reports sent.
  """
  sent = 0
  for event in events:
    if dispatcher.dispatch(event) is not None:
      sent += 1
  return sent
