from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict
from urllib import error, request

from .. import __version__
from ..models import Report
from .dsn import Dsn

_logger = logging.getLogger("sentrylog.transport")

_AUTH_TEMPLATE = (
  "Sentry sentry_version=7, sentry_client=sentrylog/{version}, "
  "sentry_timestamp={timestamp}, sentry_key={key}"
)


def sentry_payload(report: Report) -> Dict[str, Any]:
  """
  Shape a report as a store-endpoint event.
  """
  body = report.model_dump(exclude_none=True)
  body["platform"] = "python"
  body["exception"] = {
    "values": [
      {
        "type": ex.type,
        "value": ex.value,
        **({"stacktrace": {"frames": [f.model_dump() for f in ex.frames]}} if ex.frames else {}),
      }
      for ex in report.exception
    ]
  }
  return body


@dataclass
class HttpTransport:
  """
  Posts reports to the store endpoint named by a DSN.

  This uses the Python standard library only. Failures are logged at
  WARNING level and the report is dropped; nothing is raised back to the
  caller and nothing is retried.
  """

  dsn: Dsn
  timeout_seconds: float = 1.0

  @classmethod
  def from_dsn(cls, dsn: str) -> "HttpTransport":
    return cls(dsn=Dsn.parse(dsn))

  def _auth_header(self) -> str:
    header = _AUTH_TEMPLATE.format(
      version=__version__,
      timestamp=int(time.time()),
      key=self.dsn.public_key,
    )
    if self.dsn.secret_key:
      header += f", sentry_secret={self.dsn.secret_key}"
    return header

  def send(self, report: Report) -> None:
    if self.dsn.is_noop:
      return

    payload = sentry_payload(report)
    data = json.dumps(payload, default=str).encode("utf-8")
    _logger.debug("Sending event %s to %s", report.event_id, self.dsn.store_url)

    req = request.Request(
      self.dsn.store_url,
      data=data,
      headers={
        "Content-Type": "application/json",
        "X-Sentry-Auth": self._auth_header(),
      },
      method="POST",
    )

    try:
      # The response body (the stored event id) is not needed.
      request.urlopen(req, timeout=self.timeout_seconds)  # nosec B310
    except (error.URLError, error.HTTPError, TimeoutError, OSError) as exc:
      _logger.warning(
        "sentrylog HTTP transport failed to deliver event %s to %s: %s",
        report.event_id,
        self.dsn.host,
        exc,
      )
