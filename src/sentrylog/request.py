"""
Request capture, used to attach the HTTP request being served to a report
when one is passed along with the log call.
"""

from __future__ import annotations

import urllib.request
from typing import Any, Dict, Iterable, Tuple
from urllib.parse import urlsplit

from .models import RequestInfo


def is_http_request(obj: Any) -> bool:
  if isinstance(obj, urllib.request.Request):
    return True
  return all(hasattr(obj, attr) for attr in ("url", "method", "headers"))


def build_http_request(req: Any) -> RequestInfo:
  """
  Snapshot a request for the report.

  The body is read, so the request must not be reused by the caller.
  """
  if isinstance(req, urllib.request.Request):
    url = req.full_url
    method = req.get_method()
    header_items: Iterable[Tuple[str, Any]] = req.header_items()
    body = req.data
  else:
    url = str(req.url)
    method = str(req.method)
    header_items = _items(req.headers)
    body = _body_of(req)

  headers, cookies = _split_headers(header_items)
  return RequestInfo(
    url=url,
    method=method,
    headers=headers,
    cookies=cookies,
    query_string=urlsplit(url).query,
    data=_read_body(body),
  )


def _items(headers: Any) -> Iterable[Tuple[str, Any]]:
  if headers is None:
    return []
  if hasattr(headers, "items"):
    return list(headers.items())
  return list(headers)


def _split_headers(items: Iterable[Tuple[str, Any]]) -> Tuple[Dict[str, str], str]:
  headers: Dict[str, str] = {}
  cookies = ""
  for key, value in items:
    if isinstance(value, (list, tuple)):
      value = ",".join(str(v) for v in value)
    # Cookies have their own section.
    if key.lower() == "cookie":
      cookies = str(value)
      continue
    headers[key] = str(value)
  return headers, cookies


def _body_of(req: Any) -> Any:
  for attr in ("body", "data", "stream"):
    if hasattr(req, attr):
      return getattr(req, attr)
  return None


def _read_body(body: Any) -> str:
  if body is None:
    return ""
  try:
    if hasattr(body, "read"):
      if callable(getattr(body, "seek", None)):
        try:
          body.seek(0)
        except (OSError, ValueError):
          # Unseekable streams are read from their current position.
          pass
      body = body.read()
    if isinstance(body, (bytes, bytearray)):
      return bytes(body).decode("utf-8", errors="replace")
    return str(body)
  except Exception as exc:
    return f"<{exc}>"
