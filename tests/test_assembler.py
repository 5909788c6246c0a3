import io
import sys
import urllib.request

from errortypes import new  # type: ignore[import]
from sentrylog.assembler import EventAssembler  # type: ignore[import]
from sentrylog.attributes import AltDestination, ErrorArg, Fingerprint  # type: ignore[import]
from sentrylog.config import ClientConfig  # type: ignore[import]
from sentrylog.frames import capture_stack  # type: ignore[import]
from sentrylog.models import DiagnosticEvent, Severity  # type: ignore[import]

PREFIX = b"E1017 10:00:00.000000 4242 test_assembler.py:1] "


def _config(**overrides):
  values = dict(project="shop", server_name="web-1", logger_name="shop/main.py")
  values.update(overrides)
  return ClientConfig(**values)


def _event(message=b"test message", *data, stack=None):
  return DiagnosticEvent(
    severity=Severity.ERROR,
    message=PREFIX + message,
    stack=capture_stack(skip=1) if stack is None else stack,
    data=data,
  )


class _FakeRequest:
  def __init__(self, body):
    self.url = "https://shop.example.com/cart?id=7&ref=mail"
    self.method = "POST"
    self.headers = {"Content-Type": "application/json", "Cookie": "session=abc", "Accept": ["a", "b"]}
    self.body = body


def test_assemble_fills_report_identity():
  report, destination = EventAssembler(_config()).assemble(_event())

  assert destination == ""
  assert report.project == "shop"
  assert report.level == "error"
  assert report.server_name == "web-1"
  assert report.logger == "shop/main.py"
  assert report.message == "test message"
  assert len(report.exception) == 1
  assert report.fingerprint is None
  assert report.extra == {}
  assert report.event_id


def test_assemble_merges_data_later_keys_win():
  event = _event(b"boom", {"user": "a", "cart": 1}, {"user": "b"})

  report, _ = EventAssembler(_config()).assemble(event)

  assert report.extra == {"Data": {"user": "b", "cart": 1}}


def test_assemble_selects_alternate_destination():
  event = _event(b"boom", AltDestination("https://key@alt.example.com/2"))

  _, destination = EventAssembler(_config()).assemble(event)

  assert destination == "https://key@alt.example.com/2"


def test_explicit_fingerprint_wins_over_derived_one():
  event = _event(b"boom", Fingerprint("checkout", "payment"))

  report, _ = EventAssembler(_config(fingerprinting=True)).assemble(event)

  assert report.fingerprint == ["checkout", "payment"]


def test_fingerprint_from_stack_when_enabled():
  stack, line = capture_stack(), sys._getframe().f_lineno
  event = _event(b"boom", stack=stack)

  report, _ = EventAssembler(_config(fingerprinting=True)).assemble(event)

  assert report.fingerprint == [
    f"{report.exception[0].frames[-1].filename} in test_fingerprint_from_stack_when_enabled at line {line}"
  ]
  again, _ = EventAssembler(_config(fingerprinting=True)).assemble(event)
  assert again.fingerprint == report.fingerprint


def test_fingerprint_unset_when_disabled():
  report, _ = EventAssembler(_config(fingerprinting=False)).assemble(_event())
  assert report.fingerprint is None


def test_assemble_records_request():
  body = io.BytesIO(b'{"items": 3}')
  body.read()
  event = _event(b"boom", _FakeRequest(body))

  report, _ = EventAssembler(_config()).assemble(event)

  req = report.request
  assert req is not None
  assert req.url == "https://shop.example.com/cart?id=7&ref=mail"
  assert req.method == "POST"
  assert req.query_string == "id=7&ref=mail"
  assert req.cookies == "session=abc"
  assert "Cookie" not in req.headers
  assert req.headers["Accept"] == "a,b"
  # Seeked back to the start before reading.
  assert req.data == '{"items": 3}'


def test_assemble_records_urllib_request():
  request = urllib.request.Request(
    "http://shop.example.com/search?q=shoes",
    data=b"payload",
    headers={"Cookie": "a=1", "X-Trace": "t"},
    method="PUT",
  )

  report, _ = EventAssembler(_config()).assemble(_event(b"boom", request))

  assert report.request.method == "PUT"
  assert report.request.query_string == "q=shoes"
  assert report.request.cookies == "a=1"
  assert report.request.headers == {"X-trace": "t"}
  assert report.request.data == "payload"


def test_assemble_with_error_prefixes_message():
  report, _ = EventAssembler(_config()).assemble(
    _event(b"could not save", ErrorArg(new("disk full")))
  )

  assert report.message == "disk full\n\ncould not save"
  assert [r.type for r in report.exception] == ["disk full", "disk full"]


def test_report_serializes_to_json():
  report, _ = EventAssembler(_config()).assemble(_event(b"boom", {"n": 1}))

  data = report.model_dump(mode="json")

  assert set(data) >= {
    "event_id", "project", "message", "timestamp", "level", "logger",
    "server_name", "exception", "request", "extra", "tags", "fingerprint",
  }
  frame = data["exception"][0]["frames"][-1]
  assert set(frame) == {"abs_path", "filename", "function", "module", "lineno", "in_app"}
