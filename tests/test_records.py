import sys

from errortypes import LazyError, new, wrap  # type: ignore[import]
from sentrylog.attributes import ErrorArg, FormatString  # type: ignore[import]
from sentrylog.config import ClientConfig  # type: ignore[import]
from sentrylog.frames import capture_stack  # type: ignore[import]
from sentrylog.models import DiagnosticEvent, Severity  # type: ignore[import]
from sentrylog.records import ExceptionListBuilder  # type: ignore[import]

CONFIG = ClientConfig(project="test")

PREFIX = b"E1017 10:00:00.000000 4242 test_records.py:1] "


def _build(message, stack, *data):
  event = DiagnosticEvent(severity=Severity.ERROR, message=message, stack=stack, data=data)
  return ExceptionListBuilder(CONFIG).build(event)


def _in_app(frames):
  return [f for f in frames if f.in_app]


def test_simple_event():
  method_name = "test_simple_event"
  stack, error_line = capture_stack(), sys._getframe().f_lineno

  records, message = _build(PREFIX + b"test message", stack)

  assert message == "test message"
  assert len(records) == 1

  ex = records[0]
  assert ex.type == "test message"
  assert ex.value.startswith(f"{method_name}:{error_line}"), ex.value
  assert len(_in_app(ex.frames)) == 1

  fr = ex.frames[-1]
  assert fr.function == method_name
  assert fr.lineno == error_line
  assert fr.abs_path.endswith("test_records.py")
  assert fr.in_app


def test_message_with_details_is_split_at_first_colon():
  stack = capture_stack()

  records, _ = _build(PREFIX + b"test message: more details: even more", stack)

  assert records[0].type == "test message"
  assert records[0].value.startswith("more details: even more (test_message_with_details")


def test_format_string_becomes_type():
  stack = capture_stack()

  records, message = _build(
    PREFIX + b"test message: more details",
    stack,
    FormatString("test %s: %s"),
  )

  assert message == "test message: more details"
  assert len(records) == 1
  assert records[0].type == "test"
  assert records[0].value.startswith("more details")


def test_raw_error_event():
  method_name = "test_raw_error_event"
  # A raw error carries no stack of its own.
  err = ValueError("test message: more details")
  stack, error_line = capture_stack(), sys._getframe().f_lineno

  records, message = _build(PREFIX + b"test message: more details", stack, ErrorArg(err))

  assert message == "test message: more details"
  assert len(records) == 2, "one record from the log call, one from the raw error"

  ex = records[0]
  assert ex.type == "test message"
  assert ex.value.startswith(f"more details ({method_name}:{error_line}")
  assert len(_in_app(ex.frames)) == 1

  ex = records[1]
  assert ex.type == "test message"
  assert ex.value == "more details"
  assert ex.frames is None


def test_bare_exception_annotation_is_treated_as_error():
  stack = capture_stack()

  records, _ = _build(PREFIX + b"boom", stack, KeyError())

  assert len(records) == 2
  assert records[1].type == "KeyError"


def test_wrapped_error_event():
  method_name = "test_wrapped_error_event"
  err, error_line = new("test message"), sys._getframe().f_lineno
  wrapped, wrapped_line = wrap(err), sys._getframe().f_lineno
  stack, log_line = capture_stack(), sys._getframe().f_lineno

  records, message = _build(PREFIX + b"test message", stack, ErrorArg(wrapped))

  assert message.startswith("test message")
  assert len(records) == 3, "log call first, then the original error, then the wrapper"

  ex = records[0]
  assert ex.type == "test message"
  assert ex.value.startswith(f"{method_name}:{log_line}"), ex.value
  assert ex.frames[-1].lineno == log_line

  ex = records[1]
  assert ex.type == "test message"
  assert ex.value.startswith(f"{method_name}:{error_line}"), ex.value
  assert [f.lineno for f in ex.frames] == [error_line]

  ex = records[2]
  assert ex.type == "test message"
  assert [f.lineno for f in ex.frames] == [wrapped_line, error_line]
  for fr in ex.frames:
    assert fr.function == method_name
    assert fr.abs_path.endswith("test_records.py")

  # Each layer outward carries at least as many frames as the one before it.
  counts = [len(r.frames) for r in records[1:]]
  assert counts == sorted(counts)


def test_headline_prefers_context_over_terminal_cause():
  stack = capture_stack()
  try:
    try:
      raise TimeoutError("operation cancelled")
    except TimeoutError as exc:
      raise RuntimeError("loading user profile") from exc
  except RuntimeError as exc:
    err = exc

  records, message = _build(PREFIX + b"request failed", stack, ErrorArg(err))

  assert message == "loading user profile\n\nrequest failed"
  assert [r.type for r in records] == [
    "loading user profile",
    "operation cancelled",
    "loading user profile",
  ]
  assert records[1].frames[-1].function == "test_headline_prefers_context_over_terminal_cause"


def test_error_chain_depth_is_bounded():
  err = new("layer 0")
  for i in range(1, 30):
    err = wrap(err, f"layer {i}")
  stack = capture_stack()

  records, _ = _build(PREFIX + b"deep", stack, ErrorArg(err))

  # Ten chain links plus the log call.
  assert len(records) == 11


def test_message_without_prefix_is_unchanged():
  records, message = _build("plain message", ())

  assert message == "plain message"
  # No call-site stack means no call-site record.
  assert records == []


def test_chain_of_causes_built_on_demand_is_walked_fully():
  stack = capture_stack()

  records, _ = _build(PREFIX + b"lazy", stack, ErrorArg(LazyError(0, 6)))

  # Six chain links plus the log call.
  assert len(records) == 7
  assert records[1].type == "layer 5"
  assert records[-1].type == "layer 4"
