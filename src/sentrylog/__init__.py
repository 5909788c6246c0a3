"""
sentrylog

Bridge between the standard logging module and an error-tracking service:
ERROR records are turned into multi-exception reports that reconstruct the
stack of the log call and of every error in the logged error's cause chain.
"""

__version__ = "0.1.0"

from .assembler import EventAssembler
from .attributes import AltDestination, ErrorArg, Fingerprint, FormatString, annotate
from .config import ClientConfig, ConfigurationError
from .dispatch import ReportDispatcher, capture_errors
from .logging_setup import setup_logging
from .models import DiagnosticEvent, ExceptionRecord, Report, Severity, StackFrame
from .records import ExceptionListBuilder

__all__ = [
  "AltDestination",
  "ClientConfig",
  "ConfigurationError",
  "DiagnosticEvent",
  "ErrorArg",
  "EventAssembler",
  "ExceptionListBuilder",
  "ExceptionRecord",
  "Fingerprint",
  "FormatString",
  "Report",
  "ReportDispatcher",
  "Severity",
  "StackFrame",
  "annotate",
  "capture_errors",
  "setup_logging",
]
