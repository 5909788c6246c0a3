from __future__ import annotations

import logging
import os
import queue
import threading
from typing import Callable, Optional

from .models import DiagnosticEvent

EventConsumer = Callable[[DiagnosticEvent], object]

_logger = logging.getLogger("sentrylog.queue")


class EventQueue:
  """
  In-process queue of diagnostic events.

  A single background worker thread drains a bounded queue and hands each
  event to the consumer, one at a time.

  The implementation is **multi-process aware**:
  - We track the process ID (PID) and detect when the process has forked.
  - Each process that emits events starts its own worker thread on demand.
  """

  def __init__(self, consumer: EventConsumer, maxsize: int = 1000) -> None:
    self._queue: "queue.Queue[DiagnosticEvent]" = queue.Queue(maxsize=maxsize)
    self._consumer = consumer
    self._thread: Optional[threading.Thread] = None
    self._stopped = threading.Event()
    # Track PID to detect forks and ensure a per-process worker thread.
    self._pid = os.getpid()
    self._lock = threading.Lock()

  def start(self) -> None:
    """
    Start the background worker thread.

    Safe to call multiple times and across forked processes:
    - In the same process: subsequent calls are no-ops once the thread is running.
    - In a child process after fork: we detect the PID change, reset internal
      thread state, and start a fresh worker thread for the child.
    """
    current_pid = os.getpid()
    with self._lock:
      if self._pid != current_pid:
        self._pid = current_pid
        self._stopped = threading.Event()
        self._thread = None

      if self._thread is not None and self._thread.is_alive():
        return

      self._thread = threading.Thread(
        target=self._run, name="sentrylog-queue", daemon=True
      )
      self._thread.start()

  def stop(self, timeout: float = 1.0) -> None:
    self._stopped.set()
    if self._thread and self._thread.is_alive():
      self._thread.join(timeout=timeout)

  def enqueue(self, event: DiagnosticEvent) -> None:
    """
    Enqueue an event for delivery, dropping it if the queue is full.
    """
    self.start()

    try:
      self._queue.put_nowait(event)
    except queue.Full:
      _logger.warning("sentrylog queue is full; dropping %s event", event.severity.value)

  def _run(self) -> None:
    while not self._stopped.is_set():
      try:
        event = self._queue.get(timeout=0.5)
      except queue.Empty:
        continue

      try:
        self._consumer(event)
      except Exception:
        # Logged on our own logger, which the handler never forwards.
        _logger.warning("sentrylog failed to process event", exc_info=True)
