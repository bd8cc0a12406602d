"""
Build Executor

Builds units one at a time in the resolved order:
- each build's output is captured to <log_dir>/<unit>.log
- a failed build is recorded and the run moves on to the next unit
- failures are appended to <log_dir>/failed-builds.log as they happen
- an interrupt (SIGINT or interrupt()) stops the run from waiting; the
  build in flight keeps running in the background and no further unit
  is started
- after an interrupt the console is handed back to the caller; the build
  in flight keeps writing to its own log only
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from distbuild.errors import AggregateBuildError, BuildError
from distbuild.lib.tee import release_console, tee_and_eval

logger = logging.getLogger(__name__)

FAILURE_LOG_NAME = "failed-builds.log"

# Seconds between checks for an interrupt while waiting
POLL_INTERVAL = 0.2


class ExecutorState(Enum):
    """Lifecycle of a build run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


class UnitStatus(Enum):
    """Status of one unit's build."""
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class BuildOutcome:
    """Result of building one unit."""
    unit: str
    status: UnitStatus
    started_at: datetime
    duration_seconds: float = 0.0
    error: Optional[BuildError] = None

    @property
    def succeeded(self) -> bool:
        return self.status == UnitStatus.SUCCESS


class BuildExecutor:
    """
    Drives a build order through a build operation on a background worker.

    `build` is called with a unit name and signals failure by raising.
    """

    def __init__(
        self,
        build: Callable[[str], Any],
        log_dir: Path,
        handle_signals: bool = True,
    ):
        self.build = build
        self.log_dir = Path(log_dir)
        self.handle_signals = handle_signals

        self.state = ExecutorState.IDLE
        self.results: List[BuildOutcome] = []
        self.failures: List[BuildError] = []

        self._lock = threading.Lock()
        self._wake = threading.Event()
        self._interrupted = threading.Event()
        self._finished = False
        self._closed = False
        self._worker: Optional[threading.Thread] = None
        self._previous_handler = None

    @property
    def failure_log_path(self) -> Path:
        return self.log_dir / FAILURE_LOG_NAME

    def interrupt(self) -> None:
        """Stop waiting for the remaining units."""
        self._interrupted.set()
        self._wake.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for a build left in flight by an interrupt.

        Returns True once the worker has exited.
        """
        if self._worker is None:
            return True
        self._worker.join(timeout)
        return not self._worker.is_alive()

    def _build_one(self, unit: str) -> BuildOutcome:
        started_at = datetime.now()
        start = time.monotonic()
        error = None

        try:
            tee_and_eval(self.log_dir, unit, lambda: self.build(unit))
        except BuildError as e:
            error = e
        except Exception as e:
            error = BuildError(unit, e)

        return BuildOutcome(
            unit=unit,
            status=UnitStatus.FAILED if error else UnitStatus.SUCCESS,
            started_at=started_at,
            duration_seconds=time.monotonic() - start,
            error=error,
        )

    def _work(self, order: Sequence[str], failure_log) -> None:
        try:
            for unit in order:
                if self._interrupted.is_set():
                    break

                outcome = self._build_one(unit)

                with self._lock:
                    if self._closed:
                        # The run already returned; nobody reads this outcome
                        return
                    self.results.append(outcome)
                    if outcome.error is not None:
                        self.failures.append(outcome.error)
                        logger.error(str(outcome.error))
                        failure_log.write(f"{outcome.error}\n")
                        failure_log.flush()
                    else:
                        logger.info(f"Built {unit} ({outcome.duration_seconds:.1f}s)")
        finally:
            with self._lock:
                self._finished = True
            self._wake.set()

    def _install_signal_handler(self) -> bool:
        if not self.handle_signals:
            return False
        if threading.current_thread() is not threading.main_thread():
            return False

        def handler(signum, frame):
            self.interrupt()

        self._previous_handler = signal.signal(signal.SIGINT, handler)
        return True

    def run(self, order: Sequence[str]) -> List[BuildOutcome]:
        """
        Build every unit of `order` in sequence.

        Returns:
            The outcome of every attempted unit

        Raises:
            AggregateBuildError: if any unit failed to build
            OSError: if the log directory or failure log cannot be created
        """
        if self.state is not ExecutorState.IDLE:
            raise RuntimeError(f"executor already {self.state.value}")

        self.log_dir.mkdir(parents=True, exist_ok=True)
        failure_log = open(self.failure_log_path, "w", encoding="utf-8")

        order = list(order)
        logger.info(f"Building {len(order)} units")
        self.state = ExecutorState.RUNNING

        handler_installed = self._install_signal_handler()
        self._worker = threading.Thread(
            target=self._work,
            args=(order, failure_log),
            name="build-worker",
            daemon=True,
        )
        self._worker.start()

        try:
            while not self._wake.wait(POLL_INTERVAL):
                pass
        finally:
            if handler_installed:
                signal.signal(signal.SIGINT, self._previous_handler or signal.SIG_DFL)

            with self._lock:
                self._closed = True
                if self._finished:
                    self.state = ExecutorState.COMPLETED
                else:
                    self.state = ExecutorState.INTERRUPTED
                    self._interrupted.set()
                failures = list(self.failures)
                results = list(self.results)
                failure_log.close()

        if self.state is ExecutorState.INTERRUPTED:
            # The build in flight still holds the process streams
            release_console()
            print("interrupt received", flush=True)
        else:
            print("finished builds", flush=True)

        if failures:
            raise AggregateBuildError(
                failures,
                summary=f"{len(failures)} of {len(results)} attempted builds failed",
            )
        return results
