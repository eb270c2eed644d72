"""Recurring tasks: run a cycle, wait the interval, run again.

A task waits only after its run completes, so it never overlaps itself;
different tasks run in their own daemon threads and may overlap each other.
The wait function is injectable so tests can drive cycles without sleeping.
"""

import logging
import threading
from typing import Callable, List, Tuple, Type

LOG = logging.getLogger("mergebot.scheduler")

# wait(seconds) -> True when the task should stop
WaitFn = Callable[[float], bool]


class RecurringTask:
    """Runs func every interval_seconds until stopped.

    Exceptions from func are logged and the next run happens as usual,
    except for the types listed in fatal, which stop the task and are kept
    in error.
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], object],
        interval_seconds: float,
        stop_event: threading.Event | None = None,
        wait: WaitFn | None = None,
        fatal: Tuple[Type[BaseException], ...] = (),
    ) -> None:
        self.name = name
        self.interval_seconds = interval_seconds
        self.error: BaseException | None = None
        self.runs = 0
        self._func = func
        self._stop = stop_event or threading.Event()
        self._wait = wait or self._stop.wait
        self._fatal = fatal
        self._thread: threading.Thread | None = None

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def run_once(self) -> None:
        """Run one cycle. Non-fatal errors are logged, fatal ones re-raised."""
        self.runs += 1
        try:
            self._func()
        except self._fatal:
            raise
        except Exception as e:
            LOG.exception("%s: cycle failed: %s", self.name, e)

    def run(self) -> None:
        """Loop until stopped or a fatal error occurs."""
        LOG.info("%s: started (every %ss)", self.name, self.interval_seconds)
        while not self._stop.is_set():
            try:
                self.run_once()
            except self._fatal as e:
                LOG.error("%s: fatal error, stopping: %s", self.name, e)
                self.error = e
                self._stop.set()
                break
            if self._wait(self.interval_seconds):
                break
        LOG.info("%s: stopped", self.name)

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name=self.name, daemon=True)
        self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


class Scheduler:
    """Group of recurring tasks sharing one stop event."""

    def __init__(self) -> None:
        self.stop_event = threading.Event()
        self.tasks: List[RecurringTask] = []

    def add(
        self,
        name: str,
        func: Callable[[], object],
        interval_seconds: float,
        fatal: Tuple[Type[BaseException], ...] = (),
    ) -> RecurringTask:
        task = RecurringTask(name, func, interval_seconds, stop_event=self.stop_event, fatal=fatal)
        self.tasks.append(task)
        return task

    def start(self) -> None:
        for task in self.tasks:
            task.start()

    def wait(self, poll_seconds: float = 1.0) -> BaseException | None:
        """Block until stopped. Returns the fatal error that stopped a task, if any."""
        while not self.stop_event.wait(poll_seconds):
            pass
        for task in self.tasks:
            task.join(timeout=poll_seconds)
        return next((t.error for t in self.tasks if t.error is not None), None)

    def stop(self) -> None:
        self.stop_event.set()

    def run_once(self) -> None:
        """Run every task's cycle once in order, in the calling thread."""
        for task in self.tasks:
            task.run_once()
