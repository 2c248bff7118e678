import threading
import logging
from typing import Callable, Optional

class PeriodicTask(threading.Thread):
    """Runs a callable on a fixed cadence until stopped.

    The wait between ticks is interruptible, so `stop()` takes effect
    immediately. Tests can call `tick()` directly without starting the thread.
    """

    def __init__(self, interval: float, action: Optional[Callable[[], None]] = None,
                 name: Optional[str] = None, run_immediately: bool = True):
        super().__init__(daemon=True, name=name)  # Run as daemon thread
        self.interval = interval
        self.run_immediately = run_immediately
        self.logger = logging.getLogger(__name__)
        self._action = action
        self._stop_event = threading.Event()

    def stop(self):
        """Stop the task; the current tick, if any, is allowed to finish."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def tick(self):
        """Performs one unit of work."""
        if self._action is not None:
            self._action()

    def run(self):
        """Main loop."""
        if not self.run_immediately:
            self._stop_event.wait(self.interval)
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception as e:
                self.logger.error(f"Error in periodic task {self.name}: {str(e)}")
            self._stop_event.wait(self.interval)
