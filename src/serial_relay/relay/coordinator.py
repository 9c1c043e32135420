"""
Supervises the relay: starts the workers, waits for cancellation and tears everything down.
"""
import logging
import signal
import threading
from enum import Enum

from serial_relay.support.events import QueuedEventSource

logger = logging.getLogger(__name__)


class CoordinatorState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class ShutdownCoordinator:
    """
    Owns the lifetime of a pipeline, which is anything with start(), running(), stop(timeout) and
    close() - normally a RelayBridge.

    run() is called on the main thread. It starts the pipeline and then waits for cancel(), which is
    safe to call from any thread or from a signal handler. While waiting it publishes the diagnostic
    events queued by the workers on `events`, so their handlers run on this thread. Once cancelled,
    or if the pipeline stops by itself, the workers are asked to stop, given `join_timeout` seconds
    to do so, and the pipeline's resources are closed. Workers still blocked in I/O after that are
    abandoned.

    STOPPED is terminal: a stopped coordinator cannot run again.
    """

    def __init__(self, publish_interval=0.5, join_timeout=1.0):
        self.publish_interval = publish_interval
        self.join_timeout = join_timeout
        self.events = QueuedEventSource()
        self.state = CoordinatorState.RUNNING
        self._cancelled = threading.Event()
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self):
        """ requests shutdown. """
        self._cancelled.set()

    def install_signal_handlers(self, signals=(signal.SIGINT, signal.SIGTERM)):
        """ cancels on any of the given signals. Must be called from the main thread. """
        for signum in signals:
            signal.signal(signum, self._on_signal)

    def _on_signal(self, signum, frame):
        logger.info("received %s, shutting down" % signal.Signals(signum).name)
        self.cancel()

    def run(self, pipeline):
        """
        Runs the pipeline until cancelled.
        :raises RuntimeError: if this coordinator has already stopped
        """
        if self.state is CoordinatorState.STOPPED:
            raise RuntimeError("the coordinator has stopped and cannot run again")
        try:
            pipeline.start()
            while not self._cancelled.wait(self.publish_interval):
                self.events.publish()
                if not pipeline.running():
                    logger.warning("relay stopped unexpectedly, shutting down")
                    break
        finally:
            self.stop(pipeline)

    def stop(self, pipeline):
        """ stops and closes the pipeline. Only the first call has any effect. """
        with self._lock:
            if self.state is CoordinatorState.STOPPED:
                return False
            self.state = CoordinatorState.STOPPED
        self._cancelled.set()
        try:
            pipeline.stop(self.join_timeout)
        finally:
            pipeline.close()
            self.events.publish()
        logger.info("relay stopped")
        return True
