"""
Background threads that repeatedly run a unit of work until asked to stop.
"""
import logging
import threading
import time

logger = logging.getLogger(__name__)


class AsyncLoop:
    """ Continually runs loop() on a background thread until stopped. Subclasses implement loop().
        Exceptions are logged and posted to a given handler
        The background thread is registered as a daemon, so a thread blocked in I/O
        never holds up process exit.
    """

    def __init__(self, log=logger, name=None):
        """
        :param log the logger for the loop's diagnostics
        :param name the name given to the background thread
        """
        self.name = name
        self.stop_event = threading.Event()
        self.background_thread = None
        self.logger = log

    def start(self):
        """
        Starts the background thread. Starting a loop that is already started does nothing.
        """
        if self.background_thread is None:
            t = threading.Thread(target=self._run, name=self.name, daemon=True)
            self.background_thread = t
            t.start()

    def exception_handler(self, e):
        self.logger.exception(e)

    def _run(self):
        """ The processing loop for the background thread.
             Invokes the callable for as long as the stop signal is not received.
        """
        self._do(self.startup)
        while self.running():
            self._do(self.loop)
        self._do(self.shutdown)
        self.logger.debug("background thread %s exiting" % self.name)

    def _do(self, callme):
        """ runs a function and captures any exceptions """
        try:
            time.sleep(0)
            callme()
        except Exception as e:
            time.sleep(0)
            self.exception_handler(e)

    def startup(self):
        """ template method called when the thread starts"""
        pass

    def loop(self):
        """ template method called repeatedly while the loop runs """
        raise NotImplementedError

    def shutdown(self):
        """ template method called when the thread exits """
        pass

    def running(self):
        return not self.stop_event.is_set()

    @property
    def alive(self):
        thread = self.background_thread
        return thread is not None and thread.is_alive()

    def request_stop(self):
        """ signals the loop to stop after the current iteration, without waiting for it. """
        self.stop_event.set()

    def stop(self, timeout=None):
        """
        Signals the loop to stop and waits for the background thread to exit.
        :param timeout: the longest time in seconds to wait for the thread. A thread still blocked
            after this time is abandoned.
        :return: True if the thread exited (or was never started)
        """
        self.request_stop()
        thread = self.background_thread
        self.background_thread = None
        if thread and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                self.logger.warning("background thread %s still busy after %ss, abandoning it" % (thread.name, timeout))
                return False
        return True
