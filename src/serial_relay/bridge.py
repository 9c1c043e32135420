"""
Assembles the relay pipeline: one poller per serial port, a shared relay queue and the network forwarder.
"""
import logging
import time

from serial_relay.conduit.datagram_conduit import DatagramConduit
from serial_relay.conduit.serial_conduit import open_serial_conduit
from serial_relay.config.config import BridgeSettings
from serial_relay.protocol.transaction import TransactionExecutor
from serial_relay.relay.forwarder import NetworkForwarder
from serial_relay.relay.poller import EmptyResponsePolicy, PortPoller
from serial_relay.relay.relay_queue import RelayQueue

logger = logging.getLogger(__name__)


class BridgeError(Exception):
    """ the relay could not be set up. """


class RelayBridge:
    """
    The running parts of a relay. Create with RelayBridge.open(), then supervise with a ShutdownCoordinator.
    """

    def __init__(self, pollers, forwarder: NetworkForwarder, relay_queue: RelayQueue):
        self.pollers = list(pollers)
        self.forwarder = forwarder
        self.relay_queue = relay_queue

    @classmethod
    def open(cls, settings: BridgeSettings, events=None, serial_factory=open_serial_conduit,
             datagram_factory=DatagramConduit.connect):
        """
        Opens every serial port and the datagram conduit and builds the workers. Nothing is started.
        :param settings: the BridgeSettings
        :param events: the event source fired with every transaction result
        :param serial_factory: called as serial_factory(port, baudrate) to open each serial port
        :param datagram_factory: called as datagram_factory(host, port) to open the outbound conduit
        :raises BridgeError: when there are no ports, or a port or the destination cannot be opened.
            Anything already opened is closed again.
        """
        if not settings.ports:
            raise BridgeError("no serial ports given")
        conduits = []
        try:
            for port in settings.ports:
                conduits.append((port, serial_factory(port, settings.baudrate)))
        except (OSError, ValueError) as e:
            close_all(conduit for _, conduit in conduits)
            raise BridgeError("unable to open serial port %s: %s" % (port, e)) from e

        try:
            destination = datagram_factory(settings.host, settings.port)
        except OSError as e:
            close_all(conduit for _, conduit in conduits)
            raise BridgeError("unable to open the destination %s:%s: %s" % (settings.host, settings.port, e)) from e
        logger.info("relaying %d ports to %s:%s" % (len(conduits), settings.host, settings.port))

        relay_queue = RelayQueue(settings.queue_capacity)
        policy = EmptyResponsePolicy.FORWARD if settings.forward_empty else EmptyResponsePolicy.SUPPRESS
        pollers = [PortPoller(port, conduit, TransactionExecutor(settings.terminator, settings.read_timeout),
                              relay_queue, settings.commands, policy, events)
                   for port, conduit in conduits]
        return cls(pollers, NetworkForwarder(relay_queue, destination), relay_queue)

    @property
    def workers(self):
        return self.pollers + [self.forwarder]

    def start(self):
        self.forwarder.start()
        for poller in self.pollers:
            poller.start()

    def running(self):
        """ the relay is running while the forwarder and at least one poller are running. """
        return self.forwarder.running() and any(poller.running() for poller in self.pollers)

    def stop(self, timeout=None):
        """
        Stops the pollers, closes the relay queue and then stops the forwarder. Envelopes still queued
        are dropped.
        :param timeout: the longest time in seconds to wait for all the workers to exit
        :return: True if every worker exited in time
        """
        for poller in self.pollers:
            poller.request_stop()
        self.relay_queue.close()
        self.forwarder.request_stop()
        deadline = None if timeout is None else time.monotonic() + timeout
        stopped = True
        for worker in self.workers:
            remaining = None if deadline is None else max(0, deadline - time.monotonic())
            stopped = worker.stop(remaining) and stopped
        return stopped

    def close(self):
        """ closes the serial ports and the datagram conduit. """
        close_all([poller.conduit for poller in self.pollers] + [self.forwarder.conduit])


def close_all(conduits):
    for conduit in conduits:
        try:
            conduit.close()
        except OSError as e:
            logger.warning("error closing %s: %s" % (conduit, e))
