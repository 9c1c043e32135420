import logging

from serial_relay.conduit.datagram_conduit import DatagramConduit
from serial_relay.protocol.envelope import Envelope
from serial_relay.relay.relay_queue import RelayQueue, RelayQueueClosed, RelayQueueEmpty
from serial_relay.support.async_loop import AsyncLoop

logger = logging.getLogger(__name__)


class NetworkForwarder(AsyncLoop):
    """
    Drains the relay queue on a background thread, sending each envelope as one datagram in the order
    dequeued. Delivery is best effort: a failed send is logged and counted, and the forwarder moves
    on to the next envelope.

    :param relay_queue the queue to drain
    :param conduit the datagram conduit to the destination, used only by this forwarder
    :param poll_interval how long in seconds a dequeue waits before checking for a stop request
    """

    def __init__(self, relay_queue: RelayQueue, conduit: DatagramConduit, poll_interval=0.25):
        super().__init__(name="forwarder")
        self.relay_queue = relay_queue
        self.conduit = conduit
        self.poll_interval = poll_interval
        self.sent = 0
        self.failures = 0

    def loop(self):
        try:
            envelope = self.relay_queue.dequeue(self.poll_interval)
        except RelayQueueEmpty:
            return
        except RelayQueueClosed:
            logger.info("relay queue closed, forwarder stopping")
            self.request_stop()
            return
        self.forward(envelope)

    def forward(self, envelope: Envelope) -> bool:
        """
        Sends one envelope.
        :return: True if the datagram was sent
        """
        try:
            self.conduit.send(envelope.to_wire())
        except OSError as e:
            self.failures += 1
            logger.warning("error sending the response from %s: %s" % (envelope.port, e))
            return False
        self.sent += 1
        return True
