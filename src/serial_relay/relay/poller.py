"""
Polls one device with the command set, relaying every response.
"""
import logging
from enum import Enum
from typing import Optional

from serial_relay.conduit.base import Conduit
from serial_relay.protocol.envelope import Envelope, build_envelope
from serial_relay.protocol.transaction import TransactionExecutor, TransactionResult
from serial_relay.relay.relay_queue import RelayQueue, RelayQueueClosed
from serial_relay.support.async_loop import AsyncLoop
from serial_relay.support.events import EventSource

logger = logging.getLogger(__name__)

DEFAULT_COMMANDS = (0x05, 0x06, 0x07, 0x08)


class EmptyResponsePolicy(Enum):
    """
    What to do with a transaction that captured no bytes. A transaction whose command could not be
    written never produces an envelope under either policy.
    """
    FORWARD = "forward"     # relay an envelope with an empty payload
    SUPPRESS = "suppress"   # relay nothing


class PortPoller(AsyncLoop):
    """
    Cycles through the command set against a single device on a background thread, for as long as
    the poller runs. Each pass of the loop sends every command once, in order, and each transaction
    finishes before the next begins. The stop request is checked before every command, so no new
    transaction starts once the poller is asked to stop.

    Every TransactionResult is fired on `events`. Device errors are logged by the executor and
    polling carries on with the next command. A transaction that ends early without a complete frame
    still takes its whole read window, the remainder spent idle.

    :param port the identifier of the device port, carried in each envelope
    :param conduit the device conduit, used only by this poller
    :param executor runs each transaction
    :param relay_queue receives the envelopes
    :param commands the ordered command bytes
    :param policy the EmptyResponsePolicy
    :param events the event source fired with each transaction result
    """

    def __init__(self, port, conduit: Conduit, executor: TransactionExecutor, relay_queue: RelayQueue,
                 commands=DEFAULT_COMMANDS, policy=EmptyResponsePolicy.FORWARD, events=None):
        super().__init__(name="poller %s" % port)
        self.port = port
        self.conduit = conduit
        self.executor = executor
        self.relay_queue = relay_queue
        self.commands = tuple(commands)
        self.policy = policy
        self.events = events if events is not None else EventSource()

    def loop(self):
        for command in self.commands:
            if not self.running():
                return
            self.poll(command)

    def poll(self, command):
        """
        Runs one transaction and relays its envelope.
        :return: the envelope relayed, or None
        """
        result = self.executor.execute(self.conduit, self.port, command)
        self.events.fire(result)
        if result.cut_short:
            self.idle(self.executor.timeout - result.elapsed)
        envelope = self.envelope_for(result)
        if envelope is None:
            return None
        try:
            self.relay_queue.enqueue(envelope)
        except RelayQueueClosed:
            logger.info("relay queue closed, stopped polling %s" % self.port)
            self.request_stop()
            return None
        return envelope

    def idle(self, seconds):
        """ waits out the unused part of a read window, returning early when asked to stop. """
        if seconds > 0:
            self.stop_event.wait(seconds)

    def envelope_for(self, result: TransactionResult) -> Optional[Envelope]:
        if result.abandoned:
            return None
        if not result.data and self.policy is EmptyResponsePolicy.SUPPRESS:
            logger.debug("suppressed empty response to 0x%02x from %s" % (result.command, self.port))
            return None
        return build_envelope(result.port, result.data, result.elapsed)
