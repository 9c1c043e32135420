"""
A transaction is one request/response exchange with a device: a single command byte is written,
and the response is collected until it ends with the terminator, the deadline passes or the stream
signals end-of-data.

The deadline is measured once, from the moment the command has been written, and is not extended by
partial reads, so no transaction takes much longer than the configured timeout however the response
trickles in. Whatever was captured is the result of the transaction, complete frame or not.
"""
import logging
import time
from enum import Enum

from serial_relay.conduit.base import Conduit
from serial_relay.support.mixins import CommonEqualityMixin, StringerMixin

logger = logging.getLogger(__name__)

DEFAULT_TERMINATOR = b"\n"
DEFAULT_TIMEOUT = 0.1
# serial backends may truncate a read timeout to whole milliseconds
READ_TIMEOUT_RESOLUTION = 0.001


class TransactionStatus(Enum):
    COMPLETE = "complete"          # the response ended with the terminator
    TIMEOUT = "timeout"            # the deadline passed first
    END_OF_DATA = "end_of_data"    # the stream had no more data to give
    READ_ERROR = "read_error"
    WRITE_ERROR = "write_error"    # the command was never sent


class TransactionResult(CommonEqualityMixin, StringerMixin):
    """
    The outcome of one transaction.
    :param port the identifier of the device port
    :param command the command byte written
    :param status how the transaction ended
    :param data the bytes captured, possibly empty
    :param elapsed seconds from the end of the write to the end of the read
    """

    def __init__(self, port, command: int, status: TransactionStatus, data=b"", elapsed=0.0):
        self.port = port
        self.command = command
        self.status = status
        self.data = bytes(data)
        self.elapsed = elapsed

    @property
    def abandoned(self) -> bool:
        return self.status is TransactionStatus.WRITE_ERROR

    @property
    def timed_out(self) -> bool:
        return self.status is TransactionStatus.TIMEOUT

    @property
    def cut_short(self) -> bool:
        """ the transaction ended before its deadline without a complete frame. """
        return self.status in (TransactionStatus.WRITE_ERROR, TransactionStatus.READ_ERROR,
                               TransactionStatus.END_OF_DATA)


def ends_with_terminator(buffer, terminator: bytes) -> bool:
    """
    Determines if the buffer holds a complete frame. A buffer shorter than the terminator
    never matches, nor does an empty terminator.
    >>> ends_with_terminator(b"ok\\n", b"\\n")
    True
    >>> ends_with_terminator(b"\\n", b"\\r\\n")
    False
    >>> ends_with_terminator(b"", b"\\n")
    False
    """
    length = len(terminator)
    return 0 < length <= len(buffer) and buffer[-length:] == terminator


class TransactionExecutor:
    """
    Runs transactions against a device conduit.
    :param terminator the byte sequence that ends a response frame
    :param timeout the time allowed in seconds for the response, from the end of the write
    :param clock a monotonic clock returning seconds
    """

    def __init__(self, terminator: bytes=DEFAULT_TERMINATOR, timeout=DEFAULT_TIMEOUT, clock=time.monotonic):
        self.terminator = bytes(terminator)
        self.timeout = timeout
        self.clock = clock

    def execute(self, conduit: Conduit, port, command: int) -> TransactionResult:
        """
        Writes the command and collects the response.
        Device errors are logged and described by the result status, never raised.
        """
        try:
            conduit.output.write(bytes((command,)))
        except OSError as e:
            logger.error("error writing command 0x%02x to port %s: %s" % (command, port, e))
            return TransactionResult(port, command, TransactionStatus.WRITE_ERROR)

        start = self.clock()
        deadline = start + self.timeout
        buffer = bytearray()
        status = self._read_response(conduit, port, command, buffer, deadline)
        elapsed = self.clock() - start

        if status is TransactionStatus.TIMEOUT:
            logger.warning("timeout waiting for the response to 0x%02x on port %s, data: %r"
                           % (command, port, bytes(buffer)))
        else:
            logger.debug("command 0x%02x on port %s: %s after %.1fms, data: %r"
                         % (command, port, status.value, elapsed * 1000, bytes(buffer)))
        return TransactionResult(port, command, status, buffer, elapsed)

    def _read_response(self, conduit: Conduit, port, command, buffer: bytearray, deadline) -> TransactionStatus:
        """ reads into buffer until the frame is complete or the deadline passes. """
        source = conduit.input
        while True:
            if ends_with_terminator(buffer, self.terminator):
                return TransactionStatus.COMPLETE
            remaining = deadline - self.clock()
            if remaining <= 0:
                return TransactionStatus.TIMEOUT
            try:
                conduit.read_timeout = remaining
                chunk = source.read(max(1, conduit.in_waiting))
            except OSError as e:
                logger.error("error reading the response to 0x%02x from port %s: %s" % (command, port, e))
                return TransactionStatus.READ_ERROR
            if chunk:
                buffer += chunk
            elif self.clock() < deadline - READ_TIMEOUT_RESOLUTION:
                # an empty read that returned early means the stream has ended
                return TransactionStatus.END_OF_DATA
