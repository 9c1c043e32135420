import logging
import socket

logger = logging.getLogger(__name__)

ANY_LOCAL_ENDPOINT = ("0.0.0.0", 0)


class DatagramConduit:
    """
    An outbound, connectionless channel: a UDP socket bound to an ephemeral local endpoint and
    associated with a single remote endpoint. Each send() is one datagram.
    :param sock The bound, connected datagram socket
    """
    def __init__(self, sock: socket.socket):
        self.sock = sock

    @classmethod
    def connect(cls, host, port, local_endpoint=ANY_LOCAL_ENDPOINT):
        """
        Creates a datagram socket bound to the local endpoint and connected to host:port.
        :raises OSError: when the socket cannot be bound or the destination cannot be resolved
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(local_endpoint)
            sock.connect((host, port))
        except OSError:
            sock.close()
            raise
        logger.info("datagram socket %s connected to %s:%s" % (sock.getsockname(), host, port))
        return cls(sock)

    @property
    def open(self) -> bool:
        return self.sock.fileno() >= 0

    @property
    def target(self):
        return self.sock

    @property
    def local_endpoint(self):
        return self.sock.getsockname()

    @property
    def remote_endpoint(self):
        return self.sock.getpeername()

    def send(self, datagram: bytes) -> int:
        """ transmits one datagram to the remote endpoint.
            :raises OSError: when the datagram cannot be sent """
        return self.sock.send(datagram)

    def close(self):
        self.sock.close()
