from abc import abstractmethod
from io import IOBase


class Conduit:
    """
    A conduit allows two-way communication with a device. It provides an file-like input endpoint and a
    file-like output endpoint. A conduit is owned by a single reader/writer at a time.
    """

    @property
    @abstractmethod
    def target(self):
        raise NotImplementedError

    @property
    @abstractmethod
    def input(self) -> IOBase:
        """ fetches the I/O stream that provides input.
            Callers can use the usual readXXX() methods. """
        raise NotImplementedError

    @property
    @abstractmethod
    def output(self) -> IOBase:
        """ fetches the I/O stream that provides output.
            Callers can use the usual writeXXX() methods. """
        raise NotImplementedError

    @property
    @abstractmethod
    def open(self) -> bool:
        """ determines if this conduit is open. When open, the streams provided by
            input and output can be read from/written to."""
        raise NotImplementedError

    @property
    @abstractmethod
    def read_timeout(self):
        """ the longest time in seconds a read from the input stream blocks waiting for data. """
        raise NotImplementedError

    @read_timeout.setter
    @abstractmethod
    def read_timeout(self, value):
        raise NotImplementedError

    @property
    def in_waiting(self) -> int:
        """ the number of bytes that can be read from input without blocking, when known. """
        return 0

    @abstractmethod
    def close(self):
        """
        Closes both the input and output streams.
        """
        raise NotImplementedError
