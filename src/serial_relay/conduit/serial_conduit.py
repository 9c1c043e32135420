"""
Implements a conduit over a serial port.
"""

import logging

import serial
from serial.tools import list_ports

from serial_relay.conduit.base import Conduit

logger = logging.getLogger(__name__)

DEFAULT_BAUDRATE = 115200


class SerialConduit(Conduit):
    """
    A conduit that provides comms via a serial port.
    """

    def __init__(self, ser: serial.Serial):
        self.ser = ser
        # patch flushing since this causes a lockup if the serial is disconnected during
        # the flush.
        ser.flush = self._no_flush

    def _no_flush(self, *args, **kwargs):
        pass

    @property
    def target(self):
        return self.ser

    @property
    def input(self):
        return self.ser

    @property
    def output(self):
        return self.ser

    @property
    def open(self) -> bool:
        return self.ser.is_open

    @property
    def read_timeout(self):
        return self.ser.timeout

    @read_timeout.setter
    def read_timeout(self, value):
        self.ser.timeout = value

    @property
    def in_waiting(self) -> int:
        return self.ser.in_waiting

    def close(self):
        self.ser.close()


def open_serial_conduit(port, baudrate=DEFAULT_BAUDRATE, **kwargs) -> SerialConduit:
    """
    Opens the named serial port. All arguments are passed directly to `serial.Serial`
    :raises serial.SerialException: when the port cannot be opened
    """
    ser = serial.Serial(port, baudrate, **kwargs)
    logger.info("opened serial port %s at %d baud" % (port, baudrate))
    return SerialConduit(ser)


def serial_ports():
    """
    Returns a generator for all available serial port device names.
    """
    for port in serial_port_info():
        yield port[0]


def serial_port_info():
    """
    :return: a tuple of serial port info tuples,
    :rtype:
    """
    return tuple(list_ports.comports())
