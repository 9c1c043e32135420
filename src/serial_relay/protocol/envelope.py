"""
The record relayed to the network for each device response, and its wire format.

On the wire an envelope is one UTF-8 JSON object per datagram:

    {"port": "/dev/ttyUSB0", "data": "b2sK", "duration_microseconds": 10234}

`data` is the raw response in standard base64 and `duration_microseconds` is the time from
writing the command to the end of the response, always in whole microseconds.
"""
import base64
import binascii
import json
from collections import namedtuple

MICROSECONDS_PER_SECOND = 1000000


class EnvelopeFormatError(ValueError):
    """ Raised when a datagram does not hold a well-formed envelope. """


def encode_payload(raw: bytes) -> str:
    """
    >>> encode_payload(b"ok\\n")
    'b2sK'
    >>> encode_payload(b"")
    ''
    """
    return base64.b64encode(bytes(raw)).decode('ascii')


def decode_payload(text: str) -> bytes:
    """
    >>> decode_payload('b2sK')
    b'ok\\n'
    """
    return base64.b64decode(text, validate=True)


def to_microseconds(seconds) -> int:
    """
    >>> to_microseconds(0.0102345)
    10234
    """
    return int(seconds * MICROSECONDS_PER_SECOND)


class Envelope(namedtuple('Envelope', ['port', 'data', 'duration_microseconds'])):
    """
    An immutable record of one captured response.
    :param port the identifier of the port the response came from
    :param data the response bytes, base64 encoded
    :param duration_microseconds time taken by the transaction
    """
    __slots__ = ()

    @property
    def payload(self) -> bytes:
        """ the raw response bytes """
        return decode_payload(self.data)

    def to_wire(self) -> bytes:
        return json.dumps(self._asdict()).encode('utf-8')

    @classmethod
    def from_wire(cls, datagram: bytes):
        try:
            record = json.loads(datagram.decode('utf-8'))
            port = record['port']
            data = record['data']
            duration = record['duration_microseconds']
        except (ValueError, KeyError, TypeError) as e:
            raise EnvelopeFormatError("malformed envelope %r" % datagram) from e
        if not isinstance(port, str) or not isinstance(data, str) \
                or not isinstance(duration, int) or isinstance(duration, bool):
            raise EnvelopeFormatError("envelope fields have the wrong types: %r" % record)
        try:
            decode_payload(data)
        except binascii.Error as e:
            raise EnvelopeFormatError("envelope data is not base64: %r" % data) from e
        return cls(port, data, duration)


def build_envelope(port, raw: bytes, elapsed) -> Envelope:
    """
    Packages a captured response.
    :param port: the port identifier
    :param raw: the bytes captured, possibly empty
    :param elapsed: the transaction duration in seconds
    """
    return Envelope(port, encode_payload(raw), to_microseconds(elapsed))
