import socket
import threading
import time
import unittest
from unittest.mock import Mock

import serial
import timeout_decorator
from hamcrest import assert_that, calling, greater_than_or_equal_to, is_, less_than, raises

from serial_relay.bridge import BridgeError, RelayBridge
from serial_relay.config.config import BridgeSettings
from serial_relay.protocol.envelope import Envelope
from serial_relay.protocol.transaction import TransactionStatus
from serial_relay.protocol.transaction_test import ScriptedDevice
from serial_relay.relay.coordinator import CoordinatorState, ShutdownCoordinator
from serial_relay.relay.poller import EmptyResponsePolicy
from serial_relay.relay.stats import TransactionStats
from serial_relay.support.async_loop_test import debug_timeout


class RelayBridgeOpenTest(unittest.TestCase):

    def setUp(self):
        self.devices = {"A": ScriptedDevice(), "B": ScriptedDevice()}
        self.destination = Mock()
        self.datagram_factory = Mock(return_value=self.destination)

    def serial_factory(self, port, baudrate):
        if port not in self.devices:
            raise serial.SerialException("could not open port %s" % port)
        return self.devices[port]

    def open(self, **kwargs):
        settings = BridgeSettings(**kwargs)
        return RelayBridge.open(settings, serial_factory=self.serial_factory, datagram_factory=self.datagram_factory)

    def test_builds_a_poller_per_port(self):
        sut = self.open(ports=("A", "B"), commands=(0x05,), queue_capacity=7, forward_empty=False,
                        host="10.1.1.1", port=9999)
        assert_that([p.port for p in sut.pollers], is_(["A", "B"]))
        assert_that([p.conduit for p in sut.pollers], is_([self.devices["A"], self.devices["B"]]))
        assert_that(sut.pollers[0].relay_queue, is_(sut.relay_queue))
        assert_that(sut.pollers[1].relay_queue, is_(sut.relay_queue))
        assert_that(sut.pollers[0].commands, is_((0x05,)))
        assert_that(sut.pollers[0].policy, is_(EmptyResponsePolicy.SUPPRESS))
        assert_that(sut.relay_queue.capacity, is_(7))
        assert_that(sut.forwarder.conduit, is_(self.destination))
        assert_that(sut.forwarder.relay_queue, is_(sut.relay_queue))
        self.datagram_factory.assert_called_once_with("10.1.1.1", 9999)

    def test_no_ports(self):
        assert_that(calling(self.open), raises(BridgeError, "no serial ports"))
        self.datagram_factory.assert_not_called()

    def test_serial_failure_closes_opened_ports(self):
        assert_that(calling(self.open).with_args(ports=("A", "missing", "B")),
                    raises(BridgeError, "unable to open serial port missing"))
        assert_that(self.devices["A"].closed, is_(True))
        assert_that(self.devices["B"].closed, is_(False))
        self.datagram_factory.assert_not_called()

    def test_destination_failure_closes_ports(self):
        self.datagram_factory.side_effect = socket.gaierror("unknown host")
        assert_that(calling(self.open).with_args(ports=("A", "B")),
                    raises(BridgeError, "unable to open the destination"))
        assert_that(self.devices["A"].closed, is_(True))
        assert_that(self.devices["B"].closed, is_(True))

    def test_close_closes_every_conduit(self):
        sut = self.open(ports=("A", "B"))
        self.devices["A"].close = Mock(side_effect=OSError("gone"))
        sut.close()
        self.devices["A"].close.assert_called_once()
        assert_that(self.devices["B"].closed, is_(True))
        self.destination.close.assert_called_once()

    @timeout_decorator.timeout(debug_timeout(3))
    def test_stop_before_start(self):
        sut = self.open(ports=("A",))
        assert_that(sut.stop(0.5), is_(True))
        assert_that(sut.relay_queue.closed, is_(True))
        assert_that(sut.running(), is_(False))


class RelayBridgeScenarioTest(unittest.TestCase):
    """
    Two devices polled with a single command: A answers within 10ms, B never answers.
    """

    def setUp(self):
        self.receiver = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.receiver.bind(("127.0.0.1", 0))
        self.receiver.settimeout(2)
        self.devices = {
            "A": ScriptedDevice({0x05: [(0.01, b"ok\n")]}),
            "B": ScriptedDevice(),
        }
        settings = BridgeSettings(ports=("A", "B"), commands=(0x05,), read_timeout=0.1,
                                  host="127.0.0.1", port=self.receiver.getsockname()[1])
        self.coordinator = ShutdownCoordinator(publish_interval=0.01, join_timeout=1.0)
        self.stats = TransactionStats()
        self.coordinator.events += self.stats
        self.sut = RelayBridge.open(settings, self.coordinator.events,
                                    serial_factory=lambda port, baudrate: self.devices[port])

    def tearDown(self):
        self.coordinator.cancel()
        self.receiver.close()

    def first_envelope_from_each_port(self):
        envelopes = {}
        while len(envelopes) < 2:
            datagram, _ = self.receiver.recvfrom(4096)
            envelope = Envelope.from_wire(datagram)
            envelopes.setdefault(envelope.port, envelope)
        return envelopes

    @timeout_decorator.timeout(debug_timeout(5))
    def test_relays_both_ports_and_stops_on_cancel(self):
        runner = threading.Thread(target=self.coordinator.run, args=(self.sut,))
        runner.start()
        envelopes = self.first_envelope_from_each_port()
        self.coordinator.cancel()
        runner.join()

        a = envelopes["A"]
        assert_that(a.payload, is_(b"ok\n"))
        assert_that(a.duration_microseconds, greater_than_or_equal_to(9000))
        assert_that(a.duration_microseconds, less_than(100000))
        b = envelopes["B"]
        assert_that(b.payload, is_(b""))
        assert_that(b.duration_microseconds, greater_than_or_equal_to(99000))

        assert_that(self.coordinator.state, is_(CoordinatorState.STOPPED))
        assert_that(self.stats.count("B", TransactionStatus.TIMEOUT), greater_than_or_equal_to(1))
        assert_that(self.devices["A"].closed, is_(True))
        assert_that(self.devices["B"].closed, is_(True))
        assert_that(self.sut.forwarder.conduit.open, is_(False))

        written = [len(d.written) for d in self.devices.values()]
        time.sleep(0.2)
        assert_that([len(d.written) for d in self.devices.values()], is_(written))


if __name__ == '__main__':  # pragma no cover
    unittest.main()
