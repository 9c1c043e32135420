"""

Serial Relay

Polls serial devices with a fixed set of single byte commands and relays each response to a UDP
destination as a JSON envelope.

- Conduit: abstraction of a bi-directional channel. Serial ports are conduits; the outbound
  UDP socket is a DatagramConduit.
- TransactionExecutor: writes one command and reads the response until the terminator is seen,
  the read deadline passes or the stream ends.
- PortPoller: one background thread per serial port, cycling through the commands. Each response
  becomes an Envelope (port, base64 data, duration in microseconds).
- RelayQueue: bounded queue shared by the pollers. A full queue blocks the pollers.
- NetworkForwarder: a single background thread draining the queue, one datagram per envelope.
- ShutdownCoordinator: runs on the main thread, publishes transaction events and stops everything
  on SIGINT/SIGTERM.
- RelayBridge: wires the above together from the configured BridgeSettings.

Device and network errors are logged and the relay carries on. Only failing to open a serial port
or the destination at startup is fatal.
"""
