"""
The serial-relay command: polls serial devices and relays each response to a UDP destination
until interrupted.
"""
import argparse
import logging

from configobj import ConfigObjError

from serial_relay.bridge import BridgeError, RelayBridge
from serial_relay.conduit.serial_conduit import serial_port_info
from serial_relay.config.config import BridgeSettings, load_config, settings_from_config
from serial_relay.relay.coordinator import ShutdownCoordinator
from serial_relay.relay.stats import TransactionStats

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s'


def port_number(value):
    port = int(value)
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError("%s is not a valid port number" % value)
    return port


def get_args(argv=None):
    parser = argparse.ArgumentParser(prog='serial-relay',
                                     description="Polls serial devices and relays their responses as UDP datagrams.")
    parser.add_argument('ports', nargs='*', help="the serial ports to poll, replacing the configured ports")
    parser.add_argument('-c', '--config', help="a configuration file, overriding the default and user files")
    parser.add_argument('--host', help="the destination host")
    parser.add_argument('--port', type=port_number, help="the destination UDP port")
    parser.add_argument('-b', '--baud', type=int, help="the serial baudrate")
    parser.add_argument('--list-ports', action='store_true', help="list the available serial ports and exit")
    parser.add_argument('-v', '--verbose', action='store_true', help="log every transaction")
    return parser.parse_args(argv)


def apply_args(settings: BridgeSettings, args) -> BridgeSettings:
    """ overrides the configured settings with those given on the command line. """
    if args.ports:
        settings.ports = tuple(args.ports)
    if args.host:
        settings.host = args.host
    if args.port:
        settings.port = args.port
    if args.baud:
        settings.baudrate = args.baud
    if args.verbose:
        settings.log_level = 'DEBUG'
    return settings


def configure_logging(level='INFO'):
    logging.basicConfig(format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def list_ports():
    for info in serial_port_info():
        print("%s\t%s" % (info[0], info[1]))


def main(argv=None):
    """
    Runs the relay.
    :return: the exit status: 0 after a clean shutdown, 1 when the relay could not be set up
    """
    args = get_args(argv)
    if args.list_ports:
        list_ports()
        return 0

    configure_logging()
    try:
        settings = apply_args(settings_from_config(load_config(args.config)), args)
    except (ConfigObjError, OSError) as e:
        logger.error("unable to load the configuration: %s" % e)
        return 1
    logging.getLogger().setLevel(settings.log_level)
    logger.debug("settings: %s" % settings)

    coordinator = ShutdownCoordinator()
    stats = TransactionStats()
    coordinator.events += stats
    try:
        bridge = RelayBridge.open(settings, coordinator.events)
    except BridgeError as e:
        logger.error(e)
        return 1

    coordinator.install_signal_handlers()
    coordinator.run(bridge)
    for line in stats.summary():
        logger.info(line)
    logger.info("forwarded %d envelopes, %d failed" % (bridge.forwarder.sent, bridge.forwarder.failures))
    return 0
