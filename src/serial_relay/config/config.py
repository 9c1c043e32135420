"""
Loads the relay configuration.

Configuration files are layered. In order of increasing precedence:
- the default flavour shipped with this package, serial_relay.default.cfg
- the platform flavour, e.g. serial_relay.linux.cfg, when present
- the user's ~/serial_relay.cfg, when present
- a configuration file named on the command line

The merged configuration is validated against serial_relay.schema.cfg, which also supplies defaults
for anything left unset.
"""
import codecs
import os
import platform

from configobj import ConfigObj, ConfigObjError, flatten_errors
from validate import Validator

from serial_relay.support.mixins import CommonEqualityMixin, StringerMixin

# The default extension for configuration files
config_extension = '.cfg'

CONFIG_NAME = 'serial_relay'
CONFIG_DIRECTORY = os.path.dirname(__file__)


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in a directory.
    """
    config_file = os.path.join(directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name.
    :param name:    The name of the base configuration
    :param subpart: The name of the specialization.
    :return: The ConfigObj for the configuration file, empty if there is no such file.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    config = load_config_file_base(file, False)
    return config


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def load_config(file=None, name=CONFIG_NAME, directory=CONFIG_DIRECTORY, user_directory='~'):
    """
    Loads and validates the layered configuration.
    :param file: an explicit configuration file, which must exist. Takes precedence over the others.
    :param name: the base name of the configuration files
    :param directory: the directory holding the default, platform and schema flavours
    :param user_directory: the directory holding the user's override
    :return: the validated ConfigObj
    :raises ConfigObjError: when a file cannot be parsed or the configuration is invalid
    :raises IOError: when the explicit file does not exist
    """
    default_config = config_flavor_file(name, directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    user_config = load_config_file_base(os.path.join(os.path.expanduser(user_directory), name + config_extension),
                                        must_exist=False)
    config = ConfigObj(configspec=config_filename(config_flavor(name, 'schema'), directory))
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    if file:
        config.merge(load_config_file_base(file))

    result = config.validate(Validator())
    if result is not True:
        problems = []
        for section_list, key, res in flatten_errors(config, result):
            location = '.'.join(section_list + [key] if key else section_list)
            problems.append("%s: %s" % (location, res if res is not False else 'missing'))
        raise ConfigObjError("the config file %s failed validation: %s" % (file or name, ', '.join(problems)))
    return config


def parse_terminator(text) -> bytes:
    """
    Converts a terminator written with backslash escapes to bytes.
    >>> parse_terminator('\\\\r\\\\n')
    b'\\r\\n'
    >>> parse_terminator('\\\\x03')
    b'\\x03'
    """
    return codecs.decode(text, 'unicode_escape').encode('latin-1')


def parse_command(value) -> int:
    """
    Converts a configured command to its byte value. Hex is written with a 0x prefix.
    >>> parse_command('0x05')
    5
    >>> parse_command('7')
    7
    """
    try:
        command = int(value, 16) if value.lower().startswith('0x') else int(value)
    except ValueError as e:
        raise ConfigObjError("invalid command %r" % value) from e
    if not 0 <= command <= 0xff:
        raise ConfigObjError("command %r does not fit in a byte" % value)
    return command


class BridgeSettings(CommonEqualityMixin, StringerMixin):
    """
    The settings for a relay, independent of where they came from.
    """

    def __init__(self, ports=(), baudrate=115200, commands=(0x05, 0x06, 0x07, 0x08), terminator=b"\n",
                 read_timeout=0.1, queue_capacity=100, host='127.0.0.1', port=34254, forward_empty=True,
                 log_level='INFO'):
        self.ports = tuple(ports)
        self.baudrate = baudrate
        self.commands = tuple(commands)
        self.terminator = terminator
        self.read_timeout = read_timeout
        self.queue_capacity = queue_capacity
        self.host = host
        self.port = port
        self.forward_empty = forward_empty
        self.log_level = log_level


def settings_from_config(conf) -> BridgeSettings:
    """
    Builds the settings from a validated configuration.
    :raises ConfigObjError: when the commands or terminator are invalid
    """
    commands = tuple(parse_command(str(c)) for c in conf['commands'])
    if not commands:
        raise ConfigObjError("at least one command is required")
    try:
        terminator = parse_terminator(conf['terminator'])
    except (UnicodeError, ValueError) as e:
        raise ConfigObjError("invalid terminator %r" % conf['terminator']) from e
    destination = conf['destination']
    return BridgeSettings(
        ports=conf['ports'],
        baudrate=conf['baudrate'],
        commands=commands,
        terminator=terminator,
        read_timeout=conf['read_timeout_ms'] / 1000.0,
        queue_capacity=conf['queue_capacity'],
        host=destination['host'],
        port=destination['port'],
        forward_empty=conf['forward_empty'],
        log_level=conf['log_level'],
    )
