import os
import tempfile
import unittest

from configobj import ConfigObjError
from hamcrest import assert_that, calling, equal_to, is_, raises

from serial_relay.config.config import BridgeSettings, CONFIG_DIRECTORY, config_filename, config_flavor, \
    load_config, load_config_file_base, map_os_name, parse_command, parse_terminator, settings_from_config


class ConfigTestCase(unittest.TestCase):

    def setUp(self):
        self.home = tempfile.TemporaryDirectory()
        self.addCleanup(self.home.cleanup)

    def write(self, name, text):
        path = os.path.join(self.home.name, name)
        with open(path, 'w') as f:
            f.write(text)
        return path

    def load(self, file=None):
        return load_config(file, user_directory=self.home.name)

    def test_config_file_not_found(self):
        assert_that(calling(load_config_file_base).with_args('blah'), raises(IOError))

    def test_explicit_config_file_not_found(self):
        assert_that(calling(self.load).with_args(os.path.join(self.home.name, 'missing.cfg')), raises(IOError))

    def test_config_file_invalid_syntax(self):
        path = self.write('invalid_syntax.cfg', '[[[nested]]]\n')
        assert_that(calling(load_config_file_base).with_args(path),
                    raises(ConfigObjError, "Section too nested at line 1. at .*invalid_syntax.cfg"))

    def test_default_flavor_is_shipped(self):
        file = config_filename(config_flavor('serial_relay', 'default'), CONFIG_DIRECTORY)
        assert_that(os.path.exists(file), is_(True), "expected config path %s to exist" % file)

    def test_defaults(self):
        conf = self.load()
        assert_that(conf['ports'], is_([]))
        assert_that(conf['baudrate'], is_(115200))
        assert_that(conf['destination']['port'], is_(34254))
        assert_that(settings_from_config(conf), is_(equal_to(BridgeSettings())))

    def test_user_file_overrides_defaults(self):
        self.write('serial_relay.cfg', 'baudrate = 9600\n[destination]\nhost = 10.0.0.2\n')
        settings = settings_from_config(self.load())
        assert_that(settings.baudrate, is_(9600))
        assert_that(settings.host, is_('10.0.0.2'))
        assert_that(settings.port, is_(34254))

    def test_explicit_file_overrides_user_file(self):
        self.write('serial_relay.cfg', 'baudrate = 9600\n')
        path = self.write('site.cfg', 'baudrate = 19200\nports = /dev/ttyUSB0, /dev/ttyUSB1\n'
                                      'commands = 0x10, 17\nterminator = \\r\\n\nread_timeout_ms = 250\n'
                                      'forward_empty = False\n')
        settings = settings_from_config(self.load(path))
        assert_that(settings.baudrate, is_(19200))
        assert_that(settings.ports, is_(('/dev/ttyUSB0', '/dev/ttyUSB1')))
        assert_that(settings.commands, is_((0x10, 0x11)))
        assert_that(settings.terminator, is_(b"\r\n"))
        assert_that(settings.read_timeout, is_(0.25))
        assert_that(settings.forward_empty, is_(False))

    def test_single_port_is_a_list(self):
        path = self.write('site.cfg', 'ports = COM3\n')
        assert_that(settings_from_config(self.load(path)).ports, is_(('COM3',)))

    def test_invalid_value_fails_validation(self):
        path = self.write('site.cfg', 'baudrate = fast\n[destination]\nport = 70000\n')
        assert_that(calling(self.load).with_args(path),
                    raises(ConfigObjError, "failed validation: .*baudrate"))

    def test_command_must_fit_in_a_byte(self):
        path = self.write('site.cfg', 'commands = 0x100\n')
        assert_that(calling(settings_from_config).with_args(self.load(path)),
                    raises(ConfigObjError, "does not fit in a byte"))

    def test_commands_required(self):
        path = self.write('site.cfg', 'commands = ,\n')
        assert_that(calling(settings_from_config).with_args(self.load(path)),
                    raises(ConfigObjError, "at least one command"))

    def test_parse_command(self):
        assert_that(parse_command('0x05'), is_(5))
        assert_that(parse_command('0XfF'), is_(255))
        assert_that(parse_command('8'), is_(8))
        assert_that(calling(parse_command).with_args('five'), raises(ConfigObjError, "invalid command"))
        assert_that(calling(parse_command).with_args('-1'), raises(ConfigObjError))

    def test_parse_terminator(self):
        assert_that(parse_terminator('\\n'), is_(b"\n"))
        assert_that(parse_terminator('\\r\\n'), is_(b"\r\n"))
        assert_that(parse_terminator('\\x03'), is_(b"\x03"))
        assert_that(parse_terminator('END'), is_(b"END"))

    def test_map_os_name(self):
        assert_that(map_os_name('Windows'), is_('windows'))
        assert_that(map_os_name('Darwin'), is_('osx'))
        assert_that(map_os_name('darwin'), is_('osx'))


if __name__ == '__main__':  # pragma no cover
    unittest.main()
