import sys

from serial_relay.cli import main

sys.exit(main())
