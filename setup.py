"""
Packages the serial relay. Run the relay with `serial-relay [ports]` once installed, or `python -m serial_relay`.

Tests are run with pytest, which collects the *_test.py modules beside the code:
    pip install -e .[test]
    pytest src
"""

from setuptools import setup

setup(
    name='serial-relay-py',
    version='0.0.1',
    description='Polls serial devices with single byte commands and relays the responses as UDP datagrams.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['serial_relay', 'serial_relay.conduit', 'serial_relay.config', 'serial_relay.protocol',
              'serial_relay.relay', 'serial_relay.support'],
    package_data={'serial_relay.config': ['*.cfg']},
    python_requires='>=3.6',
    install_requires=[
        'pyserial',
        'configobj',
    ],
    extras_require={
        'test': [
            'pytest',
            'PyHamcrest',
            'timeout-decorator',
        ]
    },
    entry_points={
        'console_scripts': [
            'serial-relay=serial_relay.cli:main',
        ]
    },
    zip_safe=False,
)
