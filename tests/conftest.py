import subprocess

import pytest

from productkey_check.config import Options, QueryContext
from productkey_check.errors import SourceUnavailable
from productkey_check.records import Host, HostInfo

HOST_INFO = HostInfo(
    os_description='Microsoft Windows 10 Pro',
    os_version='10.0.19045',
    manufacturer='Dell Inc.',
    model='OptiPlex 7090',
    serial_number='ABC1234',
)


def make_blob(top=0, low=(0xFF, 0x01), size=164):
    """A DigitalProductId-sized value with the key window at bytes 52..66."""
    blob = bytearray(size)
    for offset, value in enumerate(low):
        blob[52 + offset] = value
    blob[66] = top
    return bytes(blob)


class FakeManagement:
    """In-memory stand-in for WmiManagement.

    Values may be exceptions, which are raised when the value is read.
    """

    def __init__(self, host_info=HOST_INFO, products=None, binary=None, strings=None, service_state='Stopped'):
        self.host_info = host_info
        self.products = products or {}
        self.binary = binary or {}
        self.strings = strings or {}
        self.service_state = service_state
        self.set_error = None
        self.calls = []

    @staticmethod
    def _value(value):
        if isinstance(value, Exception):
            raise value
        return value

    def query_host_info(self, host):
        self.calls.append(('host_info', host.hostname))
        return self._value(self.host_info)

    def query_licensing_products(self, host, wmi_class, properties, where=None):
        self.calls.append(('products', wmi_class))
        if wmi_class not in self.products:
            raise SourceUnavailable(f'Invalid class {wmi_class}')
        return self._value(self.products[wmi_class])

    def read_binary_value(self, host, path, name):
        self.calls.append(('binary', path))
        return self._value(self.binary.get(path))

    def read_string_value(self, host, path, name):
        return self._value(self.strings.get((path, name)))

    def query_service_state(self, host, name):
        self.calls.append(('query_service', name))
        return self._value(self.service_state)

    def set_service_state(self, host, name, state):
        self.calls.append(('set_service', state))
        if self.set_error:
            raise self.set_error
        self.service_state = state


@pytest.fixture()
def local_host():
    return Host('localhost', 'WS01', '10.0.0.5', True)


@pytest.fixture()
def remote_host():
    return Host('pc42.corp.example', 'PC42', '10.0.0.42', False)


@pytest.fixture()
def management():
    return FakeManagement()


@pytest.fixture()
def context(management):
    return QueryContext(Options(skip_produkey=True), management)


class FakeRun:
    """Stands in for subprocess.run and writes the /scomma file ProduKey would."""

    def __init__(self, content=None, returncode=0, error=None):
        self.content = content
        self.returncode = returncode
        self.error = error
        self.commands = []

    def __call__(self, command, **kwargs):
        self.commands.append(command)
        if self.error:
            raise self.error
        if self.content is not None:
            with open(command[-1], 'w', encoding='utf-8') as f:
                f.write(self.content)
        return subprocess.CompletedProcess(command, self.returncode, stdout='', stderr='')
