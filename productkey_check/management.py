"""Access to a host's WMI management interface and its registry.

WMI classes and the service control go through the ``wmi`` package; the
registry is opened with ``winreg.ConnectRegistry``, which needs the Remote
Registry service on remote hosts.
"""
import contextlib
import logging
import sys

from .errors import ManagementUnavailable, NoRegistryAccess, SourceUnavailable
from .records import HostInfo

if sys.platform == 'win32':
    import pythoncom
    import winreg
    import wmi

REMOTE_REGISTRY_SERVICE = 'RemoteRegistry'
RUNNING = 'Running'
STOPPED = 'Stopped'

CIMV2 = 'root/cimv2'


@contextlib.contextmanager
def com_apartment():
    """COM has to be initialised, and released again, in every thread that talks to WMI."""
    if sys.platform != 'win32':
        yield
        return
    pythoncom.CoInitialize()
    try:
        yield
    finally:
        pythoncom.CoUninitialize()


def _text(value):
    return '' if value is None else str(value).strip()


class WmiManagement:
    """WMI and registry access for one run, shared read-only across hosts."""

    def __init__(self, credential=None):
        self.credential = credential

    def _connect(self, host, namespace=CIMV2):
        if host.is_local:
            return wmi.WMI(namespace=namespace)
        kwargs = {'computer': host.hostname, 'namespace': namespace}
        if self.credential:
            kwargs['user'] = self.credential.username
            kwargs['password'] = self.credential.password
        return wmi.WMI(**kwargs)

    def query_host_info(self, host):
        """Read OS and OEM details. Raises ManagementUnavailable when WMI is unreachable."""
        try:
            connection = self._connect(host)
            operating_system = connection.query('SELECT Caption, Version FROM Win32_OperatingSystem')[0]
        except (wmi.x_wmi, pythoncom.com_error, IndexError) as e:
            raise ManagementUnavailable(f'WMI query of {host.hostname} failed: {e}') from e

        manufacturer = model = serial_number = ''
        try:
            computer = connection.query('SELECT Manufacturer, Model FROM Win32_ComputerSystem')[0]
            manufacturer, model = _text(computer.Manufacturer), _text(computer.Model)
        except (wmi.x_wmi, pythoncom.com_error, IndexError) as e:
            logging.warning(f'Win32_ComputerSystem unavailable on {host.hostname}: {e}')
        try:
            bios = connection.query('SELECT SerialNumber FROM Win32_BIOS')[0]
            serial_number = _text(bios.SerialNumber)
        except (wmi.x_wmi, pythoncom.com_error, IndexError) as e:
            logging.warning(f'Win32_BIOS unavailable on {host.hostname}: {e}')

        return HostInfo(
            os_description=_text(operating_system.Caption),
            os_version=_text(operating_system.Version),
            manufacturer=manufacturer,
            model=model,
            serial_number=serial_number,
        )

    def query_licensing_products(self, host, wmi_class, properties, where=None):
        """Return the instances of a licensing class as plain dicts."""
        wql = f"SELECT {', '.join(properties)} FROM {wmi_class}"
        if where:
            wql += f' WHERE {where}'
        try:
            rows = self._connect(host).query(wql)
        except (wmi.x_wmi, pythoncom.com_error) as e:
            raise SourceUnavailable(f'{wmi_class} query on {host.hostname} failed: {e}') from e
        return [{name: getattr(row, name, None) for name in properties} for row in rows]

    def _open_key(self, host, path):
        machine = None if host.is_local else f'\\\\{host.hostname}'
        try:
            root = winreg.ConnectRegistry(machine, winreg.HKEY_LOCAL_MACHINE)
        except OSError as e:
            raise NoRegistryAccess(f'Cannot connect to the registry of {host.hostname}: {e}') from e
        try:
            return winreg.OpenKey(root, path, 0, winreg.KEY_READ)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise NoRegistryAccess(f'Cannot open HKLM\\{path} on {host.hostname}: {e}') from e
        finally:
            winreg.CloseKey(root)

    def _read_value(self, host, path, name, expected_type):
        key = self._open_key(host, path)
        if key is None:
            return None
        try:
            with key:
                value, value_type = winreg.QueryValueEx(key, name)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise NoRegistryAccess(f'Cannot read HKLM\\{path}\\{name} on {host.hostname}: {e}') from e
        if value_type not in expected_type:
            logging.debug(f'HKLM\\{path}\\{name} on {host.hostname} has unexpected type {value_type}')
            return None
        return value

    def read_binary_value(self, host, path, name):
        """Return the bytes of a REG_BINARY value, or None when it does not exist."""
        value = self._read_value(host, path, name, (winreg.REG_BINARY,))
        return None if value is None else bytes(value)

    def read_string_value(self, host, path, name):
        return self._read_value(host, path, name, (winreg.REG_SZ, winreg.REG_EXPAND_SZ))

    def _service(self, host, name):
        try:
            services = self._connect(host).Win32_Service(Name=name)
        except (wmi.x_wmi, pythoncom.com_error) as e:
            raise SourceUnavailable(f'Cannot query service {name} on {host.hostname}: {e}') from e
        if not services:
            raise SourceUnavailable(f'Service {name} not found on {host.hostname}')
        return services[0]

    def query_service_state(self, host, name):
        return self._service(host, name).State

    def set_service_state(self, host, name, state):
        service = self._service(host, name)
        try:
            if state == RUNNING:
                result, = service.StartService()
            else:
                result, = service.StopService()
        except (wmi.x_wmi, pythoncom.com_error) as e:
            raise SourceUnavailable(f'Cannot set {name} to {state} on {host.hostname}: {e}') from e
        # StartService returns 10 when the service is already running
        accepted = (0, 10) if state == RUNNING else (0,)
        if result not in accepted:
            raise SourceUnavailable(f'Setting {name} to {state} on {host.hostname} returned {result}')
