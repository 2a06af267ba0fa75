"""Hosts, key sources and the records produced for them."""
import enum
from dataclasses import dataclass

UNREACHABLE = 'Unreachable'
NOT_FOUND = 'Not found'


@dataclass(frozen=True)
class Host:
    """A host under query, resolved once per attempt."""
    requested: str
    hostname: str
    ip_address: str
    is_local: bool


@dataclass(frozen=True)
class HostInfo:
    """Facts about a host gathered once from Win32_OperatingSystem, Win32_ComputerSystem and Win32_BIOS."""
    os_description: str = ''
    os_version: str = ''
    manufacturer: str = ''
    model: str = ''
    serial_number: str = ''


class KeySource(enum.Enum):
    LICENSING_PRODUCT = 'SoftwareLicensingProduct'
    LICENSING_SERVICE = 'SoftwareLicensingService'
    LEGACY_LICENSING_PRODUCT = 'OfficeSoftwareProtectionProduct'
    REGISTRY = 'Registry'
    EXTERNAL_TOOL = 'ProduKey'
    MANAGEMENT = 'WMI'

    def label(self, path=None):
        """Text used in the Source column. Registry records are labelled by their path."""
        if self is KeySource.REGISTRY:
            return path
        return self.value


class LicenseStatus(enum.IntEnum):
    UNLICENSED = 0
    LICENSED = 1
    OOB_GRACE = 2
    OOT_GRACE = 3
    NON_GENUINE_GRACE = 4
    NOTIFICATION = 5
    EXTENDED_GRACE = 6


LICENSE_STATUS_TEXT = {
    LicenseStatus.UNLICENSED: 'UNLICENSED',
    LicenseStatus.LICENSED: 'Licensed',
    LicenseStatus.OOB_GRACE: 'OOB Grace Period',
    LicenseStatus.OOT_GRACE: 'Out-Of-Tolerance Grace Period',
    LicenseStatus.NON_GENUINE_GRACE: 'Non-Genuine Grace Period',
    LicenseStatus.NOTIFICATION: 'NOTIFICATION',
    LicenseStatus.EXTENDED_GRACE: 'Extended Grace',
}


def license_status_text(code):
    """Map a LicenseStatus code from SoftwareLicensingProduct to its display text.

    Unknown codes come back as the raw number.
    """
    if code is None:
        return ''
    try:
        return LICENSE_STATUS_TEXT[LicenseStatus(int(code))]
    except ValueError:
        return str(code)


OEM_COLUMNS = ('Manufacturer', 'Model')

COLUMNS = (
    'ComputerName',
    'IPAddress',
    'ProductName',
    'ProductID',
    'ProductKey',
    'SLPLicenseStatus',
    'OSDescription',
    'OSVersion',
    'Manufacturer',
    'Model',
    'SerialNumber',
    'Source',
)


def output_columns(skip_oem_info=False):
    if skip_oem_info:
        return tuple(c for c in COLUMNS if c not in OEM_COLUMNS)
    return COLUMNS


@dataclass(frozen=True)
class KeyRecord:
    computer_name: str
    ip_address: str = ''
    product_name: str = ''
    product_id: str = ''
    product_key: str = ''
    license_status: str = ''
    os_description: str = ''
    os_version: str = ''
    manufacturer: str = ''
    model: str = ''
    serial_number: str = ''
    source: str = ''
    # False for unreachable, error and "not found" placeholders
    valid: bool = True

    @classmethod
    def for_host(cls, host, info, **fields):
        """Build a record carrying the host identity and its HostInfo."""
        info = info or HostInfo()
        return cls(
            computer_name=host.hostname,
            ip_address=host.ip_address,
            os_description=info.os_description,
            os_version=info.os_version,
            manufacturer=info.manufacturer,
            model=info.model,
            serial_number=info.serial_number,
            **fields,
        )

    @classmethod
    def unreachable(cls, host):
        return cls(
            computer_name=host.requested,
            ip_address=UNREACHABLE,
            product_name=UNREACHABLE,
            product_id=UNREACHABLE,
            product_key=UNREACHABLE,
            license_status=UNREACHABLE,
            os_description=UNREACHABLE,
            os_version=UNREACHABLE,
            manufacturer=UNREACHABLE,
            model=UNREACHABLE,
            serial_number=UNREACHABLE,
            source=UNREACHABLE,
            valid=False,
        )

    @classmethod
    def management_error(cls, host, error):
        return cls(
            computer_name=host.hostname,
            ip_address=host.ip_address,
            product_key=f'Error: {error}',
            source=KeySource.MANAGEMENT.label(),
            valid=False,
        )

    def as_row(self, skip_oem_info=False):
        """Project the record onto the output columns."""
        row = {
            'ComputerName': self.computer_name,
            'IPAddress': self.ip_address,
            'ProductName': self.product_name,
            'ProductID': self.product_id,
            'ProductKey': self.product_key,
            'SLPLicenseStatus': self.license_status,
            'OSDescription': self.os_description,
            'OSVersion': self.os_version,
            'Manufacturer': self.manufacturer,
            'Model': self.model,
            'SerialNumber': self.serial_number,
            'Source': self.source,
        }
        if skip_oem_info:
            for column in OEM_COLUMNS:
                del row[column]
        return row
