"""Individual key sources queried for a host.

Each source takes the query context, the host and its HostInfo and returns a
list of KeyRecord. A source that cannot run raises SourceUnavailable; the
aggregator turns that into a log line and carries on with the next source.
"""
import logging

from .decoder import decode_product_key
from .errors import MalformedBlob, NoRegistryAccess
from .records import NOT_FOUND, KeyRecord, KeySource, license_status_text

WINDOWS_NT_KEY = r'SOFTWARE\Microsoft\Windows NT\CurrentVersion'
PRIMARY_REGISTRY_PATH = WINDOWS_NT_KEY
DEFAULT_PRODUCT_KEY_PATHS = (
    WINDOWS_NT_KEY + r'\DefaultProductKey',
    WINDOWS_NT_KEY + r'\DefaultProductKey2',
)
DIGITAL_PRODUCT_ID = 'DigitalProductId'

PRODUCT_PROPERTIES = ('Name', 'ProductKeyID', 'PartialProductKey', 'LicenseStatus')
SERVICE_PROPERTIES = ('OA3xOriginalProductKey', 'OA3xOriginalProductKeyDescription')


def _partial_key_records(context, host, info, wmi_class, source):
    products = context.management.query_licensing_products(
        host, wmi_class, PRODUCT_PROPERTIES, where='PartialProductKey IS NOT NULL')
    records = []
    for product in products:
        partial_key = product.get('PartialProductKey')
        if not partial_key:
            continue
        records.append(KeyRecord.for_host(
            host, info,
            product_name=product.get('Name') or '',
            product_id=product.get('ProductKeyID') or '',
            product_key=partial_key,
            license_status=license_status_text(product.get('LicenseStatus')),
            source=source.label(),
        ))
    logging.info(f'{wmi_class} returned {len(records)} key(s) for {host.hostname}')
    return records


def query_licensing_products(context, host, info):
    """Partial keys and license status from SoftwareLicensingProduct."""
    return _partial_key_records(context, host, info, 'SoftwareLicensingProduct', KeySource.LICENSING_PRODUCT)


def query_legacy_licensing_products(context, host, info):
    """Partial keys from OfficeSoftwareProtectionProduct, present on older Office installs."""
    return _partial_key_records(
        context, host, info, 'OfficeSoftwareProtectionProduct', KeySource.LEGACY_LICENSING_PRODUCT)


def query_licensing_service(context, host, info):
    """The firmware-embedded original product key from SoftwareLicensingService."""
    services = context.management.query_licensing_products(host, 'SoftwareLicensingService', SERVICE_PROPERTIES)
    records = []
    for service in services:
        key = service.get('OA3xOriginalProductKey')
        if not key:
            logging.debug(f'No OA3x original product key on {host.hostname}')
            continue
        records.append(KeyRecord.for_host(
            host, info,
            product_name=service.get('OA3xOriginalProductKeyDescription') or '',
            product_key=key,
            source=KeySource.LICENSING_SERVICE.label(),
        ))
    return records


def registry_paths(options):
    paths = [PRIMARY_REGISTRY_PATH]
    if not options.skip_default_product_keys:
        paths.extend(DEFAULT_PRODUCT_KEY_PATHS)
    return paths


def _read_string(context, host, path, name):
    try:
        return context.management.read_string_value(host, path, name) or ''
    except NoRegistryAccess as e:
        logging.debug(f'{e}')
        return ''


def query_registry_key(context, host, info, path, value_name=DIGITAL_PRODUCT_ID):
    """Decode the DigitalProductId under one registry path.

    Always returns exactly one record: the decoded key, or a placeholder saying
    the value was not found or could not be read.
    """
    source = KeySource.REGISTRY.label(path)
    try:
        blob = context.management.read_binary_value(host, path, value_name)
    except NoRegistryAccess as e:
        logging.warning(f'{e}')
        return KeyRecord.for_host(host, info, product_key=f'Error: {e}', source=source, valid=False)

    product_key = None
    if blob is not None:
        try:
            product_key = decode_product_key(blob)
        except MalformedBlob as e:
            logging.warning(f'HKLM\\{path}\\{value_name} on {host.hostname}: {e}')
    if product_key is None:
        logging.info(f'No {value_name} under HKLM\\{path} on {host.hostname}')
        return KeyRecord.for_host(host, info, product_key=NOT_FOUND, source=source, valid=False)

    return KeyRecord.for_host(
        host, info,
        product_name=_read_string(context, host, path, 'ProductName'),
        product_id=_read_string(context, host, path, 'ProductId'),
        product_key=product_key,
        source=source,
    )


def query_registry_keys(context, host, info):
    return [query_registry_key(context, host, info, path) for path in registry_paths(context.options)]
