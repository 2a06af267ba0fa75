"""Collect the product keys of a host from every source and merge them."""
import concurrent.futures
import logging
import os

from . import sources
from .errors import HostUnreachable, ManagementUnavailable, SourceUnavailable
from .hosts import ping_host, resolve_host
from .lease import RemoteRegistryLease
from .management import com_apartment
from .produkey import ProduKeyAdapter
from .records import KeyRecord

MANAGEMENT_SOURCES = (
    sources.query_licensing_products,
    sources.query_licensing_service,
    sources.query_legacy_licensing_products,
)


def filter_records(records, show_only_valid):
    if not show_only_valid:
        return list(records)
    return [record for record in records if record.valid]


class KeyAggregator:
    """Query one host at a time. Hosts share nothing but the read-only context."""

    def __init__(self, context, resolve=resolve_host, ping=ping_host, produkey=None):
        self.context = context
        self.resolve = resolve
        self.ping = ping
        options = context.options
        self.produkey = produkey or ProduKeyAdapter(options.produkey_path, options.timeout)

    def _run_source(self, source, host, info, records):
        name = getattr(source, '__name__', repr(source))
        try:
            found = source(self.context, host, info)
        except SourceUnavailable as e:
            logging.warning(f'{name} failed for {host.hostname}: {e}')
            return
        records.extend(found)

    def _check_reachable(self, host):
        if not host.is_local and not self.ping(host.hostname):
            raise HostUnreachable(f'{host.requested} did not answer ping')

    def _registry_dependent_sources(self):
        options = self.context.options
        dependent = []
        if not options.skip_reg_product_key:
            dependent.append(sources.query_registry_keys)
        if not options.skip_produkey:
            dependent.append(self.produkey.query)
        return dependent

    def collect(self, hostname_or_ip):
        """Return every record found for a host, placeholders included."""
        options = self.context.options
        host = self.resolve(hostname_or_ip)

        try:
            self._check_reachable(host)
        except HostUnreachable as e:
            logging.error(f'{e}')
            return [KeyRecord.unreachable(host)]

        try:
            info = self.context.management.query_host_info(host)
        except ManagementUnavailable as e:
            logging.error(f'{e}')
            return [KeyRecord.management_error(host, e)]

        records = []
        for source in MANAGEMENT_SOURCES:
            self._run_source(source, host, info, records)

        dependent = self._registry_dependent_sources()
        if not dependent:
            return records

        if host.is_local:
            for source in dependent:
                self._run_source(source, host, info, records)
            return records

        allow_enable = not options.dont_enable_remote_registry
        with RemoteRegistryLease(self.context.management, host, allow_enable=allow_enable):
            for source in dependent:
                self._run_source(source, host, info, records)
        return records

    def query_host(self, hostname_or_ip):
        """Records for one host after the ShowOnlyValid filter."""
        records = self.collect(hostname_or_ip)
        return filter_records(records, self.context.options.show_only_valid)

    def _query_in_thread(self, hostname_or_ip):
        with com_apartment():
            return self.query_host(hostname_or_ip)

    def query_hosts(self, hostnames, max_workers=None):
        """Query several hosts concurrently. Yields (hostname, records) as hosts finish."""
        if max_workers is None:
            max_workers = min(32, (os.cpu_count() or 1) + 4)

        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(self._query_in_thread, host): host for host in hostnames}
            for future in concurrent.futures.as_completed(futures):
                hostname = futures[future]
                try:
                    records = future.result()
                except Exception as e:
                    # A bug hit while querying one host must not lose the others
                    logging.exception(f'Querying {hostname} failed')
                    error = KeyRecord(computer_name=hostname, product_key=f'Error: {e}', source='Error', valid=False)
                    records = filter_records([error], self.context.options.show_only_valid)
                yield hostname, records
