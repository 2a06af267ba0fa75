"""Temporarily start the Remote Registry service on a remote host."""
import logging

from .errors import ProductKeyError, ServiceStateRestoreFailed
from .management import REMOTE_REGISTRY_SERVICE, RUNNING, STOPPED


class RemoteRegistryLease:
    """Start Remote Registry for the duration of a ``with`` block.

    The service is stopped again on exit only when this lease started it and it
    was stopped before. Failing to query, start or stop the service is logged and
    never raised: registry reads further down simply fail with NoRegistryAccess.
    """

    def __init__(self, management, host, allow_enable=True, service=REMOTE_REGISTRY_SERVICE):
        self.management = management
        self.host = host
        self.allow_enable = allow_enable
        self.service = service
        self.prior_state = None
        self.forced = False
        self.acquired = False

    def acquire(self):
        self.acquired = True
        try:
            self.prior_state = self.management.query_service_state(self.host, self.service)
        except ProductKeyError as e:
            logging.warning(f'Could not query {self.service} on {self.host.hostname}: {e}')
            return self

        logging.info(f'{self.service} on {self.host.hostname} is {self.prior_state}')
        if self.prior_state == RUNNING or not self.allow_enable:
            return self

        try:
            self.management.set_service_state(self.host, self.service, RUNNING)
        except ProductKeyError as e:
            logging.warning(f'Could not start {self.service} on {self.host.hostname}: {e}')
            return self
        self.forced = True
        logging.info(f'Started {self.service} on {self.host.hostname}')
        return self

    def release(self):
        if not self.acquired:
            return
        self.acquired = False
        if not (self.forced and self.prior_state == STOPPED):
            return
        try:
            self._restore()
        except ServiceStateRestoreFailed as e:
            logging.error(f'{e}')
            return
        logging.info(f'Stopped {self.service} on {self.host.hostname} again')

    def _restore(self):
        try:
            self.management.set_service_state(self.host, self.service, STOPPED)
        except ProductKeyError as e:
            raise ServiceStateRestoreFailed(f'Could not stop {self.service} on {self.host.hostname}: {e}') from e

    def __enter__(self):
        return self.acquire()

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False
