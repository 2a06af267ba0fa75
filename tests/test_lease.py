"""Tests for the Remote Registry lease."""
import logging

import pytest

from productkey_check.errors import ServiceStateRestoreFailed, SourceUnavailable
from productkey_check.lease import RemoteRegistryLease


class TestAcquire:
    def test_starts_stopped_service_and_stops_it_again(self, management, remote_host):
        with RemoteRegistryLease(management, remote_host) as lease:
            assert lease.forced
            assert management.service_state == 'Running'
        assert management.service_state == 'Stopped'
        assert management.calls == [
            ('query_service', 'RemoteRegistry'),
            ('set_service', 'Running'),
            ('set_service', 'Stopped'),
        ]

    def test_running_service_is_left_alone(self, management, remote_host):
        management.service_state = 'Running'
        with RemoteRegistryLease(management, remote_host) as lease:
            assert not lease.forced
        assert management.service_state == 'Running'
        assert ('set_service', 'Stopped') not in management.calls

    def test_enable_not_allowed(self, management, remote_host):
        with RemoteRegistryLease(management, remote_host, allow_enable=False) as lease:
            assert not lease.forced
        assert management.service_state == 'Stopped'
        assert management.calls == [('query_service', 'RemoteRegistry')]

    def test_query_failure_is_not_fatal(self, management, remote_host, caplog):
        management.service_state = SourceUnavailable('RPC server unavailable')
        with caplog.at_level(logging.WARNING):
            with RemoteRegistryLease(management, remote_host) as lease:
                assert lease.prior_state is None
        assert 'RPC server unavailable' in caplog.text

    def test_start_failure_is_not_fatal(self, management, remote_host):
        management.set_error = SourceUnavailable('access denied')
        with RemoteRegistryLease(management, remote_host) as lease:
            assert not lease.forced
        assert management.calls.count(('set_service', 'Running')) == 1
        assert ('set_service', 'Stopped') not in management.calls

    def test_paused_service_is_not_stopped_on_release(self, management, remote_host):
        management.service_state = 'Paused'
        with RemoteRegistryLease(management, remote_host):
            pass
        assert management.service_state == 'Running'


class TestRelease:
    def test_released_on_exception(self, management, remote_host):
        with pytest.raises(RuntimeError):
            with RemoteRegistryLease(management, remote_host):
                raise RuntimeError('registry read blew up')
        assert management.service_state == 'Stopped'

    def test_release_failure_is_logged(self, management, remote_host, caplog):
        lease = RemoteRegistryLease(management, remote_host).acquire()
        management.set_error = SourceUnavailable('access denied')
        with caplog.at_level(logging.ERROR):
            lease.release()
        assert 'Could not stop RemoteRegistry' in caplog.text

    def test_release_runs_once(self, management, remote_host):
        lease = RemoteRegistryLease(management, remote_host).acquire()
        lease.release()
        lease.release()
        assert management.calls.count(('set_service', 'Stopped')) == 1

    def test_release_without_acquire(self, management, remote_host):
        RemoteRegistryLease(management, remote_host).release()
        assert management.calls == []

    def test_restore_failure_is_raised_from_restore(self, management, remote_host):
        lease = RemoteRegistryLease(management, remote_host).acquire()
        management.set_error = SourceUnavailable('access denied')
        with pytest.raises(ServiceStateRestoreFailed, match='access denied'):
            lease._restore()
