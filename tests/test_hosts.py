"""Tests for host resolution."""
import socket

from productkey_check import hosts


class TestRemoveDomain:
    def test_fqdn(self):
        assert hosts.remove_domain('pc42.corp.example.com') == 'pc42'

    def test_short_name(self):
        assert hosts.remove_domain('pc42') == 'pc42'

    def test_ip_address_is_kept(self):
        assert hosts.remove_domain('10.0.0.42') == '10.0.0.42'


class TestResolveHost:
    def test_localhost(self, monkeypatch):
        monkeypatch.setattr(socket, 'gethostname', lambda: 'ws01.corp.example.com')
        monkeypatch.setattr(socket, 'gethostbyname', lambda name: '10.0.0.5')
        host = hosts.resolve_host('localhost')
        assert host.is_local
        assert host.hostname == 'ws01'
        assert host.ip_address == '10.0.0.5'
        assert host.requested == 'localhost'

    def test_remote_by_address(self, monkeypatch):
        monkeypatch.setattr(socket, 'gethostbyaddr',
                            lambda name: ('pc42.corp.example.com', [], ['10.0.0.42']))
        host = hosts.resolve_host(' 10.0.0.42 ')
        assert not host.is_local
        assert host.hostname == 'pc42'
        assert host.ip_address == '10.0.0.42'
        assert host.requested == '10.0.0.42'

    def test_unresolvable_uses_input(self, monkeypatch, caplog):
        def fail(name):
            raise socket.herror(1, 'Unknown host')

        monkeypatch.setattr(socket, 'gethostbyaddr', fail)
        monkeypatch.setattr(socket, 'gethostbyname', fail)
        host = hosts.resolve_host('ghost')
        assert host.hostname == 'ghost'
        assert host.ip_address == ''
        assert 'Could not resolve hostname for ghost' in caplog.text


class TestLocalNames:
    def test_short_name_of_fqdn_host_is_local(self, monkeypatch):
        monkeypatch.setattr(socket, 'gethostname', lambda: 'ws01.corp.example.com')
        monkeypatch.setattr(socket, 'gethostbyname', lambda name: '10.0.0.5')
        monkeypatch.delenv('COMPUTERNAME', raising=False)

        host = hosts.resolve_host('WS01')
        assert host.is_local
        assert host.hostname == 'ws01'

    def test_no_empty_name_without_computername(self, monkeypatch):
        monkeypatch.setattr(socket, 'gethostname', lambda: 'ws01')
        monkeypatch.delenv('COMPUTERNAME', raising=False)
        assert '' not in hosts.local_names()
        assert {'localhost', 'ws01'} <= hosts.local_names()
