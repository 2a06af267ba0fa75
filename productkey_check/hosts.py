"""Host name resolution and reachability checks."""
import logging
import os
import socket
import subprocess
import sys

from .records import Host


def remove_domain(hostname):
    """Strip domain from hostname (e.g., 'host.domain.com' -> 'host')"""
    if is_ip_address(hostname):
        return hostname
    return hostname.split('.')[0] if '.' in hostname else hostname


def is_ip_address(value):
    try:
        socket.inet_aton(value)
    except OSError:
        return False
    return value.count('.') == 3


def local_names():
    """Names that refer to this machine, both short and fully qualified."""
    names = {'localhost', '127.0.0.1', '.'}
    for name in (os.environ.get('COMPUTERNAME', ''), socket.gethostname()):
        if name:
            names.add(name.lower())
            names.add(remove_domain(name).lower())
    return names


def resolve_host(hostname_or_ip):
    """Resolve a requested name or address into a Host."""
    requested = hostname_or_ip.strip()
    local = local_names()
    if requested.lower() in local:
        hostname = socket.gethostname()
        try:
            ip_address = socket.gethostbyname(hostname)
        except OSError:
            ip_address = '127.0.0.1'
        return Host(requested, remove_domain(hostname), ip_address, True)

    try:
        hostname, _, addresses = socket.gethostbyaddr(requested)
        ip_address = addresses[0] if addresses else requested
    except OSError:
        hostname = requested
        ip_address = ''
        logging.warning(f'Could not resolve hostname for {requested}, using input.')

    if not ip_address:
        try:
            ip_address = socket.gethostbyname(requested)
        except OSError:
            logging.warning(f'Could not resolve address for {requested}.')

    hostname = remove_domain(hostname)
    is_local = hostname.lower() in local
    return Host(requested, hostname, ip_address, is_local)


def ping_host(hostname, timeout=1):
    """Quick ping test. Returns True when the host answered."""
    if sys.platform == 'win32':
        command = ['ping', '-n', '1', '-w', str(timeout * 1000), hostname]
    else:
        command = ['ping', '-c', '1', '-W', str(timeout), hostname]

    try:
        result = subprocess.run(
            command,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout + 5
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logging.warning(f'Ping of {hostname} failed to run: {e}')
        return False
    return result.returncode == 0
