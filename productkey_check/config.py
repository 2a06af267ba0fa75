"""Run-wide options, credentials and the per-query context."""
import getpass
import os
from dataclasses import dataclass, field

from .errors import ConfigurationError

DEFAULT_TIMEOUT = 90
DEFAULT_PRODUKEY_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'ProduKey.exe')


@dataclass(frozen=True)
class Credential:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class Options:
    """Flags controlling which sources run and which records are reported."""
    show_only_valid: bool = False
    dont_enable_remote_registry: bool = False
    skip_reg_product_key: bool = False
    skip_default_product_keys: bool = False
    skip_oem_info: bool = False
    skip_produkey: bool = False
    produkey_path: str = DEFAULT_PRODUKEY_PATH
    timeout: int = DEFAULT_TIMEOUT
    credential: Credential = None


@dataclass(frozen=True)
class QueryContext:
    """Everything a source needs: the options and the management collaborator."""
    options: Options
    management: object


def load_credential(username, password_file=None, prompt=getpass.getpass):
    """Build the remote access credential, failing before any host is touched."""
    if not username:
        return None
    if password_file:
        try:
            with open(password_file, 'r', encoding='utf-8') as f:
                password = f.readline().rstrip('\r\n')
        except OSError as e:
            raise ConfigurationError(f'Cannot read password file {password_file}: {e}') from e
    else:
        try:
            password = prompt(f'Password for {username}: ')
        except (EOFError, KeyboardInterrupt) as e:
            raise ConfigurationError(f'No password entered for {username}') from e
    if not password:
        raise ConfigurationError(f'Empty password for {username}')
    return Credential(username, password)
