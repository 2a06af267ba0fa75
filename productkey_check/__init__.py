"""Recover Windows product keys from local and remote hosts."""
from .aggregator import KeyAggregator
from .config import Credential, Options, QueryContext
from .decoder import decode_product_key
from .records import Host, HostInfo, KeyRecord, KeySource

__version__ = '0.1.0'
