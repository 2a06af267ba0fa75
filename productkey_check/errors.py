"""Exceptions raised while collecting product keys."""


class ProductKeyError(Exception):
    """Base class for all errors raised by productkey_check."""


class ConfigurationError(ProductKeyError):
    """Invalid static configuration, raised before any host is processed."""


class HostUnreachable(ProductKeyError):
    pass


class ManagementUnavailable(ProductKeyError):
    """The WMI management interface of a host could not be reached."""


class SourceUnavailable(ProductKeyError):
    """A single key source failed. Never fatal to the other sources."""


class NoRegistryAccess(SourceUnavailable):
    pass


class ExternalToolMissing(SourceUnavailable):
    pass


class ExternalToolOutputMissing(SourceUnavailable):
    pass


class ExternalToolParseError(SourceUnavailable):
    pass


class MalformedBlob(ProductKeyError):
    """DigitalProductId value too short to hold the key window."""


class ServiceStateRestoreFailed(ProductKeyError):
    pass
