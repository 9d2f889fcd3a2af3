"""DNS providers for ACME challenge validation."""

from ddnscert.providers.base import DnsRecordClient
from ddnscert.providers.duckdns import DuckDnsProvider

__all__ = ["DnsRecordClient", "DuckDnsProvider"]
