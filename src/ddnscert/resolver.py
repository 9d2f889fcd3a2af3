"""Public DNS lookups used to confirm a TXT record has propagated."""

from abc import ABC, abstractmethod

import httpx

from ddnscert._logging import get_logger

logger = get_logger(__name__)

GOOGLE_DOH_URL = "https://dns.google/resolve"


class DnsResolver(ABC):
    """Checks DNS from outside the provider that published the record."""

    @abstractmethod
    def has_txt_record(self, record_name: str, value: str) -> bool:
        """Return True once a TXT record at record_name contains value."""
        ...


class DohResolver(DnsResolver):
    """Resolver backed by a DNS-over-HTTPS JSON API (Google by default).

    Args:
        url: JSON DoH endpoint accepting ``name`` and ``type`` parameters.
        timeout: HTTP request timeout in seconds (default: 30).
    """

    def __init__(self, url: str = GOOGLE_DOH_URL, timeout: float = 30):
        self.url = url
        self.timeout = timeout

    def has_txt_record(self, record_name: str, value: str) -> bool:
        """Query the resolver and look for value anywhere in the answer.

        Raises:
            httpx.HTTPError: If the resolver cannot be reached or errors.
        """
        response = httpx.get(
            self.url,
            params={"name": record_name, "type": "TXT"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        found = value in response.text
        logger.debug(
            "Checked DNS TXT record",
            extra={"record_name": record_name, "found": found},
        )
        return found
