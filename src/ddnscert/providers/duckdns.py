"""DuckDNS provider for ACME DNS-01 challenges."""

import re

import httpx

from ddnscert._logging import get_logger
from ddnscert.exceptions import DnsRecordAddFailed, DnsRecordRemoveFailed
from ddnscert.providers.base import DnsRecordClient

logger = get_logger(__name__)

DUCKDNS_UPDATE_URL = "https://www.duckdns.org/update"

_LABEL_RE = re.compile(r"^[a-z0-9-]+$")


def get_subdomain(record_name: str) -> str:
    """Extract the DuckDNS subdomain from a (challenge) record name.

    ``_acme-challenge.foo.duckdns.org`` and ``foo.duckdns.org`` both give
    ``foo``. DuckDNS only manages one label below duckdns.org, so deeper
    names resolve to their DuckDNS parent.

    Raises:
        ValueError: If the name is not under duckdns.org.
    """
    labels = record_name.lower().rstrip(".").split(".")
    if len(labels) >= 3 and labels[-2:] == ["duckdns", "org"] and _LABEL_RE.match(labels[-3]):
        return labels[-3]
    raise ValueError(f"Not a duckdns.org name: {record_name}")


class DuckDnsProvider(DnsRecordClient):
    """DNS provider for the DuckDNS update API.

    DuckDNS holds a single TXT record per subdomain, set and cleared via
    ``GET /update``. The API answers with a bare ``OK`` or ``KO`` body.

    Args:
        base_url: DuckDNS update endpoint.
        timeout: HTTP request timeout in seconds (default: 30).
    """

    def __init__(self, base_url: str = DUCKDNS_UPDATE_URL, timeout: float = 30):
        self.base_url = base_url
        self.timeout = timeout

    def _update(self, record_name: str, params: dict[str, str]) -> str:
        response = httpx.get(
            self.base_url,
            params={"domains": get_subdomain(record_name), **params},
            timeout=self.timeout,
        )
        return response.text.strip()

    def add_txt_record(self, record_name: str, token: str, value: str) -> None:
        """Set the subdomain's TXT record to value.

        Raises:
            DnsRecordAddFailed: If DuckDNS does not answer OK or is unreachable.
        """
        try:
            result = self._update(record_name, {"token": token, "txt": value})
        except httpx.HTTPError as e:
            raise DnsRecordAddFailed(record_name, str(e)) from e

        if result != "OK":
            logger.error(
                "Error setting DNS TXT record",
                extra={"record_name": record_name, "response": result},
            )
            raise DnsRecordAddFailed(record_name, result)
        logger.info("TXT record created", extra={"record_name": record_name})

    def remove_txt_record(self, record_name: str, token: str) -> None:
        """Clear the subdomain's TXT record.

        Raises:
            DnsRecordRemoveFailed: If DuckDNS does not answer OK or is unreachable.
        """
        try:
            result = self._update(record_name, {"token": token, "txt": "", "clear": "true"})
        except httpx.HTTPError as e:
            raise DnsRecordRemoveFailed(record_name, str(e)) from e

        if result != "OK":
            logger.warning(
                "Error removing DNS TXT record",
                extra={"record_name": record_name, "response": result},
            )
            raise DnsRecordRemoveFailed(record_name, result)
        logger.info("TXT record deleted", extra={"record_name": record_name})
