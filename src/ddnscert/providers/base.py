"""Abstract base class for DNS record providers."""

from abc import ABC, abstractmethod


class DnsRecordClient(ABC):
    """Publishes and withdraws the TXT record of a DNS-01 challenge.

    Implementations talk to a DNS hosting API. They only write records;
    checking that a record is publicly visible is the job of a
    :class:`ddnscert.resolver.DnsResolver`.
    """

    @abstractmethod
    def add_txt_record(self, record_name: str, token: str, value: str) -> None:
        """Publish value as a TXT record at record_name.

        Args:
            record_name: Full record name, e.g. ``_acme-challenge.foo.duckdns.org``.
            token: Credential for the provider API.
            value: Challenge digest to publish.

        Raises:
            DnsRecordAddFailed: If the provider rejects the update.
        """
        ...

    @abstractmethod
    def remove_txt_record(self, record_name: str, token: str) -> None:
        """Remove the TXT record at record_name.

        Args:
            record_name: Full record name.
            token: Credential for the provider API.

        Raises:
            DnsRecordRemoveFailed: If the provider rejects the update.
        """
        ...
