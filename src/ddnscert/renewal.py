"""Certificate order orchestration."""

from pathlib import Path
from typing import Any

import httpx

from ddnscert._logging import Timer, get_domain_extra, get_logger, reset_domains, set_domains
from ddnscert.account import resolve_account
from ddnscert.challenges.dns01 import Dns01Fulfiller
from ddnscert.client import AcmeClient
from ddnscert.config import RenewalConfig
from ddnscert.crypto import PrivateKey, create_csr
from ddnscert.exceptions import OrderFailed, RenewalError
from ddnscert.keys import load_or_create_key
from ddnscert.models import Order, RenewalResult, Status, problem_reason
from ddnscert.polling import Poller
from ddnscert.providers.base import DnsRecordClient
from ddnscert.providers.duckdns import DuckDnsProvider
from ddnscert.resolver import DnsResolver, DohResolver
from ddnscert.storage import load_chain, write_chain

logger = get_logger(__name__)


class CertificateRenewer:
    """Runs one complete certificate order for a configuration.

    The run is all-or-nothing: the chain file is only written after the
    order is valid and the chain has been downloaded and parsed. Keys are
    the only state persisted on a failed run.

    Args:
        config: What to renew and where to store it.
        records: DNS provider (DuckDNS by default).
        resolver: Propagation check (Google DNS-over-HTTPS by default).
        poller: Polling policy (built from the config by default).
    """

    def __init__(
        self,
        config: RenewalConfig,
        *,
        records: DnsRecordClient | None = None,
        resolver: DnsResolver | None = None,
        poller: Poller | None = None,
    ):
        self.config = config
        self.records = records or DuckDnsProvider(config.duckdns_url, timeout=config.http_timeout)
        self.resolver = resolver or DohResolver(config.resolver_url, timeout=config.http_timeout)
        self.poller = poller or Poller(
            max_attempts=config.max_attempts,
            interval=config.poll_interval,
        )

    def renew(self) -> RenewalResult:
        """Obtain a fresh certificate and store its chain.

        Raises:
            RenewalError: On any failure. Transport, file system and
                malformed-data errors are wrapped, with the original as __cause__.
        """
        token = set_domains(self.config.domains)
        try:
            with Timer() as timer:
                result = self._renew()
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.error("Renewal failed", extra={"error": str(e), **get_domain_extra()})
            raise RenewalError(f"Renewal failed: {e}") from e
        except RenewalError as e:
            logger.error("Renewal failed", extra={"error": str(e), **get_domain_extra()})
            raise
        else:
            logger.info(
                "Certificate renewed",
                extra={
                    "elapsed_ms": timer.elapsed_ms,
                    "expires_at": result.expires_at.isoformat(),
                    **get_domain_extra(),
                },
            )
            return result
        finally:
            reset_domains(token)

    def _renew(self) -> RenewalResult:
        config = self.config
        config.storage_dir.mkdir(parents=True, exist_ok=True)
        account_key = load_or_create_key(config.account_key_path)
        domain_key = load_or_create_key(config.domain_key_path)

        with AcmeClient(
            config.acme_directory,
            account_key,
            ca_cert=config.ca_cert,
            timeout=config.http_timeout,
        ) as client:
            resolve_account(client, config.email, config.accept_terms_of_service)

            order = client.create_order(config.domains)
            logger.info("Order created", extra={"url": order.url, **get_domain_extra()})

            fulfiller = Dns01Fulfiller(client, self.records, self.resolver, self.poller)
            dns_token = config.dns_token.get_secret_value()
            for authorization in client.fetch_authorizations(order):
                fulfiller.fulfill(authorization, dns_token)

            order = self._finalize(client, order, domain_key)

            chain = client.download_certificate(order)

        leaf = load_chain(chain)[0]
        write_chain(config.chain_path, chain)
        logger.info("Certificate URL", extra={"url": order.certificate})

        return RenewalResult(
            chain_path=config.chain_path,
            certificate_url=order.certificate,
            expires_at=leaf.not_valid_after_utc,
            domains=config.domains,
        )

    def _finalize(self, client: AcmeClient, order: Order, domain_key: PrivateKey) -> Order:
        current = client.finalize_order(order, create_csr(domain_key, self.config.domains))

        def refresh():
            nonlocal current
            current, next_poll = client.fetch_order(order.url)
            return next_poll

        status = self.poller.wait(lambda: current.status, refresh)
        if status != Status.VALID:
            reason = problem_reason(current.error)
            logger.error("Failed to order certificate", extra={"reason": reason})
            raise OrderFailed(reason)
        return current


def renew(
    storage_dir: Path | str,
    domain: str,
    email: str,
    dns_token: str,
    **options: Any,
) -> RenewalResult:
    """Renew the certificate for domain, storing keys and chain in storage_dir.

    Args:
        storage_dir: Directory holding user.key, domain.key and chain.pem.
        domain: Domain to certify, e.g. ``foo.duckdns.org``.
        email: Contact address for the ACME account.
        dns_token: DuckDNS API token.
        **options: Further :class:`RenewalConfig` fields, such as
            ``accept_terms_of_service`` or ``staging``.

    Raises:
        RenewalError: If the certificate could not be obtained.
    """
    config = RenewalConfig(
        storage_dir=Path(storage_dir),
        domain=domain,
        email=email,
        dns_token=dns_token,
        **options,
    )
    return CertificateRenewer(config).renew()
