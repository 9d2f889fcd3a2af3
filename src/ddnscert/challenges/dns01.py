"""DNS-01 challenge implementation."""

import base64
import hashlib
from collections.abc import Callable

from ddnscert._logging import get_logger
from ddnscert.client import AcmeClient
from ddnscert.exceptions import ChallengeFailed, ChallengeSelectionError
from ddnscert.models import Authorization, Challenge, ChallengeType, Status, problem_reason
from ddnscert.polling import Poller
from ddnscert.providers.base import DnsRecordClient
from ddnscert.resolver import DnsResolver

logger = get_logger(__name__)


def compute_key_authorization(token: str, thumbprint: str) -> str:
    """Compute the key authorization string (token.thumbprint)."""
    return f"{token}.{thumbprint}"


def compute_dns_txt_value(key_authorization: str) -> str:
    """Compute the DNS TXT record value for DNS-01 challenge.

    The TXT record value is the base64url-encoded SHA-256 digest
    of the key authorization string.
    """
    digest = hashlib.sha256(key_authorization.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def challenge_record_name(domain: str) -> str:
    """Name of the TXT record the CA looks up for domain.

    Wildcard identifiers are validated on their base domain.
    """
    return f"_acme-challenge.{domain.removeprefix('*.').rstrip('.')}"


class Dns01Fulfiller:
    """Satisfies DNS-01 challenges one authorization at a time.

    A record is published through ``records``, its public visibility is
    confirmed through ``resolver``, and only then is the CA asked to
    validate. The record is removed afterwards whatever the outcome.

    Args:
        client: Session with the CA.
        records: Provider API that publishes the TXT record.
        resolver: Independent resolver used to confirm propagation.
        poller: Shared polling policy.
    """

    def __init__(
        self,
        client: AcmeClient,
        records: DnsRecordClient,
        resolver: DnsResolver,
        poller: Poller,
    ):
        self.client = client
        self.records = records
        self.resolver = resolver
        self.poller = poller

    def fulfill(
        self,
        authorization: Authorization,
        dns_token: str,
        execute: Callable[[Challenge], object] | None = None,
    ) -> None:
        """Prove control of the authorization's domain.

        Args:
            authorization: Authorization to satisfy.
            dns_token: Credential for the DNS provider.
            execute: Action that asks the CA to validate the challenge.
                Defaults to responding to the challenge on the client.

        Raises:
            ChallengeSelectionError: If no dns-01 challenge is offered.
            DnsRecordAddFailed: If the record could not be published.
            PollingTimeout: If propagation or validation never settles.
            ChallengeFailed: If the CA marks the challenge invalid.
        """
        domain = authorization.identifier.value
        logger.info("Authorizing domain", extra={"domain": domain})

        if authorization.status == Status.VALID:
            logger.info("Authorization already valid", extra={"domain": domain})
            return

        challenge = authorization.find_challenge(ChallengeType.DNS_01)
        if challenge is None:
            raise ChallengeSelectionError(domain, [c.type for c in authorization.challenges])

        if challenge.status == Status.VALID:
            logger.info("Challenge already valid", extra={"domain": domain})
            return

        if execute is None:
            execute = self.client.respond_to_challenge

        record_name = challenge_record_name(domain)
        key_authorization = compute_key_authorization(challenge.token or "", self.client.thumbprint)
        txt_value = compute_dns_txt_value(key_authorization)

        self.records.add_txt_record(record_name, dns_token, txt_value)
        try:
            self._wait_for_propagation(record_name, txt_value)
            triggered = execute(challenge)
            self._wait_for_validation(triggered if isinstance(triggered, Challenge) else challenge)
        finally:
            self._remove_record(record_name, dns_token)

    def _wait_for_propagation(self, record_name: str, txt_value: str) -> None:
        def visible() -> Status:
            logger.info("Checking DNS TXT record", extra={"record_name": record_name})
            if self.resolver.has_txt_record(record_name, txt_value):
                return Status.VALID
            return Status.UNKNOWN

        self.poller.wait(visible)

    def _wait_for_validation(self, challenge: Challenge) -> None:
        current = challenge

        def refresh():
            nonlocal current
            current, next_poll = self.client.fetch_challenge(current.url)
            return next_poll

        status = self.poller.wait(lambda: current.status, refresh)
        if status != Status.VALID:
            reason = problem_reason(current.error)
            logger.error("Challenge failed", extra={"reason": reason, "url": current.url})
            raise ChallengeFailed(reason)

        logger.info("Challenge successful", extra={"url": current.url})

    def _remove_record(self, record_name: str, dns_token: str) -> None:
        try:
            self.records.remove_txt_record(record_name, dns_token)
        except Exception as e:
            # never masks the outcome of the challenge
            logger.warning(
                "Failed to remove TXT DNS record",
                extra={"record_name": record_name, "error": str(e)},
            )
