"""Errors raised while renewing a certificate.

Every fatal failure derives from :class:`RenewalError`, so a host can catch a
single exception type around :func:`ddnscert.renew` and inspect ``__cause__``
or the subclass for details.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any


class RenewalError(Exception):
    """Base exception for a failed renewal run."""


class KeyMaterialError(RenewalError):
    """A key file could not be read, parsed or written."""

    def __init__(self, path: object, message: str):
        self.path = path
        super().__init__(f"{message}: {path}")


class ChallengeSelectionError(RenewalError):
    """The authorization offers no dns-01 challenge."""

    def __init__(self, domain: str, offered: list[str]):
        self.domain = domain
        self.offered = offered
        super().__init__(f"No dns-01 challenge found for {domain} (offered: {', '.join(offered)})")


class DnsRecordError(RenewalError):
    """The dynamic-DNS provider rejected a TXT record update."""

    action = "Updating"

    def __init__(self, record_name: str, response: str):
        self.record_name = record_name
        self.response = response
        super().__init__(f"{self.action} TXT record {record_name} failed: {response!r}")


class DnsRecordAddFailed(DnsRecordError):
    action = "Adding"


class DnsRecordRemoveFailed(DnsRecordError):
    action = "Removing"


class ChallengeFailed(RenewalError):
    """The CA marked the challenge invalid."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class OrderFailed(RenewalError):
    """The CA marked the order invalid."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class PollingTimeout(RenewalError):
    """No terminal status was reached within the attempt budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Too many attempts ({attempts}) without reaching a final status")


class TermsOfServiceNotAccepted(RenewalError):
    """The CA publishes terms of service the caller has not acknowledged.

    Pass the exact ``terms_of_service`` URL as ``accept_terms_of_service``
    to agree and retry.
    """

    def __init__(self, terms_of_service: str):
        self.terms_of_service = terms_of_service
        super().__init__(f"The terms of service must be accepted first: {terms_of_service}")


class AcmeError(RenewalError):
    """Error returned by the ACME server.

    Represents errors returned by the ACME server in the standard
    problem document format (RFC 7807).
    """

    def __init__(
        self,
        type: str,
        detail: str,
        status_code: int,
        subproblems: list[dict[str, Any]] | None = None,
        retry_after: int | None = None,
    ):
        self.type = type
        self.detail = detail
        self.status_code = status_code
        self.subproblems = subproblems
        self.retry_after = retry_after
        super().__init__(f"{type}: {detail}")

    @classmethod
    def from_response(
        cls,
        data: dict[str, Any],
        status_code: int,
        headers: Mapping[str, str] | None = None,
    ) -> "AcmeError":
        """Create an AcmeError from a problem document.

        Args:
            data: Parsed JSON error response.
            status_code: HTTP status code.
            headers: Response headers (for Retry-After extraction).

        Returns:
            AcmeError instance, or the subclass matching the problem type.
        """
        retry_after = parse_retry_after(headers.get("Retry-After")) if headers else None
        error_type = data.get("type", "unknown")

        kwargs: dict[str, Any] = {
            "type": error_type,
            "detail": data.get("detail", "Unknown error"),
            "status_code": status_code,
            "subproblems": data.get("subproblems"),
            "retry_after": retry_after,
        }

        subclass = _PROBLEM_TYPES.get(error_type.rsplit(":", 1)[-1], cls)
        return subclass(**kwargs)


class RateLimitError(AcmeError):
    """Rate limit exceeded (urn:ietf:params:acme:error:rateLimited)."""


class DnsValidationError(AcmeError):
    """DNS lookup by the CA failed (urn:ietf:params:acme:error:dns)."""


class CAAError(AcmeError):
    """CAA record forbids issuance (urn:ietf:params:acme:error:caa)."""


class ServerInternalError(AcmeError):
    """ACME server internal error (urn:ietf:params:acme:error:serverInternal)."""


class BadNonceError(AcmeError):
    """Bad nonce error (urn:ietf:params:acme:error:badNonce)."""


_PROBLEM_TYPES: dict[str, type[AcmeError]] = {
    "rateLimited": RateLimitError,
    "dns": DnsValidationError,
    "caa": CAAError,
    "serverInternal": ServerInternalError,
    "badNonce": BadNonceError,
}


def parse_retry_after(value: str | None) -> int | None:
    """Parse a Retry-After header (seconds or HTTP-date) into seconds.

    Returns:
        Seconds to wait (never negative), or None if absent or unparseable.
    """
    if not value:
        return None
    try:
        return max(0, int(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    return max(0, int((when - datetime.now(UTC)).total_seconds()))
