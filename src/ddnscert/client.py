"""ACME session: signed requests against one certificate authority."""

import json
from datetime import UTC, datetime, timedelta

import httpx
from cryptography import x509
from cryptography.hazmat.primitives import serialization

from ddnscert._logging import get_logger
from ddnscert.crypto import PrivateKey, base64url_encode, key_thumbprint, sign_jws
from ddnscert.exceptions import AcmeError, BadNonceError, parse_retry_after
from ddnscert.models import Account, Authorization, Challenge, Directory, Order

logger = get_logger(__name__)

LETSENCRYPT_DIRECTORY = "https://acme-v02.api.letsencrypt.org/directory"
LETSENCRYPT_STAGING_DIRECTORY = "https://acme-staging-v02.api.letsencrypt.org/directory"

MAX_NONCE_RETRIES = 3


def retry_at(response: httpx.Response) -> datetime | None:
    """Instant the server asked us to poll again at, from Retry-After."""
    seconds = parse_retry_after(response.headers.get("Retry-After"))
    if seconds is None:
        return None
    return datetime.now(UTC) + timedelta(seconds=seconds)


class AcmeClient:
    """Session with an ACME certificate authority (RFC 8555).

    The session holds no persistent state. It is created for one renewal
    run and signs every request with the account key.

    Args:
        directory_url: URL of the ACME directory endpoint.
        account_key: Private key identifying the ACME account.
        ca_cert: Path to CA certificate file, False to disable verification,
                 or None for default verification.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        directory_url: str,
        account_key: PrivateKey,
        ca_cert: str | bool | None = None,
        timeout: float = 30,
    ):
        self.directory_url = directory_url
        self.account_key = account_key

        verify = True if ca_cert is None else ca_cert
        self._http = httpx.Client(verify=verify, timeout=timeout)

        self._directory: Directory | None = None
        self._nonce: str | None = None
        self._account_url: str | None = None

    def close(self) -> None:
        """Close the HTTP client."""
        self._http.close()

    def __enter__(self) -> "AcmeClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    @property
    def directory(self) -> Directory:
        """Get the ACME directory (cached after first fetch)."""
        if self._directory is None:
            response = self._http.get(self.directory_url)
            response.raise_for_status()
            self._directory = Directory.model_validate(response.json())
        return self._directory

    @property
    def account_url(self) -> str | None:
        """Get the account URL (set after registration)."""
        return self._account_url

    @property
    def thumbprint(self) -> str:
        """JWK thumbprint of the account key, used in key authorizations."""
        return key_thumbprint(self.account_key)

    def _get_nonce(self) -> str:
        if self._nonce:
            nonce, self._nonce = self._nonce, None
            return nonce

        response = self._http.head(self.directory.new_nonce)
        response.raise_for_status()
        return response.headers["Replay-Nonce"]

    def _signed_request(
        self,
        url: str,
        payload: dict | str,
        use_kid: bool = True,
    ) -> httpx.Response:
        """Make a JWS-signed POST request to the ACME server.

        Args:
            url: The endpoint URL.
            payload: The request payload (dict for JSON, "" for POST-as-GET).
            use_kid: Sign with the account URL (kid) instead of embedding the
                     JWK. Only new account registration uses the JWK.

        Raises:
            AcmeError: If the ACME server returns an error.
        """
        for attempt in range(MAX_NONCE_RETRIES + 1):
            body = sign_jws(
                key=self.account_key,
                payload=payload,
                url=url,
                nonce=self._get_nonce(),
                kid=self._account_url if use_kid else None,
            )
            response = self._http.post(
                url,
                json=body,
                headers={"Content-Type": "application/jose+json"},
            )

            if "Replay-Nonce" in response.headers:
                self._nonce = response.headers["Replay-Nonce"]

            if response.status_code < 400:
                return response

            error = self._error_from(response)
            if not isinstance(error, BadNonceError) or attempt == MAX_NONCE_RETRIES:
                raise error
            logger.debug("Retrying after bad nonce", extra={"url": url, "attempt": attempt + 1})
            self._nonce = None

        raise AssertionError("unreachable")

    @staticmethod
    def _error_from(response: httpx.Response) -> AcmeError:
        try:
            return AcmeError.from_response(
                response.json(),
                response.status_code,
                headers=response.headers,
            )
        except json.JSONDecodeError:
            return AcmeError(type="unknown", detail=response.text, status_code=response.status_code)

    def register_account(self, email: str | None = None, terms_agreed: bool = False) -> Account:
        """Register a new account, or look up the one bound to the key.

        The CA answers with the existing account when it already knows the
        account key, so this is safe to call on every run.

        Args:
            email: Contact email address (optional).
            terms_agreed: Whether the caller agreed to the terms of service.
        """
        payload: dict = {"termsOfServiceAgreed": terms_agreed}
        if email:
            payload["contact"] = [f"mailto:{email}"]

        response = self._signed_request(self.directory.new_account, payload, use_kid=False)
        self._account_url = response.headers.get("Location")

        account = Account.model_validate(response.json())
        account.url = self._account_url
        return account

    def create_order(self, domains: list[str]) -> Order:
        """Create a new certificate order for the given domains."""
        payload = {"identifiers": [{"type": "dns", "value": domain} for domain in domains]}

        response = self._signed_request(self.directory.new_order, payload)
        order = Order.model_validate(response.json())
        order.url = response.headers.get("Location")
        return order

    def fetch_authorizations(self, order: Order) -> list[Authorization]:
        """Fetch every authorization of an order, in order."""
        authorizations = []
        for authz_url in order.authorizations:
            response = self._signed_request(authz_url, "")
            authz = Authorization.model_validate(response.json())
            authz.url = authz_url
            authorizations.append(authz)
        return authorizations

    def respond_to_challenge(self, challenge: Challenge) -> Challenge:
        """Tell the CA the challenge is ready to be validated."""
        response = self._signed_request(challenge.url, {})
        return Challenge.model_validate(response.json())

    def fetch_challenge(self, url: str) -> tuple[Challenge, datetime | None]:
        """Fetch a challenge and the server's suggested next poll instant."""
        response = self._signed_request(url, "")
        return Challenge.model_validate(response.json()), retry_at(response)

    def fetch_order(self, url: str) -> tuple[Order, datetime | None]:
        """Fetch an order and the server's suggested next poll instant."""
        response = self._signed_request(url, "")
        order = Order.model_validate(response.json())
        order.url = url
        return order, retry_at(response)

    def finalize_order(self, order: Order, csr: x509.CertificateSigningRequest) -> Order:
        """Finalize an order by submitting the CSR."""
        csr_der = csr.public_bytes(serialization.Encoding.DER)
        response = self._signed_request(order.finalize, {"csr": base64url_encode(csr_der)})

        finalized = Order.model_validate(response.json())
        finalized.url = order.url
        return finalized

    def download_certificate(self, order: Order) -> str:
        """Download the PEM certificate chain (leaf first) of a valid order.

        Raises:
            ValueError: If order has no certificate URL.
        """
        if not order.certificate:
            raise ValueError("Order has no certificate URL")

        response = self._signed_request(order.certificate, "")
        return response.text
