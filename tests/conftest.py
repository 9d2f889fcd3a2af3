"""Pytest fixtures for the ddnscert test suite."""

import base64
import json
import logging
import logging.handlers
import uuid
from collections.abc import Callable, Generator
from datetime import UTC, datetime, timedelta

import httpx
import pytest
import respx
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID

from ddnscert.crypto import PrivateKey, generate_ecdsa_key
from ddnscert.polling import Poller


class LogCapture:
    """Helper class to capture and inspect log records."""

    def __init__(self, handler: logging.handlers.MemoryHandler) -> None:
        self._handler = handler

    @property
    def records(self) -> list[logging.LogRecord]:
        """Get all captured log records."""
        return self._handler.buffer

    def get_records(
        self, level: int | None = None, name: str | None = None
    ) -> list[logging.LogRecord]:
        """Get log records filtered by level and/or logger name prefix."""
        records = self.records
        if level is not None:
            records = [r for r in records if r.levelno == level]
        if name is not None:
            records = [r for r in records if r.name.startswith(name)]
        return records

    def get_messages(self, level: int | None = None, name: str | None = None) -> list[str]:
        """Get log messages filtered by level and/or logger name prefix."""
        return [r.getMessage() for r in self.get_records(level, name)]

    def clear(self) -> None:
        """Clear all captured log records."""
        self._handler.buffer.clear()


@pytest.fixture
def log_capture() -> Generator[LogCapture]:
    """Capture logs from the ddnscert library during a test."""
    handler = logging.handlers.MemoryHandler(capacity=1000)
    handler.setLevel(logging.DEBUG)

    ddnscert_logger = logging.getLogger("ddnscert")
    original_level = ddnscert_logger.level
    ddnscert_logger.setLevel(logging.DEBUG)
    ddnscert_logger.addHandler(handler)

    try:
        yield LogCapture(handler)
    finally:
        ddnscert_logger.removeHandler(handler)
        ddnscert_logger.setLevel(original_level)
        handler.close()


class SleepRecorder:
    """Stand-in for time.sleep that only records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def no_sleep_poller(sleeps: SleepRecorder) -> Poller:
    """Poller with the default policy that never actually sleeps."""
    return Poller(sleep=sleeps)


@pytest.fixture(scope="session")
def ec_key() -> PrivateKey:
    """A fast-to-generate key for tests that only need some key."""
    return generate_ecdsa_key()


def _self_signed(key: PrivateKey, common_name: str, days: int) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(UTC)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=days))
        .sign(key, hashes.SHA256())
    )


@pytest.fixture
def make_chain(ec_key: PrivateKey) -> Callable[..., str]:
    """Build a PEM chain: a leaf for the domain followed by an issuer cert."""

    def build(domain: str = "foo.duckdns.org", days: int = 90) -> str:
        leaf = _self_signed(ec_key, domain, days)
        issuer = _self_signed(ec_key, "Test Intermediate", 365)
        return "".join(
            cert.public_bytes(serialization.Encoding.PEM).decode() for cert in (leaf, issuer)
        )

    return build


# =============================================================================
# Fake ACME server
# =============================================================================

CA = "https://ca.test"
DIRECTORY_URL = f"{CA}/directory"
TERMS_URL = f"{CA}/terms/v1"
ACCOUNT_URL = f"{CA}/acct/1"
ORDER_URL = f"{CA}/order/1"
AUTHZ_URL = f"{CA}/authz/1"
CHALLENGE_URL = f"{CA}/chall/1"
FINALIZE_URL = f"{CA}/order/1/finalize"
CERT_URL = f"{CA}/cert/1"


def jws_payload(request: httpx.Request) -> dict | str:
    """Decode the payload of a flattened JWS request body."""
    payload = json.loads(request.content)["payload"]
    if payload == "":
        return ""
    return json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))


def acme_response(status_code: int = 200, json_body: dict | None = None, **headers: str):
    headers = {"Replay-Nonce": f"nonce-{uuid.uuid4().hex}", **headers}
    return httpx.Response(status_code, json=json_body, headers=headers)


class FakeAcme:
    """respx routes emulating a CA for one dns-01 order of foo.duckdns.org.

    Every route can be re-mocked by a test to change the CA's behaviour.
    """

    domain = "foo.duckdns.org"

    def __init__(self, router: respx.MockRouter, chain: str):
        self.router = router
        self.chain = chain
        self.directory = router.get(DIRECTORY_URL).mock(
            return_value=httpx.Response(
                200,
                json={
                    "newNonce": f"{CA}/nonce",
                    "newAccount": f"{CA}/new-acct",
                    "newOrder": f"{CA}/new-order",
                    "meta": {"termsOfService": TERMS_URL},
                },
            )
        )
        self.nonce = router.head(f"{CA}/nonce").mock(
            return_value=httpx.Response(200, headers={"Replay-Nonce": "initial-nonce"})
        )
        self.new_account = router.post(f"{CA}/new-acct").mock(
            return_value=acme_response(
                201,
                {"status": "valid", "contact": ["mailto:admin@example.com"]},
                Location=ACCOUNT_URL,
            )
        )
        self.new_order = router.post(f"{CA}/new-order").mock(
            return_value=acme_response(201, self.order_json("pending"), Location=ORDER_URL)
        )
        self.authz = router.post(AUTHZ_URL).mock(
            return_value=acme_response(
                200,
                {
                    "status": "pending",
                    "identifier": {"type": "dns", "value": self.domain},
                    "challenges": [
                        {"type": "http-01", "url": f"{CA}/chall/0", "status": "pending", "token": "h"},
                        self.challenge_json("pending"),
                    ],
                },
            )
        )
        self.challenge = router.post(CHALLENGE_URL).mock(
            side_effect=[
                acme_response(200, self.challenge_json("pending")),
                acme_response(200, self.challenge_json("valid")),
            ]
        )
        self.finalize = router.post(FINALIZE_URL).mock(
            return_value=acme_response(200, self.order_json("processing"))
        )
        self.order = router.post(ORDER_URL).mock(
            return_value=acme_response(200, self.order_json("valid", certificate=CERT_URL))
        )
        self.certificate = router.post(CERT_URL).mock(
            return_value=httpx.Response(
                200,
                text=chain,
                headers={
                    "Content-Type": "application/pem-certificate-chain",
                    "Replay-Nonce": "cert-nonce",
                },
            )
        )

    def order_json(self, status: str, **extra) -> dict:
        return {
            "status": status,
            "identifiers": [{"type": "dns", "value": self.domain}],
            "authorizations": [AUTHZ_URL],
            "finalize": FINALIZE_URL,
            **extra,
        }

    def challenge_json(self, status: str, **extra) -> dict:
        return {"type": "dns-01", "url": CHALLENGE_URL, "status": status, "token": "tok", **extra}


@pytest.fixture
def fake_acme(make_chain) -> Generator[FakeAcme]:
    """Mock a CA at https://ca.test; other hosts are left for the test to mock."""
    with respx.mock(assert_all_called=False) as router:
        yield FakeAcme(router, make_chain())
