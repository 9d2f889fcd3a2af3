"""Unit tests for account resolution."""

import httpx
import pytest

from conftest import DIRECTORY_URL, TERMS_URL, jws_payload
from ddnscert.account import resolve_account
from ddnscert.client import AcmeClient
from ddnscert.exceptions import AcmeError, TermsOfServiceNotAccepted


@pytest.fixture
def client(fake_acme, ec_key):
    with AcmeClient(DIRECTORY_URL, ec_key) as client:
        yield client


class TestTermsOfService:
    """Tests for explicit terms of service consent."""

    def test_unacknowledged_terms_block_registration(self, client, fake_acme):
        """Without consent no account request is sent."""
        with pytest.raises(TermsOfServiceNotAccepted) as exc_info:
            resolve_account(client, "admin@example.com")

        assert exc_info.value.terms_of_service == TERMS_URL
        assert not fake_acme.new_account.called

    def test_outdated_acknowledgment_blocks_registration(self, client, fake_acme):
        """Consent to a previous terms URL does not carry over."""
        with pytest.raises(TermsOfServiceNotAccepted):
            resolve_account(client, "admin@example.com", "https://ca.test/terms/v0")

        assert not fake_acme.new_account.called

    def test_acknowledged_terms_are_agreed(self, client, fake_acme):
        """Matching consent registers with termsOfServiceAgreed."""
        account = resolve_account(client, "admin@example.com", TERMS_URL)

        assert account.url == "https://ca.test/acct/1"
        payload = jws_payload(fake_acme.new_account.calls.last.request)
        assert payload["termsOfServiceAgreed"] is True
        assert payload["contact"] == ["mailto:admin@example.com"]

    def test_no_terms_published(self, client, fake_acme):
        """A CA without terms needs no consent."""
        fake_acme.directory.mock(
            return_value=httpx.Response(
                200,
                json={
                    "newNonce": "https://ca.test/nonce",
                    "newAccount": "https://ca.test/new-acct",
                    "newOrder": "https://ca.test/new-order",
                },
            )
        )

        resolve_account(client, "admin@example.com")

        payload = jws_payload(fake_acme.new_account.calls.last.request)
        assert payload["termsOfServiceAgreed"] is False


class TestRegistration:
    """Tests for registration outcomes."""

    def test_existing_account_returned(self, client, fake_acme):
        """A 200 for a known key yields the existing account."""
        fake_acme.new_account.mock(
            return_value=httpx.Response(
                200,
                json={"status": "valid"},
                headers={"Location": "https://ca.test/acct/existing", "Replay-Nonce": "n"},
            )
        )

        account = resolve_account(client, "admin@example.com", TERMS_URL)

        assert account.url == "https://ca.test/acct/existing"

    def test_rejection_propagates(self, client, fake_acme):
        """CA rejections surface unchanged and are not retried."""
        fake_acme.new_account.mock(
            return_value=httpx.Response(
                400,
                json={
                    "type": "urn:ietf:params:acme:error:invalidContact",
                    "detail": "invalid contact domain",
                },
            )
        )

        with pytest.raises(AcmeError, match="invalid contact domain"):
            resolve_account(client, "admin@example.invalid", TERMS_URL)

        assert fake_acme.new_account.call_count == 1
