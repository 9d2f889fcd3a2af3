"""ACME account lookup and registration."""

from ddnscert._logging import get_logger
from ddnscert.client import AcmeClient
from ddnscert.exceptions import TermsOfServiceNotAccepted
from ddnscert.models import Account

logger = get_logger(__name__)


def resolve_account(
    client: AcmeClient,
    email: str | None,
    accepted_terms: str | None = None,
) -> Account:
    """Bind the client to the account of its key, registering it if new.

    When the CA publishes terms of service, registration only proceeds if
    the caller acknowledged them by passing their URL as accepted_terms.
    A changed terms URL therefore needs a fresh acknowledgment.

    Args:
        client: Session with the CA, holding the account key.
        email: Contact address for expiry and policy notices.
        accepted_terms: Terms of service URL the operator agreed to.

    Raises:
        TermsOfServiceNotAccepted: If terms exist and were not acknowledged.
        AcmeError: If the CA rejects the registration.
    """
    terms = client.directory.terms_of_service
    if terms is not None and accepted_terms != terms:
        logger.error("Terms of service not accepted", extra={"terms_of_service": terms})
        raise TermsOfServiceNotAccepted(terms)

    account = client.register_account(email=email, terms_agreed=terms is not None)
    logger.info("Using ACME account", extra={"url": account.url, "status": str(account.status)})
    return account
