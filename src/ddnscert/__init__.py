"""ddnscert - ACME DNS-01 certificate renewal through dynamic-DNS providers."""

from ddnscert.client import AcmeClient
from ddnscert.config import RenewalConfig
from ddnscert.exceptions import RenewalError
from ddnscert.renewal import CertificateRenewer, renew

__all__ = ["AcmeClient", "CertificateRenewer", "RenewalConfig", "RenewalError", "renew"]
__version__ = "0.1.0"
