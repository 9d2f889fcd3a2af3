"""Certificate chain persistence."""

import os
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

from cryptography import x509

from ddnscert._logging import get_logger

logger = get_logger(__name__)


def load_chain(pem: str) -> list[x509.Certificate]:
    """Parse a PEM chain, leaf first.

    Raises:
        ValueError: If the text holds no certificate.
    """
    certificates = x509.load_pem_x509_certificates(pem.encode())
    if not certificates:
        raise ValueError("No certificate found in PEM data")
    return certificates


def write_chain(path: Path, pem: str) -> None:
    """Replace the chain file at path in a single step.

    The chain is written to a temporary file next to the target and then
    renamed over it, so readers see either the old or the new chain.
    """
    path = Path(path)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="ascii") as f:
            f.write(pem)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
    logger.info("Certificate chain written", extra={"path": str(path)})


def certificate_expiry(path: Path) -> datetime | None:
    """Expiry of the leaf certificate stored at path, or None if absent."""
    path = Path(path)
    if not path.exists():
        return None
    return load_chain(path.read_text(encoding="ascii"))[0].not_valid_after_utc


def needs_renewal(path: Path, within: timedelta = timedelta(days=30)) -> bool:
    """Whether the stored certificate is missing or expires within the window."""
    expires_at = certificate_expiry(path)
    if expires_at is None:
        return True
    remaining = expires_at - datetime.now(UTC)
    logger.debug("Certificate expiry checked", extra={"path": str(path), "remaining": str(remaining)})
    return remaining <= within
