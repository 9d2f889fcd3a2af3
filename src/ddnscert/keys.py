"""Persistent account and domain key pairs."""

import os
from collections.abc import Callable
from pathlib import Path

from ddnscert._logging import get_logger
from ddnscert.crypto import PrivateKey, generate_rsa_key, load_private_key_pem, private_key_to_pem
from ddnscert.exceptions import KeyMaterialError

logger = get_logger(__name__)


def load_or_create_key(
    path: Path,
    generate: Callable[[], PrivateKey] = generate_rsa_key,
) -> PrivateKey:
    """Read the key stored at path, creating and storing one if missing.

    Once a key file exists it is never regenerated or overwritten. A new key
    is only returned after it has been written, since a key that was not
    persisted would make the next run present a different identity.

    Args:
        path: Location of the PEM key file.
        generate: Factory for a new key (RSA 2048 by default).

    Raises:
        KeyMaterialError: If an existing file cannot be parsed, or a new key
            cannot be written.
    """
    path = Path(path)
    if path.exists():
        try:
            key = load_private_key_pem(path.read_bytes())
        except (OSError, ValueError) as e:
            raise KeyMaterialError(path, f"Cannot read key: {e}") from e
        logger.debug("Loaded key", extra={"path": str(path)})
        return key

    key = generate()
    try:
        # O_EXCL so a file created concurrently is never clobbered
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except OSError as e:
        raise KeyMaterialError(path, f"Cannot create key file: {e}") from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(private_key_to_pem(key))
    except OSError as e:
        path.unlink(missing_ok=True)
        raise KeyMaterialError(path, f"Cannot write key: {e}") from e

    logger.info("Generated new key", extra={"path": str(path)})
    return key
