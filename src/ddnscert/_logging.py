"""Logging utilities for the ddnscert library."""

import logging
import time
from contextvars import ContextVar, Token

# Silent unless the embedding host configures logging
_root = logging.getLogger("ddnscert")
_root.addHandler(logging.NullHandler())

# Domains of the renewal currently running
_current_domains: ContextVar[list[str] | None] = ContextVar("current_domains", default=None)


def set_domains(domains: list[str] | None) -> Token[list[str] | None]:
    """Tag subsequent log records with the domains being renewed.

    Args:
        domains: Domains of the current order.

    Returns:
        Token to pass to reset_domains().
    """
    return _current_domains.set(domains)


def reset_domains(token: Token[list[str] | None]) -> None:
    """Restore the domain context saved by set_domains()."""
    _current_domains.reset(token)


def get_domain_extra() -> dict[str, list[str] | str]:
    """Get domain info for log extra fields.

    Returns:
        Dict with 'domain' (single) or 'domains' (multiple), or empty dict.
    """
    domains = _current_domains.get()
    if domains is None:
        return {}
    if len(domains) == 1:
        return {"domain": domains[0]}
    return {"domains": domains}


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ddnscert namespace.

    Args:
        name: The module name (typically __name__).
    """
    return logging.getLogger(name)


class Timer:
    """Context manager measuring wall time in milliseconds.

    Usage:
        with Timer() as t:
            renewer.renew()
        logger.info("Done", extra={"elapsed_ms": t.elapsed_ms})
    """

    def __init__(self) -> None:
        self.elapsed_ms: float = 0
        self._start: float = 0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000
