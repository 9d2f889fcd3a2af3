"""Pydantic models for ACME protocol resources."""

from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

# =============================================================================
# ACME Protocol Enums (RFC 8555)
# =============================================================================


class Status(StrEnum):
    """Status of any ACME resource (RFC 8555 Section 7.1.6).

    Only VALID and INVALID are terminal. Every other value means the
    resource is still settling and has to be polled.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    VALID = "valid"
    INVALID = "invalid"
    DEACTIVATED = "deactivated"
    EXPIRED = "expired"
    REVOKED = "revoked"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> "Status":
        return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        return self in (Status.VALID, Status.INVALID)


class ChallengeType(StrEnum):
    """Challenge types (RFC 8555 Section 8)."""

    HTTP_01 = "http-01"
    DNS_01 = "dns-01"
    TLS_ALPN_01 = "tls-alpn-01"


class IdentifierType(StrEnum):
    """Identifier types (RFC 8555 Section 9.7.7)."""

    DNS = "dns"


# =============================================================================
# Pydantic Models
# =============================================================================


class Directory(BaseModel):
    """ACME directory resource (RFC 8555 Section 7.1.1)."""

    new_nonce: str = Field(alias="newNonce")
    new_account: str = Field(alias="newAccount")
    new_order: str = Field(alias="newOrder")
    revoke_cert: str | None = Field(default=None, alias="revokeCert")
    key_change: str | None = Field(default=None, alias="keyChange")
    meta: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}

    @property
    def terms_of_service(self) -> str | None:
        """URL of the CA's terms of service, if it publishes any."""
        if not self.meta:
            return None
        return self.meta.get("termsOfService")


class Account(BaseModel):
    """ACME account resource (RFC 8555 Section 7.1.2)."""

    status: Status
    contact: list[str] | None = None
    orders: str | None = None
    terms_of_service_agreed: bool | None = Field(default=None, alias="termsOfServiceAgreed")
    url: str | None = None

    model_config = {"populate_by_name": True}


class Identifier(BaseModel):
    """ACME identifier (RFC 8555 Section 7.1.3)."""

    type: IdentifierType
    value: str


class Challenge(BaseModel):
    """ACME challenge resource (RFC 8555 Section 7.5.1)."""

    type: str
    url: str
    status: Status
    token: str | None = None
    validated: datetime | None = None
    error: dict[str, Any] | None = None


class Authorization(BaseModel):
    """ACME authorization resource (RFC 8555 Section 7.1.4)."""

    status: Status
    identifier: Identifier
    challenges: list[Challenge]
    expires: datetime | None = None
    wildcard: bool | None = None
    url: str | None = None

    def find_challenge(self, challenge_type: str) -> Challenge | None:
        for challenge in self.challenges:
            if challenge.type == challenge_type:
                return challenge
        return None


class Order(BaseModel):
    """ACME order resource (RFC 8555 Section 7.1.3)."""

    status: Status
    identifiers: list[Identifier]
    authorizations: list[str]
    finalize: str
    expires: datetime | None = None
    not_before: datetime | None = Field(default=None, alias="notBefore")
    not_after: datetime | None = Field(default=None, alias="notAfter")
    certificate: str | None = None
    error: dict[str, Any] | None = None
    url: str | None = None

    model_config = {"populate_by_name": True}


def problem_reason(problem: dict[str, Any] | None) -> str:
    """Human readable reason from an embedded problem document."""
    if not problem:
        return "unknown"
    return problem.get("detail") or problem.get("type") or "unknown"


class RenewalResult(BaseModel):
    """Outcome of a successful renewal."""

    chain_path: Path
    certificate_url: str
    expires_at: datetime
    domains: list[str]
