"""Renewal configuration."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, SecretStr, field_validator

from ddnscert.client import LETSENCRYPT_DIRECTORY, LETSENCRYPT_STAGING_DIRECTORY
from ddnscert.polling import DEFAULT_INTERVAL, DEFAULT_MAX_ATTEMPTS
from ddnscert.providers.duckdns import DUCKDNS_UPDATE_URL
from ddnscert.resolver import GOOGLE_DOH_URL

ACCOUNT_KEY_FILENAME = "user.key"
DOMAIN_KEY_FILENAME = "domain.key"
CHAIN_FILENAME = "chain.pem"


class RenewalConfig(BaseModel):
    """Everything one renewal run needs.

    The embedding host owns where these values come from. ``from_env`` is
    provided for hosts that have no configuration layer of their own.
    """

    storage_dir: Path
    domain: str = Field(min_length=1)
    email: str = Field(min_length=3)
    dns_token: SecretStr
    accept_terms_of_service: str | None = None
    directory_url: str = LETSENCRYPT_DIRECTORY
    staging: bool = False
    duckdns_url: str = DUCKDNS_UPDATE_URL
    resolver_url: str = GOOGLE_DOH_URL
    poll_interval: float = Field(default=DEFAULT_INTERVAL, gt=0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    http_timeout: float = Field(default=30.0, gt=0)
    ca_cert: str | bool | None = None

    model_config = {"frozen": True}

    @field_validator("domain")
    @classmethod
    def _has_domain(cls, value: str) -> str:
        if not any(d.strip() for d in value.split(",")):
            raise ValueError("At least one domain is required")
        return value

    @field_validator("ca_cert", mode="before")
    @classmethod
    def _parse_verify_flag(cls, value: Any) -> Any:
        # "true"/"false" from the environment mean verify on/off, not a bundle path
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        return value

    @property
    def domains(self) -> list[str]:
        """Domains of the order; a comma separated domain gives several."""
        return [d.strip() for d in self.domain.split(",") if d.strip()]

    @property
    def acme_directory(self) -> str:
        """Directory URL, honoring the staging switch."""
        if self.staging and self.directory_url == LETSENCRYPT_DIRECTORY:
            return LETSENCRYPT_STAGING_DIRECTORY
        return self.directory_url

    @property
    def account_key_path(self) -> Path:
        return self.storage_dir / ACCOUNT_KEY_FILENAME

    @property
    def domain_key_path(self) -> Path:
        return self.storage_dir / DOMAIN_KEY_FILENAME

    @property
    def chain_path(self) -> Path:
        return self.storage_dir / CHAIN_FILENAME

    @classmethod
    def from_env(
        cls,
        prefix: str = "DDNSCERT_",
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "RenewalConfig":
        """Build a config from ``<prefix><FIELD>`` environment variables.

        Example: ``DDNSCERT_DOMAIN=foo.duckdns.org``. Keyword overrides win
        over the environment.

        Raises:
            pydantic.ValidationError: If required values are missing or invalid.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            key = f"{prefix}{name.upper()}"
            if key in environ:
                values[name] = environ[key]
        values.update(overrides)
        return cls.model_validate(values)
