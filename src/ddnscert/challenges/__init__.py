"""ACME challenge handlers."""

from ddnscert.challenges.dns01 import (
    Dns01Fulfiller,
    challenge_record_name,
    compute_dns_txt_value,
    compute_key_authorization,
)

__all__ = [
    "Dns01Fulfiller",
    "challenge_record_name",
    "compute_dns_txt_value",
    "compute_key_authorization",
]
