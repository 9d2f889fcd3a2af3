"""Key, CSR and JWS primitives for talking to an ACME server."""

import base64
import hashlib
import json

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature
from cryptography.x509.oid import NameOID

# Type alias for private keys
PrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey

# curve name -> (JWK crv, JWS alg, coordinate size in bytes, hash)
_CURVES = {
    "secp256r1": ("P-256", "ES256", 32, hashes.SHA256),
    "secp384r1": ("P-384", "ES384", 48, hashes.SHA384),
}


def generate_rsa_key(key_size: int = 2048) -> rsa.RSAPrivateKey:
    """Generate an RSA private key.

    Args:
        key_size: Key size in bits (2048 or 4096 recommended).
    """
    return rsa.generate_private_key(public_exponent=65537, key_size=key_size)


def generate_ecdsa_key(curve: str = "P-256") -> ec.EllipticCurvePrivateKey:
    """Generate an ECDSA private key.

    Args:
        curve: Curve name ("P-256" or "P-384").

    Raises:
        ValueError: If curve is not supported.
    """
    curves = {"P-256": ec.SECP256R1(), "P-384": ec.SECP384R1()}
    if curve not in curves:
        raise ValueError(f"Unsupported curve: {curve}. Supported: {list(curves)}")
    return ec.generate_private_key(curves[curve])


def load_private_key_pem(pem_data: bytes) -> PrivateKey:
    """Load an unencrypted RSA or ECDSA private key from PEM bytes.

    Raises:
        ValueError: If the data is not a usable private key.
    """
    try:
        key = serialization.load_pem_private_key(pem_data, password=None)
    except TypeError as e:
        # raised for encrypted keys loaded without a password
        raise ValueError("Encrypted keys are not supported") from e
    except ValueError as e:
        raise ValueError(f"Invalid PEM data: {e}") from e

    if not isinstance(key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise ValueError(f"Unsupported key type: {type(key).__name__}")
    if isinstance(key, ec.EllipticCurvePrivateKey) and key.curve.name not in _CURVES:
        raise ValueError(f"Unsupported curve: {key.curve.name}")
    return key


def private_key_to_pem(key: PrivateKey) -> bytes:
    """Serialize a private key as unencrypted PKCS#8 PEM."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def create_csr(key: PrivateKey, domains: list[str]) -> x509.CertificateSigningRequest:
    """Create a CSR naming every domain as a SAN and the first as CN.

    Raises:
        ValueError: If domains list is empty.
    """
    if not domains:
        raise ValueError("At least one domain is required")

    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, domains[0])])
    san = x509.SubjectAlternativeName([x509.DNSName(domain) for domain in domains])

    return (
        x509.CertificateSigningRequestBuilder()
        .subject_name(subject)
        .add_extension(san, critical=False)
        .sign(key, hashes.SHA256())
    )


def base64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _int_to_base64url(n: int, length: int | None = None) -> str:
    if length is None:
        length = (n.bit_length() + 7) // 8
    return base64url_encode(n.to_bytes(length, byteorder="big"))


def get_jwk(key: PrivateKey) -> dict[str, str]:
    """Get the JWK (JSON Web Key) representation of the public half of a key."""
    if isinstance(key, rsa.RSAPrivateKey):
        numbers = key.public_key().public_numbers()
        return {"kty": "RSA", "n": _int_to_base64url(numbers.n), "e": _int_to_base64url(numbers.e)}

    numbers = key.public_key().public_numbers()
    crv, _, size, _ = _CURVES[key.curve.name]
    return {
        "kty": "EC",
        "crv": crv,
        "x": _int_to_base64url(numbers.x, size),
        "y": _int_to_base64url(numbers.y, size),
    }


def key_thumbprint(key: PrivateKey) -> str:
    """Compute the JWK thumbprint of a key (RFC 7638).

    Returns:
        Base64url-encoded SHA-256 thumbprint.
    """
    # Required members only, lexicographic order, no whitespace
    jwk = get_jwk(key)
    required = ("e", "kty", "n") if jwk["kty"] == "RSA" else ("crv", "kty", "x", "y")
    canonical = json.dumps({k: jwk[k] for k in required}, sort_keys=True, separators=(",", ":"))
    return base64url_encode(hashlib.sha256(canonical.encode("utf-8")).digest())


def _algorithm(key: PrivateKey) -> str:
    if isinstance(key, rsa.RSAPrivateKey):
        return "RS256"
    return _CURVES[key.curve.name][1]


def _sign(key: PrivateKey, data: bytes) -> bytes:
    if isinstance(key, rsa.RSAPrivateKey):
        return key.sign(data, padding.PKCS1v15(), hashes.SHA256())

    _, _, size, hash_cls = _CURVES[key.curve.name]
    r, s = decode_dss_signature(key.sign(data, ec.ECDSA(hash_cls())))
    # JWS wants fixed-size r||s, not DER
    return r.to_bytes(size, byteorder="big") + s.to_bytes(size, byteorder="big")


def sign_jws(
    key: PrivateKey,
    payload: dict | str,
    url: str,
    nonce: str,
    kid: str | None = None,
) -> dict[str, str]:
    """Sign a payload as a flattened JWS for an ACME request.

    Args:
        key: Account key to sign with.
        payload: Payload to sign (dict for JSON, "" for POST-as-GET).
        url: URL of the ACME endpoint.
        nonce: Replay nonce.
        kid: Account URL once registered. Without it the JWK is embedded.

    Returns:
        The JWS in flattened JSON serialization.
    """
    protected: dict[str, str | dict] = {"alg": _algorithm(key), "url": url, "nonce": nonce}
    if kid:
        protected["kid"] = kid
    else:
        protected["jwk"] = get_jwk(key)

    protected_b64 = base64url_encode(json.dumps(protected, separators=(",", ":")).encode("utf-8"))
    if payload == "":
        payload_b64 = ""
    else:
        payload_b64 = base64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))

    signature = _sign(key, f"{protected_b64}.{payload_b64}".encode())

    return {
        "protected": protected_b64,
        "payload": payload_b64,
        "signature": base64url_encode(signature),
    }
