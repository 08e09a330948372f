"""
crypto.py - small certificate/TLS helpers.

Why this exists:
- Keep all certificate bits in one place so the rest of the code can
  pin/compare/display certificates without worrying about encodings.
- Pins are stored as lowercase hex of the DER bytes so they drop cleanly
  into JSON.
- The TLS context deliberately skips CA-chain and hostname checks: the
  pinned certificate (see trust.py) is the only trust decision we make.

Notes:
- A "pin" here is the FULL DER certificate, not a hash. The SHA-256 digest
  is only for humans comparing certificates out of band.
- Functions return/accept bytes for raw DER and str for hex strings.
"""

import binascii
import datetime
import hashlib
import ipaddress
import ssl
from typing import Any, Dict, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

# -----------------------------
# Hex helpers (pin storage form)
# -----------------------------

def cert_to_hex(der: bytes) -> str:
    """DER bytes -> lowercase hex, the on-disk form of a pin."""
    return binascii.hexlify(der).decode("ascii")


def cert_from_hex(data: str) -> bytes:
    """
    Inverse of cert_to_hex().

    Strict on purpose: no whitespace, even length, non-empty. Raises
    ValueError (binascii.Error is a subclass) on anything else.
    """
    if not isinstance(data, str) or not data:
        raise ValueError("pin must be a non-empty hex string")
    return binascii.unhexlify(data)


# -------------------------
# Display helpers (humans only)
# -------------------------

def sha256_digest(der: bytes) -> str:
    """Colon-separated uppercase SHA-256, the way browsers show it."""
    digest = hashlib.sha256(der).hexdigest().upper()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))


def describe_certificate(der: bytes) -> Dict[str, Any]:
    """
    Parse a DER certificate and pull out the fields an operator cares about
    before pinning it. Raises ValueError if the bytes aren't a certificate.
    """
    cert = x509.load_der_x509_certificate(der)
    return {
        "subject": cert.subject.rfc4514_string(),
        "issuer": cert.issuer.rfc4514_string(),
        "not_before": cert.not_valid_before_utc.isoformat(),
        "not_after": cert.not_valid_after_utc.isoformat(),
        "sha256": sha256_digest(der),
    }


# -------------
# TLS
# -------------

def client_tls_context() -> ssl.SSLContext:
    """
    TLS client context with no CA roots and no hostname check.

    The handshake still encrypts; whether we *trust* the peer is decided
    afterwards by comparing its certificate to our pin.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    # Order matters: hostname checking must be off before CERT_NONE.
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    return ctx


def server_tls_context(cert_path: str, key_path: str) -> ssl.SSLContext:
    """Server side context for a local dev/test relay."""
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    ctx.load_cert_chain(cert_path, key_path)
    return ctx


# ---------------------------------------
# Self-signed certs for local relays/tests
# ---------------------------------------

def generate_self_signed(common_name: str, days: int = 365) -> Tuple[bytes, bytes]:
    """
    Make a throwaway self-signed certificate for `common_name`.

    Returns (cert_der, key_pem). EC P-256 keeps generation fast enough for
    test fixtures.
    """
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])

    try:
        san = x509.IPAddress(ipaddress.ip_address(common_name))
    except ValueError:
        san = x509.DNSName(common_name)

    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(minutes=5))
        .not_valid_after(now + datetime.timedelta(days=days))
        .add_extension(x509.SubjectAlternativeName([san]), critical=False)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )

    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return cert.public_bytes(serialization.Encoding.DER), key_pem


def der_to_pem(der: bytes) -> bytes:
    """DER certificate -> PEM, e.g. for ssl.load_cert_chain()."""
    cert = x509.load_der_x509_certificate(der)
    return cert.public_bytes(serialization.Encoding.PEM)
