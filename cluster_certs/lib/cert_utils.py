"""Certificate utility functions for key generation, serialization, and SPKI hashing."""

import hashlib
import uuid

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .config import DEFAULT_KEY_SIZE

SPKI_HASH_PREFIX = "sha256:"


def generate_private_key(key_size: int = DEFAULT_KEY_SIZE) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS1 "RSA PRIVATE KEY", no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes."""
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def serialize_public_key(key: RSAPublicKey) -> bytes:
    """Serialize public key to PEM format (SubjectPublicKeyInfo)."""
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def load_certificates_pem(pem_data: bytes) -> list[x509.Certificate]:
    """Parse one or more concatenated PEM certificates.

    Raises:
        ValueError: If no certificate can be parsed from the data
    """
    return x509.load_pem_x509_certificates(pem_data)


def generate_serial_number() -> int:
    """Generate certificate serial number from UUID4 (128-bit, positive)."""
    return uuid.uuid4().int


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def hash_certificate(cert: x509.Certificate) -> str:
    """Return the SHA-256 hash of the certificate's SubjectPublicKeyInfo.

    The hash only covers the public key, so it stays the same when a
    certificate is reissued for the same key. Format: ``sha256:<lowercase hex>``.
    """
    spki = cert.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return SPKI_HASH_PREFIX + hashlib.sha256(spki).hexdigest()
