"""Key pair generation for each certificate purpose."""

import logging
from typing import assert_never

from .cert_utils import (
    generate_private_key,
    get_certificate_serial_hex,
    serialize_certificate,
    serialize_private_key,
    serialize_public_key,
)
from .certificate_builder import CertificateBuilder
from .config import DEFAULT_KEY_SIZE
from .models import KeyPair, Purpose

logger = logging.getLogger(__name__)


def generate_ca_key_pair(key_size: int = DEFAULT_KEY_SIZE) -> KeyPair:
    """Generate RSA key and self-signed CA certificate, both PEM encoded."""
    key = generate_private_key(key_size)
    cert = CertificateBuilder.build_self_signed_ca(key)
    logger.debug("Generated CA certificate with serial %s", get_certificate_serial_hex(cert))
    return KeyPair(
        cert=serialize_certificate(cert),
        key=serialize_private_key(key),
    )


def generate_service_account_key_pair(key_size: int = DEFAULT_KEY_SIZE) -> KeyPair:
    """Generate service account signing keys.

    The cert slot holds the PEM public key, not an X.509 certificate.
    """
    key = generate_private_key(key_size)
    return KeyPair(
        cert=serialize_public_key(key.public_key()),
        key=serialize_private_key(key),
    )


def generate_key_pair(purpose: Purpose, key_size: int = DEFAULT_KEY_SIZE) -> KeyPair | None:
    """Generate key material for a purpose.

    Args:
        purpose: Certificate purpose to generate for
        key_size: RSA key size in bits

    Returns:
        Generated key pair, or None for user supplied purposes
    """
    match purpose:
        case Purpose.SERVICE_ACCOUNT:
            return generate_service_account_key_pair(key_size)
        case Purpose.API_SERVER_ETCD_CLIENT:
            # Supplied by the user alongside the external etcd cluster.
            return None
        case Purpose.CLUSTER_CA | Purpose.CLIENT_CLUSTER_CA | Purpose.ETCD_CA:
            return generate_ca_key_pair(key_size)
        case _:
            assert_never(purpose)
