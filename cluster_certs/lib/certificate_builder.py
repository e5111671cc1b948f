"""Certificate builder for self-signed cluster CA construction."""

from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509 import oid

from .cert_utils import generate_serial_number

CA_COMMON_NAME = "kubernetes"
CA_VALIDITY = timedelta(days=365 * 10)
# Tolerates clock skew between the generating host and the nodes.
CA_BACKDATE = timedelta(minutes=5)


class CertificateBuilder:
    """Builds X.509 certificates for cluster certificate authorities."""

    @staticmethod
    def build_self_signed_ca(
        private_key: RSAPrivateKey,
        common_name: str = CA_COMMON_NAME,
        now: datetime | None = None,
    ) -> x509.Certificate:
        """Build self-signed cluster CA certificate.

        The CA may sign leaf certificates only (pathlen:0).

        Args:
            private_key: RSA private key for the CA, also used for signing
            common_name: CN for subject and issuer
            now: Reference time for the validity window (defaults to current UTC)

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = x509.Name([x509.NameAttribute(oid.NameOID.COMMON_NAME, common_name)])
        now = now or datetime.now(timezone.utc)
        not_before = now - CA_BACKDATE
        not_after = now + CA_VALIDITY
        public_key = private_key.public_key()

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(public_key)
            # Random: a zero serial is rejected and serials must be unique per issuer.
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=0),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(public_key),
                critical=False,
            )
        )

        return builder.sign(private_key, hashes.SHA256())
