"""Test fixtures for cluster_certs tests."""

from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from cluster_certs.lib.ca_utils import generate_ca_key_pair
from cluster_certs.lib.cert_utils import generate_private_key
from cluster_certs.lib.certificate_builder import CertificateBuilder
from cluster_certs.lib.config import CertificatesConfig
from cluster_certs.lib.models import ClusterKey, KeyPair, OwnerReference, Secret
from cluster_certs.lib.secret_store import SecretAlreadyExistsError, SecretNotFoundError


class FakeSecretStore:
    """In-memory create-only secret store recording every call."""

    def __init__(self) -> None:
        self.secrets: dict[tuple[str, str], Secret] = {}
        self.get_calls: list[tuple[str, str]] = []
        self.created: list[Secret] = []

    def seed(self, secret: Secret) -> None:
        """Store a secret without recording it as created."""
        self.secrets[(secret.namespace, secret.name)] = secret

    def get(self, name: str, namespace: str) -> Secret:
        self.get_calls.append((namespace, name))
        try:
            return self.secrets[(namespace, name)]
        except KeyError:
            raise SecretNotFoundError(namespace, name) from None

    def create(self, secret: Secret) -> None:
        key = (secret.namespace, secret.name)
        if key in self.secrets:
            raise SecretAlreadyExistsError(secret.namespace, secret.name)
        self.secrets[key] = secret
        self.created.append(secret)


@pytest.fixture
def store() -> FakeSecretStore:
    """Return an empty in-memory secret store."""
    return FakeSecretStore()


@pytest.fixture
def cluster() -> ClusterKey:
    """Return test cluster key."""
    return ClusterKey(namespace="default", name="test-cluster")


@pytest.fixture
def owner() -> OwnerReference:
    """Return test owner reference."""
    return OwnerReference(
        api_version="controlplane.cluster.x-k8s.io/v1beta1",
        kind="KThreesControlPlane",
        name="test-cluster-control-plane",
        uid="6f1f8c1e-0c1a-4d4f-9a4e-2b7c1d3e5f60",
        controller=True,
        block_owner_deletion=True,
    )


@pytest.fixture
def certificates_config(tmp_path: Path) -> CertificatesConfig:
    """Return certificate config with a temporary certificates dir."""
    return CertificatesConfig(certificates_dir=str(tmp_path / "tls"), key_size=2048)


@pytest.fixture
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for a cluster CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def ca_cert(ca_key: RSAPrivateKey) -> x509.Certificate:
    """Generate self-signed cluster CA certificate."""
    return CertificateBuilder.build_self_signed_ca(ca_key)


@pytest.fixture(scope="session")
def ca_key_pair() -> KeyPair:
    """Generate one PEM encoded CA key pair shared across tests."""
    return generate_ca_key_pair(key_size=2048)
