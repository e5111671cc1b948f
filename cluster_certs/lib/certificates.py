"""Cluster bootstrap certificates: lookup, generation, persistence and projection."""

import logging
import posixpath
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm

from .ca_utils import generate_key_pair
from .cert_utils import hash_certificate, load_certificates_pem
from .config import DEFAULT_KEY_SIZE, CertificatesConfig
from .errors import (
    CertificateParseError,
    ExternalCertificateNotFoundError,
    GenerationError,
    MissingCertDataError,
    MissingCertificateError,
    MissingKeyDataError,
    MissingStoredFieldError,
    PersistConflictError,
)
from .models import (
    CERT_FILE_PERMISSIONS,
    CLUSTER_NAME_LABEL,
    CLUSTER_SECRET_TYPE,
    KEY_FILE_PERMISSIONS,
    ROOT_OWNER_VALUE,
    TLS_CRT_DATA_NAME,
    TLS_KEY_DATA_NAME,
    ClusterKey,
    File,
    KeyPair,
    OwnerReference,
    Purpose,
    Secret,
)
from .secret_store import (
    SecretAlreadyExistsError,
    SecretNotFoundError,
    SecretStore,
    secret_name,
)

logger = logging.getLogger(__name__)

# Order in which certificates are written to nodes.
FILE_ORDER = (
    Purpose.CLUSTER_CA,
    Purpose.CLIENT_CLUSTER_CA,
    Purpose.ETCD_CA,
    Purpose.API_SERVER_ETCD_CLIENT,
)


@dataclass
class Certificate:
    """A single certificate authority or signing key.

    ``external`` certificates must already exist in the store and are never
    generated. ``generated`` is set when this process created the material,
    which makes the secret owned by the reconciling object.
    """

    purpose: Purpose
    cert_file: str
    key_file: str
    external: bool = False
    generated: bool = False
    key_pair: KeyPair | None = None

    def _require_key_pair(self) -> KeyPair:
        if self.key_pair is None:
            raise MissingCertificateError(self.purpose)
        return self.key_pair

    def hashes(self) -> list[str]:
        """Return SPKI hashes for every certificate in the PEM bundle."""
        key_pair = self._require_key_pair()
        try:
            certificates = load_certificates_pem(key_pair.cert)
        except ValueError as e:
            raise CertificateParseError(self.purpose, str(e)) from e
        return [hash_certificate(cert) for cert in certificates]

    def generate(self, key_size: int = DEFAULT_KEY_SIZE) -> None:
        """Generate key material unless this purpose is user supplied.

        Raises:
            GenerationError: If key or certificate creation fails
        """
        if self.purpose.user_supplied_only:
            return
        try:
            key_pair = generate_key_pair(self.purpose, key_size)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise GenerationError(self.purpose, str(e)) from e
        if key_pair is None:
            return
        self.key_pair = key_pair
        self.generated = True
        logger.info("Generated certificate", extra={"purpose": str(self.purpose)})

    def as_secret(self, cluster: ClusterKey, owner: OwnerReference) -> Secret:
        """Convert the certificate into a secret record.

        The owner reference is attached only to generated material so that
        stored or user supplied secrets outlive the reconciling object.
        """
        key_pair = self._require_key_pair()
        return Secret(
            namespace=cluster.namespace,
            name=secret_name(cluster.name, self.purpose),
            labels={CLUSTER_NAME_LABEL: cluster.name},
            data={
                TLS_KEY_DATA_NAME: key_pair.key,
                TLS_CRT_DATA_NAME: key_pair.cert,
            },
            type=CLUSTER_SECRET_TYPE,
            owner_references=[owner] if self.generated else [],
        )

    def _decode(self, data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CertificateParseError(self.purpose, str(e)) from e

    def as_files(self) -> list[File]:
        """Convert the certificate into 0, 1 or 2 files; empty buffers are skipped.

        Raises:
            CertificateParseError: If stored data is not PEM text
        """
        key_pair = self._require_key_pair()
        out: list[File] = []
        if key_pair.cert:
            out.append(
                File(
                    path=self.cert_file,
                    owner=ROOT_OWNER_VALUE,
                    permissions=CERT_FILE_PERMISSIONS,
                    content=self._decode(key_pair.cert),
                )
            )
        if key_pair.key:
            out.append(
                File(
                    path=self.key_file,
                    owner=ROOT_OWNER_VALUE,
                    permissions=KEY_FILE_PERMISSIONS,
                    content=self._decode(key_pair.key),
                )
            )
        return out


def _secret_to_key_pair(purpose: Purpose, secret: Secret) -> KeyPair:
    cert = secret.data.get(TLS_CRT_DATA_NAME)
    if cert is None:
        raise MissingStoredFieldError(purpose, TLS_CRT_DATA_NAME)
    # tls.key may be absent for external client certificates.
    return KeyPair(cert=cert, key=secret.data.get(TLS_KEY_DATA_NAME, b""))


class Certificates:
    """Certificates necessary to bootstrap a cluster, at most one per purpose."""

    def __init__(self, certificates: Iterable[Certificate] = ()) -> None:
        self._by_purpose: dict[Purpose, Certificate] = {}
        for certificate in certificates:
            self.add(certificate)

    def add(self, certificate: Certificate) -> None:
        """Add a certificate to the collection.

        Raises:
            ValueError: If a certificate with the same purpose is already present
        """
        if certificate.purpose in self._by_purpose:
            raise ValueError(f"duplicate certificate purpose: {certificate.purpose}")
        self._by_purpose[certificate.purpose] = certificate

    def __iter__(self) -> Iterator[Certificate]:
        return iter(self._by_purpose.values())

    def __len__(self) -> int:
        return len(self._by_purpose)

    def get_by_purpose(self, purpose: Purpose) -> Certificate | None:
        """Return the certificate for a purpose, or None if not in the collection."""
        return self._by_purpose.get(purpose)

    def lookup(self, store: SecretStore, cluster: ClusterKey) -> None:
        """Populate certificates from secrets already in the store.

        Certificates generated during this run are left alone.

        Raises:
            ExternalCertificateNotFoundError: If an external certificate is not stored
            MissingStoredFieldError: If a stored secret has no certificate data
        """
        for certificate in self:
            if certificate.generated:
                continue
            name = secret_name(cluster.name, certificate.purpose)
            try:
                secret = store.get(name, cluster.namespace)
            except SecretNotFoundError as e:
                if certificate.external:
                    raise ExternalCertificateNotFoundError(certificate.purpose, str(e)) from e
                logger.debug("No stored secret %s/%s", cluster.namespace, name)
                continue
            certificate.key_pair = _secret_to_key_pair(certificate.purpose, secret)

    def ensure_all_exist(self) -> None:
        """Ensure there is certificate data for every certificate.

        Key data is only required for certificates that are not external.
        """
        for certificate in self:
            if certificate.key_pair is None:
                raise MissingCertificateError(certificate.purpose)
            if not certificate.key_pair.cert:
                raise MissingCertDataError(certificate.purpose)
            if not certificate.external and not certificate.key_pair.key:
                raise MissingKeyDataError(certificate.purpose)

    def generate(self, key_size: int = DEFAULT_KEY_SIZE) -> None:
        """Generate every certificate that has no key pair yet.

        External and user supplied certificates are never generated. Stops at
        the first failure; certificates already filled are kept.
        """
        for certificate in self:
            if certificate.external or certificate.purpose.user_supplied_only:
                continue
            if certificate.key_pair is None:
                certificate.generate(key_size)

    def save_generated(
        self, store: SecretStore, cluster: ClusterKey, owner: OwnerReference
    ) -> None:
        """Create secrets for certificates generated in this run.

        Raises:
            PersistConflictError: If another actor already stored the secret
        """
        for certificate in self:
            if not certificate.generated:
                continue
            secret = certificate.as_secret(cluster, owner)
            try:
                store.create(secret)
            except SecretAlreadyExistsError as e:
                raise PersistConflictError(certificate.purpose, str(e)) from e
            logger.info(
                "Saved generated certificate",
                extra={"purpose": str(certificate.purpose), "secret": secret.name},
            )

    def lookup_or_generate(
        self,
        store: SecretStore,
        cluster: ClusterKey,
        owner: OwnerReference,
        key_size: int = DEFAULT_KEY_SIZE,
    ) -> None:
        """Look up stored certificates, generate the missing ones and save them."""
        self.lookup(store, cluster)
        self.generate(key_size)
        self.save_generated(store, cluster, owner)

    def as_files(self) -> list[File]:
        """Convert the certificates into bootstrap files in node write order."""
        files: list[File] = []
        for purpose in FILE_ORDER:
            certificate = self.get_by_purpose(purpose)
            if certificate is not None:
                files.extend(certificate.as_files())
        return files


def new_certificates_for_initial_control_plane(
    config: CertificatesConfig | None = None, external_etcd: bool = False
) -> Certificates:
    """Return the certificates for the first control plane node.

    With ``external_etcd`` the etcd CA and the API server's etcd client
    certificate are added as external: the operator supplies them.
    """
    certificates_dir = (config or CertificatesConfig()).certificates_dir

    certificates = Certificates(
        [
            Certificate(
                purpose=Purpose.CLUSTER_CA,
                cert_file=posixpath.join(certificates_dir, "server-ca.crt"),
                key_file=posixpath.join(certificates_dir, "server-ca.key"),
            ),
            Certificate(
                purpose=Purpose.CLIENT_CLUSTER_CA,
                cert_file=posixpath.join(certificates_dir, "client-ca.crt"),
                key_file=posixpath.join(certificates_dir, "client-ca.key"),
            ),
        ]
    )

    if external_etcd:
        etcd_dir = posixpath.join(certificates_dir, "etcd")
        certificates.add(
            Certificate(
                purpose=Purpose.ETCD_CA,
                cert_file=posixpath.join(etcd_dir, "server-ca.crt"),
                key_file=posixpath.join(etcd_dir, "server-ca.key"),
                external=True,
            )
        )
        certificates.add(
            Certificate(
                purpose=Purpose.API_SERVER_ETCD_CLIENT,
                cert_file=posixpath.join(etcd_dir, "client.crt"),
                key_file=posixpath.join(etcd_dir, "client.key"),
                external=True,
            )
        )

    return certificates
