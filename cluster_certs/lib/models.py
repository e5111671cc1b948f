"""Data models for cluster bootstrap certificates."""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

TLS_CRT_DATA_NAME = "tls.crt"
TLS_KEY_DATA_NAME = "tls.key"

CLUSTER_NAME_LABEL = "cluster.x-k8s.io/cluster-name"
CLUSTER_SECRET_TYPE = "cluster.x-k8s.io/secret"

ROOT_OWNER_VALUE = "root:root"
CERT_FILE_PERMISSIONS = "0640"
KEY_FILE_PERMISSIONS = "0600"


class Purpose(StrEnum):
    """Role a certificate plays in cluster bootstrap.

    The value is part of the stored secret name and must not change.
    """

    CLUSTER_CA = "ca"
    CLIENT_CLUSTER_CA = "cca"
    ETCD_CA = "etcd"
    API_SERVER_ETCD_CLIENT = "apiserver-etcd-client"
    SERVICE_ACCOUNT = "sa"

    @property
    def user_supplied_only(self) -> bool:
        """True when material for this purpose is never generated locally."""
        return self is Purpose.API_SERVER_ETCD_CLIENT


@dataclass
class KeyPair:
    """PEM certificate (or public key) bytes paired with PEM private key bytes.

    ``key`` is empty for records stored without private key material.
    """

    cert: bytes
    key: bytes = b""


@dataclass(frozen=True)
class ClusterKey:
    """Namespaced name of the cluster being bootstrapped."""

    namespace: str
    name: str


@dataclass(frozen=True)
class OwnerReference:
    """Owner attached to generated secrets so they share the owner's lifecycle."""

    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool | None = None
    block_owner_deletion: bool | None = None


@dataclass
class Secret:
    """Secret record as persisted by a SecretStore."""

    namespace: str
    name: str
    data: dict[str, bytes]
    labels: dict[str, str] = field(default_factory=dict)
    type: str = CLUSTER_SECRET_TYPE
    owner_references: list[OwnerReference] = field(default_factory=list)


@dataclass(frozen=True)
class File:
    """File to be written on a node during provisioning."""

    path: str
    owner: str
    permissions: str
    content: str


@dataclass
class BootstrapResult:
    """Result from a certificate bootstrap run.

    Contains the purposes generated in this run, the cluster CA trust
    pinning hashes and any files written to disk.
    """

    generated: list[Purpose]
    cluster_ca_hashes: list[str]
    written_files: list[Path] = field(default_factory=list)
