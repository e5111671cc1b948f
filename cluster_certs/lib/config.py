"""Certificate bootstrap configuration dataclasses."""

from dataclasses import dataclass

DEFAULT_CERTIFICATES_DIR = "/var/lib/rancher/k3s/server/tls"
DEFAULT_KEY_SIZE = 2048


@dataclass
class CertificatesConfig:
    """Node-side certificate layout with no AWS dependencies."""

    certificates_dir: str = DEFAULT_CERTIFICATES_DIR
    key_size: int = DEFAULT_KEY_SIZE


@dataclass
class StoreConfig:
    """DynamoDB table holding cluster secrets."""

    table_name: str = "cluster-certificates"
    region: str = "eu-west-2"
