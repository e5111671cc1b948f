#!/usr/bin/env python3
"""Bootstrap cluster CAs - look up stored certificates, generate missing ones, save them."""

import argparse
import sys
from pathlib import Path

from cluster_certs.lib.certificates import new_certificates_for_initial_control_plane
from cluster_certs.lib.config import DEFAULT_KEY_SIZE, CertificatesConfig, StoreConfig
from cluster_certs.lib.dynamodb_store import DynamoDBSecretStore
from cluster_certs.lib.errors import CertificateError
from cluster_certs.lib.logging_config import LOGGER
from cluster_certs.lib.models import BootstrapResult, ClusterKey, File, OwnerReference, Purpose
from cluster_certs.lib.secret_store import SecretStore


def write_files(files: list[File], root_dir: Path) -> list[Path]:
    """Write bootstrap files below root_dir with their permission modes.

    Absolute file paths are re-rooted under root_dir, so
    /var/lib/rancher/k3s/server/tls/server-ca.crt lands in
    {root_dir}/var/lib/rancher/k3s/server/tls/server-ca.crt.

    Returns:
        Paths written, in file order
    """
    written: list[Path] = []
    for file in files:
        path = root_dir / file.path.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)
        # Restrict the mode before any key material is written.
        mode = int(file.permissions, 8)
        path.touch(mode=mode, exist_ok=True)
        path.chmod(mode)
        path.write_text(file.content, encoding="utf-8")
        written.append(path)
    return written


def bootstrap_cluster_certs(
    cluster: ClusterKey,
    owner: OwnerReference,
    store: SecretStore,
    config: CertificatesConfig,
    external_etcd: bool = False,
    output_dir: Path | None = None,
) -> BootstrapResult:
    """Make sure every bootstrap certificate of the cluster exists exactly once.

    1. Look up stored certificates
    2. Generate and save the missing ones
    3. Verify every certificate has its data
    4. Optionally write the node files to output_dir

    Args:
        cluster: Namespaced cluster name
        owner: Owner attached to generated secrets
        store: Secret store to read from and create in
        config: Certificate layout and key size
        external_etcd: Whether etcd certificates are supplied by the operator
        output_dir: Directory to write node files into, skipped when None

    Returns:
        BootstrapResult with generated purposes, cluster CA hashes and written files
    """
    certificates = new_certificates_for_initial_control_plane(config, external_etcd=external_etcd)
    certificates.lookup_or_generate(store, cluster, owner, key_size=config.key_size)
    certificates.ensure_all_exist()

    generated = [certificate.purpose for certificate in certificates if certificate.generated]
    LOGGER.info("Generated %d of %d certificates", len(generated), len(certificates))

    cluster_ca = certificates.get_by_purpose(Purpose.CLUSTER_CA)
    hashes = cluster_ca.hashes() if cluster_ca is not None else []

    written: list[Path] = []
    if output_dir is not None:
        written = write_files(certificates.as_files(), output_dir)
        LOGGER.info("Wrote %d files under %s", len(written), output_dir)

    return BootstrapResult(generated=generated, cluster_ca_hashes=hashes, written_files=written)


def main() -> int:
    """Bootstrap cluster certificates.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    store_defaults = StoreConfig()
    parser = argparse.ArgumentParser(
        description="Look up or generate cluster bootstrap CAs (create-only)"
    )
    parser.add_argument("--cluster-name", required=True, help="Cluster name")
    parser.add_argument(
        "--namespace",
        default="default",
        help="Cluster namespace (default: default)",
    )
    parser.add_argument("--owner-api-version", required=True, help="Owner apiVersion")
    parser.add_argument("--owner-kind", required=True, help="Owner kind")
    parser.add_argument("--owner-name", required=True, help="Owner name")
    parser.add_argument("--owner-uid", required=True, help="Owner UID")
    parser.add_argument(
        "--table",
        default=store_defaults.table_name,
        help=f"DynamoDB table name (default: {store_defaults.table_name})",
    )
    parser.add_argument(
        "--region",
        default=store_defaults.region,
        help=f"AWS region (default: {store_defaults.region})",
    )
    parser.add_argument(
        "--external-etcd",
        action="store_true",
        help="Expect operator supplied etcd CA and API server etcd client certificates",
    )
    parser.add_argument(
        "--key-size",
        type=int,
        default=DEFAULT_KEY_SIZE,
        help=f"RSA key size for generated keys (default: {DEFAULT_KEY_SIZE})",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Write node certificate files below this directory",
    )
    args = parser.parse_args()

    cluster = ClusterKey(namespace=args.namespace, name=args.cluster_name)
    owner = OwnerReference(
        api_version=args.owner_api_version,
        kind=args.owner_kind,
        name=args.owner_name,
        uid=args.owner_uid,
        controller=True,
        block_owner_deletion=True,
    )

    try:
        store = DynamoDBSecretStore(table_name=args.table, region=args.region)
        config = CertificatesConfig(key_size=args.key_size)

        LOGGER.info("Bootstrapping certificates for %s/%s...", cluster.namespace, cluster.name)
        result = bootstrap_cluster_certs(
            cluster=cluster,
            owner=owner,
            store=store,
            config=config,
            external_etcd=args.external_etcd,
            output_dir=args.output_dir,
        )

        for purpose in result.generated:
            LOGGER.info("  Generated: %s", purpose)
        for spki_hash in result.cluster_ca_hashes:
            LOGGER.info("  Cluster CA hash: %s", spki_hash)
        return 0

    except CertificateError as e:
        LOGGER.error("Certificate bootstrap failed (%s): %s", e.kind, e)
        return 1
    except Exception as e:
        LOGGER.error("Certificate bootstrap failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
