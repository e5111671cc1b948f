"""DynamoDB-backed secret store for cluster certificates."""

import logging
from typing import Any, cast

import boto3
from boto3.dynamodb.types import Binary
from botocore.exceptions import ClientError
from mypy_boto3_dynamodb.service_resource import DynamoDBServiceResource
from mypy_boto3_dynamodb.type_defs import TableAttributeValueTypeDef

from .models import CLUSTER_SECRET_TYPE, OwnerReference, Secret
from .secret_store import SecretAlreadyExistsError, SecretNotFoundError

logger = logging.getLogger(__name__)

PARTITION_KEY = "secretId"


def secret_id(namespace: str, name: str) -> str:
    """Return the partition key value for a namespaced secret."""
    return f"{namespace}/{name}"


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, Binary):
        return bytes(value.value)
    return bytes(value)


def _owner_reference_to_item(owner: OwnerReference) -> dict[str, Any]:
    item: dict[str, Any] = {
        "apiVersion": owner.api_version,
        "kind": owner.kind,
        "name": owner.name,
        "uid": owner.uid,
    }
    if owner.controller is not None:
        item["controller"] = owner.controller
    if owner.block_owner_deletion is not None:
        item["blockOwnerDeletion"] = owner.block_owner_deletion
    return item


def _parse_owner_reference(item: dict[str, Any]) -> OwnerReference:
    return OwnerReference(
        api_version=str(item["apiVersion"]),
        kind=str(item["kind"]),
        name=str(item["name"]),
        uid=str(item["uid"]),
        controller=item.get("controller"),
        block_owner_deletion=item.get("blockOwnerDeletion"),
    )


def _parse_item_to_secret(item: dict[str, TableAttributeValueTypeDef]) -> Secret:
    """Convert raw DynamoDB item to Secret, keeping absent data keys absent."""
    data = cast(dict[str, Any], item.get("data", {}))
    labels = cast(dict[str, Any], item.get("labels", {}))
    owners = cast(list[dict[str, Any]], item.get("ownerReferences", []))
    return Secret(
        namespace=str(item["namespace"]),
        name=str(item["name"]),
        data={str(k): _to_bytes(v) for k, v in data.items()},
        labels={str(k): str(v) for k, v in labels.items()},
        type=str(item.get("type", CLUSTER_SECRET_TYPE)),
        owner_references=[_parse_owner_reference(owner) for owner in owners],
    )


def _secret_to_item(secret: Secret) -> dict[str, Any]:
    return {
        PARTITION_KEY: secret_id(secret.namespace, secret.name),
        "namespace": secret.namespace,
        "name": secret.name,
        "labels": dict(secret.labels),
        "data": dict(secret.data),
        "type": secret.type,
        "ownerReferences": [_owner_reference_to_item(o) for o in secret.owner_references],
    }


class DynamoDBSecretStore:
    """Secret store on a DynamoDB table keyed by ``secretId`` ("{namespace}/{name}")."""

    def __init__(self, table_name: str, region: str = "eu-west-2") -> None:
        """Initialize DynamoDB secret store.

        Args:
            table_name: DynamoDB table name
            region: AWS region for DynamoDB resource
        """
        self.table_name = table_name
        self.resource: DynamoDBServiceResource = boto3.resource("dynamodb", region_name=region)

    def get(self, name: str, namespace: str) -> Secret:
        """Read a secret with a strongly consistent read.

        Raises:
            SecretNotFoundError: If no item exists for the secret
            ClientError: For any other DynamoDB failure
        """
        table = self.resource.Table(self.table_name)
        response = table.get_item(
            Key={PARTITION_KEY: secret_id(namespace, name)},
            ConsistentRead=True,
        )
        item = response.get("Item")
        if item is None:
            raise SecretNotFoundError(namespace, name)
        return _parse_item_to_secret(item)

    def create(self, secret: Secret) -> None:
        """Insert a secret only if none exists under the same id.

        Raises:
            SecretAlreadyExistsError: If the conditional write finds an existing item
            ClientError: For any other DynamoDB failure
        """
        table = self.resource.Table(self.table_name)

        try:
            table.put_item(
                Item=cast(dict[str, TableAttributeValueTypeDef], _secret_to_item(secret)),
                ConditionExpression=f"attribute_not_exists({PARTITION_KEY})",
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code == "ConditionalCheckFailedException":
                logger.warning(
                    "Create condition failed for %s/%s: secret already exists",
                    secret.namespace,
                    secret.name,
                )
                raise SecretAlreadyExistsError(secret.namespace, secret.name) from e
            logger.error("Failed to create secret %s/%s: %s", secret.namespace, secret.name, e)
            raise
