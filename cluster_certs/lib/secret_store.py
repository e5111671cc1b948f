"""Secret store contract used to read and persist cluster certificates."""

from typing import Protocol

from .models import Purpose, Secret


class SecretStoreError(Exception):
    """Base class for secret store errors."""


class SecretNotFoundError(SecretStoreError):
    """Raised when no secret exists under the requested name."""

    def __init__(self, namespace: str, name: str) -> None:
        self.namespace = namespace
        self.name = name
        super().__init__(f"secret {namespace}/{name} not found")


class SecretAlreadyExistsError(SecretStoreError):
    """Raised when a create finds a secret already stored under the name."""

    def __init__(self, namespace: str, name: str) -> None:
        self.namespace = namespace
        self.name = name
        super().__init__(f"secret {namespace}/{name} already exists")


class SecretStore(Protocol):
    """Keyed get / create-only store for secrets."""

    def get(self, name: str, namespace: str) -> Secret:
        """Return the named secret or raise SecretNotFoundError."""
        ...

    def create(self, secret: Secret) -> None:
        """Store a new secret or raise SecretAlreadyExistsError. Never overwrites."""
        ...


def secret_name(cluster_name: str, purpose: Purpose) -> str:
    """Return the storage name for a cluster's certificate of the given purpose."""
    return f"{cluster_name}-{purpose.value}"
