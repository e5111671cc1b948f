"""Errors raised while reconciling cluster bootstrap certificates."""

from enum import StrEnum

from .models import Purpose


class CertificateErrorKind(StrEnum):
    """Closed set of failure kinds callers can branch on."""

    MISSING_CERTIFICATE = "missing certificate"
    MISSING_CERT_DATA = "missing crt data"
    MISSING_KEY_DATA = "missing key data"
    MISSING_STORED_FIELD = "missing data"
    EXTERNAL_NOT_FOUND = "external certificate not found"
    GENERATION_FAILURE = "certificate generation failed"
    PERSIST_CONFLICT = "certificate already persisted"
    INVALID_CERTIFICATE = "unable to parse certificate"


class CertificateError(Exception):
    """Base class for certificate reconciliation errors.

    Every error carries the purpose of the offending certificate.
    """

    kind: CertificateErrorKind

    def __init__(self, purpose: Purpose, detail: str | None = None) -> None:
        self.purpose = purpose
        self.detail = detail
        message = f"for certificate {purpose}: {self.kind}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MissingCertificateError(CertificateError):
    """Raised when a certificate has no key pair at all."""

    kind = CertificateErrorKind.MISSING_CERTIFICATE


class MissingCertDataError(CertificateError):
    """Raised when a key pair has empty certificate bytes."""

    kind = CertificateErrorKind.MISSING_CERT_DATA


class MissingKeyDataError(CertificateError):
    """Raised when a non-external key pair has empty key bytes."""

    kind = CertificateErrorKind.MISSING_KEY_DATA


class MissingStoredFieldError(CertificateError):
    """Raised when a stored secret lacks a required data field."""

    kind = CertificateErrorKind.MISSING_STORED_FIELD

    def __init__(self, purpose: Purpose, field: str) -> None:
        self.field = field
        super().__init__(purpose, f"key {field}")


class ExternalCertificateNotFoundError(CertificateError):
    """Raised when an externally supplied certificate is absent from the store."""

    kind = CertificateErrorKind.EXTERNAL_NOT_FOUND


class GenerationError(CertificateError):
    """Raised when key or certificate creation fails."""

    kind = CertificateErrorKind.GENERATION_FAILURE


class PersistConflictError(CertificateError):
    """Raised when a create-only write finds an existing secret.

    Another actor created the secret first; reconcile again to pick it up.
    """

    kind = CertificateErrorKind.PERSIST_CONFLICT


class CertificateParseError(CertificateError):
    """Raised when certificate bytes are not valid PEM certificates."""

    kind = CertificateErrorKind.INVALID_CERTIFICATE
