from __future__ import annotations


class BulkDeployError(Exception):
    """Base class for bulkdeploy errors."""


class ConfigError(BulkDeployError):
    """Raised when configuration is missing, malformed, or cannot be resolved."""


class IdentityError(BulkDeployError):
    """Raised when key material cannot be generated."""


class ProvisionError(BulkDeployError):
    """Raised when a resource registration transaction is rejected or times out."""


class SecretError(BulkDeployError):
    """Raised when a secret push fails for a reason other than the secret already existing."""


class PublicationDegraded(BulkDeployError):
    """Raised when ciphertext could not be published or verified. Recovered by fallback."""


class StorageError(PublicationDegraded):
    """Raised on transport failures against the storage RPC or its gateway."""

    def __init__(self, message: str, *, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class VerificationMismatch(PublicationDegraded):
    """Raised when the bytes fetched back from the gateway differ from the published bytes."""
