from eventhub.model.report import ErrorCategory


class EventHubError(Exception):
    """Base class for all EventHub errors."""
    category: ErrorCategory | None = None

    def remediation(self) -> list[str]:
        return []


class StorageError(EventHubError):
    """Raised when an object storage operation fails."""

    def __init__(self, message: str, bucket_name: str | None = None):
        super().__init__(message)
        self.bucket_name = bucket_name


class StorageConfigError(StorageError):
    """Raised when no service account credentials can be found."""
    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, key_file: str | None = None):
        super().__init__(message)
        self.key_file = key_file

    def remediation(self) -> list[str]:
        return [
            "GCS key file not found",
            f"Check: {self.key_file or 'gcs-key.json'} exists",
            "Or set GCS_KEY_FILE in .env",
        ]


class BucketNotFoundError(StorageError):
    """Raised when the configured bucket does not exist."""
    category = ErrorCategory.DEPLOYMENT

    def remediation(self) -> list[str]:
        return [
            "Bucket does not exist",
            f"Create: gsutil mb gs://{self.bucket_name}",
        ]


class ObjectNotFoundError(StorageError):
    """Raised when an object is missing from an existing bucket."""
    category = ErrorCategory.DEPLOYMENT


class StoragePermissionError(StorageError):
    """Raised when the service account is denied access."""
    category = ErrorCategory.AUTHORIZATION

    def remediation(self) -> list[str]:
        return [
            "Permission denied",
            "Check service account has Storage Admin role",
        ]


class TransientStorageError(StorageError):
    """Raised on network failures and 5xx responses from the store."""
    category = ErrorCategory.TRANSIENT


class InvalidObjectPathError(EventHubError):
    """Raised when no object key can be extracted from a storage path."""
    pass


class InvalidPayloadError(EventHubError):
    """Raised when an uploaded payload cannot be decoded."""
    pass
