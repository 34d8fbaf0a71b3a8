from datetime import timedelta
from typing import Protocol
from urllib.parse import quote

from eventhub.model.storage import BucketMetadata, IamPolicy


STORAGE_NETLOC = "storage.googleapis.com"
STORAGE_HOST = f"https://{STORAGE_NETLOC}"
PRIVATE_CACHE_CONTROL = "private, max-age=300"


class ObjectStore(Protocol):
    """
    The object storage operations the verifier and payment proofs rely on.

    Implementations raise the StorageError subclasses from eventhub.errors
    rather than SDK-specific exceptions.
    """

    async def bucket_exists(self, bucket_name: str) -> bool:
        ...

    async def get_bucket_metadata(self, bucket_name: str) -> BucketMetadata:
        ...

    async def get_iam_policy(self, bucket_name: str) -> IamPolicy:
        ...

    async def upload(
            self,
            bucket_name: str,
            key: str,
            data: bytes,
            content_type: str,
            cache_control: str = PRIVATE_CACHE_CONTROL
    ) -> None:
        ...

    async def generate_signed_url(
            self,
            bucket_name: str,
            key: str,
            expiration: timedelta,
            method: str = "GET"
    ) -> str:
        ...

    async def delete(self, bucket_name: str, key: str) -> None:
        ...


def public_url(bucket_name: str, key: str) -> str:
    """The unauthenticated URL form of an object."""
    return f"{STORAGE_HOST}/{bucket_name}/{quote(key)}"


def gs_path(bucket_name: str, key: str) -> str:
    return f"gs://{bucket_name}/{key}"
