import asyncio
import json
import os
from contextlib import contextmanager
from datetime import timedelta

import requests
import structlog
from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exc
from google.cloud import storage

from eventhub.errors import (
    BucketNotFoundError, ObjectNotFoundError, StorageConfigError, StorageError,
    StoragePermissionError, TransientStorageError
)
from eventhub.model.storage import BucketMetadata, IamBinding, IamPolicy
from eventhub.object_store import PRIVATE_CACHE_CONTROL


TRANSIENT_ERRORS = (
    gexc.ServerError,
    gexc.TooManyRequests,
    gexc.RetryError,
    auth_exc.TransportError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


@contextmanager
def storage_errors(bucket_name: str, key: str | None = None):
    """
    Translate google-cloud-storage exceptions into the EventHub error hierarchy.

    A NotFound without a key means the bucket itself is missing.
    """
    try:
        yield
    except gexc.NotFound as e:
        if key is None:
            raise BucketNotFoundError(f"Bucket {bucket_name} not found", bucket_name) from e
        raise ObjectNotFoundError(f"Object gs://{bucket_name}/{key} not found", bucket_name) from e
    except (gexc.Forbidden, gexc.Unauthorized) as e:
        raise StoragePermissionError(f"Permission denied on {bucket_name}: {e.message}", bucket_name) from e
    except auth_exc.DefaultCredentialsError as e:
        raise StorageConfigError(str(e)) from e
    except TRANSIENT_ERRORS as e:
        raise TransientStorageError(f"Transient storage failure: {e}", bucket_name) from e
    except gexc.GoogleAPICallError as e:
        raise StorageError(f"Storage call failed: {e}", bucket_name) from e


class GcsObjectStore:
    """
    ObjectStore backed by the google-cloud-storage SDK.

    The SDK is synchronous, so each call runs in a worker thread. The client is
    created on first use so a missing key file surfaces as a StorageConfigError
    from whichever operation runs first.
    """

    def __init__(self, key_file: str | None = None, credentials_info: str | None = None,
                 client: storage.Client | None = None, logger=None):
        self.key_file = key_file
        self.credentials_info = credentials_info
        self._client = client
        self.logger = logger or structlog.get_logger()

    @classmethod
    def from_settings(cls, settings, logger=None):
        credentials_info = None
        if getattr(settings, "secrets", None) is not None:
            credentials_info = settings.secrets.gcs_credentials

        return cls(key_file=settings.gcs_key_file, credentials_info=credentials_info, logger=logger)

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> storage.Client:
        if self.credentials_info:
            self.logger.info("Using GCS credentials from secrets directory")
            try:
                info = json.loads(self.credentials_info)
                return storage.Client.from_service_account_info(info)
            except ValueError as e:
                raise StorageConfigError(f"GCS credentials secret is invalid: {e}") from e

        if not self.key_file or not os.path.exists(self.key_file):
            raise StorageConfigError(f"GCS key file not found: {self.key_file}", self.key_file)

        self.logger.info("Using GCS key file", key_file=self.key_file)
        try:
            return storage.Client.from_service_account_json(self.key_file)
        except (ValueError, OSError) as e:
            raise StorageConfigError(f"GCS key file is invalid: {self.key_file}: {e}", self.key_file) from e

    def _blob(self, bucket_name: str, key: str) -> storage.Blob:
        return self.client.bucket(bucket_name).blob(key)

    async def bucket_exists(self, bucket_name: str) -> bool:
        with storage_errors(bucket_name):
            bucket = self.client.bucket(bucket_name)
            return await asyncio.to_thread(bucket.exists)

    async def get_bucket_metadata(self, bucket_name: str) -> BucketMetadata:
        with storage_errors(bucket_name):
            bucket = await asyncio.to_thread(self.client.get_bucket, bucket_name)

        return BucketMetadata(name=bucket.name, location=bucket.location, storage_class=bucket.storage_class)

    async def get_iam_policy(self, bucket_name: str) -> IamPolicy:
        with storage_errors(bucket_name):
            bucket = self.client.bucket(bucket_name)
            policy = await asyncio.to_thread(bucket.get_iam_policy, requested_policy_version=3)

        return IamPolicy(
            bindings=[
                IamBinding(role=b["role"], members=sorted(b.get("members", [])))
                for b in policy.bindings
            ]
        )

    async def upload(
            self,
            bucket_name: str,
            key: str,
            data: bytes,
            content_type: str,
            cache_control: str = PRIVATE_CACHE_CONTROL
    ) -> None:
        with storage_errors(bucket_name):
            blob = self._blob(bucket_name, key)
            blob.cache_control = cache_control
            await asyncio.to_thread(blob.upload_from_string, data, content_type=content_type)

        self.logger.info("Uploaded object", bucket=bucket_name, key=key, size=len(data))

    async def generate_signed_url(
            self,
            bucket_name: str,
            key: str,
            expiration: timedelta,
            method: str = "GET"
    ) -> str:
        with storage_errors(bucket_name, key):
            blob = self._blob(bucket_name, key)
            return await asyncio.to_thread(
                blob.generate_signed_url,
                version="v4",
                expiration=expiration,
                method=method,
            )

    async def delete(self, bucket_name: str, key: str) -> None:
        with storage_errors(bucket_name, key):
            blob = self._blob(bucket_name, key)
            await asyncio.to_thread(blob.delete)

        self.logger.info("Deleted object", bucket=bucket_name, key=key)
