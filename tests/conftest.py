from datetime import datetime, timezone
from urllib.parse import unquote, urlsplit

import httpx
import pytest
import structlog

from eventhub.errors import BucketNotFoundError, ObjectNotFoundError
from eventhub.model.storage import BucketMetadata, IamBinding, IamPolicy
from eventhub.object_store import public_url


BUCKET = "eventhub-payment-proofs"


class FakeObjectStore:
    """In-memory ObjectStore. Set ``errors[<method name>]`` to make a call raise."""

    def __init__(self, bucket_name=BUCKET, exists=True, public=False):
        self.bucket_name = bucket_name
        self.exists = exists
        self.objects = {}
        self.uploads = []
        self.deleted = []
        self.errors = {}
        self.signed_url_params = "X-Goog-Algorithm=GOOG4-RSA-SHA256&X-Goog-Expires=900&X-Goog-Signature=abc123"
        bindings = [IamBinding(role="roles/storage.admin", members=["serviceAccount:eventhub@example.iam"])]
        if public:
            bindings.append(IamBinding(role="roles/storage.objectViewer", members=["allUsers"]))
        self.policy = IamPolicy(bindings=bindings)

    def _maybe_raise(self, method):
        if method in self.errors:
            raise self.errors[method]

    def _check_bucket(self, bucket_name):
        if bucket_name != self.bucket_name or not self.exists:
            raise BucketNotFoundError(f"Bucket {bucket_name} not found", bucket_name)

    async def bucket_exists(self, bucket_name):
        self._maybe_raise("bucket_exists")
        return self.exists and bucket_name == self.bucket_name

    async def get_bucket_metadata(self, bucket_name):
        self._maybe_raise("get_bucket_metadata")
        self._check_bucket(bucket_name)
        return BucketMetadata(name=bucket_name, location="US", storage_class="STANDARD")

    async def get_iam_policy(self, bucket_name):
        self._maybe_raise("get_iam_policy")
        self._check_bucket(bucket_name)
        return self.policy

    async def upload(self, bucket_name, key, data, content_type, cache_control="private, max-age=300"):
        self._maybe_raise("upload")
        self._check_bucket(bucket_name)
        self.objects[key] = data
        self.uploads.append((key, content_type, cache_control))

    async def generate_signed_url(self, bucket_name, key, expiration, method="GET"):
        self._maybe_raise("generate_signed_url")
        url = public_url(bucket_name, key)
        if self.signed_url_params:
            url += "?" + self.signed_url_params
        return url

    async def delete(self, bucket_name, key):
        self._maybe_raise("delete")
        if key not in self.objects:
            raise ObjectNotFoundError(f"Object gs://{bucket_name}/{key} not found", bucket_name)
        del self.objects[key]
        self.deleted.append(key)


def storage_handler(store, public_read=False, signed_status=None, direct_error=None):
    """
    An httpx.MockTransport handler that serves a FakeObjectStore like GCS does:
    signed requests are allowed, unsigned ones get 403 unless public_read is set.
    """
    def handler(request: httpx.Request) -> httpx.Response:
        parts = urlsplit(str(request.url))
        key = unquote(parts.path).removeprefix(f"/{store.bucket_name}/")
        signed = "X-Goog-Signature" in parts.query

        if not signed and direct_error is not None:
            raise direct_error
        if signed and signed_status is not None:
            return httpx.Response(signed_status)
        if key not in store.objects:
            return httpx.Response(404)
        if signed or public_read:
            return httpx.Response(200, content=store.objects[key])
        return httpx.Response(403, text="Access denied.")

    return handler


@pytest.fixture()
def fake_store():
    return FakeObjectStore()


@pytest.fixture()
def logger():
    return structlog.get_logger()


@pytest.fixture()
def fixed_now():
    return datetime.fromtimestamp(1700000000, tz=timezone.utc)


@pytest.fixture()
def make_http():
    def _make(store, **kwargs):
        client = httpx.AsyncClient(transport=httpx.MockTransport(storage_handler(store, **kwargs)))
        return client

    return _make
