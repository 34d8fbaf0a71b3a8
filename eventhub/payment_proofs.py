import base64
import binascii
import re
import time
from datetime import timedelta
from urllib.parse import urlsplit

from eventhub.errors import InvalidObjectPathError, InvalidPayloadError, StorageError
from eventhub.object_store import ObjectStore, PRIVATE_CACHE_CONTROL, STORAGE_NETLOC, gs_path


PAYMENT_PROOF_PREFIX = "payment-proofs"
PAYMENT_PROOF_CONTENT_TYPE = "image/jpeg"

DATA_URI_PREFIX = re.compile(r'^data:image/\w+;base64,')
UNSAFE_FILENAME_CHARS = re.compile(r'[^a-zA-Z0-9.-]')


def sanitize_filename(filename: str) -> str:
    return UNSAFE_FILENAME_CHARS.sub('_', filename)


def decode_payload(data: bytes | str) -> bytes:
    """
    Payment proofs arrive either as raw bytes or as base64, possibly wrapped in
    a data:image/...;base64, URI.
    """
    if isinstance(data, bytes):
        return data

    encoded = DATA_URI_PREFIX.sub('', data)
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidPayloadError(f"Payment proof is not valid base64: {e}")


def payment_proof_key(filename: str, epoch_millis: int | None = None) -> str:
    if epoch_millis is None:
        epoch_millis = int(time.time() * 1000)
    return f"{PAYMENT_PROOF_PREFIX}/{epoch_millis}-{sanitize_filename(filename)}"


def object_key_from_path(path: str, bucket_name: str) -> str:
    """
    Extract the object key from a gs:// path, a storage.googleapis.com URL or a bare key.
    """
    if path.startswith("gs://") or urlsplit(path).netloc == STORAGE_NETLOC:
        _, sep, key = path.partition(f"{bucket_name}/")
        if not sep or not key:
            raise InvalidObjectPathError(f"Invalid storage path for bucket {bucket_name}: {path}")
        return key

    if not path:
        raise InvalidObjectPathError("Empty storage path")

    return path


async def upload_payment_proof(store: ObjectStore, bucket_name: str, data: bytes | str,
                               filename: str, logger) -> str:
    """
    Store a payment proof privately and return its gs:// path.

    The object is never made public; it is only viewed through signed URLs.
    """
    content = decode_payload(data)
    key = payment_proof_key(filename)

    await store.upload(
        bucket_name,
        key,
        content,
        content_type=PAYMENT_PROOF_CONTENT_TYPE,
        cache_control=PRIVATE_CACHE_CONTROL,
    )

    path = gs_path(bucket_name, key)
    logger.info("Payment proof uploaded", path=path, size=len(content))
    return path


async def payment_proof_signed_url(store: ObjectStore, bucket_name: str, path: str,
                                   expires_in_minutes: int = 15) -> str:
    key = object_key_from_path(path, bucket_name)
    return await store.generate_signed_url(
        bucket_name, key, expiration=timedelta(minutes=expires_in_minutes), method="GET"
    )


async def delete_payment_proof(store: ObjectStore, bucket_name: str, path: str, logger) -> bool:
    """
    Delete a payment proof. Failing to delete must not block the caller, so
    errors are logged and reported through the return value.
    """
    try:
        key = object_key_from_path(path, bucket_name)
        await store.delete(bucket_name, key)
    except (InvalidObjectPathError, StorageError) as e:
        logger.error("Failed to delete payment proof", path=path, error=str(e))
        return False

    logger.info("Deleted payment proof", path=path)
    return True


async def check_connection(store: ObjectStore, bucket_name: str, logger) -> bool:
    try:
        await store.bucket_exists(bucket_name)
    except Exception as e:
        logger.error("Google Cloud Storage connection failed", bucket=bucket_name, error=str(e))
        return False

    logger.info("Google Cloud Storage connected successfully", bucket=bucket_name)
    return True
