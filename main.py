from typing import Any

import environ
import httpx
from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.responses import Response, PlainTextResponse, JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog


from eventhub.errors import (
    EventHubError, BucketNotFoundError, InvalidObjectPathError, InvalidPayloadError,
    ObjectNotFoundError, StorageConfigError, StoragePermissionError, TransientStorageError
)
from eventhub.gcs import GcsObjectStore
from eventhub.model.responses import (
    LogoutResponse, PaymentProofRequest, PaymentProofResponse, SignedURLResponse,
    StorageStatusResponse, VerificationResponse
)
from eventhub.model.user import SessionContext
from eventhub.navigation import Navbar, logout, render_navbar
from eventhub.object_store import ObjectStore
from eventhub.pages import PageShell, placeholder_page, title_from_slug
from eventhub.payment_proofs import (
    check_connection, delete_payment_proof, payment_proof_signed_url, upload_payment_proof
)
from eventhub.verifier import Verifier


class Settings(BaseSettings):
    env: str = "local"
    app_name: str = "EventHub API"
    secrets_dir: str = "/var/secrets"
    secrets: Any = None

    gcs_key_file: str = "gcs-key.json"
    gcs_bucket_name: str = "eventhub-payment-proofs"
    signed_url_minutes: int = 15

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()

# Service account JSON can be mounted as a file secret instead of a key file
file_secrets = environ.secrets.DirectorySecrets.from_path(settings.secrets_dir)


@environ.config
class SecretConfig:
    gcs_credentials = file_secrets.secret(name="gcs-key.json", default=None)


settings.secrets = SecretConfig.from_environ()

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ]
)

logger = structlog.get_logger()


app = FastAPI()
app.logger = logger


origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


ERROR_STATUS = [
    ((InvalidObjectPathError, InvalidPayloadError), status.HTTP_400_BAD_REQUEST),
    ((BucketNotFoundError, ObjectNotFoundError), status.HTTP_404_NOT_FOUND),
    ((StoragePermissionError,), status.HTTP_403_FORBIDDEN),
    ((TransientStorageError,), status.HTTP_503_SERVICE_UNAVAILABLE),
    ((StorageConfigError,), status.HTTP_500_INTERNAL_SERVER_ERROR),
]


@app.exception_handler(EventHubError)
async def eventhub_error_handler(request: Request, exc: EventHubError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_types, code in ERROR_STATUS:
        if isinstance(exc, error_types):
            status_code = code
            break

    logger.error("Request failed", path=request.url.path, error=type(exc).__name__, detail=str(exc))
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def get_settings():
    curr_settings = Settings()
    curr_settings.secrets = SecretConfig.from_environ()
    return curr_settings


def get_object_store(config: Settings = Depends(get_settings)) -> ObjectStore:
    return GcsObjectStore.from_settings(config, logger)


async def get_http_client():
    async with httpx.AsyncClient(follow_redirects=True) as client:
        yield client


@app.get("/")
async def root():
    return {"message": "This is the EventHub API"}


@app.get("/health", response_class=PlainTextResponse)
async def health():
    return "OK"


@app.post("/eventhub/v1/navigation")
async def navigation(session: SessionContext, current_path: str = Query("/dashboard")) -> Navbar | None:
    return render_navbar(session, current_path)


@app.post("/eventhub/v1/logout")
async def logout_session(session: SessionContext) -> LogoutResponse:
    cleared, redirect = logout(session)
    return LogoutResponse(redirect=redirect, session=cleared)


@app.get("/eventhub/v1/pages/{slug}")
async def get_page(slug: str) -> PageShell:
    return placeholder_page(title_from_slug(slug))


@app.post("/eventhub/v1/payment-proofs")
async def create_payment_proof(
        proof_req: PaymentProofRequest,
        config: Settings = Depends(get_settings),
        store: ObjectStore = Depends(get_object_store)
) -> PaymentProofResponse:
    logger.info("Received payment proof", filename=proof_req.filename)
    path = await upload_payment_proof(store, config.gcs_bucket_name, proof_req.data, proof_req.filename, logger)
    return PaymentProofResponse(path=path)


@app.get("/eventhub/v1/payment-proofs/signed-url")
async def get_payment_proof_url(
        path: str = Query(...),
        config: Settings = Depends(get_settings),
        store: ObjectStore = Depends(get_object_store)
) -> SignedURLResponse:
    """
    Create a short-lived signed URL for viewing a payment proof in the private bucket.
    """
    url = await payment_proof_signed_url(store, config.gcs_bucket_name, path, config.signed_url_minutes)
    return SignedURLResponse(url=url, expires_in_minutes=config.signed_url_minutes)


@app.delete("/eventhub/v1/payment-proofs")
async def remove_payment_proof(
        path: str = Query(...),
        config: Settings = Depends(get_settings),
        store: ObjectStore = Depends(get_object_store)
):
    await delete_payment_proof(store, config.gcs_bucket_name, path, logger)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/eventhub/v1/storage/status")
async def storage_status(
        config: Settings = Depends(get_settings),
        store: ObjectStore = Depends(get_object_store)
) -> StorageStatusResponse:
    connected = await check_connection(store, config.gcs_bucket_name, logger)
    return StorageStatusResponse(bucket=config.gcs_bucket_name, connected=connected)


@app.post("/eventhub/v1/storage/verify")
async def verify_storage(
        config: Settings = Depends(get_settings),
        store: ObjectStore = Depends(get_object_store),
        http: httpx.AsyncClient = Depends(get_http_client)
) -> VerificationResponse:
    report = await Verifier(store, http, config.gcs_bucket_name, logger=logger).run()
    return VerificationResponse(exit_code=report.exit_code(), summary=report.render(), report=report)
