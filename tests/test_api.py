import base64

import httpx
import pytest
from fastapi.testclient import TestClient
from pydantic_settings import BaseSettings

from conftest import BUCKET, FakeObjectStore, storage_handler
from eventhub.errors import StoragePermissionError
from main import app, get_settings, get_object_store, get_http_client


class Settings(BaseSettings):
    gcs_key_file: str = "missing-gcs-key.json"
    gcs_bucket_name: str = BUCKET
    signed_url_minutes: int = 15


def override_get_settings():
    return Settings()


def use_store(store):
    app.dependency_overrides[get_settings] = override_get_settings
    app.dependency_overrides[get_object_store] = lambda: store
    app.dependency_overrides[get_http_client] = lambda: httpx.AsyncClient(
        transport=httpx.MockTransport(storage_handler(store))
    )


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


def test_read_main():
    with TestClient(app) as client:
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"message": "This is the EventHub API"}


def test_health():
    with TestClient(app) as client:
        response = client.get("/health")
        assert response.text == "OK"


def test_navigation_for_organizer():
    with TestClient(app) as client:
        session = {"user": {"email": "club@iiit.ac.in", "role": "organizer"}, "token": "jwt"}
        response = client.post("/eventhub/v1/navigation?current_path=/profile", json=session)
        assert response.status_code == 200
        body = response.json()
        assert [link["path"] for link in body["links"]] == ["/dashboard", "/organizer-events", "/profile"]
        assert body["links"][2]["active"] is True
        assert body["display_name"] == "club"


def test_navigation_without_user():
    with TestClient(app) as client:
        response = client.post("/eventhub/v1/navigation", json={})
        assert response.status_code == 200
        assert response.json() is None


def test_logout():
    with TestClient(app) as client:
        session = {"user": {"email": "a@b.c", "role": "admin"}, "token": "jwt"}
        response = client.post("/eventhub/v1/logout", json=session)
        assert response.json() == {"redirect": "/", "session": {"user": None, "token": None}}


def test_placeholder_page():
    with TestClient(app) as client:
        response = client.get("/eventhub/v1/pages/security-dashboard")
        assert response.json()["title"] == "Security Dashboard"


def test_payment_proof_lifecycle():
    store = FakeObjectStore()
    with TestClient(app) as client:
        use_store(store)
        data = "data:image/jpeg;base64," + base64.b64encode(b"jpeg-bytes").decode()
        response = client.post("/eventhub/v1/payment-proofs", json={"filename": "receipt.jpg", "data": data})
        assert response.status_code == 200
        path = response.json()["path"]
        assert path.startswith(f"gs://{BUCKET}/payment-proofs/")

        response = client.get("/eventhub/v1/payment-proofs/signed-url", params={"path": path})
        assert response.status_code == 200
        assert response.json()["expires_in_minutes"] == 15
        assert "X-Goog-Signature" in response.json()["url"]

        response = client.delete("/eventhub/v1/payment-proofs", params={"path": path})
        assert response.status_code == 204
        assert store.deleted == [path.removeprefix(f"gs://{BUCKET}/")]


def test_payment_proof_bad_payload():
    with TestClient(app) as client:
        use_store(FakeObjectStore())
        response = client.post("/eventhub/v1/payment-proofs", json={"filename": "r.jpg", "data": "%%%"})
        assert response.status_code == 400


def test_signed_url_bad_path():
    with TestClient(app) as client:
        use_store(FakeObjectStore())
        response = client.get("/eventhub/v1/payment-proofs/signed-url", params={"path": "gs://other/x.jpg"})
        assert response.status_code == 400


def test_signed_url_permission_denied():
    store = FakeObjectStore()
    store.errors["generate_signed_url"] = StoragePermissionError("denied", BUCKET)
    with TestClient(app) as client:
        use_store(store)
        response = client.get("/eventhub/v1/payment-proofs/signed-url", params={"path": "payment-proofs/x.jpg"})
        assert response.status_code == 403


def test_storage_status():
    with TestClient(app) as client:
        use_store(FakeObjectStore())
        response = client.get("/eventhub/v1/storage/status")
        assert response.json() == {"bucket": BUCKET, "connected": True}


def test_verify_storage_missing_bucket():
    with TestClient(app) as client:
        use_store(FakeObjectStore(exists=False))
        response = client.post("/eventhub/v1/storage/verify")
        body = response.json()
        assert body["exit_code"] == 3
        assert len(body["report"]["results"]) == 1


def test_verify_storage():
    store = FakeObjectStore()
    with TestClient(app) as client:
        use_store(store)
        response = client.post("/eventhub/v1/storage/verify")
        assert response.status_code == 200
        body = response.json()
        assert body["exit_code"] == 0
        assert len(body["report"]["results"]) == 8
        assert "All checks passed" in body["summary"]
        assert store.objects == {}
