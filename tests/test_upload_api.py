"""API endpoint tests using TestClient.

The policy table is overridden to point at a temporary directory so
uploads never touch the real UPLOAD_ROOT.
"""
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from farm_uploads.core.config import settings
from farm_uploads.core.dependencies import get_policy_table
from farm_uploads.core.policies import build_policy_table
from farm_uploads.main import app
from farm_uploads.models.upload import UploadClass

JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01" + b"\x00" * 32
PNG = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + b"\x00" * 32
PDF = b"%PDF-1.4\n" + b"\x00" * 32


@pytest.fixture
def policies(tmp_path: Path):
    return build_policy_table(tmp_path / "uploads", url_prefix="/uploads")


@pytest.fixture
def client(policies):
    app.dependency_overrides[get_policy_table] = lambda: policies
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_root_returns_app_info(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "app_name" in data
    assert "app_version" in data


def test_lifespan_creates_upload_directories(client: TestClient, policies) -> None:
    for policy in policies.values():
        assert policy.destination_dir.is_dir()


def test_health_ok(client: TestClient, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(settings, "UPLOAD_ROOT", tmp_path)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_health_missing_root(client: TestClient, tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(settings, "UPLOAD_ROOT", tmp_path / "does-not-exist")
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["status"] == "unhealthy"


def test_list_policies(client: TestClient) -> None:
    response = client.get("/api/v1/uploads/policies")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == len(UploadClass)
    classes = {p["upload_class"] for p in data["policies"]}
    assert classes == {c.value for c in UploadClass}


def test_get_policy(client: TestClient) -> None:
    response = client.get("/api/v1/uploads/policies/logos")
    assert response.status_code == 200
    data = response.json()
    assert data["allowed_types"] == ["jpeg", "png", "webp"]
    assert data["max_file_count"] == 1
    assert data["url_prefix"] == "/uploads/farm-logos"


def test_unknown_upload_class(client: TestClient) -> None:
    response = client.post(
        "/api/v1/uploads/tractors",
        files={"files": ("cow.jpg", JPEG, "image/jpeg")},
    )
    assert response.status_code == 422


def test_upload_jpeg_to_animals(client: TestClient, policies) -> None:
    response = client.post(
        "/api/v1/uploads/animals",
        files=[("files", ("cow.jpg", JPEG, "image/jpeg"))],
    )
    assert response.status_code == 201
    data = response.json()
    assert data["total"] == 1
    uploaded = data["files"][0]
    assert uploaded["canonical_type"] == "jpeg"
    assert uploaded["url"].startswith("/uploads/animals/")
    stored = policies[UploadClass.ANIMALS].destination_dir / uploaded["stored_name"]
    assert stored.read_bytes() == JPEG


def test_upload_png_logo_persists(client: TestClient, policies) -> None:
    response = client.post(
        "/api/v1/uploads/logos",
        files=[("files", ("farm.png", PNG, "image/png"))],
    )
    assert response.status_code == 201
    stored_name = response.json()["files"][0]["stored_name"]
    assert (policies[UploadClass.LOGOS].destination_dir / stored_name).exists()


def test_upload_spoofed_pdf_rejected(client: TestClient, policies) -> None:
    response = client.post(
        "/api/v1/uploads/animals",
        files=[("files", ("cow.jpg", PDF, "image/jpeg"))],
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "signature_mismatch"
    assert list(policies[UploadClass.ANIMALS].destination_dir.iterdir()) == []


def test_upload_truncated_file_rejected(client: TestClient) -> None:
    response = client.post(
        "/api/v1/uploads/health",
        files=[("files", ("x.png", b"\x89PN", "image/png"))],
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "undetectable"


def test_upload_rejects_bad_declared_type(client: TestClient) -> None:
    response = client.post(
        "/api/v1/uploads/documents",
        files=[("files", ("bad.exe", b"MZ binary content", "application/octet-stream"))],
    )
    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "type_not_allowed"


def test_upload_without_files_is_noop(client: TestClient) -> None:
    response = client.post("/api/v1/uploads/animals")
    assert response.status_code == 201
    assert response.json() == {"upload_class": "animals", "total": 0, "files": []}


def test_same_filename_twice_stored_separately(client: TestClient, policies) -> None:
    names = []
    for _ in range(2):
        response = client.post(
            "/api/v1/uploads/community",
            files=[("files", ("pic.png", PNG, "image/png"))],
        )
        assert response.status_code == 201
        names.append(response.json()["files"][0]["stored_name"])

    assert names[0] != names[1]
    directory = policies[UploadClass.COMMUNITY].destination_dir
    for name in names:
        assert (directory / name).read_bytes() == PNG
