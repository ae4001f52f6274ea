from __future__ import annotations

import uuid

import pytest
from fastapi.testclient import TestClient

from app.core.dependencies import get_blob_store, get_db
from app.core.exports.api.v1 import routes_exports
from app.core.exports.job import ExportArchive
from app.core.exports.store import ExportJobStore
from app.main import app
from tests.conftest import png_bytes


@pytest.fixture
def sent_tasks(monkeypatch):
    sent = []

    def _send_task(name, args=None, **kwargs):
        sent.append((name, args))

    monkeypatch.setattr(routes_exports.celery_app, "send_task", _send_task)
    return sent


@pytest.fixture
def export_store(fake_redis):
    return ExportJobStore(fake_redis)


@pytest.fixture
def client(db, blob_store, export_store):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[routes_exports.get_export_store] = lambda: export_store
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def _create_version(client, owner_id, storage_id, **extra):
    payload = {
        "owner_type": "resource",
        "owner_id": str(owner_id),
        "asset_type": "emotion_card_image",
        "asset_key": "happy",
        "storage_id": storage_id,
    }
    payload.update(extra)
    response = client.post("/api/v1/assets/versions", json=payload)
    assert response.status_code == 200, response.text
    return response.json()["result"]


def _upload(client, color="red"):
    response = client.post(
        "/api/v1/assets/uploads",
        files={"file": ("card.png", png_bytes(color), "image/png")},
    )
    assert response.status_code == 200, response.text
    return response.json()["result"]


def test_upload_then_create_version(client, clock):
    uploaded = _upload(client)
    owner_id = uuid.uuid4()

    result = _create_version(client, owner_id, uploaded["storage_id"], prompt="smile")

    assert result["current_version"]["storage_id"] == uploaded["storage_id"]
    assert result["current_version"]["url"] == uploaded["url"]
    assert result["current_version"]["prompt"] == "smile"
    assert len(result["versions"]) == 1


def test_upload_rejects_non_image(client):
    response = client.post(
        "/api/v1/assets/uploads",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 415
    body = response.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "ASSET_UPLOAD_UNSUPPORTED_TYPE"


def test_list_and_lookup_assets(client, clock):
    owner_id = uuid.uuid4()
    _create_version(client, owner_id, "a" * 32)
    _create_version(client, owner_id, "b" * 32, asset_key="sad")

    listed = client.get(
        "/api/v1/assets",
        params={"owner_type": "resource", "owner_id": str(owner_id)},
    ).json()["result"]
    found = client.get(
        "/api/v1/assets/lookup",
        params={
            "owner_type": "resource",
            "owner_id": str(owner_id),
            "asset_type": "emotion_card_image",
            "asset_key": "sad",
        },
    ).json()["result"]
    missing = client.get(
        "/api/v1/assets/lookup",
        params={
            "owner_type": "resource",
            "owner_id": str(owner_id),
            "asset_type": "emotion_card_image",
            "asset_key": "angry",
        },
    ).json()

    assert [a["asset_key"] for a in listed] == ["happy", "sad"]
    assert found["current_version"]["storage_id"] == "b" * 32
    assert missing["ok"] is True
    assert missing["result"] is None


def test_switch_pin_and_delete_versions(client, clock):
    owner_id = uuid.uuid4()
    first = _create_version(client, owner_id, "a" * 32)
    second = _create_version(client, owner_id, "b" * 32)
    asset_id = second["id"]
    first_version_id = first["current_version"]["id"]
    second_version_id = second["current_version"]["id"]

    switched = client.put(
        f"/api/v1/assets/{asset_id}/current-version",
        json={"version_id": first_version_id},
    ).json()["result"]
    pinned = client.put(
        f"/api/v1/assets/versions/{first_version_id}/pin",
        json={"pinned": True},
    ).json()["result"]
    deleted = client.delete(f"/api/v1/assets/versions/{first_version_id}").json()["result"]

    assert switched["current_version_id"] == first_version_id
    assert pinned["pinned"] is True
    assert deleted["current_version_id"] == second_version_id


def test_unknown_version_operations_are_noops(client):
    missing = uuid.uuid4()

    pinned = client.put(f"/api/v1/assets/versions/{missing}/pin", json={"pinned": True})
    deleted = client.delete(f"/api/v1/assets/versions/{missing}")

    assert pinned.status_code == 200
    assert pinned.json()["result"] is None
    assert deleted.status_code == 200
    assert deleted.json()["result"] is None


def test_switch_to_foreign_version_is_conflict(client, clock):
    owner_id = uuid.uuid4()
    happy = _create_version(client, owner_id, "a" * 32)
    sad = _create_version(client, owner_id, "b" * 32, asset_key="sad")

    response = client.put(
        f"/api/v1/assets/{happy['id']}/current-version",
        json={"version_id": sad["current_version"]["id"]},
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ASSET_VERSION_OWNERSHIP_MISMATCH"


def test_switch_unknown_asset_is_not_found(client):
    response = client.put(
        f"/api/v1/assets/{uuid.uuid4()}/current-version",
        json={"version_id": str(uuid.uuid4())},
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ASSET_NOT_FOUND"


def test_get_style_resolves_frame_urls(client, clock, make_style):
    style = make_style()
    uploaded = _upload(client, "gold")
    response = client.post(
        "/api/v1/assets/versions",
        json={
            "owner_type": "style",
            "owner_id": str(style.id),
            "asset_type": "frame_border",
            "asset_key": "default",
            "storage_id": uploaded["storage_id"],
            "prompt": "gold leaves",
        },
    )
    assert response.status_code == 200, response.text

    result = client.get(f"/api/v1/styles/{style.id}").json()["result"]

    assert result["frames"]["border"]["storage_id"] == uploaded["storage_id"]
    assert result["frames"]["border"]["prompt"] == "gold leaves"
    assert result["frame_urls"] == {"border": uploaded["url"]}


def test_get_unknown_style(client):
    response = client.get(f"/api/v1/styles/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "STYLE_NOT_FOUND"


def test_start_export_queues_task(client, sent_tasks, make_resource):
    resource = make_resource()

    response = client.post(
        "/api/v1/exports",
        json={"resource_ids": [str(resource.id)], "watermark": True},
    )

    assert response.status_code == 200
    job = response.json()["result"]
    assert job["state"] == "queued"
    assert job["total"] == 1
    assert job["archive_ready"] is False
    assert sent_tasks == [("exports.batch", [job["id"], [str(resource.id)], True])]


def test_start_export_requires_resources(client, sent_tasks):
    response = client.post("/api/v1/exports", json={"resource_ids": []})

    assert response.status_code == 422
    assert sent_tasks == []


def test_start_export_queue_down(client, monkeypatch, export_store, fake_redis):
    def _broken(*args, **kwargs):
        raise ConnectionError("broker down")

    monkeypatch.setattr(routes_exports.celery_app, "send_task", _broken)

    response = client.post("/api/v1/exports", json={"resource_ids": [str(uuid.uuid4())]})

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "EXPORT_QUEUE_UNAVAILABLE"
    job_key = next(iter(fake_redis.hashes))
    assert fake_redis.hashes[job_key]["state"] == "failed"


def test_export_status_and_cancel(client, sent_tasks, export_store):
    job_id = client.post(
        "/api/v1/exports", json={"resource_ids": [str(uuid.uuid4())]}
    ).json()["result"]["id"]

    status = client.get(f"/api/v1/exports/{job_id}").json()["result"]
    cancelled = client.post(f"/api/v1/exports/{job_id}/cancel")

    assert status["state"] == "queued"
    assert cancelled.status_code == 200
    assert export_store.is_cancel_requested(job_id)


def test_unknown_export_job(client):
    response = client.get("/api/v1/exports/nope")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "EXPORT_JOB_NOT_FOUND"


def test_archive_download(client, sent_tasks, export_store, blob_store):
    job_id = client.post(
        "/api/v1/exports", json={"resource_ids": [str(uuid.uuid4())]}
    ).json()["result"]["id"]

    not_ready = client.get(f"/api/v1/exports/{job_id}/archive")
    assert not_ready.status_code == 409
    assert not_ready.json()["error"]["code"] == "EXPORT_ARCHIVE_NOT_READY"

    storage_id = blob_store.store(b"PK-zip-bytes", "application/zip")
    export_store.record_outcome(
        job_id,
        ExportArchive(archive=b"PK-zip-bytes", success_count=1),
        archive_storage_id=storage_id,
        archive_name="resources-2026-01-01.zip",
    )

    ready = client.get(f"/api/v1/exports/{job_id}/archive")

    assert ready.status_code == 200
    assert ready.content == b"PK-zip-bytes"
    assert ready.headers["content-type"] == "application/zip"
    assert "resources-2026-01-01.zip" in ready.headers["content-disposition"]
