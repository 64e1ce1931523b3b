from __future__ import annotations

import pytest

from app.document_store import InMemoryDocumentStore, get_document_store
from app.main import app
from conftest import make_snapshot


def test_get_document_before_any_save_is_null(client) -> None:
    resp = client.get("/api/trpc/document.getDocument")
    assert resp.status_code == 200
    assert resp.json() == {"result": {"data": None}}


def test_save_then_get_round_trips(client) -> None:
    snap = make_snapshot(4)
    snap["extraTopLevel"] = {"kept": True}
    snap["schema"]["storeVersion"] = 1

    saved = client.post("/api/trpc/document.saveDocument", json=snap)
    assert saved.status_code == 200
    assert saved.json() == {"result": {"data": {"success": True}}}

    loaded = client.get("/api/trpc/document.getDocument")
    assert loaded.json()["result"]["data"] == snap


def test_save_rejects_missing_schema_version_and_keeps_previous(client, store) -> None:
    original = make_snapshot(2)
    store.set(original)

    bad = make_snapshot(1)
    del bad["schema"]["schemaVersion"]
    resp = client.post("/api/trpc/document.saveDocument", json=bad)

    assert resp.status_code == 400
    err = resp.json()["error"]
    assert err["code"] == "BAD_REQUEST"
    assert err["data"] == {"code": "BAD_REQUEST", "httpStatus": 400, "path": "document.saveDocument"}
    assert "schemaVersion" in err["message"]
    assert store.get() == original


def test_save_rejects_non_numeric_schema_version(client, store) -> None:
    resp = client.post("/api/trpc/document.saveDocument", json=make_snapshot(1, schema_version="2"))
    assert resp.status_code == 400
    assert store.get() is None


def test_save_rejects_missing_store(client, store) -> None:
    resp = client.post("/api/trpc/document.saveDocument", json={"schema": {"schemaVersion": 2}})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "BAD_REQUEST"
    assert store.get() is None


def test_save_rejects_non_object_payload(client, store) -> None:
    resp = client.post("/api/trpc/document.saveDocument", json=[1, 2, 3])
    assert resp.status_code == 400
    assert store.get() is None


def test_store_failure_reports_unsuccessful_save(client) -> None:
    class BrokenStore(InMemoryDocumentStore):
        def set(self, snapshot):
            raise RuntimeError("disk on fire")

    app.dependency_overrides[get_document_store] = lambda: BrokenStore()
    resp = client.post("/api/trpc/document.saveDocument", json=make_snapshot())

    assert resp.status_code == 200
    assert resp.json()["result"]["data"] == {
        "success": False,
        "error": "Failed to save document on server. Check server logs.",
    }


def test_health_procedure_and_probe(client) -> None:
    assert client.get("/api/trpc/health").json() == {"result": {"data": "ok"}}
    probe = client.get("/health").json()
    assert probe["status"] == "ok"
    assert probe["model"]


def test_unknown_procedure_uses_error_envelope(client) -> None:
    resp = client.get("/api/trpc/document.nope")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.parametrize(
    "raw",
    [
        '{"store": {}, "schema": {"schemaVersion": NaN}}',
        '{"store": {}, "schema": {"schemaVersion": Infinity}}',
        '{"store": {"shape:a": {"id": "shape:a", "x": NaN}}, "schema": {"schemaVersion": 2}}',
    ],
)
def test_save_rejects_non_finite_numbers(client, store, raw) -> None:
    original = make_snapshot(1)
    store.set(original)

    resp = client.post(
        "/api/trpc/document.saveDocument",
        content=raw,
        headers={"Content-Type": "application/json"},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "BAD_REQUEST"
    assert store.get() == original
