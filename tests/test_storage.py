import json

import pytest

from schedule_engine.errors import NotFoundError, PersistenceError
from schedule_engine.services.storage import (
    JsonFileTenantStore,
    MemoryTenantStore,
    create_store,
)


@pytest.fixture(params=["memory", "json"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryTenantStore()
    return JsonFileTenantStore(str(tmp_path / "schools.json"))


def test_put_get_delete(any_store, school_snapshot):
    any_store.put(school_snapshot)

    assert any_store.get("school_1")["name"] == "Test School"

    any_store.delete("school_1")
    assert any_store.get("school_1") is None


def test_get_returns_a_copy(any_store, school_snapshot):
    any_store.put(school_snapshot)

    loaded = any_store.get("school_1")
    loaded["scheduledSessions"].clear()

    assert len(any_store.get("school_1")["scheduledSessions"]) == 3


def test_bulk_put_and_clear(any_store, school_snapshot):
    other = dict(school_snapshot, id="school_2", name="Other")

    any_store.bulk_put([school_snapshot, other])
    assert {s["id"] for s in any_store.all()} == {"school_1", "school_2"}

    any_store.clear()
    assert any_store.all() == []


def test_replace_sessions_only_touches_sessions(any_store, school_snapshot):
    any_store.put(school_snapshot)

    any_store.replace_sessions("school_1", [])

    snapshot = any_store.get("school_1")
    assert snapshot["scheduledSessions"] == []
    assert len(snapshot["students"]) == 3


def test_replace_on_unknown_tenant_raises(any_store):
    with pytest.raises(NotFoundError):
        any_store.replace_sessions("ghost", [])


def test_snapshot_without_id_is_rejected(any_store):
    with pytest.raises(PersistenceError):
        any_store.put({"name": "no id"})


def test_json_store_writes_one_document(tmp_path, school_snapshot):
    path = tmp_path / "schools.json"
    JsonFileTenantStore(str(path)).put(school_snapshot)

    document = json.loads(path.read_text(encoding="utf-8"))

    assert [s["id"] for s in document["schools"]] == ["school_1"]
    assert list(tmp_path.iterdir()) == [path]


def test_json_store_reports_corrupt_file(tmp_path):
    path = tmp_path / "schools.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceError):
        JsonFileTenantStore(str(path)).get("school_1")


def test_json_store_reports_unwritable_location(tmp_path, school_snapshot):
    store = JsonFileTenantStore(str(tmp_path / "missing" / "schools.json"))

    with pytest.raises(PersistenceError):
        store.put(school_snapshot)


def test_create_store_selects_backend(tmp_path):
    assert isinstance(create_store({"backend": "memory"}), MemoryTenantStore)
    json_store = create_store({"backend": "json", "path": str(tmp_path / "s.json")})
    assert isinstance(json_store, JsonFileTenantStore)
    with pytest.raises(ValueError):
        create_store({"backend": "redis"})
