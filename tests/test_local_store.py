#region Imports
import pytest

from geni_sync.models.records import Collection, EntityType, Environment, HttpRequest
from conftest import at
#endregion


class TestCrud:
    def test_add_and_get(self, store):
        store.add(HttpRequest(id="R1", name="ping", headers={"X-Trace": "1"}))

        fetched = store.get(EntityType.REQUEST, "R1")

        assert fetched.name == "ping"
        assert fetched.headers == {"X-Trace": "1"}
        assert fetched.synced is False

    def test_add_duplicate_id_raises(self, store):
        store.add(Collection(id="L1", name="A"))
        with pytest.raises(ValueError):
            store.add(Collection(id="L1", name="B"))

    def test_update_marks_unsynced_and_keeps_version(self, store):
        record = store.add(Collection(id="L1", name="A", version=3, synced=True, updated_at=at(9)))

        record.name = "B"
        store.update(record)

        stored = store.get(EntityType.COLLECTION, "L1")
        assert stored.name == "B"
        assert stored.synced is False
        assert stored.version == 3
        assert stored.updated_at > at(9)

    def test_replace_missing_raises(self, store):
        with pytest.raises(KeyError):
            store.replace(Collection(id="missing"))

    def test_delete_request(self, store):
        store.add(HttpRequest(id="R1"))
        assert store.delete(EntityType.REQUEST, "R1") is True
        assert store.delete(EntityType.REQUEST, "R1") is False


class TestCollectionTree:
    def test_delete_collection_removes_descendants(self, store):
        store.add(Collection(id="root", name="Root"))
        store.add(Collection(id="child", name="Child", parent_id="root"))
        store.add(Collection(id="grandchild", name="Grandchild", parent_id="child"))
        store.add(Collection(id="other", name="Other"))
        store.add(HttpRequest(id="R1", collection_id="grandchild"))
        store.add(HttpRequest(id="R2", collection_id="other"))

        assert store.delete(EntityType.COLLECTION, "root") is True

        assert [c.id for c in store.list_records(EntityType.COLLECTION)] == ["other"]
        assert [r.id for r in store.list_records(EntityType.REQUEST)] == ["R2"]


class TestSyncState:
    def test_get_unsynced(self, store):
        store.add(Collection(id="L1", synced=False))
        store.add(Collection(id="L2", cloud_id="C2", synced=True))

        assert [c.id for c in store.get_unsynced_collections()] == ["L1"]
        assert store.count_unsynced(EntityType.COLLECTION) == 1

    def test_mark_synced(self, store):
        store.add(Environment(id="E1", name="Dev"))

        store.mark_environment_synced("E1", "CE1", 1)

        env = store.get(EntityType.ENVIRONMENT, "E1")
        assert env.synced is True
        assert env.cloud_id == "CE1"
        assert env.version == 1
        assert store.get_unsynced_environments() == []

    def test_mark_synced_when_record_unchanged(self, store):
        pushed = store.add(Collection(id="L1", name="Users", updated_at=at(9)))

        store.mark_synced(EntityType.COLLECTION, "L1", "C1", 1, pushed_updated_at=pushed.updated_at)

        assert store.get(EntityType.COLLECTION, "L1").synced is True

    def test_edit_during_push_stays_unsynced(self, store):
        pushed = store.add(Collection(id="L1", name="Users", updated_at=at(9)))
        edited = store.get(EntityType.COLLECTION, "L1")
        edited.name = "Users v2"
        store.update(edited)

        store.mark_synced(EntityType.COLLECTION, "L1", "C1", 1, pushed_updated_at=pushed.updated_at)

        local = store.get(EntityType.COLLECTION, "L1")
        assert local.synced is False
        assert local.cloud_id == "C1"
        assert local.version == 1
        assert local.name == "Users v2"

    def test_mark_synced_missing_record_is_skipped(self, store):
        store.mark_request_synced("gone", "C1", 1)
        assert store.list_records(EntityType.REQUEST) == []


class TestActiveEnvironment:
    def test_set_active_environment(self, store):
        store.add(Environment(id="E1", name="Dev", is_active=True, synced=True))
        store.add(Environment(id="E2", name="Prod", synced=True))

        store.set_active_environment("E2")

        assert store.get_active_environment().id == "E2"
        assert store.get(EntityType.ENVIRONMENT, "E1").is_active is False
        # Activation is local-only
        assert store.get_unsynced_environments() == []

    def test_clear_active_environment(self, store):
        store.add(Environment(id="E1", is_active=True))
        store.set_active_environment(None)
        assert store.get_active_environment() is None

    def test_unknown_environment_raises(self, store):
        with pytest.raises(KeyError):
            store.set_active_environment("nope")
