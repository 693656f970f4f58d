#region Imports
from datetime import timezone

import pytest

from geni_sync.models.records import (
    Collection,
    EntityType,
    Environment,
    HttpRequest,
    SyncPayload,
    parse_remote_records,
    parse_timestamp,
)
from conftest import at
#endregion


class TestTimestamps:
    def test_trailing_z_is_utc(self):
        parsed = parse_timestamp("2024-01-01T10:00:00Z")
        assert parsed == at(10)

    def test_naive_is_read_as_utc(self):
        parsed = parse_timestamp("2024-01-01T10:00:00")
        assert parsed.tzinfo == timezone.utc
        assert parsed == at(10)

    @pytest.mark.parametrize("value", [None, ""])
    def test_empty_is_none(self, value):
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize("value, microsecond", [
        # PostgREST trims trailing zeros
        ("2024-01-15T10:30:00.12345+00:00", 123450),
        ("2024-01-15T10:30:00.1Z", 100000),
        ("2024-01-15T10:30:00.1234567+00:00", 123456),
    ])
    def test_any_fraction_length(self, value, microsecond):
        parsed = parse_timestamp(value)
        assert parsed.microsecond == microsecond
        assert parsed.tzinfo is not None
        assert (parsed.hour, parsed.minute) == (10, 30)


class TestSerialization:
    def test_from_dict_ignores_unknown_keys(self):
        record = Collection.from_dict({"id": "L1", "name": "Users", "colour": "red"})
        assert record.id == "L1"
        assert record.name == "Users"
        assert not hasattr(record, "colour")

    def test_from_dict_timestamp_fallback(self):
        record = HttpRequest.from_dict({"id": "R1", "updated_at": "2024-01-01T09:00:00Z"})
        assert record.created_at == at(9)
        assert record.updated_at == at(9)

    def test_to_dict_from_dict_preserves_payload(self):
        original = HttpRequest(
            id="R1", name="List users", method="POST", url="https://api.test/users",
            headers={"Accept": "application/json"}, body={"page": 1}, collection_id="L1",
            created_at=at(8), updated_at=at(9), version=3,
        )
        restored = HttpRequest.from_dict(original.to_dict())
        assert restored == original

    def test_remote_dict_never_carries_local_id(self):
        record = Collection(id="L1", cloud_id="C1", name="Users", synced=True)
        data = record.to_remote_dict()
        assert "id" not in data
        assert "synced" not in data
        assert data["cloud_id"] == "C1"

    def test_from_remote_dict_prefers_cloud_id(self):
        record = Collection.from_remote_dict({"cloud_id": "C1", "id": "server-row", "name": "Users"})
        assert record.cloud_id == "C1"
        assert record.id not in ("C1", "server-row")
        assert record.synced is True

    def test_from_remote_dict_with_row_id(self):
        record = Environment.from_remote_dict({"id": 42, "name": "Prod"}, id_fields=("id",))
        assert record.cloud_id == "42"


class TestRecordBehaviour:
    def test_touch_leaves_version(self):
        record = Collection(name="Users", version=4, synced=True, updated_at=at(9))
        record.touch()
        assert record.synced is False
        assert record.version == 4
        assert record.updated_at > at(9)

    def test_entity_type_mapping(self):
        assert EntityType.REQUEST.record_class is HttpRequest
        assert EntityType.ENVIRONMENT.label == "environment"
        assert EntityType.COLLECTION.value == "collections"

    def test_payload_counts(self):
        payload = SyncPayload(collections=[Collection()], environments=[Environment(), Environment()])
        assert payload.count() == 3
        assert not payload.is_empty()
        assert SyncPayload().is_empty()


class TestRemoteParsing:
    def test_malformed_items_are_rejected_not_raised(self):
        parsed = parse_remote_records(EntityType.COLLECTION, [
            {"cloud_id": "C1", "name": "Users", "updated_at": "2024-01-01T10:00:00Z"},
            {"cloud_id": "C2", "updated_at": "yesterday"},
            {"cloud_id": "C3", "version": "three"},
            "not an object",
        ])

        assert [r.cloud_id for r in parsed] == ["C1"]
        assert [(label, cloud_id) for label, cloud_id, _ in parsed.rejected] == [
            ("collection", "C2"),
            ("collection", "C3"),
            ("collection", None),
        ]
        assert all(isinstance(error, Exception) for _, _, error in parsed.rejected)

    def test_clean_listing_has_no_rejects(self):
        parsed = parse_remote_records(EntityType.ENVIRONMENT, [{"id": 7, "name": "Dev"}], id_fields=("id",))
        assert parsed[0].cloud_id == "7"
        assert parsed.rejected == []
