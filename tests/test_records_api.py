from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from records_api.main import create_app
from records_api.repositories import InMemoryRepository, StorageUnavailable
from records_api.settings import Settings

BASE = "/api/records"


def create_record_payload(
    title="Test Record",
    description="Do something",
    status=None,
    priority=None,
):
    payload = {"title": title, "description": description}
    if status is not None:
        payload["status"] = status
    if priority is not None:
        payload["priority"] = priority
    return payload


def assert_record_shape(record: dict):
    assert set(record) == {"id", "title", "description", "status", "priority", "createdAt"}
    assert isinstance(record["id"], int)
    assert record["status"] in ("todo", "in_progress", "done")
    assert record["priority"] in ("low", "medium", "high")
    datetime.fromisoformat(record["createdAt"])


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        assert res.json() == {"message": "Healthy", "backend": "memory"}


class TestRecordsCRUD:
    def test_create_record_with_defaults(self, client):
        res = client.post(BASE, json=create_record_payload(title="Buy milk"))
        assert res.status_code == 201
        record = res.json()
        assert_record_shape(record)
        assert record["title"] == "Buy milk"
        assert record["status"] == "todo"
        assert record["priority"] == "medium"

    def test_create_trims_whitespace(self, client):
        res = client.post(BASE, json=create_record_payload(title="  Padded  ", description=" d "))
        assert res.status_code == 201
        assert res.json()["title"] == "Padded"
        assert res.json()["description"] == "d"

    def test_get_record_and_not_found(self, client):
        created = client.post(BASE, json=create_record_payload(title="Read book")).json()

        res_get = client.get(f"{BASE}/{created['id']}")
        assert res_get.status_code == 200
        assert res_get.json() == created

        res_404 = client.get(f"{BASE}/999999")
        assert res_404.status_code == 404
        assert res_404.json() == {"message": "Record not found"}

    def test_list_is_ascending_by_id(self, client):
        ids = [client.post(BASE, json=create_record_payload(title=f"T{i}")).json()["id"] for i in range(3)]
        res = client.get(BASE)
        assert res.status_code == 200
        assert [r["id"] for r in res.json()] == ids

    def test_list_empty(self, client):
        res = client.get(BASE)
        assert res.status_code == 200
        assert res.json() == []

    def test_patch_replaces_record(self, client):
        created = client.post(
            BASE, json=create_record_payload(title="Initial", description="A", status="todo", priority="low")
        ).json()

        res = client.patch(
            f"{BASE}/{created['id']}",
            json=create_record_payload(title="Replaced", description="B", status="done", priority="high"),
        )
        assert res.status_code == 200
        body = res.json()
        assert body["success"] is True
        assert body["message"] == "Record updated successfully"
        data = body["data"]
        assert data["id"] == created["id"]
        assert data["createdAt"] == created["createdAt"]
        assert (data["title"], data["description"], data["status"], data["priority"]) == (
            "Replaced",
            "B",
            "done",
            "high",
        )
        assert client.get(f"{BASE}/{created['id']}").json() == data

    def test_patch_not_found(self, client):
        res = client.patch(f"{BASE}/424242", json=create_record_payload())
        assert res.status_code == 404
        assert res.json() == {"message": "Record not found"}
        assert client.get(BASE).json() == []

    def test_delete_record(self, client):
        tid = client.post(BASE, json=create_record_payload(title="ToDelete")).json()["id"]

        res_del = client.delete(f"{BASE}/{tid}")
        assert res_del.status_code == 204
        assert res_del.text == ""

        assert client.get(f"{BASE}/{tid}").status_code == 404
        res_again = client.delete(f"{BASE}/{tid}")
        assert res_again.status_code == 404
        assert res_again.json() == {"message": "Record not found"}

    def test_ids_not_reused_after_delete(self, client):
        first = client.post(BASE, json=create_record_payload()).json()["id"]
        client.delete(f"{BASE}/{first}")
        second = client.post(BASE, json=create_record_payload()).json()["id"]
        assert second == first + 1


class TestSearch:
    def seed(self, client):
        for title in ("Buy milk", "Clean house", "Milkshake recipe"):
            assert client.post(BASE, json=create_record_payload(title=title)).status_code == 201

    def test_search_case_insensitive(self, client):
        self.seed(client)
        res = client.get(f"{BASE}/search", params={"q": "MILK"})
        assert res.status_code == 200
        assert [r["title"] for r in res.json()] == ["Buy milk", "Milkshake recipe"]

    def test_search_blank_or_missing_returns_all(self, client):
        self.seed(client)
        everything = client.get(BASE).json()
        assert client.get(f"{BASE}/search", params={"q": ""}).json() == everything
        assert client.get(f"{BASE}/search").json() == everything

    def test_search_no_match(self, client):
        self.seed(client)
        assert client.get(f"{BASE}/search", params={"q": "garage"}).json() == []


class TestInvalidIds:
    @pytest.mark.parametrize("raw", ["abc", "1.5", "07", "1_000", "12abc"])
    def test_get_invalid_id(self, client, raw):
        res = client.get(f"{BASE}/{raw}")
        assert res.status_code == 400
        assert res.json() == {"message": "Invalid record ID. Please provide a valid number."}

    def test_delete_invalid_id(self, client):
        res = client.delete(f"{BASE}/abc")
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid record ID. Please provide a valid number."

    def test_patch_invalid_id(self, client):
        res = client.patch(f"{BASE}/abc", json=create_record_payload())
        assert res.status_code == 400
        assert res.json()["message"] == "Invalid record ID. Please provide a valid number."

    def test_negative_id_is_well_formed_but_missing(self, client):
        assert client.get(f"{BASE}/-1").status_code == 404

    def test_id_beyond_64_bits_is_invalid(self, client):
        huge = "100000000000000000000"
        for res in (
            client.get(f"{BASE}/{huge}"),
            client.patch(f"{BASE}/{huge}", json=create_record_payload()),
            client.delete(f"{BASE}/{huge}"),
        ):
            assert res.status_code == 400
            assert res.json() == {"message": "Invalid record ID. Please provide a valid number."}


class TestValidationErrors:
    def test_empty_title(self, client):
        res = client.post(BASE, json={"title": "  ", "description": "x"})
        assert res.status_code == 400
        body = res.json()
        assert body["error"] == "ValidationError"
        assert body["message"] == "Title is required"
        assert isinstance(body["detail"], list)

    def test_missing_description(self, client):
        res = client.post(BASE, json={"title": "x"})
        assert res.status_code == 400
        assert res.json()["detail"][0]["loc"] == ["body", "description"]

    def test_title_too_long(self, client):
        res = client.post(BASE, json=create_record_payload(title="x" * 101))
        assert res.status_code == 400
        assert res.json()["message"] == "Title must be at most 100 characters"

    def test_title_at_limit_is_accepted(self, client):
        res = client.post(BASE, json=create_record_payload(title="x" * 100, description="y" * 500))
        assert res.status_code == 201

    def test_description_too_long(self, client):
        res = client.post(BASE, json=create_record_payload(description="y" * 501))
        assert res.status_code == 400
        assert res.json()["message"] == "Description must be at most 500 characters"

    @pytest.mark.parametrize("field,value", [("status", "blocked"), ("priority", "urgent")])
    def test_enum_out_of_range(self, client, field, value):
        payload = create_record_payload()
        payload[field] = value
        res = client.post(BASE, json=payload)
        assert res.status_code == 400
        assert res.json()["detail"][0]["loc"] == ["body", field]

    def test_patch_validation_error_leaves_record_untouched(self, client):
        created = client.post(BASE, json=create_record_payload(title="Keep")).json()
        res = client.patch(f"{BASE}/{created['id']}", json={"title": "", "description": "x"})
        assert res.status_code == 400
        assert client.get(f"{BASE}/{created['id']}").json() == created


class _UnavailableRepository(InMemoryRepository):
    def get_records(self):
        raise StorageUnavailable("get_records")

    def delete_record(self, record_id):
        raise StorageUnavailable("delete_record", record_id)


class TestStorageUnavailable:
    @pytest.fixture
    def failing_client(self):
        app = create_app(Settings(), repository=_UnavailableRepository())
        with TestClient(app) as c:
            yield c

    def test_list_maps_to_500(self, failing_client):
        res = failing_client.get(BASE)
        assert res.status_code == 500
        assert res.json() == {"message": "Internal server error"}

    def test_delete_maps_to_500_without_detail(self, failing_client):
        res = failing_client.delete(f"{BASE}/3")
        assert res.status_code == 500
        assert res.json() == {"message": "Internal server error"}
