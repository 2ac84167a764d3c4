"""HTTP-level tests for the users router."""

from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.users_api.core.errors import UserStoreError
from src.users_api.entities.user import UserRepository
from src.users_api.runtime.context import get_config

JSON_PATCH = {"Content-Type": "application/json-patch+json"}


def create(client: TestClient, payload: dict[str, Any]) -> dict[str, Any]:
    response = client.post("/users", json=payload)
    assert response.status_code == 201
    return response.json()


class TestListUsers:
    def test_empty(self, client: TestClient):
        response = client.get("/users")

        assert response.status_code == 200
        assert response.json() == []

    def test_returns_all_in_creation_order(self, client: TestClient, user_payload):
        first = create(client, user_payload)
        second = create(client, {**user_payload, "name": "Bob"})

        response = client.get("/users")

        assert response.json() == [first, second]


class TestGetUser:
    def test_found(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        response = client.get(f"/users/{created['id']}")

        assert response.status_code == 200
        assert response.json() == created

    def test_not_found(self, client: TestClient):
        response = client.get("/users/999")

        assert response.status_code == 404
        assert response.json() == {"detail": "User 999 not found"}

    def test_non_integer_id(self, client: TestClient):
        response = client.get("/users/abc")

        assert response.status_code == 400
        assert list(response.json()["errors"]) == ["user_id"]

    @pytest.mark.parametrize("method", ["GET", "PATCH", "DELETE"])
    def test_id_beyond_integer_column(self, client: TestClient, method):
        body = [{"op": "replace", "path": "/age", "value": 31}] if method == "PATCH" else None

        response = client.request(method, f"/users/{2**70}", json=body)

        assert response.status_code == 400
        assert list(response.json()["errors"]) == ["user_id"]


class TestCreateUser:
    def test_created_with_location(self, client: TestClient, user_payload):
        response = client.post("/users", json=user_payload)

        assert response.status_code == 201
        body = response.json()
        assert isinstance(body["id"], int)
        assert {k: v for k, v in body.items() if k != "id"} == user_payload
        assert response.headers["location"].endswith(f"/users/{body['id']}")

    def test_location_resolves_to_record(self, client: TestClient, user_payload):
        response = client.post("/users", json=user_payload)

        fetched = client.get(response.headers["location"])

        assert fetched.status_code == 200
        assert fetched.json() == response.json()

    def test_supplied_id_is_ignored(self, client: TestClient, user_payload):
        body = create(client, {**user_payload, "id": 777})

        assert body["id"] != 777
        assert client.get("/users/777").status_code == 404

    def test_missing_fields_reported_per_field(self, client: TestClient):
        response = client.post("/users", json={"name": "Ann", "age": "old"})

        assert response.status_code == 400
        errors = response.json()["errors"]
        assert set(errors) == {"email", "age", "address"}
        assert all(isinstance(messages, list) and messages for messages in errors.values())

    def test_invalid_payload_is_not_stored(self, client: TestClient, user_payload):
        client.post("/users", json={**user_payload, "age": -1})

        assert client.get("/users").json() == []

    @pytest.mark.parametrize("age", [True, 2**70])
    def test_age_outside_integer_range(self, client: TestClient, user_payload, age):
        response = client.post("/users", json={**user_payload, "age": age})

        assert response.status_code == 400
        assert list(response.json()["errors"]) == ["age"]
        assert client.get("/users").json() == []

    def test_unparseable_body(self, client: TestClient):
        response = client.post(
            "/users", content="{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert list(response.json()["errors"]) == ["body"]

    def test_duplicates_are_allowed(self, client: TestClient, user_payload):
        first = create(client, user_payload)
        second = create(client, user_payload)

        assert first["id"] != second["id"]


class TestPatchUser:
    def test_replace_then_get(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        response = client.patch(
            f"/users/{created['id']}",
            json=[{"op": "replace", "path": "/Age", "value": 31}],
            headers=JSON_PATCH,
        )

        assert response.status_code == 204
        assert response.content == b""
        assert client.get(f"/users/{created['id']}").json() == {**created, "age": 31}

    def test_plain_json_content_type_is_accepted(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        response = client.patch(
            f"/users/{created['id']}",
            json=[{"op": "replace", "path": "/name", "value": "Anne"}],
        )

        assert response.status_code == 204

    def test_not_found(self, client: TestClient):
        response = client.patch(
            "/users/42",
            json=[{"op": "replace", "path": "/age", "value": 31}],
            headers=JSON_PATCH,
        )

        assert response.status_code == 404
        assert client.get("/users").json() == []

    def test_not_found_wins_over_bad_operations(self, client: TestClient):
        response = client.patch(
            "/users/42",
            json=[{"op": "replace", "path": "/nope", "value": 1}],
            headers=JSON_PATCH,
        )

        assert response.status_code == 404

    def test_failed_operation_persists_nothing(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        response = client.patch(
            f"/users/{created['id']}",
            json=[
                {"op": "replace", "path": "/name", "value": "Bob"},
                {"op": "replace", "path": "/age", "value": "old"},
                {"op": "test", "path": "/email", "value": "other@x.com"},
            ],
            headers=JSON_PATCH,
        )

        assert response.status_code == 400
        assert set(response.json()["errors"]) == {"/age", "/email"}
        assert client.get(f"/users/{created['id']}").json() == created

    def test_id_cannot_be_changed(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        response = client.patch(
            f"/users/{created['id']}",
            json=[{"op": "replace", "path": "/id", "value": 100}],
            headers=JSON_PATCH,
        )

        assert response.status_code == 400
        assert response.json() == {"errors": {"/id": ["The property 'id' is read-only."]}}

    def test_malformed_document(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        response = client.patch(
            f"/users/{created['id']}",
            json={"op": "replace", "path": "/age", "value": 31},
            headers=JSON_PATCH,
        )

        assert response.status_code == 400

    def test_unknown_op(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        response = client.patch(
            f"/users/{created['id']}",
            json=[{"op": "upsert", "path": "/age", "value": 31}],
            headers=JSON_PATCH,
        )

        assert response.status_code == 400
        assert "[0].op" in response.json()["errors"]

    @pytest.mark.parametrize("age", [True, 2**70])
    def test_age_outside_integer_range(self, client: TestClient, user_payload, age):
        created = create(client, user_payload)

        response = client.patch(
            f"/users/{created['id']}",
            json=[{"op": "replace", "path": "/age", "value": age}],
            headers=JSON_PATCH,
        )

        assert response.status_code == 400
        assert list(response.json()["errors"]) == ["/age"]
        assert client.get(f"/users/{created['id']}").json()["age"] == 30

    def test_row_removed_before_write(self, client: TestClient, user_payload, monkeypatch):
        created = create(client, user_payload)
        monkeypatch.setattr(UserRepository, "update", lambda self, user: False)

        response = client.patch(
            f"/users/{created['id']}",
            json=[{"op": "replace", "path": "/age", "value": 31}],
            headers=JSON_PATCH,
        )

        assert response.status_code == 404
        assert response.json() == {"detail": f"User {created['id']} not found"}

    def test_repeated_replace_is_idempotent(self, client: TestClient, user_payload):
        created = create(client, user_payload)
        document = [{"op": "replace", "path": "/age", "value": 31}]

        client.patch(f"/users/{created['id']}", json=document, headers=JSON_PATCH)
        once = client.get(f"/users/{created['id']}").json()
        client.patch(f"/users/{created['id']}", json=document, headers=JSON_PATCH)
        twice = client.get(f"/users/{created['id']}").json()

        assert once == twice

    def test_patch_does_not_resurrect_deleted_user(self, client: TestClient, user_payload):
        created = create(client, user_payload)
        client.delete(f"/users/{created['id']}")

        response = client.patch(
            f"/users/{created['id']}",
            json=[{"op": "replace", "path": "/age", "value": 31}],
            headers=JSON_PATCH,
        )

        assert response.status_code == 404
        assert client.get(f"/users/{created['id']}").status_code == 404

    def test_only_target_record_changes(self, client: TestClient, user_payload):
        first = create(client, user_payload)
        second = create(client, user_payload)

        client.patch(
            f"/users/{first['id']}",
            json=[{"op": "replace", "path": "/address", "value": "9 Elm St"}],
            headers=JSON_PATCH,
        )

        assert client.get(f"/users/{second['id']}").json() == second


class TestDeleteUser:
    def test_delete_then_get(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        response = client.delete(f"/users/{created['id']}")

        assert response.status_code == 204
        assert client.get(f"/users/{created['id']}").status_code == 404

    def test_not_found(self, client: TestClient):
        assert client.delete("/users/5").status_code == 404

    def test_second_delete_is_not_found(self, client: TestClient, user_payload):
        created = create(client, user_payload)

        client.delete(f"/users/{created['id']}")

        assert client.delete(f"/users/{created['id']}").status_code == 404


class TestScenario:
    def test_create_patch_delete(self, client: TestClient):
        created = client.post(
            "/users",
            json={"name": "Ann", "email": "a@x.com", "age": 30, "address": "1 Main St"},
        )
        assert created.status_code == 201
        user_id = created.json()["id"]

        patched = client.patch(
            f"/users/{user_id}",
            json=[{"op": "replace", "path": "/Age", "value": 31}],
            headers=JSON_PATCH,
        )
        assert patched.status_code == 204

        fetched = client.get(f"/users/{user_id}").json()
        assert fetched == {
            "id": user_id,
            "name": "Ann",
            "email": "a@x.com",
            "age": 31,
            "address": "1 Main St",
        }

        assert client.delete(f"/users/{user_id}").status_code == 204
        assert client.get(f"/users/{user_id}").status_code == 404


class TestInternalErrors:
    @pytest.fixture
    def failing_store(self, monkeypatch):
        def fail(self, *args, **kwargs):
            raise UserStoreError("database is locked")

        for name in ("list_all", "get", "create", "update", "delete"):
            monkeypatch.setattr(UserRepository, name, fail)

    @pytest.mark.parametrize(
        ("method", "path", "body"),
        [
            ("GET", "/users", None),
            ("GET", "/users/1", None),
            ("POST", "/users", {"name": "A", "email": "a@x.com", "age": 1, "address": "x"}),
            ("PATCH", "/users/1", [{"op": "replace", "path": "/age", "value": 2}]),
            ("DELETE", "/users/1", None),
        ],
    )
    def test_store_failure_is_500_with_message(
        self, client: TestClient, failing_store, method, path, body
    ):
        response = client.request(method, path, json=body)

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error: database is locked"}

    def test_unexpected_exception_is_500(self, client: TestClient, monkeypatch):
        def boom(self):
            raise RuntimeError("boom")

        monkeypatch.setattr(UserRepository, "list_all", boom)

        response = client.get("/users")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error: boom"}
        assert "x-request-id" in response.headers

    def test_details_can_be_hidden(self, client: TestClient, failing_store, monkeypatch):
        monkeypatch.setattr(get_config().app, "expose_error_details", False)

        response = client.get("/users")

        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
