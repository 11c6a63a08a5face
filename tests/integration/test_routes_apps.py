"""Integration tests for /api/v1/apps routes."""

import json

from flask.testing import FlaskClient

from tinycore.db.models import Application, Database, KVItem, User

APPS = "/api/v1/apps"


class TestCreateApplication:
    """Tests for POST /api/v1/apps."""

    def test_creates(
        self, client: FlaskClient, test_database: Database, auth_headers: dict[str, str]
    ) -> None:
        response = client.post(
            APPS,
            headers=auth_headers,
            json={"id": "notes", "name": "Notes", "metadata": {"color": "blue"}},
        )

        assert response.status_code == 201
        application = test_database.get_application("notes")
        assert application is not None
        assert application.name == "Notes"
        assert application.metadata == {"color": "blue"}

    def test_duplicate_id_conflicts(
        self, client: FlaskClient, test_app_record: Application, auth_headers: dict[str, str]
    ) -> None:
        response = client.post(
            APPS, headers=auth_headers, json={"id": test_app_record.id, "name": "Again"}
        )

        assert response.status_code == 409
        data = json.loads(response.data)
        assert data["error"]["code"] == "CONFLICT"
        assert data["error"]["details"]["field"] == "id"

    def test_rejects_bad_id(self, client: FlaskClient, auth_headers: dict[str, str]) -> None:
        response = client.post(APPS, headers=auth_headers, json={"id": "no spaces!", "name": "X"})

        assert response.status_code == 400
        data = json.loads(response.data)
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert data["error"]["details"]["field"] == "id"

    def test_requires_name(self, client: FlaskClient, auth_headers: dict[str, str]) -> None:
        response = client.post(APPS, headers=auth_headers, json={"id": "notes"})

        assert response.status_code == 400

    def test_requires_auth(self, client: FlaskClient) -> None:
        response = client.post(APPS, json={"id": "notes", "name": "Notes"})

        assert response.status_code == 401


class TestReadApplications:
    def test_list_in_creation_order(
        self, client: FlaskClient, test_database: Database, auth_headers: dict[str, str]
    ) -> None:
        test_database.create_application("zeta", "Zeta")
        test_database.create_application("alpha", "Alpha")

        response = client.get(APPS, headers=auth_headers)

        assert response.status_code == 200
        assert [a["id"] for a in json.loads(response.data)] == ["zeta", "alpha"]

    def test_get(
        self, client: FlaskClient, test_app_record: Application, auth_headers: dict[str, str]
    ) -> None:
        response = client.get(f"{APPS}/test-app", headers=auth_headers)

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data["id"] == "test-app"
        assert data["name"] == "Test App"
        assert data["created_at"]

    def test_get_missing(self, client: FlaskClient, auth_headers: dict[str, str]) -> None:
        response = client.get(f"{APPS}/nope", headers=auth_headers)

        assert response.status_code == 404
        data = json.loads(response.data)
        assert data["error"]["code"] == "NOT_FOUND"
        assert data["error"]["message"] == "Application not found"


class TestUpdateApplication:
    def test_updates(
        self,
        client: FlaskClient,
        test_database: Database,
        test_app_record: Application,
        auth_headers: dict[str, str],
    ) -> None:
        response = client.put(
            f"{APPS}/test-app", headers=auth_headers, json={"name": "Renamed", "metadata": {"v": 2}}
        )

        assert response.status_code == 200
        application = test_database.get_application("test-app")
        assert application is not None
        assert application.name == "Renamed"
        assert application.metadata == {"v": 2}

    def test_update_missing(self, client: FlaskClient, auth_headers: dict[str, str]) -> None:
        response = client.put(f"{APPS}/nope", headers=auth_headers, json={"name": "X"})

        assert response.status_code == 404


class TestDeleteApplication:
    def test_deletes_with_keys(
        self,
        client: FlaskClient,
        test_database: Database,
        test_user: User,
        test_app_record: Application,
        auth_headers: dict[str, str],
    ) -> None:
        test_database.kv_set(KVItem(app_id="test-app", key="k", value=1, owner_id=test_user.id))

        response = client.delete(f"{APPS}/test-app", headers=auth_headers)

        assert response.status_code == 200
        assert test_database.get_application("test-app") is None
        assert test_database.kv_list_by_owner(test_user.id) == []

    def test_delete_missing(self, client: FlaskClient, auth_headers: dict[str, str]) -> None:
        response = client.delete(f"{APPS}/nope", headers=auth_headers)

        assert response.status_code == 404


class TestApplicationStats:
    def test_counts(
        self,
        client: FlaskClient,
        test_database: Database,
        test_user: User,
        other_user: User,
        test_app_record: Application,
        auth_headers: dict[str, str],
    ) -> None:
        for owner, key in [(test_user, "a"), (test_user, "b"), (other_user, "a")]:
            test_database.kv_set(KVItem(app_id="test-app", key=key, value=key, owner_id=owner.id))

        response = client.get(f"{APPS}/test-app/stats", headers=auth_headers)

        assert response.status_code == 200
        assert json.loads(response.data) == {"totalKeys": 3, "totalUsers": 2}

    def test_empty_app(
        self, client: FlaskClient, test_app_record: Application, auth_headers: dict[str, str]
    ) -> None:
        response = client.get(f"{APPS}/test-app/stats", headers=auth_headers)

        assert json.loads(response.data) == {"totalKeys": 0, "totalUsers": 0}

    def test_missing_app(self, client: FlaskClient, auth_headers: dict[str, str]) -> None:
        response = client.get(f"{APPS}/nope/stats", headers=auth_headers)

        assert response.status_code == 404
