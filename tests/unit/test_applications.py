"""Unit tests for ApplicationMixin database operations."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tinycore.db.models import KVItem
from tinycore.errors import DuplicateId

if TYPE_CHECKING:
    from tinycore.db.models import Database, User


class TestCreateGet:
    def test_create_and_get(self, test_database: Database) -> None:
        created = test_database.create_application("notes", "Notes", {"color": "blue"})

        fetched = test_database.get_application("notes")

        assert fetched is not None
        assert fetched.id == "notes"
        assert fetched.name == "Notes"
        assert fetched.metadata == {"color": "blue"}
        assert fetched.created_at == created.created_at

    def test_get_missing(self, test_database: Database) -> None:
        assert test_database.get_application("nope") is None

    def test_duplicate_id(self, test_database: Database) -> None:
        test_database.create_application("notes", "Notes")

        with pytest.raises(DuplicateId) as exc_info:
            test_database.create_application("notes", "Other")

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Application ID already exists"


class TestUpdateDelete:
    def test_update(self, test_database: Database) -> None:
        test_database.create_application("notes", "Notes", {"a": 1})

        assert test_database.update_application("notes", "Renamed", None) is True

        fetched = test_database.get_application("notes")
        assert fetched is not None
        assert fetched.name == "Renamed"
        assert fetched.metadata == {}

    def test_update_missing(self, test_database: Database) -> None:
        assert test_database.update_application("nope", "Name") is False

    def test_delete(self, test_database: Database) -> None:
        test_database.create_application("notes", "Notes")

        assert test_database.delete_application("notes") is True
        assert test_database.get_application("notes") is None
        assert test_database.delete_application("notes") is False


class TestListAndStats:
    def test_list_in_insertion_order(self, test_database: Database) -> None:
        for app_id in ["zeta", "alpha", "mid"]:
            test_database.create_application(app_id, app_id.title())

        assert [a.id for a in test_database.list_applications()] == ["zeta", "alpha", "mid"]

    def test_list_empty(self, test_database: Database) -> None:
        assert test_database.list_applications() == []

    def test_stats(self, test_database: Database, test_user: User, other_user: User) -> None:
        test_database.create_application("notes", "Notes")
        for owner, key in [(test_user, "a"), (test_user, "b"), (other_user, "a")]:
            test_database.kv_set(KVItem(app_id="notes", key=key, value=1, owner_id=owner.id))

        assert test_database.get_application_stats("notes") == {"totalKeys": 3, "totalUsers": 2}

    def test_stats_empty(self, test_database: Database) -> None:
        test_database.create_application("notes", "Notes")

        assert test_database.get_application_stats("notes") == {"totalKeys": 0, "totalUsers": 0}
