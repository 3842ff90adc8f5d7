import json
from datetime import date

import bcrypt
import pytest

from taskverse.errors import NotFound, ValidationError
from taskverse.persistence import (
    authenticate,
    compare_hash,
    create_task_record,
    create_user,
    delete_task_record,
    find_user_by_email,
    get_task_record,
    hash_password,
    list_task_records,
    update_task_record,
    update_user_wallet,
)


def test_create_user_normalizes_and_hashes(local_storage):
    user = create_user("  Ada  ", "Ada@Example.com", "correct horse")

    assert user.name == "Ada"
    assert user.email == "ada@example.com"
    assert user.wallet_address == ""
    assert "correct horse" not in user.password_hash
    stored = (local_storage / "store" / "users.jsonl").read_text(encoding="utf-8")
    assert json.loads(stored.splitlines()[0])["email"] == "ada@example.com"


def test_find_user_is_case_insensitive():
    created = create_user("Ada", "ada@example.com", "correct horse")

    found = find_user_by_email("ADA@example.com ")

    assert found.id == created.id
    assert find_user_by_email("nobody@example.com") is None


@pytest.mark.parametrize(
    "name,email,password",
    [
        ("", "ada@example.com", "correct horse"),
        ("Ada", "not-an-email", "correct horse"),
        ("Ada", "ada@example.com", "short"),
    ],
)
def test_create_user_rejects_bad_input(name, email, password):
    with pytest.raises(ValidationError):
        create_user(name, email, password)


def test_duplicate_email_is_rejected():
    create_user("Ada", "ada@example.com", "correct horse")

    with pytest.raises(ValidationError, match="already exists"):
        create_user("Other Ada", "ADA@example.com", "another password")


def test_compare_hash():
    hashed = hash_password("s3cret-pass", rounds=4)

    assert hashed.startswith("$2b$04$")
    assert compare_hash("s3cret-pass", hashed)
    assert not compare_hash("wrong-pass", hashed)
    assert not compare_hash("s3cret-pass", "garbage")
    assert hashed != hash_password("s3cret-pass", rounds=4)


def test_stored_password_is_bcrypt():
    user = create_user("Ada", "ada@example.com", "correct horse")

    assert user.password_hash.startswith("$2b$10$")
    assert bcrypt.checkpw(b"correct horse", user.password_hash.encode("ascii"))


def test_password_longer_than_bcrypt_limit_is_rejected():
    with pytest.raises(ValidationError, match="72 bytes"):
        create_user("Ada", "ada@example.com", "x" * 73)


def test_authenticate():
    create_user("Ada", "ada@example.com", "correct horse")

    assert authenticate("ada@example.com", "correct horse") is not None
    assert authenticate("ada@example.com", "wrong horse") is None
    assert authenticate("ghost@example.com", "correct horse") is None


def test_update_user_wallet():
    create_user("Ada", "ada@example.com", "correct horse")

    user = update_user_wallet("ada@example.com", "0xabc")

    assert user.wallet_address == "0xabc"
    assert find_user_by_email("ada@example.com").wallet_address == "0xabc"
    with pytest.raises(NotFound):
        update_user_wallet("ghost@example.com", "0xabc")


def test_task_record_defaults():
    record = create_task_record("user-1", {"title": "  Read paper  "})

    assert record.title == "Read paper"
    assert record.description == ""
    assert record.type == "other"
    assert record.priority == 2
    assert record.completed is False
    assert record.completed_at is None


def test_completed_record_gets_completion_time():
    record = create_task_record(
        "user-1",
        {"title": "Run", "type": "HEALTH", "deadline": "2025-05-01", "completed": True},
    )

    assert record.type == "health"
    assert record.deadline == date(2025, 5, 1)
    assert record.completed_at == record.created_at


@pytest.mark.parametrize("fields", [{"title": ""}, {"title": "x", "type": "chores"}, {"title": "x", "priority": "high"}])
def test_task_record_validation(fields):
    with pytest.raises(ValidationError):
        create_task_record("user-1", fields)


def test_task_records_are_scoped_per_user():
    create_task_record("user-1", {"title": "Mine"})
    create_task_record("user-1", {"title": "Also mine"})
    create_task_record("user-2", {"title": "Theirs"})

    mine = list_task_records("user-1")

    assert {r.title for r in mine} == {"Mine", "Also mine"}
    assert all(r.user_id == "user-1" for r in mine)
    assert list_task_records("user-3") == []


def test_update_task_record_tracks_completion_time():
    record = create_task_record("user-1", {"title": "Run", "category": "Health"})

    done = update_task_record("user-1", record.id, {"completed": True})
    again = update_task_record("user-1", record.id, {"priority": 3})
    reopened = update_task_record("user-1", record.id, {"completed": False})

    assert done.completed_at is not None
    assert again.completed_at == done.completed_at
    assert again.title == "Run" and again.category == "Health"
    assert reopened.completed_at is None
    assert get_task_record("user-1", record.id).priority == 3
    assert len(list_task_records("user-1")) == 1


def test_update_missing_task_record():
    with pytest.raises(NotFound):
        update_task_record("user-1", "missing", {"title": "x"})


def test_delete_task_record_is_idempotent():
    record = create_task_record("user-1", {"title": "Drop me"})

    assert delete_task_record("user-1", record.id) is True
    assert delete_task_record("user-1", record.id) is False
    assert get_task_record("user-1", record.id) is None
