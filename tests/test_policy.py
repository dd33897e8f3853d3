"""Unit tests for auth/policy.py and the in-memory roster in auth/store.py."""

import threading

import pytest

from auth.models import User
from auth.policy import is_strong_password, is_valid_email, password_problems
from auth.store import UserExistsError, UserStore, seed_default_users
from auth.tokens import authenticate_user, hash_password


@pytest.mark.parametrize("email", ["a@b.co", "first.last@example.com", "x+tag@sub.domain.org"])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["", "plain", "a@b", "a b@c.com", "@example.com", "a@@b.com"])
def test_invalid_emails(email):
    assert not is_valid_email(email)


def test_password_strength():
    assert is_strong_password("Passw0rd")
    assert not is_strong_password("password")
    assert not is_strong_password("PASS1234")
    assert not is_strong_password("Pa1")


def test_password_problems_lists_each_rule():
    assert password_problems("abc") == ["at least 8 characters", "an uppercase letter", "a digit"]
    assert "at most 72 bytes" in password_problems("Aa1" + "x" * 80)


# ---------------------------------------------------------------------------
# Roster
# ---------------------------------------------------------------------------


def _user(username: str, email: str) -> User:
    return User(username=username, email=email, hashed_password="x")


def test_seed_default_users_is_idempotent():
    store = UserStore()
    assert seed_default_users(store, hash_password) == 2
    assert seed_default_users(store, hash_password) == 0
    assert store.count() == 2
    assert store.get_by_id("1").role == "admin"


def test_lookup_by_username_or_email_case_insensitive():
    store = UserStore()
    store.create_user(_user("Alice", "alice@example.com"))
    assert store.get_by_identifier("alice").username == "Alice"
    assert store.get_by_identifier("ALICE@EXAMPLE.COM").username == "Alice"
    assert store.get_by_identifier("bob") is None


def test_create_user_rejects_duplicates():
    store = UserStore()
    store.create_user(_user("alice", "alice@example.com"))
    with pytest.raises(UserExistsError):
        store.create_user(_user("ALICE", "other@example.com"))
    with pytest.raises(UserExistsError):
        store.create_user(_user("other", "Alice@Example.com"))


def test_concurrent_registration_admits_one():
    store = UserStore()
    outcomes: list[bool] = []

    def register() -> None:
        try:
            store.create_user(_user("race", "race@example.com"))
            outcomes.append(True)
        except UserExistsError:
            outcomes.append(False)

    threads = [threading.Thread(target=register) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert outcomes.count(True) == 1
    assert store.count() == 1


def test_update_user_restricts_fields():
    store = UserStore()
    uid = store.create_user(_user("alice", "alice@example.com"))
    assert store.update_user(uid, role="manager") is True
    assert store.get_by_id(uid).role == "manager"
    assert store.update_user("missing", role="user") is False
    with pytest.raises(ValueError):
        store.update_user(uid, username="mallory")


def test_authenticate_user():
    store = UserStore()
    seed_default_users(store, hash_password)
    assert authenticate_user(store, "admin", "admin123").username == "admin"
    assert authenticate_user(store, "admin", "wrong") is None
    assert authenticate_user(store, "ghost", "admin123") is None
