"""Unit tests for auth/store.py -- the credential store.

Covers:
- create() normalizes email, hashes the password and never returns the hash
- duplicate emails are rejected case-insensitively by the UNIQUE constraint
- create() validation messages
- verify_password(), touch_last_login(), set_active()
"""

import pytest
from sqlalchemy import text

from auth.errors import DuplicateEmailError, ValidationError
from auth.store import UserStore


@pytest.fixture
def store():
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


def _count_email(store: UserStore, email: str) -> int:
    with store.engine.connect() as conn:
        return conn.execute(text("SELECT COUNT(*) FROM users WHERE email = :e"), {"e": email}).scalar()


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


def test_create_returns_sanitized_user(store):
    user = store.create("  Ann  ", "  Ann@X.com ", "secret1", age=30)
    assert user.id is not None
    assert user.name == "Ann"
    assert user.email == "ann@x.com"
    assert user.age == 30
    assert user.is_active is True
    assert user.hashed_password is None
    assert user.last_login is None
    assert user.created_at
    assert "hashed_password" not in user.to_public()
    assert "password" not in user.to_public()


def test_password_is_stored_hashed(store):
    store.create("Ann", "ann@x.com", "secret1")
    with store.engine.connect() as conn:
        stored = conn.execute(text("SELECT hashed_password FROM users")).scalar()
    assert stored != "secret1"
    assert stored.startswith("$2")


def test_duplicate_email_is_case_insensitive(store):
    store.create("Ann", "ann@x.com", "secret1")
    with pytest.raises(DuplicateEmailError) as exc_info:
        store.create("Other Ann", "ANN@X.COM", "secret2")
    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "User with this email already exists"
    assert _count_email(store, "ann@x.com") == 1


@pytest.mark.parametrize(
    "name, email, password, age, message",
    [
        ("", "ann@x.com", "secret1", None, "Name, email, and password are required"),
        ("Ann", "", "secret1", None, "Name, email, and password are required"),
        ("Ann", "ann@x.com", "", None, "Name, email, and password are required"),
        ("   ", "ann@x.com", "secret1", None, "Please provide a name"),
        ("A" * 51, "ann@x.com", "secret1", None, "Name cannot be more than 50 characters"),
        ("Ann", "not-an-email", "secret1", None, "Please provide a valid email"),
        ("Ann", "ann@x", "secret1", None, "Please provide a valid email"),
        ("Ann", "ann@x.com", "12345", None, "Password must be at least 6 characters long"),
        ("Ann", "ann@x.com", "p" * 73, None, "Password cannot be longer than 72 bytes"),
        ("Ann", "ann@x.com", "secret1", 151, "Age must be realistic"),
        ("Ann", "ann@x.com", "secret1", -1, "Age must be a positive number"),
    ],
)
def test_create_validation(store, name, email, password, age, message):
    with pytest.raises(ValidationError) as exc_info:
        store.create(name, email, password, age)
    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400
    assert store.has_users() is False


def test_name_of_fifty_characters_is_accepted(store):
    assert store.create("A" * 50, "ann@x.com", "secret1").name == "A" * 50


# ---------------------------------------------------------------------------
# lookups
# ---------------------------------------------------------------------------


def test_find_by_email_excludes_hash_unless_asked(store):
    store.create("Ann", "ann@x.com", "secret1")
    assert store.find_by_email("ANN@x.com").hashed_password is None
    assert store.find_by_email("ann@x.com", include_password=True).hashed_password.startswith("$2")


def test_find_by_email_unknown(store):
    assert store.find_by_email("nobody@x.com") is None
    assert store.find_by_email("") is None


def test_get_by_id(store):
    user = store.create("Ann", "ann@x.com", "secret1")
    assert store.get_by_id(user.id).email == "ann@x.com"
    assert store.get_by_id(user.id + 100) is None


# ---------------------------------------------------------------------------
# verify_password / touch_last_login / set_active
# ---------------------------------------------------------------------------


def test_verify_password(store):
    store.create("Ann", "ann@x.com", "secret1")
    user = store.find_by_email("ann@x.com", include_password=True)
    assert store.verify_password(user, "secret1") is True
    assert store.verify_password(user, "wrong") is False


def test_verify_password_without_hash_is_false(store):
    store.create("Ann", "ann@x.com", "secret1")
    user = store.find_by_email("ann@x.com")
    assert store.verify_password(user, "secret1") is False


def test_touch_last_login(store):
    user = store.create("Ann", "ann@x.com", "secret1")
    touched = store.touch_last_login(user)
    assert touched.last_login is not None
    assert touched.hashed_password is None
    assert store.get_by_id(user.id).last_login == touched.last_login


def test_set_active(store):
    user = store.create("Ann", "ann@x.com", "secret1")
    assert store.set_active(user.id, False) is True
    assert store.get_by_id(user.id).is_active is False
    assert store.set_active(user.id, True) is True
    assert store.get_by_id(user.id).is_active is True
    assert store.set_active(user.id + 100, False) is False


def test_has_users_and_ping(store):
    assert store.ping() is True
    assert store.has_users() is False
    store.create("Ann", "ann@x.com", "secret1")
    assert store.has_users() is True
