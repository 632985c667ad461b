"""Tests for the account queries and the signup/login service."""
import pytest

from identity_platform.identity_platform.identity_service.accounts import INVALID_CREDENTIALS
from identity_platform.identity_platform.identity_service.errors import ErrorKind
from identity_platform.identity_platform.identity_service.executor import FailureReason, QueryResult
from identity_platform.identity_platform.identity_service.store import normalize_email


def test_normalize_email():
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


def test_insert_and_lookup(store, hasher):
    created = store.insert_account(" Alice ", "Alice@Example.com", hasher.hash("secret1"))
    assert created.ok
    account = created.first
    assert account["name"] == "Alice"
    assert account["email"] == "alice@example.com"
    assert account["is_active"] is True
    assert account["last_login"] is None
    assert "password_hash" not in account

    by_email = store.find_by_email("ALICE@example.com")
    assert by_email.first["id"] == account["id"]
    assert hasher.verify("secret1", by_email.first["password_hash"])

    by_id = store.find_by_id(account["id"])
    assert by_id.first["email"] == "alice@example.com"
    assert "password_hash" not in by_id.first

    assert store.email_exists("alice@example.com").rows
    assert not store.email_exists("bob@example.com").rows


def test_insert_duplicate_is_constraint_failure(store):
    assert store.insert_account("A", "a@x.com", "hash").ok
    again = store.insert_account("B", "A@X.com", "hash")
    assert not again.ok
    assert again.reason is FailureReason.CONSTRAINT


def test_touch_last_login_and_deactivate(store):
    account = store.insert_account("A", "a@x.com", "hash").first

    assert store.touch_last_login(account["id"]).rowcount == 1
    assert store.find_by_id(account["id"]).first["last_login"] is not None

    assert store.set_active(account["id"], False).rowcount == 1
    assert store.find_by_id(account["id"]).first["is_active"] is False


def test_list_accounts_pages(store):
    for i in range(5):
        store.insert_account(f"user{i}", f"user{i}@x.com", "hash")
    page = store.list_accounts(limit=2, offset=1)
    assert [row["name"] for row in page.rows] == ["user1", "user2"]


def test_signup_issues_token_for_new_account(service, issuer):
    outcome = service.signup("A", "a@x.com", "secret1")
    assert outcome.ok
    assert outcome.account["email"] == "a@x.com"
    assert issuer.verify(outcome.token).account_id == outcome.account["id"]


@pytest.mark.parametrize(
    "name,email,password",
    [
        (None, "a@x.com", "secret1"),
        ("A", None, "secret1"),
        ("A", "a@x.com", None),
        ("   ", "a@x.com", "secret1"),
        ("A", "a@", "secret1"),
        ("A", "a@x.com", "12345"),
        ("A" * 256, "a@x.com", "secret1"),
        ("A", "a" * 250 + "@x.com", "secret1"),
    ],
)
def test_signup_validation(service, name, email, password):
    outcome = service.signup(name, email, password)
    assert outcome.error is ErrorKind.VALIDATION


def test_signup_accepts_fields_at_column_length(service):
    outcome = service.signup("A" * 255, "a" * 249 + "@x.com", "secret1")
    assert outcome.ok
    assert len(outcome.account["email"]) == 255


def test_signup_duplicate_is_conflict(service, store):
    assert service.signup("A", "a@x.com", "secret1").ok
    outcome = service.signup("A2", "a@x.com", "secret2")
    assert outcome.error is ErrorKind.CONFLICT
    assert len(store.list_accounts().rows) == 1


def test_signup_race_at_insert_is_conflict(service, store, monkeypatch):
    assert service.signup("A", "a@x.com", "secret1").ok

    # the existence check misses the row, as if a concurrent signup
    # inserted it between the check and our insert
    monkeypatch.setattr(store, "email_exists", lambda email: QueryResult.success([], 0))

    outcome = service.signup("A2", "a@x.com", "secret2")
    assert outcome.error is ErrorKind.CONFLICT
    assert outcome.message == "Email already registered"
    assert len(store.list_accounts().rows) == 1


def test_signup_store_down(service, store, monkeypatch):
    down = QueryResult.failure(FailureReason.UNAVAILABLE, "connection refused")
    monkeypatch.setattr(store, "email_exists", lambda email: down)
    assert service.signup("A", "a@x.com", "secret1").error is ErrorKind.UNAVAILABLE


def test_signup_insert_failure_is_internal(service, store, monkeypatch):
    broken = QueryResult.failure(FailureReason.QUERY, "column does not exist")
    monkeypatch.setattr(store, "insert_account", lambda *args: broken)
    outcome = service.signup("A", "a@x.com", "secret1")
    assert outcome.error is ErrorKind.INTERNAL
    assert "column" not in outcome.message


def test_login_success_updates_last_login(service, store):
    created = service.signup("A", "a@x.com", "secret1").account
    outcome = service.login("A@X.com", "secret1")
    assert outcome.ok
    assert outcome.account["id"] == created["id"]
    assert "password_hash" not in outcome.account
    assert store.find_by_id(created["id"]).first["last_login"] is not None


def test_login_failures_share_one_outcome(service, store):
    service.signup("A", "a@x.com", "secret1")
    wrong_password = service.login("a@x.com", "nope-nope")
    unknown = service.login("ghost@x.com", "nope-nope")

    store.set_active(service.login("a@x.com", "secret1").account["id"], False)
    inactive = service.login("a@x.com", "secret1")

    for outcome in (wrong_password, unknown, inactive):
        assert outcome.error is ErrorKind.AUTHENTICATION
        assert outcome.message == INVALID_CREDENTIALS
        assert outcome.token is None


def test_login_survives_last_login_failure(service, store, monkeypatch):
    service.signup("A", "a@x.com", "secret1")
    monkeypatch.setattr(
        store, "touch_last_login", lambda account_id: QueryResult.failure(FailureReason.QUERY, "locked")
    )
    outcome = service.login("a@x.com", "secret1")
    assert outcome.ok
    assert outcome.token


def test_login_missing_fields(service):
    assert service.login("", "secret1").error is ErrorKind.VALIDATION
    assert service.login("a@x.com", None).error is ErrorKind.VALIDATION


def test_profile_and_deactivate(service):
    account = service.signup("A", "a@x.com", "secret1").account
    assert service.profile(account["id"]).account["email"] == "a@x.com"
    assert service.profile(account["id"] + 100).error is ErrorKind.NOT_FOUND

    assert service.deactivate(account["id"]).ok
    assert service.profile(account["id"]).error is ErrorKind.FORBIDDEN
    assert service.deactivate(account["id"] + 100).error is ErrorKind.NOT_FOUND
