"""Tests for valtify.accounts module."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from valtify.accounts import AccountStore, normalize_email
from valtify.errors import Conflict


class TestNormalizeEmail:
    """Tests for email normalization."""

    def test_lowercases_and_strips(self):
        """Case and surrounding whitespace are not significant."""
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


class TestCreate:
    """Tests for account creation."""

    def test_create_assigns_id_and_timestamps(self, accounts):
        """New accounts get an id, normalized email and created_at."""
        account = accounts.create("Alice@Example.com", "verifier")

        assert account.id
        assert account.email == "alice@example.com"
        assert account.password_hash == "verifier"
        assert account.created_at is not None
        assert account.last_login is None

    def test_ids_are_unique(self, accounts):
        """Two accounts never share an id."""
        first = accounts.create("a@example.com", "v")
        second = accounts.create("b@example.com", "v")
        assert first.id != second.id

    def test_duplicate_email_conflicts(self, accounts):
        """The same email cannot be registered twice."""
        accounts.create("alice@example.com", "v")
        with pytest.raises(Conflict):
            accounts.create("alice@example.com", "v")

    def test_duplicate_email_different_case_conflicts(self, accounts):
        """Uniqueness is case-insensitive."""
        accounts.create("alice@example.com", "v")
        with pytest.raises(Conflict):
            accounts.create("ALICE@example.com", "v")

    def test_store_usable_after_conflict(self, accounts):
        """A conflict rolls back cleanly and the session keeps working."""
        accounts.create("alice@example.com", "v")
        with pytest.raises(Conflict):
            accounts.create("alice@example.com", "v")
        assert accounts.create("bob@example.com", "v").email == "bob@example.com"

    def test_concurrent_creates_have_one_winner(self, session_factory):
        """Racing registrations of one email resolve to exactly one account."""

        def attempt(_):
            session = session_factory()
            try:
                AccountStore(session).create("race@example.com", "v")
                return "created"
            except Conflict:
                return "conflict"
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(attempt, range(8)))

        assert results.count("created") == 1
        assert results.count("conflict") == 7


class TestFind:
    """Tests for account lookups."""

    def test_find_by_email_any_case(self, accounts):
        """Lookups normalize the email."""
        created = accounts.create("alice@example.com", "v")
        assert accounts.find_by_email(" ALICE@example.com").id == created.id

    def test_find_by_email_missing(self, accounts):
        """Unknown emails return None."""
        assert accounts.find_by_email("nobody@example.com") is None

    def test_find_by_id(self, accounts):
        """Accounts are found by id."""
        created = accounts.create("alice@example.com", "v")
        assert accounts.find_by_id(created.id).email == "alice@example.com"

    def test_find_by_id_missing(self, accounts):
        """Unknown ids return None."""
        assert accounts.find_by_id("no-such-id") is None


class TestRecordLogin:
    """Tests for login bookkeeping."""

    def test_record_login_sets_last_login(self, accounts):
        """last_login is stamped."""
        account = accounts.create("alice@example.com", "v")
        accounts.record_login(account)
        assert accounts.find_by_id(account.id).last_login is not None

    def test_record_login_stores_new_verifier(self, accounts):
        """An upgraded verifier replaces the old one."""
        account = accounts.create("alice@example.com", "old")
        accounts.record_login(account, "new")
        assert accounts.find_by_id(account.id).password_hash == "new"
