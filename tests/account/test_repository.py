"""Tests for app/account/repository.py - Account store."""

import uuid
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from app.account.exceptions import AccountExistsError, HandleConflictError
from app.account.models import VerificationStatus
from app.account.repository import AccountStore
from app.core.exceptions import TransientStoreError

S = VerificationStatus


def test_create_defaults_to_unlinked(store):
    account = store.create(
        external_login_id="google-1", email="a@example.com", display_name="A"
    )

    assert account.verification_status == S.UNLINKED
    assert account.external_handle is None
    assert account.credential_set is False
    assert store.find_by_external_login_id("google-1").id == account.id


def test_create_duplicate_login_id(store):
    store.create(external_login_id="google-1", email="a@example.com", display_name="A")

    with pytest.raises(AccountExistsError):
        store.create(
            external_login_id="google-1", email="b@example.com", display_name="B"
        )

    # Session is usable after the rollback
    assert store.find_by_external_login_id("google-1") is not None


def test_find_by_email_prefers_approved(store, make_account):
    make_account(email="shared@example.com")
    approved = make_account(
        status=S.APPROVED, handle="tourist", email="shared@example.com"
    )

    assert store.find_by_email("SHARED@example.com").id == approved.id


def test_find_by_handle_excludes_self(store, make_account):
    account = make_account(status=S.APPROVED, handle="tourist")

    assert store.find_by_handle("tourist", S.APPROVED).id == account.id
    assert store.find_by_handle("tourist", S.APPROVED, exclude_id=account.id) is None
    assert store.find_by_handle("tourist", S.CLAIMED) is None


def test_conditional_update_applies_on_match(store, account):
    updated = store.conditional_update(
        account.id, S.UNLINKED, {"verification_status": S.CLAIMED, "external_handle": "x"}
    )

    assert updated.verification_status == S.CLAIMED
    assert updated.external_handle == "x"


def test_conditional_update_skips_on_mismatch(store, account):
    result = store.conditional_update(
        account.id, S.SUBMITTED, {"verification_status": S.APPROVED}
    )

    assert result is None
    assert store.find_by_id(account.id).verification_status == S.UNLINKED


def test_conditional_update_extra_guard(store, make_account):
    account = make_account(
        status=S.APPROVED, handle="tourist", reset_token_hash="stored-hash"
    )

    assert (
        store.conditional_update(
            account.id, S.APPROVED, {"reset_token_hash": None}, reset_token_hash="other"
        )
        is None
    )
    assert store.conditional_update(
        account.id, S.APPROVED, {"reset_token_hash": None}, reset_token_hash="stored-hash"
    ) is not None
    # None guards match NULL
    assert store.conditional_update(
        account.id, S.APPROVED, {"credential_set": True}, reset_token_hash=None
    ) is not None


def test_conditional_update_unknown_id(store):
    assert (
        store.conditional_update(uuid.uuid4(), S.UNLINKED, {"external_handle": "x"})
        is None
    )


def test_second_approved_handle_violates_index(store, make_account):
    make_account(status=S.APPROVED, handle="tourist")
    other = make_account(status=S.SUBMITTED, handle="tourist")

    with pytest.raises(HandleConflictError):
        store.conditional_update(
            other.id, S.SUBMITTED, {"verification_status": S.APPROVED}
        )

    assert store.find_by_id(other.id).verification_status == S.SUBMITTED


def test_update_profile(store, account):
    updated = store.update_profile(
        account.id, email="new@example.com", display_name="New Name"
    )

    assert updated.email == "new@example.com"
    assert updated.display_name == "New Name"
    assert updated.verification_status == account.verification_status


def test_delete_unless(store, make_account):
    approved_id = make_account(status=S.APPROVED, handle="tourist").id
    pending_id = make_account(status=S.SUBMITTED, handle="other").id

    assert store.delete_unless(approved_id, S.APPROVED) is False
    assert store.delete_unless(pending_id, S.APPROVED) is True
    assert store.find_by_id(pending_id) is None
    assert store.find_by_id(approved_id) is not None


def test_list_by_status(store, make_account):
    make_account()
    submitted = make_account(status=S.SUBMITTED, handle="a")
    rejected = make_account(status=S.REJECTED, handle="b")

    ids = {a.id for a in store.list_by_status([S.SUBMITTED, S.REJECTED])}

    assert ids == {submitted.id, rejected.id}


def test_search(store, make_account):
    ada = make_account(email="ada@example.com", display_name="Ada Lovelace")
    make_account(email="grace@example.com", display_name="Grace Hopper")
    tourist = make_account(status=S.CLAIMED, handle="Tourist")

    assert {a.id for a in store.search(term="LOVELACE")} == {ada.id}
    assert {a.id for a in store.search(term="tour")} == {tourist.id}
    assert {a.id for a in store.search(status=S.CLAIMED)} == {tourist.id}
    assert store.search(status=S.CLAIMED, term="ada") == []
    assert len(store.search()) == 3


def test_search_escapes_wildcards(store, make_account):
    make_account(email="plain@example.com")

    assert store.search(term="%") == []
    assert store.search(term="_") == []


def test_counts(store, make_account):
    make_account()
    make_account()
    make_account(status=S.APPROVED, handle="a", credential_set=True)

    counts = store.count_by_status()

    assert counts[S.UNLINKED] == 2
    assert counts[S.APPROVED] == 1
    assert counts[S.REJECTED] == 0
    assert set(counts) == set(S)
    assert store.count_with_credential() == 1


def test_transient_failure_on_read():
    session = MagicMock(spec=Session)
    session.get.side_effect = OperationalError("SELECT", {}, Exception("gone"))
    store = AccountStore(session)

    with pytest.raises(TransientStoreError) as exc_info:
        store.find_by_id(uuid.uuid4())

    assert exc_info.value.status_code == 503
    session.rollback.assert_called_once()


def test_transient_failure_on_write_rolls_back():
    session = MagicMock(spec=Session)
    session.exec.side_effect = OperationalError("UPDATE", {}, Exception("gone"))
    store = AccountStore(session)

    with pytest.raises(TransientStoreError):
        store.conditional_update(uuid.uuid4(), S.UNLINKED, {"external_handle": "x"})

    session.rollback.assert_called_once()
    session.commit.assert_not_called()
