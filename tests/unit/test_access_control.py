"""Unit tests for the blacklist and access control

Tests cover:
- Blacklist add is idempotent; remove reports whether a row existed
- Ban blacklists the email and blocks the matching user
- Unban lifts both
- Setting level -1 blacklists with the admin reason; other levels lift it
- Unknown uuids raise UserNotFoundError
"""

from __future__ import annotations

import pytest

from folio.security.access import ADMIN_BLOCK_REASON, AccessControl, UserNotFoundError
from folio.security.blacklist import Blacklist
from folio.users.repository import UserRepository


def test_blacklist_add_idempotent(db_path):
    """Second add is a no-op and keeps the first reason"""
    assert Blacklist.add("spam@example.com", "first") is True
    assert Blacklist.add("spam@example.com", "second") is False

    assert Blacklist.is_blacklisted("spam@example.com")
    assert Blacklist.get("spam@example.com").reason == "first"


def test_blacklist_remove_reports_deletion(db_path):
    """remove is True only when a row was deleted"""
    Blacklist.add("spam@example.com")

    assert Blacklist.remove("spam@example.com") is True
    assert Blacklist.remove("spam@example.com") is False
    assert not Blacklist.is_blacklisted("spam@example.com")


def test_blacklist_empty_email_never_listed(db_path):
    """No email means nothing to check"""
    assert Blacklist.is_blacklisted(None) is False
    assert Blacklist.is_blacklisted("") is False


def test_ban_blocks_user_and_blacklists(db_path):
    """Ban moves both tables together"""
    user = UserRepository.create(email="ann@example.com")

    AccessControl.ban("ann@example.com", "User requested stop")

    assert Blacklist.is_blacklisted("ann@example.com")
    assert UserRepository.get_by_uuid(user.uuid).access_level == -1


def test_ban_without_user_row(db_path):
    """An address with no user is still blacklisted"""
    AccessControl.ban("ghost@example.com", "Honeypot")

    assert Blacklist.is_blacklisted("ghost@example.com")
    assert UserRepository.get_by_email("ghost@example.com") is None


def test_unban_restores_public_level(db_path):
    """Unban lifts the ban and returns the user to level 0"""
    user = UserRepository.create(email="ann@example.com")
    AccessControl.ban("ann@example.com", "User requested stop")

    AccessControl.unban("ann@example.com")

    assert not Blacklist.is_blacklisted("ann@example.com")
    assert UserRepository.get_by_uuid(user.uuid).access_level == 0


def test_set_level_block_syncs_blacklist(db_path):
    """Level -1 blacklists with the admin reason; raising the level lifts it"""
    user = UserRepository.create(email="ann@example.com")

    AccessControl.set_level(user.uuid, -1)
    assert Blacklist.get("ann@example.com").reason == ADMIN_BLOCK_REASON
    assert UserRepository.get_by_uuid(user.uuid).is_blocked

    AccessControl.set_level(user.uuid, 2)
    assert not Blacklist.is_blacklisted("ann@example.com")
    assert UserRepository.get_by_uuid(user.uuid).access_level == 2


def test_set_level_anonymous_user(db_path):
    """Users without email only change level"""
    user = UserRepository.create(user_uuid="anon")

    AccessControl.set_level("anon", -1)

    assert UserRepository.get_by_uuid(user.uuid).access_level == -1


def test_unknown_uuid_raises(db_path):
    """set_level and delete_user refuse unknown users"""
    with pytest.raises(UserNotFoundError):
        AccessControl.set_level("missing", 1)

    with pytest.raises(UserNotFoundError):
        AccessControl.delete_user("missing")


def test_delete_user(db_path):
    """Deleted users are gone"""
    user = UserRepository.create()

    AccessControl.delete_user(user.uuid)

    assert UserRepository.get_by_uuid(user.uuid) is None
