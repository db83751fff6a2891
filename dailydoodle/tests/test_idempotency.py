"""
dailydoodle/tests/test_idempotency.py
Tests for global idempotency key management.
"""

import pytest

from dailydoodle.core.idempotency import check_and_set, check_key, clear_all_keys, release


@pytest.fixture(autouse=True)
def clean_idempotency():
    """Clear idempotency keys before each test."""
    clear_all_keys()
    yield
    clear_all_keys()


def test_check_and_set_first_time():
    """First time seeing key returns False (not duplicate)."""
    result = check_and_set("key-1", "test_op")
    assert result is False  # First time


def test_check_and_set_duplicate():
    """Second time seeing key returns True (duplicate)."""
    check_and_set("key-2", "test_op")
    result = check_and_set("key-2", "test_op")
    assert result is True  # Duplicate


def test_check_and_set_different_keys():
    """Different keys are treated independently."""
    check_and_set("key-3", "test_op")
    result = check_and_set("key-4", "test_op")
    assert result is False  # Different key, not duplicate


def test_check_key_exists():
    """check_key returns True for existing key."""
    check_and_set("key-5", "test_op")
    assert check_key("key-5") is True


def test_check_key_not_exists():
    """check_key returns False for non-existing key."""
    assert check_key("key-nonexistent") is False


def test_clear_all_keys():
    """clear_all_keys removes all stored keys."""
    check_and_set("key-6", "test_op")
    check_and_set("key-7", "test_op")
    
    clear_all_keys()
    
    # Both keys should be gone
    assert check_key("key-6") is False
    assert check_key("key-7") is False


def test_operation_parameter_stored():
    """Operation parameter is accepted (no error)."""
    result = check_and_set("key-8", "specific_operation")
    assert result is False  # First time


def test_release_frees_key_for_retry():
    """A released key can be claimed again (failed side effect retried)."""
    check_and_set("premium-email:evt_1", "premium_email")
    release("premium-email:evt_1")

    assert check_key("premium-email:evt_1") is False
    assert check_and_set("premium-email:evt_1", "premium_email") is False


def test_release_unknown_key_is_noop():
    release("key-never-set")
    assert check_key("key-never-set") is False
