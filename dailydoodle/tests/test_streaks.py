"""
Streak state machine: once per canonical day, grace window, monthly freeze.
"""
from datetime import date

import pytest

from dailydoodle.features.badges.service import badge_service
from dailydoodle.features.streaks.service import StreakService
from dailydoodle.models.streak import StreakState

MAR_10 = date(2026, 3, 10)


@pytest.fixture
def service():
    return StreakService(grace_days=2)


def _view(service, day, user_id="user_a", is_premium=False):
    state, emitted = service.record_view(user_id, is_premium=is_premium, today=day)
    return state, [e["type"] for e in emitted]


def test_first_view_starts_streak(service):
    state, events = _view(service, MAR_10)

    assert state.current_streak == 1
    assert state.longest_streak == 1
    assert state.last_viewed_date == MAR_10
    assert events[0] == "streak.incremented"
    assert badge_service.has_badge("user_a", "first_prompt")


def test_same_day_view_is_a_noop(service):
    _view(service, MAR_10)
    state, events = _view(service, MAR_10)

    assert state.current_streak == 1
    assert events == []


def test_consecutive_days_increment(service):
    _view(service, MAR_10)
    state, events = _view(service, date(2026, 3, 11))

    assert state.current_streak == 2
    assert "streak.incremented" in events


def test_gap_within_grace_keeps_streak(service):
    _view(service, MAR_10)
    state, _ = _view(service, date(2026, 3, 12))
    assert state.current_streak == 2


def test_gap_past_grace_resets(service):
    _view(service, MAR_10)
    _view(service, date(2026, 3, 11))
    state, events = _view(service, date(2026, 3, 14))

    assert state.current_streak == 1
    assert state.longest_streak == 2
    assert events == ["streak.reset"]


def test_older_clock_does_not_move_state(service):
    _view(service, MAR_10)
    state, events = _view(service, date(2026, 3, 9))

    assert events == []
    assert state.last_viewed_date == MAR_10


def test_premium_auto_freeze_covers_one_extra_day(service):
    _view(service, MAR_10, is_premium=True)
    state, events = _view(service, date(2026, 3, 13), is_premium=True)

    assert "streak.freeze_applied" in events
    assert state.current_streak == 2
    assert state.streak_freeze_used_month == "2026-03"

    # the month's freeze is spent: the next long gap resets
    state, events = _view(service, date(2026, 3, 16), is_premium=True)
    assert events == ["streak.reset"]
    assert state.current_streak == 1


def test_free_users_get_no_freeze(service):
    _view(service, MAR_10)
    state, events = _view(service, date(2026, 3, 13))
    assert events == ["streak.reset"]
    assert service.use_streak_freeze("user_a", is_premium=False, today=date(2026, 3, 13)) is False


def test_armed_freeze_covers_longer_gap(service):
    _view(service, MAR_10, is_premium=True)
    assert service.use_streak_freeze("user_a", is_premium=True, today=MAR_10) is True
    # already armed, and only one per month
    assert service.use_streak_freeze("user_a", is_premium=True, today=MAR_10) is False

    state, events = _view(service, date(2026, 3, 17), is_premium=True)

    assert "streak.freeze_applied" in events
    assert state.current_streak == 2
    assert state.streak_freeze_armed is False


def test_armed_freeze_carried_into_next_month_spends_that_month(service):
    _view(service, date(2026, 3, 31), is_premium=True)
    assert service.use_streak_freeze("user_a", is_premium=True, today=date(2026, 3, 31)) is True
    for day in (1, 2, 3):
        _view(service, date(2026, 4, day), is_premium=True)

    state, events = _view(service, date(2026, 4, 9), is_premium=True)
    assert "streak.freeze_applied" in events
    assert state.current_streak == 5
    assert state.streak_freeze_used_month == "2026-04"

    # April already forgave one gap
    state, events = _view(service, date(2026, 4, 12), is_premium=True)
    assert "streak.freeze_applied" not in events
    assert state.current_streak == 1


def test_freeze_available_resets_next_month(service):
    _view(service, MAR_10, is_premium=True)
    service.use_streak_freeze("user_a", is_premium=True, today=MAR_10)
    state = service.get_state("user_a")

    assert state.freeze_available(True, "2026-03") is False
    assert state.freeze_available(True, "2026-04") is True


def test_streak_badges_awarded_on_threshold(service):
    for offset in range(3):
        _view(service, date(2026, 3, 10 + offset))

    assert badge_service.has_badge("user_a", "creative_ember")
    assert not badge_service.has_badge("user_a", "creative_fire")


def test_advance_is_pure():
    service = StreakService(grace_days=2)
    state = StreakState(user_id="user_a", current_streak=4, longest_streak=9, last_viewed_date=MAR_10)

    next_state, _ = service.advance(state, date(2026, 3, 11), is_premium=False)

    assert next_state.current_streak == 5
    assert next_state.longest_streak == 9
    assert state.current_streak == 4


def test_api_requires_auth(client):
    assert client.get("/api/streak").status_code == 401
    assert client.post("/api/streak/view").status_code == 401


def test_api_view_is_idempotent_within_a_day(client, auth_headers):
    headers = auth_headers("user_a")

    first = client.post("/api/streak/view", headers=headers).json()
    second = client.post("/api/streak/view", headers=headers).json()

    assert first["streak"]["current_streak"] == 1
    assert second["streak"]["current_streak"] == 1
    assert second["emitted"] == []
    assert client.get("/api/streak", headers=headers).json()["streak"]["current_streak"] == 1


def test_api_freeze_requires_premium(client, auth_headers, premium_user):
    resp = client.post("/api/streak/freeze", headers=auth_headers("user_a"))
    assert resp.json()["applied"] is False

    premium_user("user_b")
    resp = client.post("/api/streak/freeze", headers=auth_headers("user_b"))
    body = resp.json()
    assert body["applied"] is True
    assert body["streak"]["streak_freeze_armed"] is True
    assert body["streak"]["streak_freeze_available"] is False
