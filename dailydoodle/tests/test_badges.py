"""
Badge thresholds, seasonal awards and the daily availability job.
"""
from datetime import date

import pytest

from dailydoodle.core.errors import ValidationError
from dailydoodle.features.badges.availability import due_announcements, run_badge_availability
from dailydoodle.features.badges.catalog import (
    BADGE_CATALOG,
    badges_for_counter,
    holiday_badge_for,
    monthly_badge_for,
)
from dailydoodle.features.badges.service import badge_service
from dailydoodle.features.notifications.service import notification_service
from dailydoodle.features.profiles.service import profile_service


def test_badges_for_counter_thresholds():
    assert badges_for_counter("streak", 0) == []
    assert badges_for_counter("streak", 7) == ["first_prompt", "creative_ember", "creative_fire", "7_day_streak"]
    assert "creative_blaze" in badges_for_counter("streak", 10)
    assert badges_for_counter("uploads", 10) == ["first_doodle", "doodle_diary"]
    assert badges_for_counter("unknown_counter", 99) == []


def test_every_rule_points_at_a_catalog_badge():
    from dailydoodle.features.badges.catalog import THRESHOLD_RULES

    for rules in THRESHOLD_RULES.values():
        for _, badge_type in rules:
            assert badge_type in BADGE_CATALOG


def test_evaluate_awards_once():
    first = badge_service.evaluate("user_a", {"shares": 10})
    second = badge_service.evaluate("user_a", {"shares": 10})

    assert first == ["planter_of_seeds", "gardener_of_growth"]
    assert second == []
    assert [b.badge_type for b in badge_service.list_badges("user_a")] == first


def test_award_notifies_owner():
    badge_service.award_badge("user_a", "idea_fairy")

    rows, _ = notification_service.list_notifications("user_a")
    assert rows[0].type == "badge_earned"
    assert rows[0].metadata == {"badge_type": "idea_fairy"}


def test_award_unknown_type_rejected():
    with pytest.raises(ValidationError):
        badge_service.award_badge("user_a", "made_up_badge")


def test_holiday_badge_only_on_its_date():
    assert holiday_badge_for(date(2026, 10, 31)).id == "spooky_season_2026"
    assert holiday_badge_for(date(2026, 10, 30)) is None

    assert badge_service.evaluate_upload_day("user_a", date(2026, 10, 31), 1) == ["spooky_season_2026"]
    assert badge_service.evaluate_upload_day("user_b", date(2026, 10, 30), 1) == []


def test_monthly_badge_needs_target_count():
    assert monthly_badge_for(date(2026, 6, 10)).id == "june_genius_2026"

    assert badge_service.evaluate_upload_day("user_a", date(2026, 6, 10), 14) == []
    assert badge_service.evaluate_upload_day("user_a", date(2026, 6, 10), 15) == ["june_genius_2026"]


def test_due_announcements_schedule():
    timings = {b.id: m["timing"] for b, m in due_announcements(date(2026, 10, 30))}
    assert timings == {"spooky_season_2026": "day_before"}

    timings = {b.id: m["timing"] for b, m in due_announcements(date(2026, 10, 31))}
    assert timings == {"spooky_season_2026": "day_of"}

    timings = {b.id: m["timing"] for b, m in due_announcements(date(2026, 11, 1))}
    assert timings == {"november_notable_2026": "month_start"}

    timings = {b.id: m["timing"] for b, m in due_announcements(date(2026, 10, 24))}
    assert timings == {"october_original_2026": "week_remaining"}

    assert due_announcements(date(2026, 10, 20)) == []


def test_availability_run_skips_holders_and_opted_out():
    profile_service.ensure_profile("user_a")
    profile_service.ensure_profile("user_b")
    profile_service.ensure_profile("user_c")
    profile_service.update_profile("user_c", {"email_notifications": False})
    badge_service.award_badge("user_b", "spooky_season_2026")

    result = run_badge_availability(date(2026, 10, 30))

    assert result["success"] is True
    assert result["date"] == "2026-10-30"
    assert result["notificationsSent"] == 1
    assert result["summary"] == {"holidayBadges": ["spooky_season_2026"], "monthlyBadges": []}

    rows, _ = notification_service.list_notifications("user_a")
    assert rows[0].type == "badge_available"
    assert rows[0].metadata == {"badge_type": "spooky_season_2026", "notification_timing": "day_before"}


def test_availability_run_is_once_per_day():
    profile_service.ensure_profile("user_a")

    assert run_badge_availability(date(2026, 11, 1))["notificationsSent"] == 1
    assert run_badge_availability(date(2026, 11, 1))["notificationsSent"] == 0


def test_cron_endpoint_requires_secret(client, monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "cron-test-secret")

    assert client.get("/api/cron/badge-notifications").status_code == 401
    resp = client.get(
        "/api/cron/badge-notifications",
        headers={"Authorization": "Bearer wrong"},
    )
    assert resp.status_code == 401

    resp = client.get(
        "/api/cron/badge-notifications",
        headers={"Authorization": "Bearer cron-test-secret"},
    )
    assert resp.status_code == 200
    assert resp.json()["success"] is True


def test_badge_api(client, auth_headers):
    catalog = client.get("/api/badges/catalog").json()["badges"]
    assert any(b["id"] == "premium_patron" for b in catalog)

    headers = auth_headers("user_a")
    client.post("/api/streak/view", headers=headers)

    earned = client.get("/api/badges", headers=headers).json()["badges"]
    assert [b["badge_type"] for b in earned] == ["first_prompt"]
    assert earned[0]["badge"]["name"] == "First Prompt"

    assert client.post("/api/badges/sync", headers=headers).json() == {"awarded": []}


def test_sync_awards_missing_badges_once():
    profile_service.set_premium("patron")

    assert badge_service.sync_badges("patron") == ["premium_patron"]
    assert badge_service.sync_badges("patron") == []
