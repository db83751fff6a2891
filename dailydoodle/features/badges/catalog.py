"""
Badge catalog and threshold rules.

The catalog is display data only; award logic lives in badges/service.py and
reads THRESHOLD_RULES plus the dated seasonal entries below.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Tuple

MONTHLY_BADGE_DOODLE_TARGET = 15


@dataclass(frozen=True)
class BadgeDefinition:
    id: str
    name: str
    description: str
    category: str
    rarity: str = "common"
    emoji: Optional[str] = None
    holiday: Optional[str] = None
    available_from: Optional[date] = None
    available_until: Optional[date] = None

    def is_available_on(self, day: date) -> bool:
        if self.available_from is None:
            return True
        if self.available_until is None:
            return day >= self.available_from
        return self.available_from <= day <= self.available_until

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "rarity": self.rarity,
            "emoji": self.emoji,
            "available_from": self.available_from.isoformat() if self.available_from else None,
            "available_until": self.available_until.isoformat() if self.available_until else None,
        }


def _b(id, name, description, category, **kw) -> BadgeDefinition:
    return BadgeDefinition(id=id, name=name, description=description, category=category, **kw)


_STANDARD: List[BadgeDefinition] = [
    # membership
    _b("creative_spark", "Creative Spark", "Joined the creative community", "membership"),
    _b("premium_patron", "Premium Patron", "Unlocked lifetime access to all premium features", "membership"),
    # streak
    _b("first_prompt", "First Prompt", "Viewed your first daily prompt", "streak"),
    _b("creative_ember", "Creative Ember", "Visited 3 days in a row", "streak"),
    _b("creative_fire", "Creative Fire", "Visited 7 days in a row", "streak"),
    _b("creative_blaze", "Creative Blaze", "Visited 10 days in a row", "streak"),
    _b("creative_wildfire", "Creative Wildfire", "Visited 20 days in a row", "streak"),
    _b("creative_rocket", "Creative Rocket", "Visited 30 days in a row", "streak"),
    _b("creative_supernova", "Creative Supernova", "Visited 100 days in a row", "streak"),
    _b("7_day_streak", "7 Day Streak", "Kept a 7 day streak", "streak"),
    _b("30_day_streak", "30 Day Streak", "Kept a 30 day streak", "streak"),
    _b("100_day_streak", "100 Day Streak", "Kept a 100 day streak", "streak"),
    # collection
    _b("first_bookmark", "First Bookmark", "Bookmarked your first prompt", "collection"),
    _b("new_collector", "New Collector", "Saved your first favorite prompt", "collection"),
    _b("pack_rat", "Pack Rat", "Saved 10 favorite prompts", "collection"),
    _b("cue_curator", "Cue Curator", "Saved 25 favorite prompts", "collection"),
    _b("grand_gatherer", "Grand Gatherer", "Saved 50 favorite prompts", "collection"),
    # sharing
    _b("planter_of_seeds", "Planter of Seeds", "Shared your first prompt", "sharing"),
    _b("gardener_of_growth", "Gardener of Growth", "Shared 10 prompts", "sharing"),
    _b("cultivator_of_influence", "Cultivator of Influence", "Shared 25 prompts", "sharing"),
    _b("harvester_of_inspiration", "Harvester of Inspiration", "Shared 50 prompts", "sharing"),
    # doodles
    _b("first_doodle", "First Doodle", "Uploaded your first doodle", "doodle"),
    _b("doodle_diary", "Doodle Diary", "Uploaded 10 doodles", "doodle"),
    _b("doodle_digest", "Doodle Digest", "Uploaded 25 doodles", "doodle"),
    _b("doodle_library", "Doodle Library", "Uploaded 50 doodles", "doodle"),
    _b("daily_doodler", "Daily Doodler", "Uploaded doodles 7 days in a row", "doodle"),
    # social
    _b("warm_fuzzies", "Warm Fuzzies", "Gave your first like to another artist", "social"),
    _b("somebody_likes_me", "Somebody Likes Me!", "Received your first like from another artist", "social"),
    _b("idea_fairy", "Idea Fairy", "Submitted a creative prompt idea", "social"),
]

# (id, date, name, holiday, emoji)
_HOLIDAYS = [
    ("valentines_2026", "2026-02-14", "Valentine's Artist '26", "Valentine's Day", "🌹"),
    ("lucky_creator_2026", "2026-03-17", "Lucky Creator '26", "St. Patrick's Day", "🍀"),
    ("earth_day_2026", "2026-04-22", "Earth Artist '26", "Earth Day", "🌍"),
    ("independence_2026", "2026-07-04", "Independent Artist '26", "Independence Day", "🎆"),
    ("spooky_season_2026", "2026-10-31", "Spooky Season '26", "Halloween", "👻"),
    ("thanksgiving_2026", "2026-11-26", "Thankful Artist '26", "Thanksgiving", "🦃"),
    ("holiday_spirit_2026", "2026-12-25", "Holiday Spirit '26", "Christmas", "🎁"),
    ("new_year_spark_2027", "2027-01-01", "New Year New Doodle '27", "New Year's Day", "🎉"),
]

# (id, month name, first day, last day)
_MONTHS = [
    ("january_champion_2026", "January", "2026-01-01", "2026-01-31"),
    ("february_faithful_2026", "February", "2026-02-01", "2026-02-28"),
    ("march_maestro_2026", "March", "2026-03-01", "2026-03-31"),
    ("april_artist_2026", "April", "2026-04-01", "2026-04-30"),
    ("may_maven_2026", "May", "2026-05-01", "2026-05-31"),
    ("june_genius_2026", "June", "2026-06-01", "2026-06-30"),
    ("july_journeyer_2026", "July", "2026-07-01", "2026-07-31"),
    ("august_ace_2026", "August", "2026-08-01", "2026-08-31"),
    ("september_star_2026", "September", "2026-09-01", "2026-09-30"),
    ("october_original_2026", "October", "2026-10-01", "2026-10-31"),
    ("november_notable_2026", "November", "2026-11-01", "2026-11-30"),
    ("december_dedicator_2026", "December", "2026-12-01", "2026-12-31"),
]

HOLIDAY_BADGES: List[BadgeDefinition] = [
    _b(
        badge_id,
        name,
        f"Uploaded a doodle on {holiday} {on[:4]}",
        "holiday",
        rarity="legendary",
        emoji=emoji,
        holiday=holiday,
        available_from=date.fromisoformat(on),
        available_until=date.fromisoformat(on),
    )
    for badge_id, on, name, holiday, emoji in _HOLIDAYS
]

MONTHLY_BADGES: List[BadgeDefinition] = [
    _b(
        badge_id,
        f"Dedicated Doodler - {month} {start[:4]}",
        f"Completed {MONTHLY_BADGE_DOODLE_TARGET} doodles in {month} {start[:4]}",
        "monthly",
        rarity="epic",
        available_from=date.fromisoformat(start),
        available_until=date.fromisoformat(end),
    )
    for badge_id, month, start, end in _MONTHS
]

BADGE_CATALOG: Dict[str, BadgeDefinition] = {
    badge.id: badge for badge in (*_STANDARD, *HOLIDAY_BADGES, *MONTHLY_BADGES)
}

# counter -> ascending (threshold, badge_type)
THRESHOLD_RULES: Dict[str, List[Tuple[int, str]]] = {
    "streak": [
        (1, "first_prompt"),
        (3, "creative_ember"),
        (7, "creative_fire"),
        (7, "7_day_streak"),
        (10, "creative_blaze"),
        (20, "creative_wildfire"),
        (30, "30_day_streak"),
        (30, "creative_rocket"),
        (100, "100_day_streak"),
        (100, "creative_supernova"),
    ],
    "uploads": [
        (1, "first_doodle"),
        (10, "doodle_diary"),
        (25, "doodle_digest"),
        (50, "doodle_library"),
    ],
    "upload_streak": [(7, "daily_doodler")],
    "favorites": [
        (1, "first_bookmark"),
        (1, "new_collector"),
        (10, "pack_rat"),
        (25, "cue_curator"),
        (50, "grand_gatherer"),
    ],
    "shares": [
        (1, "planter_of_seeds"),
        (10, "gardener_of_growth"),
        (25, "cultivator_of_influence"),
        (50, "harvester_of_inspiration"),
    ],
    "likes_given": [(1, "warm_fuzzies")],
    "likes_received": [(1, "somebody_likes_me")],
}


def get_badge(badge_id: str) -> Optional[BadgeDefinition]:
    return BADGE_CATALOG.get(badge_id)


def badges_for_counter(counter: str, value: int) -> List[str]:
    """Every badge type whose threshold is met by `value`."""
    return [badge for threshold, badge in THRESHOLD_RULES.get(counter, []) if value >= threshold]


def holiday_badge_for(day: date) -> Optional[BadgeDefinition]:
    for badge in HOLIDAY_BADGES:
        if badge.available_from == day:
            return badge
    return None


def monthly_badge_for(day: date) -> Optional[BadgeDefinition]:
    for badge in MONTHLY_BADGES:
        if badge.is_available_on(day):
            return badge
    return None
