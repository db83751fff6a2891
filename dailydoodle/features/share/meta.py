"""
Social share pages.

Crawlers get a small HTML document with Open Graph and Twitter tags; browsers
follow the meta refresh to the app page. Every interpolated value is escaped.
"""
from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy import func, select

from dailydoodle.core.database import badges, doodles, get_db_session
from dailydoodle.core.eastern_time import format_long_date, is_valid_date_string
from dailydoodle.core.errors import NotFoundError, ValidationError
from dailydoodle.features.badges.catalog import get_badge
from dailydoodle.features.profiles.service import profile_service
from dailydoodle.features.prompts.source import prompt_source
from dailydoodle.features.social.service import social_service
from dailydoodle.features.streaks.service import streak_service

SITE_NAME = "Daily Doodle Prompt"
CACHE_CONTROL = "public, max-age=3600"


@dataclass
class MetaPage:
    title: str
    og_title: str
    description: str
    page_url: str
    image_url: str
    link_text: str
    og_type: str = "article"

    def render(self) -> str:
        e = escape
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{e(self.title)}</title>
  <meta property="og:type" content="{e(self.og_type)}">
  <meta property="og:title" content="{e(self.og_title)}">
  <meta property="og:description" content="{e(self.description)}">
  <meta property="og:image" content="{e(self.image_url)}">
  <meta property="og:image:width" content="1200">
  <meta property="og:image:height" content="630">
  <meta property="og:url" content="{e(self.page_url)}">
  <meta property="og:site_name" content="{SITE_NAME}">
  <meta name="twitter:card" content="summary_large_image">
  <meta name="twitter:title" content="{e(self.og_title)}">
  <meta name="twitter:description" content="{e(self.description)}">
  <meta name="twitter:image" content="{e(self.image_url)}">
  <meta http-equiv="refresh" content="0;url={e(self.page_url)}">
  <link rel="canonical" href="{e(self.page_url)}">
</head>
<body>
  <p>Redirecting to <a href="{e(self.page_url)}">{e(self.link_text)}</a>...</p>
</body>
</html>"""


def prompt_page(base_url: str, day: Optional[str]) -> MetaPage:
    if not day:
        raise ValidationError("Missing date parameter")
    if not is_valid_date_string(day):
        raise ValidationError("Invalid date format, expected YYYY-MM-DD")
    prompt = prompt_source.get_prompt_for_date(day)
    if prompt is None:
        raise NotFoundError("Prompt not found")

    title = f'"{prompt.title}" - {SITE_NAME}'
    description = prompt.description or (
        f'Today\'s drawing prompt for {format_long_date(day)}: "{prompt.title}". Join the creative challenge!'
    )
    image_query = urlencode({"title": prompt.title, "category": prompt.category, "date": day})
    return MetaPage(
        title=title,
        og_title=title,
        description=description,
        page_url=f"{base_url}/prompt/{day}",
        image_url=f"{base_url}/api/og/prompt?{image_query}",
        link_text=prompt.title,
    )


def doodle_page(base_url: str, doodle_id: Optional[str]) -> MetaPage:
    if not doodle_id:
        raise ValidationError("Missing doodle id")
    doodle = social_service.get_public_doodle(doodle_id)
    owner = profile_service.get_profile_row(doodle.user_id)
    artist = (owner.username if owner else None) or "an artist"

    title = f'"{doodle.prompt_title}" by {artist}'
    return MetaPage(
        title=f"{title} - {SITE_NAME}",
        og_title=title,
        description=doodle.caption or f'Check out this doodle for "{doodle.prompt_title}" on {SITE_NAME}!',
        page_url=f"{base_url}/doodle/{doodle.id}",
        image_url=f"{base_url}/api/og/doodle?{urlencode({'id': doodle.id})}",
        link_text=title,
    )


def profile_stats(user_id: str) -> dict:
    with get_db_session() as session:
        doodle_count = session.execute(
            select(func.count()).select_from(doodles).where(doodles.c.user_id == user_id)
        ).scalar_one()
        badge_count = session.execute(
            select(func.count()).select_from(badges).where(badges.c.user_id == user_id)
        ).scalar_one()
    return {
        "doodles": int(doodle_count),
        "streak": streak_service.get_state(user_id).current_streak,
        "badges": int(badge_count),
    }


def profile_page(base_url: str, username: Optional[str] = None, user_id: Optional[str] = None) -> MetaPage:
    if user_id:
        profile = profile_service.get_profile_row(user_id)
        if profile is None:
            raise NotFoundError("Profile not found")
    elif username:
        profile = profile_service.get_by_username(username)
    else:
        raise ValidationError("Missing username or id")

    stats = profile_stats(profile.id)
    name = profile.username or "Artist"
    summary = f"{stats['doodles']} doodles, {stats['streak']} day streak, {stats['badges']} badges"
    if profile.current_title:
        description = f'{name} - "{profile.current_title}" | {summary}'
    else:
        description = f"Check out {name}'s creative journey on {SITE_NAME}! {summary}"

    image_query = urlencode({
        "username": name,
        "doodles": stats["doodles"],
        "streak": stats["streak"],
        "badges": stats["badges"],
        "title": profile.current_title or "",
        "premium": "true" if profile.is_premium else "false",
    })
    title = f"{name}'s Profile - {SITE_NAME}"
    return MetaPage(
        title=title,
        og_title=title,
        description=description,
        page_url=f"{base_url}/profile/{profile.username or profile.id}",
        image_url=f"{base_url}/api/og/profile?{image_query}",
        link_text=f"{name}'s profile",
        og_type="profile",
    )


def badge_page(base_url: str, badge_id: Optional[str]) -> MetaPage:
    if not badge_id:
        raise ValidationError("Missing badge id")
    badge = get_badge(badge_id)
    if badge is None:
        raise NotFoundError("Badge not found")
    return MetaPage(
        title=f"{badge.name} - {SITE_NAME} Badge",
        og_title=badge.name,
        description=badge.description,
        page_url=f"{base_url}/badge/{badge.id}",
        image_url=f"{base_url}/badges/share/{badge.id}.png",
        link_text=badge.name,
        og_type="website",
    )
