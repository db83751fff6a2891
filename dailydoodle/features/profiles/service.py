from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from dailydoodle.core.database import doodles, get_db_session, profiles
from dailydoodle.core.errors import ConflictError, NotFoundError, PermissionError, ValidationError
from dailydoodle.core.logging import log_event
from dailydoodle.features.moderation.profanity import validate_username_content
from dailydoodle.models.profile import Profile

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,20}$")

# Fields a user may change about themselves. Premium/admin flags are absent.
EDITABLE_FIELDS = (
    "username",
    "avatar_type",
    "avatar_icon",
    "current_title",
    "email_notifications",
    "onboarding_completed",
)
AVATAR_TYPES = ("initial", "icon")

DEFAULT_TITLES = {
    "doodle_dude": "Doodle Dude",
    "doodle_dame": "Doodle Dame",
    "doodle_diva": "Doodle Diva",
    "doodle_doer": "Doodle Doer",
    "duke_of_doodle": "Duke of Doodle",
    "duchess_of_doodle": "Duchess of Doodle",
    "doodle_dandy": "Doodle Dandy",
    "doodle_bug": "Doodle Bug",
    "doodle_dork": "Doodle Dork",
    "doodle_darling": "Doodle Darling",
}
# title -> (display name, doodles required)
SECRET_TITLES = {
    "doodle_dabbler": ("Doodle Dabbler", 3),
    "doodle_dreamer": ("Doodle Dreamer", 10),
    "doodle_disciple": ("Doodle Disciple", 25),
    "doodle_dominator": ("Doodle Dominator", 50),
    "doodle_deity": ("Doodle Deity", 100),
}
ADMIN_TITLE = ("doodle_daddy", "Doodle Daddy")


def _row_to_profile(row) -> Profile:
    return Profile(**{k: v for k, v in row._mapping.items()})


def available_titles(is_admin: bool, doodle_count: int) -> Dict[str, str]:
    """Titles the user has unlocked: defaults, secrets by doodle count, admin."""
    titles = dict(DEFAULT_TITLES)
    for title_id, (name, required) in SECRET_TITLES.items():
        if doodle_count >= required:
            titles[title_id] = name
    if is_admin:
        titles[ADMIN_TITLE[0]] = ADMIN_TITLE[1]
    return titles


def validate_username(username: str) -> str:
    value = (username or "").strip()
    if not USERNAME_RE.match(value):
        raise ValidationError("Username must be 3-20 characters: letters, numbers and underscores only")
    problem = validate_username_content(value)
    if problem:
        raise ValidationError(problem)
    return value


class ProfileService:
    def get_profile_row(self, user_id: str) -> Optional[Profile]:
        with get_db_session() as session:
            row = session.execute(select(profiles).where(profiles.c.id == user_id)).first()
        return _row_to_profile(row) if row else None

    def get_profile(self, user_id: str, email: Optional[str] = None) -> Profile:
        """Stored profile merged over defaults; premium flag reconciled first."""
        from dailydoodle.features.entitlements.service import entitlement_service

        entitlement_service.reconcile_premium_flag(user_id)
        profile = self.get_profile_row(user_id)
        if profile is None:
            return Profile(id=user_id, email=email)
        if email and not profile.email:
            return profile.model_copy(update={"email": email})
        return profile

    def get_by_username(self, username: str) -> Profile:
        with get_db_session() as session:
            row = session.execute(
                select(profiles).where(func.lower(profiles.c.username) == username.strip().lower())
            ).first()
        if row is None:
            raise NotFoundError("Profile not found")
        return _row_to_profile(row)

    def ensure_profile(self, user_id: str, email: Optional[str] = None) -> Profile:
        existing = self.get_profile_row(user_id)
        if existing is not None:
            return existing
        now = datetime.now(timezone.utc)
        try:
            with get_db_session() as session:
                session.execute(
                    profiles.insert().values(
                        id=user_id,
                        email=email,
                        avatar_type="initial",
                        is_premium=False,
                        is_admin=False,
                        email_notifications=True,
                        onboarding_completed=False,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            # Concurrent first request created it
            pass
        return self.get_profile_row(user_id)

    def update_profile(self, user_id: str, patch: Dict[str, Any], email: Optional[str] = None) -> Profile:
        changes = {k: v for k, v in (patch or {}).items() if k in EDITABLE_FIELDS}
        profile = self.ensure_profile(user_id, email)

        if "username" in changes:
            changes["username"] = validate_username(changes["username"])
            if self._username_taken(changes["username"], user_id):
                raise ConflictError("Username is already taken")

        if "avatar_type" in changes and changes["avatar_type"] not in AVATAR_TYPES:
            raise ValidationError("avatar_type must be 'initial' or 'icon'")

        for flag in ("email_notifications", "onboarding_completed"):
            if flag in changes and not isinstance(changes[flag], bool):
                raise ValidationError(f"{flag} must be a boolean")

        if "current_title" in changes and changes["current_title"] is not None:
            if not (profile.is_premium or profile.is_admin):
                raise PermissionError("Profile titles are a premium feature")
            titles = available_titles(profile.is_admin, self.doodle_count(user_id))
            if changes["current_title"] not in titles:
                raise ValidationError("Title is not unlocked")

        if not changes:
            return self.get_profile(user_id, email)

        changes["updated_at"] = datetime.now(timezone.utc)
        if email and not profile.email:
            changes["email"] = email
        try:
            with get_db_session() as session:
                session.execute(profiles.update().where(profiles.c.id == user_id).values(**changes))
        except IntegrityError:
            raise ConflictError("Username is already taken")

        log_event("info", "profile.updated", user_id=user_id, extra={"fields": ",".join(sorted(changes))})
        return self.get_profile(user_id, email)

    def set_premium(self, user_id: str, purchased_at: Optional[datetime] = None) -> bool:
        """Monotonic false -> true. Returns True only when the flag flipped."""
        self.ensure_profile(user_id)
        now = datetime.now(timezone.utc)
        with get_db_session() as session:
            result = session.execute(
                profiles.update()
                .where(profiles.c.id == user_id, profiles.c.is_premium.is_(False))
                .values(is_premium=True, premium_purchased_at=purchased_at or now, updated_at=now)
            )
            return bool(result.rowcount)

    def is_premium_flag(self, user_id: str) -> bool:
        profile = self.get_profile_row(user_id)
        return bool(profile and profile.is_premium)

    def is_admin(self, user_id: str) -> bool:
        profile = self.get_profile_row(user_id)
        return bool(profile and profile.is_admin)

    def doodle_count(self, user_id: str) -> int:
        with get_db_session() as session:
            return int(
                session.execute(
                    select(func.count()).select_from(doodles).where(doodles.c.user_id == user_id)
                ).scalar_one()
            )

    def list_notifiable_user_ids(self) -> List[str]:
        with get_db_session() as session:
            rows = session.execute(
                select(profiles.c.id).where(profiles.c.email_notifications.is_(True)).order_by(profiles.c.id)
            ).fetchall()
        return [r[0] for r in rows]

    def _username_taken(self, username: str, user_id: str) -> bool:
        with get_db_session() as session:
            row = session.execute(
                select(profiles.c.id).where(
                    func.lower(profiles.c.username) == username.lower(),
                    profiles.c.id != user_id,
                )
            ).first()
        return row is not None


profile_service = ProfileService()
