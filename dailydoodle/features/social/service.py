"""
Doodles, likes, follows, shares and bookmarks.

Every mutation that moves a badge counter re-evaluates that counter; badges
are never taken back when a counter goes down (unlike, unbookmark).
"""
from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, distinct, func, select
from sqlalchemy.exc import IntegrityError

from dailydoodle.core.database import (
    bookmarks,
    doodle_likes,
    doodles,
    follows,
    get_db_session,
    profiles,
    shares,
)
from dailydoodle.core.eastern_time import is_valid_date_string, today_est
from dailydoodle.core.errors import NotFoundError, PermissionError, ValidationError
from dailydoodle.core.logging import log_event
from dailydoodle.features.badges.service import badge_service
from dailydoodle.features.moderation.profanity import validate_caption_content
from dailydoodle.features.notifications.service import notification_service
from dailydoodle.models.doodle import Doodle

SHARE_TARGETS = ("prompt", "doodle", "profile", "badge")
MAX_CAPTION_LENGTH = 500


def _aware(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def _row_to_doodle(row) -> Doodle:
    return Doodle(
        id=row.id,
        user_id=row.user_id,
        prompt_id=row.prompt_id,
        prompt_title=row.prompt_title,
        image_url=row.image_url,
        caption=row.caption,
        is_public=bool(row.is_public),
        likes_count=row.likes_count,
        upload_date=row.upload_date,
        created_at=_aware(row.created_at),
    )


def consecutive_run(days: List[date]) -> int:
    """Length of the run of consecutive days ending at the most recent one."""
    ordered = sorted(set(days), reverse=True)
    if not ordered:
        return 0
    run = 1
    for previous, current in zip(ordered, ordered[1:]):
        if previous - current != timedelta(days=1):
            break
        run += 1
    return run


class SocialService:
    # Doodles ----------------------------------------------------------
    def create_doodle(
        self,
        user_id: str,
        *,
        is_premium: bool,
        prompt_id: str,
        prompt_title: str,
        image_url: str,
        caption: Optional[str] = None,
        is_public: bool = True,
        today: Optional[date] = None,
    ) -> Tuple[Doodle, List[str]]:
        if not is_premium:
            raise PermissionError("Doodle uploads are a premium feature")
        if not prompt_id or not is_valid_date_string(prompt_id):
            raise ValidationError("prompt_id must be a YYYY-MM-DD date")
        if not image_url or not prompt_title:
            raise ValidationError("Missing required fields: image_url, prompt_title")
        caption = (caption or "").strip() or None
        if caption and len(caption) > MAX_CAPTION_LENGTH:
            raise ValidationError(f"Caption must be at most {MAX_CAPTION_LENGTH} characters")
        problem = validate_caption_content(caption)
        if problem:
            raise ValidationError(problem)

        day = today or today_est()
        doodle = Doodle(
            id=str(uuid.uuid4()),
            user_id=user_id,
            prompt_id=prompt_id,
            prompt_title=prompt_title.strip(),
            image_url=image_url,
            caption=caption,
            is_public=is_public,
            upload_date=day,
            created_at=datetime.now(timezone.utc),
        )
        with get_db_session() as session:
            session.execute(
                doodles.insert().values(
                    id=doodle.id,
                    user_id=user_id,
                    prompt_id=doodle.prompt_id,
                    prompt_title=doodle.prompt_title,
                    image_url=image_url,
                    caption=caption,
                    is_public=is_public,
                    likes_count=0,
                    upload_date=day,
                    created_at=doodle.created_at,
                )
            )
        log_event("info", "doodles.created", user_id=user_id, event_type="doodle.created")

        stats = self.get_user_stats(user_id)
        awarded = badge_service.evaluate(
            user_id, {"uploads": stats["uploads"], "upload_streak": stats["upload_streak"]}
        )
        awarded += badge_service.evaluate_upload_day(user_id, day, self._uploads_in_month(user_id, day))
        return doodle, awarded

    def get_doodle(self, doodle_id: str) -> Doodle:
        with get_db_session() as session:
            row = session.execute(select(doodles).where(doodles.c.id == doodle_id)).first()
        if row is None:
            raise NotFoundError("Doodle not found")
        return _row_to_doodle(row)

    def get_public_doodle(self, doodle_id: str) -> Doodle:
        doodle = self.get_doodle(doodle_id)
        if not doodle.is_public:
            raise NotFoundError("Doodle not found")
        return doodle

    def get_visible_doodle(self, doodle_id: str, viewer_id: Optional[str]) -> Doodle:
        doodle = self.get_doodle(doodle_id)
        if not doodle.is_public and doodle.user_id != viewer_id:
            raise NotFoundError("Doodle not found")
        return doodle

    def list_user_doodles(self, user_id: str, viewer_id: Optional[str] = None, limit: int = 100) -> List[Doodle]:
        query = select(doodles).where(doodles.c.user_id == user_id)
        if viewer_id != user_id:
            query = query.where(doodles.c.is_public.is_(True))
        query = query.order_by(doodles.c.created_at.desc()).limit(max(1, min(limit, 500)))
        with get_db_session() as session:
            rows = session.execute(query).fetchall()
        return [_row_to_doodle(r) for r in rows]

    def list_prompt_doodles(self, prompt_id: str, limit: int = 100) -> List[Doodle]:
        with get_db_session() as session:
            rows = session.execute(
                select(doodles)
                .where(doodles.c.prompt_id == prompt_id, doodles.c.is_public.is_(True))
                .order_by(doodles.c.created_at.desc())
                .limit(max(1, min(limit, 500)))
            ).fetchall()
        return [_row_to_doodle(r) for r in rows]

    def delete_doodle(self, user_id: str, doodle_id: str) -> None:
        doodle = self.get_doodle(doodle_id)
        if doodle.user_id != user_id:
            raise PermissionError("You can only delete your own doodles")
        with get_db_session() as session:
            session.execute(doodle_likes.delete().where(doodle_likes.c.doodle_id == doodle_id))
            session.execute(doodles.delete().where(doodles.c.id == doodle_id))

    def doodle_dates(self, user_id: str, public_only: bool = True) -> List[date]:
        query = select(doodles.c.upload_date).where(doodles.c.user_id == user_id)
        if public_only:
            query = query.where(doodles.c.is_public.is_(True))
        with get_db_session() as session:
            return [r[0] for r in session.execute(query).fetchall()]

    # Likes ------------------------------------------------------------
    def like_doodle(self, user_id: str, doodle_id: str) -> bool:
        doodle = self.get_visible_doodle(doodle_id, user_id)
        try:
            with get_db_session() as session:
                session.execute(
                    doodle_likes.insert().values(
                        doodle_id=doodle_id, user_id=user_id, created_at=datetime.now(timezone.utc)
                    )
                )
                session.execute(
                    doodles.update()
                    .where(doodles.c.id == doodle_id)
                    .values(likes_count=doodles.c.likes_count + 1)
                )
        except IntegrityError:
            return False

        if doodle.user_id != user_id:
            notification_service.notify(
                doodle.user_id,
                "like_received",
                "Someone liked your doodle!",
                f'Your doodle for "{doodle.prompt_title}" received a like.',
                link=f"/doodle/{doodle_id}",
                metadata={"doodle_id": doodle_id},
            )
            badge_service.evaluate(user_id, {"likes_given": self._likes_given(user_id)})
            badge_service.evaluate(doodle.user_id, {"likes_received": self._likes_received(doodle.user_id)})
        return True

    def unlike_doodle(self, user_id: str, doodle_id: str) -> bool:
        with get_db_session() as session:
            result = session.execute(
                doodle_likes.delete().where(
                    doodle_likes.c.doodle_id == doodle_id, doodle_likes.c.user_id == user_id
                )
            )
            if not result.rowcount:
                return False
            session.execute(
                doodles.update()
                .where(doodles.c.id == doodle_id, doodles.c.likes_count > 0)
                .values(likes_count=doodles.c.likes_count - 1)
            )
        return True

    def has_liked(self, user_id: str, doodle_id: str) -> bool:
        with get_db_session() as session:
            row = session.execute(
                select(doodle_likes.c.id).where(
                    doodle_likes.c.doodle_id == doodle_id, doodle_likes.c.user_id == user_id
                )
            ).first()
        return row is not None

    # Follows ----------------------------------------------------------
    def follow(self, follower_id: str, following_id: str) -> bool:
        if not following_id:
            raise ValidationError("Missing user to follow")
        if follower_id == following_id:
            raise ValidationError("You cannot follow yourself")
        try:
            with get_db_session() as session:
                session.execute(
                    follows.insert().values(
                        follower_id=follower_id,
                        following_id=following_id,
                        created_at=datetime.now(timezone.utc),
                    )
                )
        except IntegrityError:
            return False

        name = self._username(follower_id)
        notification_service.notify(
            following_id,
            "follower_gained",
            "New follower!",
            f"{name} started following you." if name else "Someone started following you.",
            link=f"/profile/{name}" if name else None,
            metadata={"follower_id": follower_id},
        )
        return True

    def unfollow(self, follower_id: str, following_id: str) -> bool:
        with get_db_session() as session:
            result = session.execute(
                follows.delete().where(
                    follows.c.follower_id == follower_id, follows.c.following_id == following_id
                )
            )
            return bool(result.rowcount)

    def list_following(self, user_id: str) -> List[str]:
        with get_db_session() as session:
            rows = session.execute(
                select(follows.c.following_id).where(follows.c.follower_id == user_id).order_by(follows.c.created_at.desc())
            ).fetchall()
        return [r[0] for r in rows]

    def list_followers(self, user_id: str) -> List[str]:
        with get_db_session() as session:
            rows = session.execute(
                select(follows.c.follower_id).where(follows.c.following_id == user_id).order_by(follows.c.created_at.desc())
            ).fetchall()
        return [r[0] for r in rows]

    # Shares -----------------------------------------------------------
    def record_share(self, user_id: str, target_type: str, target_id: str, platform: Optional[str] = None) -> List[str]:
        if target_type not in SHARE_TARGETS:
            raise ValidationError(f"target_type must be one of: {', '.join(SHARE_TARGETS)}")
        if not target_id:
            raise ValidationError("Missing target_id")
        with get_db_session() as session:
            session.execute(
                shares.insert().values(
                    user_id=user_id,
                    target_type=target_type,
                    target_id=target_id,
                    platform=platform,
                    created_at=datetime.now(timezone.utc),
                )
            )
        return badge_service.evaluate(user_id, {"shares": self._count(shares, shares.c.user_id == user_id)})

    # Bookmarks --------------------------------------------------------
    def add_bookmark(self, user_id: str, prompt_id: str, *, is_premium: bool) -> Tuple[bool, List[str]]:
        if not is_premium:
            raise PermissionError("Bookmarks are a premium feature")
        if not prompt_id or not is_valid_date_string(prompt_id):
            raise ValidationError("prompt_id must be a YYYY-MM-DD date")
        try:
            with get_db_session() as session:
                session.execute(
                    bookmarks.insert().values(
                        user_id=user_id, prompt_id=prompt_id, created_at=datetime.now(timezone.utc)
                    )
                )
        except IntegrityError:
            return False, []
        awarded = badge_service.evaluate(
            user_id, {"favorites": self._count(bookmarks, bookmarks.c.user_id == user_id)}
        )
        return True, awarded

    def remove_bookmark(self, user_id: str, prompt_id: str) -> bool:
        with get_db_session() as session:
            result = session.execute(
                bookmarks.delete().where(bookmarks.c.user_id == user_id, bookmarks.c.prompt_id == prompt_id)
            )
            return bool(result.rowcount)

    def list_bookmarks(self, user_id: str) -> List[str]:
        with get_db_session() as session:
            rows = session.execute(
                select(bookmarks.c.prompt_id).where(bookmarks.c.user_id == user_id).order_by(bookmarks.c.created_at.desc())
            ).fetchall()
        return [r[0] for r in rows]

    # Stats ------------------------------------------------------------
    def get_user_stats(self, user_id: str) -> Dict[str, int]:
        """Counters feeding badge evaluation."""
        with get_db_session() as session:
            upload_days = [
                r[0]
                for r in session.execute(
                    select(distinct(doodles.c.upload_date)).where(doodles.c.user_id == user_id)
                ).fetchall()
            ]
        return {
            "uploads": self._count(doodles, doodles.c.user_id == user_id),
            "upload_streak": consecutive_run(upload_days),
            "favorites": self._count(bookmarks, bookmarks.c.user_id == user_id),
            "shares": self._count(shares, shares.c.user_id == user_id),
            "likes_given": self._likes_given(user_id),
            "likes_received": self._likes_received(user_id),
            "followers": self._count(follows, follows.c.following_id == user_id),
            "following": self._count(follows, follows.c.follower_id == user_id),
        }

    # Internal helpers -------------------------------------------------
    def _count(self, table, condition) -> int:
        with get_db_session() as session:
            return int(session.execute(select(func.count()).select_from(table).where(condition)).scalar_one())

    def _likes_given(self, user_id: str) -> int:
        """Likes on other people's doodles."""
        join = doodle_likes.join(doodles, doodles.c.id == doodle_likes.c.doodle_id)
        return self._count(join, and_(doodle_likes.c.user_id == user_id, doodles.c.user_id != user_id))

    def _likes_received(self, user_id: str) -> int:
        join = doodle_likes.join(doodles, doodles.c.id == doodle_likes.c.doodle_id)
        return self._count(join, and_(doodles.c.user_id == user_id, doodle_likes.c.user_id != user_id))

    def _uploads_in_month(self, user_id: str, day: date) -> int:
        first = day.replace(day=1)
        next_month = (first + timedelta(days=32)).replace(day=1)
        return self._count(
            doodles,
            and_(doodles.c.user_id == user_id, doodles.c.upload_date >= first, doodles.c.upload_date < next_month),
        )

    def _username(self, user_id: str) -> Optional[str]:
        with get_db_session() as session:
            row = session.execute(select(profiles.c.username).where(profiles.c.id == user_id)).first()
        return row[0] if row else None


social_service = SocialService()
