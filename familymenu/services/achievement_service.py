"""Meal achievements: stars kids earn on planned meals."""

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from familymenu.models.meal_plan import MealAchievement
from familymenu.models.user import FamilyMember, User
from familymenu.services import meal_plan_service
from familymenu.services.errors import Conflict, NotFound

logger = logging.getLogger(__name__)

STAR_MESSAGES = {
    "tried_it": "¡Ganaste una estrella por probarlo!",
    "ate_veggie": "¡Ganaste una estrella por comer verduras!",
    "left_feedback": "¡Ganaste una estrella por dar tu opinión!",
}

STAT_KEYS = {
    "tried_it": "tried",
    "ate_veggie": "veggie",
    "left_feedback": "feedback",
}


def _require_family_user(user_id: str, family_id: str, session: Session) -> None:
    membership = session.exec(
        select(FamilyMember).where(
            FamilyMember.user_id == user_id,
            FamilyMember.family_id == family_id,
        )
    ).first()
    if not membership:
        raise NotFound("Usuario no encontrado en la familia", "USER_NOT_FOUND")


def award_star(
    user: User, family_id: str, meal_plan_id: str, star_type: str, session: Session
) -> tuple[MealAchievement, str]:
    """Award a star. Each star type can be earned once per meal."""
    plan = meal_plan_service.get_meal_plan(meal_plan_id, family_id, session)

    achievement = MealAchievement(
        meal_plan_id=plan.id,
        user_id=user.id,
        family_id=family_id,
        star_type=star_type,
    )
    session.add(achievement)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("Ya ganaste esta estrella para esta comida", "STAR_ALREADY_AWARDED")

    session.refresh(achievement)
    logger.info("User %s earned %s on meal plan %s", user.id, star_type, plan.id)
    return achievement, STAR_MESSAGES[star_type]


def meal_achievements(meal_plan_id: str, family_id: str, session: Session) -> list[MealAchievement]:
    meal_plan_service.get_meal_plan(meal_plan_id, family_id, session)
    return list(session.exec(
        select(MealAchievement)
        .where(MealAchievement.meal_plan_id == meal_plan_id)
        .order_by(col(MealAchievement.created_at).asc())
    ).all())


def user_achievements(
    user_id: str,
    family_id: str,
    session: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> list[MealAchievement]:
    _require_family_user(user_id, family_id, session)
    rows = session.exec(
        select(MealAchievement)
        .where(
            MealAchievement.user_id == user_id,
            MealAchievement.family_id == family_id,
        )
        .order_by(col(MealAchievement.created_at).desc())
    ).all()
    return [
        a for a in rows
        if (not start_date or a.created_at.date() >= start_date)
        and (not end_date or a.created_at.date() <= end_date)
    ]


def streak_days(days: set[date], today: date) -> int:
    """Consecutive days with a star, ending today or, failing that, yesterday."""
    cursor = today if today in days else today - timedelta(days=1)
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def user_stats(
    user_id: str,
    family_id: str,
    session: Session,
    start_date: Optional[date] = None,
) -> dict:
    achievements = user_achievements(user_id, family_id, session)
    today = meal_plan_service.today_utc()
    week_start = start_date or meal_plan_service.current_week_start(today)
    week_end = week_start + timedelta(days=6)

    weekly = {"tried": 0, "veggie": 0, "feedback": 0}
    for a in achievements:
        if week_start <= a.created_at.date() <= week_end:
            weekly[STAT_KEYS[a.star_type]] += 1

    return {
        "weekly_stars": weekly,
        "total_stars": len(achievements),
        "streak_days": streak_days({a.created_at.date() for a in achievements}, today),
    }
