"""Authentication and account business logic.

Registration, login with lockout after repeated failures, token
revocation via ``User.token_version``, profile and password changes,
and account deletion.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from familymenu.config import settings
from familymenu.models.meal_plan import MealAchievement, MealComment, MealPlan
from familymenu.models.recipe import Recipe, RecipeRating
from familymenu.models.user import Family, User
from familymenu.services import family_service
from familymenu.services.errors import (
    Conflict,
    TooManyAttempts,
    Unauthorized,
    ValidationFailed,
)
from familymenu.utils.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

DEFAULT_NOTIFICATION_PREFERENCES = {"email": True, "recipes": True, "mealPlans": True}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands datetimes back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def issue_token(user: User) -> str:
    return create_access_token(user.id, user.role, user.token_version)


def parse_notification_preferences(user: User) -> dict:
    if not user.notification_preferences:
        return dict(DEFAULT_NOTIFICATION_PREFERENCES)
    try:
        return {**DEFAULT_NOTIFICATION_PREFERENCES, **json.loads(user.notification_preferences)}
    except ValueError:
        logger.warning("Unreadable notification preferences for user %s", user.id)
        return dict(DEFAULT_NOTIFICATION_PREFERENCES)


def register_user(email: str, password: str, name: str, role: str, session: Session) -> User:
    """Create an account. Raises Conflict if the email is taken."""
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise Conflict("El email ya está registrado", "EMAIL_ALREADY_EXISTS")

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=role,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("El email ya está registrado", "EMAIL_ALREADY_EXISTS")

    session.refresh(user)
    logger.info("Registered user %s (%s)", user.id, role)
    return user


def authenticate(email: str, password: str, session: Session) -> User:
    """Verify credentials, applying the failed-attempt lockout."""
    user = session.exec(select(User).where(User.email == email)).first()
    if not user:
        raise Unauthorized("Email o contraseña incorrectos", "INVALID_CREDENTIALS")

    now = _now()
    if user.login_attempts >= settings.max_login_attempts and user.last_login_attempt:
        unlock_at = _as_utc(user.last_login_attempt) + timedelta(minutes=settings.login_lockout_minutes)
        if now < unlock_at:
            remaining = int((unlock_at - now).total_seconds() // 60) + 1
            raise TooManyAttempts(
                f"Demasiados intentos de autenticación. Espera {remaining} minutos.",
            )
        user.login_attempts = 0

    if not verify_password(password, user.password_hash):
        user.login_attempts += 1
        user.last_login_attempt = now
        session.add(user)
        session.commit()
        logger.warning("Failed login for user %s (%d attempts)", user.id, user.login_attempts)
        raise Unauthorized("Email o contraseña incorrectos", "INVALID_CREDENTIALS")

    user.login_attempts = 0
    user.last_login_attempt = now
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("User %s logged in", user.id)
    return user


def revoke_tokens(user: User, session: Session) -> None:
    """Invalidate every token issued so far for this user."""
    user.token_version += 1
    session.add(user)
    session.commit()
    session.refresh(user)


def update_profile(
    user: User,
    name: str,
    email: str,
    avatar: Optional[str],
    notification_preferences: Optional[dict],
    session: Session,
) -> User:
    if email != user.email:
        taken = session.exec(
            select(User).where(User.email == email, User.id != user.id)
        ).first()
        if taken:
            raise Conflict("El email ya está en uso por otro usuario", "EMAIL_ALREADY_EXISTS")

    user.name = name
    user.email = email
    if avatar is not None:
        user.avatar = avatar
    if notification_preferences is not None:
        user.notification_preferences = json.dumps(notification_preferences)
    user.updated_at = _now()
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("El email ya está en uso por otro usuario", "EMAIL_ALREADY_EXISTS")
    session.refresh(user)
    return user


def change_password(user: User, current_password: str, new_password: str, session: Session) -> User:
    """Replace the password and revoke existing tokens."""
    if not verify_password(current_password, user.password_hash):
        raise Unauthorized("La contraseña actual es incorrecta", "INVALID_CURRENT_PASSWORD")
    if verify_password(new_password, user.password_hash):
        raise ValidationFailed(
            "La nueva contraseña debe ser diferente a la actual",
            [{"field": "newPassword", "message": "La nueva contraseña debe ser diferente a la actual"}],
            "SAME_PASSWORD",
        )

    user.password_hash = hash_password(new_password)
    user.login_attempts = 0
    user.token_version += 1
    user.updated_at = _now()
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("User %s changed password", user.id)
    return user


def update_avatar(user: User, avatar: str, session: Session) -> User:
    user.avatar = avatar
    user.updated_at = _now()
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def delete_account(user: User, password: str, session: Session) -> None:
    """Delete the account and the user's own data.

    The membership goes the same way as leaving the family. Recipes still
    scheduled in a meal plan are kept for the family, without an author.
    """
    if not verify_password(password, user.password_hash):
        raise Unauthorized("Contraseña incorrecta", "INVALID_PASSWORD")

    user_id = user.id
    membership = family_service.get_membership(user_id, session)
    if membership:
        family_service.remove_membership(membership, session)

    session.execute(delete(MealComment).where(MealComment.user_id == user_id))
    session.execute(delete(MealAchievement).where(MealAchievement.user_id == user_id))
    session.execute(delete(RecipeRating).where(RecipeRating.user_id == user_id))

    scheduled = select(MealPlan.receta_id)
    own_unscheduled = select(Recipe.id).where(
        Recipe.created_by == user_id, col(Recipe.id).not_in(scheduled)
    )
    session.execute(delete(RecipeRating).where(col(RecipeRating.recipe_id).in_(own_unscheduled)))
    session.execute(delete(Recipe).where(col(Recipe.id).in_(own_unscheduled)))
    session.execute(update(Recipe).where(Recipe.created_by == user_id).values(created_by=None))
    session.execute(update(MealPlan).where(MealPlan.created_by == user_id).values(created_by=None))
    session.execute(update(Family).where(Family.created_by == user_id).values(created_by=None))

    session.delete(user)
    session.commit()
    logger.info("Deleted account %s", user_id)
