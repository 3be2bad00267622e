"""Family membership business logic.

A user has either no membership or exactly one ``FamilyMember`` row with
role ``admin`` or ``member``. The unique index on
``family_members.user_id`` is what enforces this under concurrent
requests; the reads below only produce friendlier errors. Every
transition commits once and rolls back on failure.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from familymenu.config import settings
from familymenu.models.meal_plan import MealAchievement, MealComment, MealPlan
from familymenu.models.recipe import Recipe, RecipeRating
from familymenu.models.user import Family, FamilyMember, User
from familymenu.services.errors import Conflict, Forbidden, NotFound, ValidationFailed
from familymenu.utils.invitation import (
    generate_invitation_code,
    is_valid_invitation_code_format,
    normalize_invitation_code,
)

logger = logging.getLogger(__name__)

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"


@dataclass
class MemberInfo:
    user: User
    membership: FamilyMember


def get_membership(user_id: str, session: Session) -> Optional[FamilyMember]:
    return session.exec(
        select(FamilyMember).where(FamilyMember.user_id == user_id)
    ).first()


def _require_membership(user: User, session: Session) -> FamilyMember:
    membership = get_membership(user.id, session)
    if not membership:
        raise NotFound("No perteneces a ninguna familia", "NO_FAMILY")
    return membership


def _require_admin(user: User, session: Session) -> FamilyMember:
    membership = _require_membership(user, session)
    if membership.role != ROLE_ADMIN:
        raise Forbidden(
            "Solo el administrador de la familia puede realizar esta acción",
            "FAMILY_ADMIN_REQUIRED",
        )
    return membership


def _ensure_no_membership(user: User, session: Session) -> None:
    if get_membership(user.id, session):
        raise Conflict("Ya perteneces a una familia", "ALREADY_IN_FAMILY")


def _unused_code(session: Session) -> str:
    """Draw codes until one is not taken. The unique index still has the last word."""
    while True:
        code = generate_invitation_code()
        taken = session.exec(
            select(Family.id).where(Family.codigo_invitacion == code)
        ).first()
        if not taken:
            return code


def list_members(family_id: str, session: Session) -> list[MemberInfo]:
    rows = session.exec(
        select(FamilyMember, User)
        .join(User, User.id == FamilyMember.user_id)
        .where(FamilyMember.family_id == family_id)
        .order_by(col(FamilyMember.joined_at).asc())
    ).all()
    return [MemberInfo(user=u, membership=m) for m, u in rows]


def get_family_for_user(user: User, session: Session) -> tuple[Family, FamilyMember]:
    membership = _require_membership(user, session)
    family = session.get(Family, membership.family_id)
    if not family:
        raise NotFound("Familia no encontrada", "FAMILY_NOT_FOUND")
    return family, membership


# --- Transitions ---

def create_family(user: User, nombre: str, session: Session) -> Family:
    """Create a family with the caller as its admin."""
    _ensure_no_membership(user, session)

    for attempt in range(settings.invitation_code_attempts):
        family = Family(
            nombre=nombre,
            codigo_invitacion=_unused_code(session),
            created_by=user.id,
        )
        session.add(family)
        try:
            session.flush()
            session.add(FamilyMember(family_id=family.id, user_id=user.id, role=ROLE_ADMIN))
            session.commit()
        except IntegrityError:
            session.rollback()
            # Lost a race: either another request gave this user a family,
            # or another family took the code.
            if get_membership(user.id, session):
                raise Conflict("Ya perteneces a una familia", "ALREADY_IN_FAMILY")
            logger.warning("Invitation code collision on create (attempt %d)", attempt + 1)
            continue

        session.refresh(family)
        logger.info("User %s created family %s", user.id, family.id)
        return family

    raise Conflict("No se pudo generar un código de invitación único", "CODE_GENERATION_FAILED")


def join_family(user: User, code: str, session: Session) -> Family:
    """Join the family whose invitation code matches ``code``."""
    _ensure_no_membership(user, session)

    if not is_valid_invitation_code_format(code):
        raise ValidationFailed(
            "Código de invitación inválido",
            [{"field": "codigo", "message": "El código debe tener el formato XXX-XXX"}],
        )
    normalized = normalize_invitation_code(code)

    family = session.exec(
        select(Family).where(Family.codigo_invitacion == normalized)
    ).first()
    if not family:
        logger.warning("User %s tried unknown invitation code", user.id)
        raise NotFound("Código de invitación no válido", "INVALID_INVITATION_CODE")

    session.add(FamilyMember(family_id=family.id, user_id=user.id, role=ROLE_MEMBER))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict("Ya perteneces a una familia", "ALREADY_IN_FAMILY")

    session.refresh(family)
    logger.info("User %s joined family %s", user.id, family.id)
    return family


def _delete_family(family_id: str, session: Session) -> None:
    """Delete a family and everything scoped to it. Recipes survive, detached."""
    plan_ids = select(MealPlan.id).where(MealPlan.family_id == family_id)
    session.execute(delete(MealComment).where(col(MealComment.meal_plan_id).in_(plan_ids)))
    session.execute(delete(MealAchievement).where(col(MealAchievement.meal_plan_id).in_(plan_ids)))
    session.execute(delete(MealPlan).where(MealPlan.family_id == family_id))
    session.execute(delete(RecipeRating).where(RecipeRating.family_id == family_id))
    session.execute(
        update(Recipe).where(Recipe.family_id == family_id).values(family_id=None)
    )
    session.execute(delete(Family).where(Family.id == family_id))


def remove_membership(membership: FamilyMember, session: Session) -> bool:
    """Remove a membership row, deleting or re-admining the family as needed.

    Returns True if the family was deleted. Does not commit.
    """
    family_id = membership.family_id
    was_admin = membership.role == ROLE_ADMIN
    session.delete(membership)
    session.flush()

    remaining = session.exec(
        select(FamilyMember)
        .where(FamilyMember.family_id == family_id)
        .order_by(col(FamilyMember.joined_at).asc())
    ).all()

    if not remaining:
        _delete_family(family_id, session)
        return True

    if was_admin and not any(m.role == ROLE_ADMIN for m in remaining):
        successor = remaining[0]
        successor.role = ROLE_ADMIN
        session.add(successor)
        logger.info("User %s promoted to admin of family %s", successor.user_id, family_id)
    return False


def leave_family(user: User, session: Session) -> bool:
    """Leave the caller's family. Returns True if the family was deleted."""
    membership = _require_membership(user, session)
    family_id = membership.family_id

    deleted = remove_membership(membership, session)
    session.commit()

    if deleted:
        logger.info("User %s left family %s; family deleted", user.id, family_id)
    else:
        logger.info("User %s left family %s", user.id, family_id)
    return deleted


def remove_member(admin: User, target_user_id: str, session: Session) -> None:
    """Remove another member from the caller's family. Admin only."""
    if target_user_id == admin.id:
        raise Forbidden("No puedes removerte a ti mismo", "CANNOT_REMOVE_SELF")

    admin_membership = _require_admin(admin, session)

    target = get_membership(target_user_id, session)
    if not target or target.family_id != admin_membership.family_id:
        raise NotFound("Miembro no encontrado", "MEMBER_NOT_FOUND")

    session.delete(target)
    session.commit()
    logger.info("User %s removed %s from family %s", admin.id, target_user_id, admin_membership.family_id)


def regenerate_code(admin: User, session: Session) -> Family:
    """Replace the family's invitation code. The old code stops working at commit."""
    membership = _require_admin(admin, session)

    for attempt in range(settings.invitation_code_attempts):
        family = session.get(Family, membership.family_id)
        if not family:
            raise NotFound("Familia no encontrada", "FAMILY_NOT_FOUND")

        family.codigo_invitacion = _unused_code(session)
        session.add(family)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            logger.warning("Invitation code collision on regenerate (attempt %d)", attempt + 1)
            continue

        session.refresh(family)
        logger.info("Family %s invitation code regenerated by %s", family.id, admin.id)
        return family

    raise Conflict("No se pudo generar un código de invitación único", "CODE_GENERATION_FAILED")
