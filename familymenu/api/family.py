"""Family membership API endpoints."""

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from familymenu.api.deps import get_current_user
from familymenu.database import get_session
from familymenu.models.user import Family, User
from familymenu.schemas.base import MessageResponse
from familymenu.schemas.family import (
    FamilyCreateRequest,
    FamilyJoinRequest,
    FamilyMemberResponse,
    FamilyResponse,
    InvitationCodeResponse,
)
from familymenu.services import family_service

router = APIRouter(prefix="/family", tags=["family"])


def _members(family_id: str, session: Session) -> list[FamilyMemberResponse]:
    return [
        FamilyMemberResponse(
            user_id=m.user.id,
            name=m.user.name,
            email=m.user.email,
            avatar=m.user.avatar,
            account_role=m.user.role,
            role=m.membership.role,
            joined_at=m.membership.joined_at,
        )
        for m in family_service.list_members(family_id, session)
    ]


def _family_response(family: Family, role: str, session: Session) -> FamilyResponse:
    return FamilyResponse(
        id=family.id,
        nombre=family.nombre,
        codigo_invitacion=family.codigo_invitacion,
        created_by=family.created_by,
        created_at=family.created_at,
        role=role,
        members=_members(family.id, session),
    )


@router.get("", response_model=FamilyResponse)
def get_family(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Get the caller's family with all members."""
    family, membership = family_service.get_family_for_user(user, session)
    return _family_response(family, membership.role, session)


@router.post("", response_model=FamilyResponse, status_code=status.HTTP_201_CREATED)
def create_family(
    request: FamilyCreateRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Create a family. The caller becomes its admin."""
    family = family_service.create_family(user, request.nombre, session)
    return _family_response(family, family_service.ROLE_ADMIN, session)


@router.post("/join", response_model=FamilyResponse)
def join_family(
    request: FamilyJoinRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Join a family with its invitation code."""
    family = family_service.join_family(user, request.codigo, session)
    return _family_response(family, family_service.ROLE_MEMBER, session)


@router.post("/leave", response_model=MessageResponse)
def leave_family(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Leave the caller's family. The last member leaving deletes it."""
    deleted = family_service.leave_family(user, session)
    if deleted:
        return MessageResponse(message="Has abandonado la familia. La familia fue eliminada.")
    return MessageResponse(message="Has abandonado la familia")


@router.get("/members", response_model=list[FamilyMemberResponse])
def list_members(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    family, _ = family_service.get_family_for_user(user, session)
    return _members(family.id, session)


@router.delete("/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    member_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Remove a family member. Admin only. Cannot remove yourself."""
    family_service.remove_member(user, member_id, session)


@router.post("/regenerate-code", response_model=InvitationCodeResponse)
def regenerate_code(
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Issue a new invitation code. The previous one stops working. Admin only."""
    family = family_service.regenerate_code(user, session)
    return InvitationCodeResponse(
        message="Código de invitación regenerado",
        codigo_invitacion=family.codigo_invitacion,
    )
