"""Family-wide comment feed."""

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from familymenu.api.deps import require_family
from familymenu.database import get_session
from familymenu.models.user import FamilyMember
from familymenu.schemas.meal_plan import FamilyCommentResponse
from familymenu.services import meal_plan_service

router = APIRouter(prefix="/comments", tags=["comments"])


@router.get("/family", response_model=list[FamilyCommentResponse])
def family_comments(
    limit: int = Query(default=20, ge=1, le=100),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    """Latest comments on any of the family's meals, newest first."""
    rows = meal_plan_service.family_comments(membership.family_id, session, limit=limit)
    return [
        FamilyCommentResponse(
            id=comment.id,
            meal_plan_id=comment.meal_plan_id,
            user_id=comment.user_id,
            user_name=author.name,
            comment=comment.comment,
            emoji=comment.emoji,
            created_at=comment.created_at,
            fecha=plan.fecha,
            tipo_comida=plan.tipo_comida,
            recipe_name=recipe.nombre if recipe else None,
        )
        for comment, author, plan, recipe in rows
    ]
