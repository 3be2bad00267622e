"""Meal achievement (star) API endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from familymenu.api.deps import get_current_user, require_family
from familymenu.database import get_session
from familymenu.models.user import FamilyMember, User
from familymenu.schemas.meal_plan import (
    AchievementCreateRequest,
    AchievementResponse,
    AwardStarResponse,
    UserStatsResponse,
)
from familymenu.services import achievement_service

router = APIRouter(prefix="/achievements", tags=["achievements"])


@router.post("", response_model=AwardStarResponse, status_code=status.HTTP_201_CREATED)
def award_star(
    request: AchievementCreateRequest,
    user: User = Depends(get_current_user),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    achievement, message = achievement_service.award_star(
        user, membership.family_id, request.meal_plan_id, request.star_type, session
    )
    return AwardStarResponse(
        message=message,
        achievement=AchievementResponse.model_validate(achievement),
    )


@router.get("/meal/{meal_plan_id}", response_model=list[AchievementResponse])
def meal_achievements(
    meal_plan_id: str,
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    return achievement_service.meal_achievements(meal_plan_id, membership.family_id, session)


@router.get("/user/{user_id}", response_model=list[AchievementResponse])
def user_achievements(
    user_id: str,
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    return achievement_service.user_achievements(
        user_id, membership.family_id, session, start_date, end_date
    )


@router.get("/stats/{user_id}", response_model=UserStatsResponse)
def user_stats(
    user_id: str,
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    membership: FamilyMember = Depends(require_family),
    session: Session = Depends(get_session),
):
    """Weekly star counts, all-time total and current streak."""
    return achievement_service.user_stats(user_id, membership.family_id, session, start_date)
