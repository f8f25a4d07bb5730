from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from healthhub.api.auth import get_current_user
from healthhub.core.validation import CamelModel
from healthhub.db.models import User
from healthhub.db.session import get_db
from healthhub.services.ai_gateway import AIGateway
from healthhub.services.llm import TextGenerator, get_text_generator

router = APIRouter(prefix="/ai", tags=["ai"])


class MealPlanRequest(CamelModel):
    preferences: Optional[str] = Field(default=None, max_length=2000)
    duration: int = Field(default=7, ge=1, le=30)


class WorkoutPlanRequest(MealPlanRequest):
    equipment: list[str] = Field(default_factory=list)


class RecommendationsRequest(CamelModel):
    focus: str = Field(default="general", max_length=200)


class AIResponse(CamelModel):
    """``data`` is either the parsed model reply or a fallback carrying ``rawResponse``."""

    message: str
    data: dict[str, Any]
    generated_at: datetime


def get_ai_gateway(generator: Optional[TextGenerator] = Depends(get_text_generator)) -> AIGateway:
    return AIGateway(generator)


def _respond(message: str, data: dict[str, Any]) -> AIResponse:
    return AIResponse(message=message, data=data, generated_at=datetime.now(timezone.utc))


@router.post("/meal-plan", response_model=AIResponse)
def meal_plan(
    payload: Optional[MealPlanRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: AIGateway = Depends(get_ai_gateway),
) -> AIResponse:
    payload = payload or MealPlanRequest()
    data = gateway.generate_meal_plan(db, user.id, preferences=payload.preferences, duration=payload.duration)
    return _respond("Meal plan generated successfully", data)


@router.post("/workout-plan", response_model=AIResponse)
def workout_plan(
    payload: Optional[WorkoutPlanRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: AIGateway = Depends(get_ai_gateway),
) -> AIResponse:
    payload = payload or WorkoutPlanRequest()
    data = gateway.generate_workout_plan(
        db,
        user.id,
        preferences=payload.preferences,
        duration=payload.duration,
        equipment=payload.equipment,
    )
    return _respond("Workout plan generated successfully", data)


@router.post("/recommendations", response_model=AIResponse)
def recommendations(
    payload: Optional[RecommendationsRequest] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: AIGateway = Depends(get_ai_gateway),
) -> AIResponse:
    payload = payload or RecommendationsRequest()
    data = gateway.generate_recommendations(db, user.id, focus=payload.focus)
    return _respond("Health recommendations generated successfully", data)
