from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from healthhub.api.auth import get_current_user
from healthhub.core.bmi import compute_bmi
from healthhub.core.errors import ValidationError
from healthhub.core.profiles import (
    get_bmi_history,
    profile_snapshot,
    update_biometrics,
    update_profile,
)
from healthhub.core.validation import CamelModel
from healthhub.db.models import BmiEntry, User, as_utc
from healthhub.db.session import get_db

router = APIRouter(prefix="/users", tags=["users"])


class ProfileItem(CamelModel):
    id: int
    name: str
    email: str
    age: Optional[int] = None
    gender: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    activity_level: str
    goals: list[str]
    dietary_restrictions: list[str]
    current_bmi: Optional[float] = Field(default=None, alias="currentBMI")
    created_at: datetime
    updated_at: Optional[datetime] = None


class ProfileUpdateResponse(CamelModel):
    message: str
    user: ProfileItem


class BmiEntryItem(CamelModel):
    bmi: float
    weight: float
    recorded_at: datetime


class BmiInput(CamelModel):
    weight: Optional[float] = None
    height: Optional[float] = None


class BmiUpdateResponse(CamelModel):
    message: str
    current_bmi: Optional[float] = Field(default=None, alias="currentBMI")
    bmi_history: list[BmiEntryItem]


class BmiCalculationResponse(CamelModel):
    bmi: float
    category: str
    weight: float
    height: float


def _to_profile_item(user: User) -> ProfileItem:
    snapshot: dict[str, Any] = profile_snapshot(user)
    return ProfileItem(
        **snapshot,
        created_at=as_utc(user.created_at),
        updated_at=as_utc(user.updated_at),
    )


def _to_bmi_item(row: BmiEntry) -> BmiEntryItem:
    return BmiEntryItem(bmi=row.bmi, weight=row.weight, recorded_at=as_utc(row.recorded_at))


def _require_weight_and_height(payload: BmiInput) -> None:
    if not payload.weight or not payload.height:
        raise ValidationError("Weight and height are required")


@router.get("/profile", response_model=ProfileItem)
def get_profile(user: User = Depends(get_current_user)) -> ProfileItem:
    return _to_profile_item(user)


@router.put("/profile", response_model=ProfileUpdateResponse)
def put_profile(
    payload: dict[str, Any] = Body(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileUpdateResponse:
    # update_profile drops and logs credential keys.
    updated = update_profile(db, user.id, payload)
    return ProfileUpdateResponse(message="Profile updated successfully", user=_to_profile_item(updated))


@router.put("/bmi", response_model=BmiUpdateResponse)
def put_bmi(
    payload: BmiInput,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BmiUpdateResponse:
    _require_weight_and_height(payload)
    result = update_biometrics(db, user.id, payload.weight, payload.height)
    return BmiUpdateResponse(
        message="BMI updated successfully",
        current_bmi=result.current_bmi,
        bmi_history=[_to_bmi_item(row) for row in result.history],
    )


@router.get("/bmi-history", response_model=list[BmiEntryItem])
def bmi_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[BmiEntryItem]:
    return [_to_bmi_item(row) for row in get_bmi_history(db, user.id)]


@router.post("/calculate-bmi", response_model=BmiCalculationResponse)
def calculate_bmi(payload: BmiInput) -> BmiCalculationResponse:
    _require_weight_and_height(payload)
    result = compute_bmi(payload.weight, payload.height)
    return BmiCalculationResponse(
        bmi=result.bmi,
        category=result.category,
        weight=payload.weight,
        height=payload.height,
    )
