import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

from sqlalchemy.orm import Session

from healthhub.core.bmi import current_bmi
from healthhub.core.errors import Conflict, NotFound, ValidationError
from healthhub.core.security import hash_password
from healthhub.core.transitions import bmi_history_entry
from healthhub.core.validation import (
    DEFAULT_ACTIVITY_LEVEL,
    BiometricsUpdate,
    ProfileUpdate,
    RegistrationFields,
    validate_fields,
)
from healthhub.db.models import BmiEntry, User, utc_now

logger = logging.getLogger("uvicorn.error")

# Owned by the auth flows; never writable through a profile update.
PROTECTED_FIELDS = {"password", "email", "password_hash", "passwordHash"}
BMI_HISTORY_PREVIEW = 10


@dataclass
class BiometricsResult:
    current_bmi: Optional[float]
    history: list[BmiEntry]


def _load_list(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        loaded = json.loads(raw)
    except json.JSONDecodeError:
        return []
    return [str(item) for item in loaded] if isinstance(loaded, list) else []


def profile_goals(user: User) -> list[str]:
    return _load_list(user.goals_json)


def profile_dietary_restrictions(user: User) -> list[str]:
    return _load_list(user.dietary_restrictions_json)


def profile_snapshot(user: User) -> dict[str, Any]:
    """Profile fields as plain values, without any credential material."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "age": user.age,
        "gender": user.gender,
        "height": user.height,
        "weight": user.weight,
        "current_bmi": current_bmi(user.weight, user.height),
        "activity_level": user.activity_level or DEFAULT_ACTIVITY_LEVEL.value,
        "goals": profile_goals(user),
        "dietary_restrictions": profile_dietary_restrictions(user),
    }


def _apply_profile_fields(user: User, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        if key == "goals":
            user.goals_json = json.dumps(value or [])
        elif key == "dietary_restrictions":
            user.dietary_restrictions_json = json.dumps(value or [])
        elif key == "activity_level":
            user.activity_level = value or DEFAULT_ACTIVITY_LEVEL.value
        else:
            setattr(user, key, value)


def _append_bmi_entry(
    db: Session, user: User, previous_weight: Optional[float], force: bool = False
) -> Optional[BmiEntry]:
    entry = bmi_history_entry(previous_weight, user.weight, user.height, utc_now(), force=force)
    if entry is None:
        return None
    row = BmiEntry(user_id=user.id, bmi=entry.bmi, weight=entry.weight, recorded_at=entry.recorded_at)
    db.add(row)
    return row


def get_profile(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def register_user(db: Session, fields: Union[RegistrationFields, Mapping[str, Any]]) -> User:
    data = validate_fields(RegistrationFields, fields)
    email = data.email.strip().lower()
    if find_user_by_email(db, email):
        raise Conflict("Email already registered")

    user = User(name=data.name, email=email, password_hash=hash_password(data.password))
    profile_fields = data.model_dump(mode="json", exclude_unset=True, exclude={"name", "email", "password"})
    _apply_profile_fields(user, profile_fields)
    if user.activity_level is None:
        user.activity_level = DEFAULT_ACTIVITY_LEVEL.value
    db.add(user)
    db.flush()
    _append_bmi_entry(db, user, previous_weight=None)
    db.commit()
    db.refresh(user)
    logger.info("user_registered user_id=%s", user.id)
    return user


def update_profile(db: Session, user_id: int, fields: Union[ProfileUpdate, Mapping[str, Any]]) -> User:
    if isinstance(fields, Mapping):
        dropped = sorted(PROTECTED_FIELDS.intersection(fields))
        if dropped:
            logger.info("profile_update_dropped_fields user_id=%s fields=%s", user_id, ",".join(dropped))
        fields = {key: value for key, value in fields.items() if key not in PROTECTED_FIELDS}
    data = validate_fields(ProfileUpdate, fields)

    user = get_profile(db, user_id)
    previous_weight = user.weight
    _apply_profile_fields(user, data.model_dump(mode="json", exclude_unset=True))
    _append_bmi_entry(db, user, previous_weight)
    db.commit()
    db.refresh(user)
    return user


def get_bmi_history(db: Session, user_id: int, limit: Optional[int] = None) -> list[BmiEntry]:
    query = (
        db.query(BmiEntry)
        .filter(BmiEntry.user_id == user_id)
        .order_by(BmiEntry.recorded_at.desc(), BmiEntry.id.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()


def update_biometrics(db: Session, user_id: int, weight: Any, height: Any) -> BiometricsResult:
    if not weight or not height:
        raise ValidationError("Weight and height are required")
    data = validate_fields(BiometricsUpdate, {"weight": weight, "height": height})

    user = get_profile(db, user_id)
    previous_weight = user.weight
    user.weight = data.weight
    user.height = data.height
    # Recorded even when only the height changed.
    _append_bmi_entry(db, user, previous_weight, force=True)
    db.commit()
    db.refresh(user)
    return BiometricsResult(
        current_bmi=current_bmi(user.weight, user.height),
        history=get_bmi_history(db, user_id, limit=BMI_HISTORY_PREVIEW),
    )
