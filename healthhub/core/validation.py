"""
Field schemas for profiles and tasks.

Each schema is evaluated before an entity is built or changed. Failures are
reported as a list of ``{field, message}`` violations wrapped in
``healthhub.core.errors.ValidationError``; the HTTP layer renders request
validation failures through the same ``violations_from_errors`` helper.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from healthhub.core.errors import ValidationError
from healthhub.core.security import MIN_PASSWORD_LENGTH


class TaskCategory(str, Enum):
    workout = "workout"
    meal = "meal"
    hydration = "hydration"
    sleep = "sleep"
    medication = "medication"
    other = "other"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class RecurrenceFrequency(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class ActivityLevel(str, Enum):
    sedentary = "sedentary"
    lightly_active = "lightly_active"
    moderately_active = "moderately_active"
    very_active = "very_active"
    extra_active = "extra_active"


class Goal(str, Enum):
    weight_loss = "weight_loss"
    weight_gain = "weight_gain"
    muscle_gain = "muscle_gain"
    maintain_weight = "maintain_weight"
    improve_fitness = "improve_fitness"
    improve_health = "improve_health"


class DietaryRestriction(str, Enum):
    vegetarian = "vegetarian"
    vegan = "vegan"
    gluten_free = "gluten_free"
    dairy_free = "dairy_free"
    nut_free = "nut_free"
    halal = "halal"
    kosher = "kosher"


DEFAULT_ACTIVITY_LEVEL = ActivityLevel.moderately_active

REQUIRED_MESSAGES = {
    "title": "Task title is required",
    "category": "Task category is required",
    "name": "Name is required",
    "email": "Email is required",
    "password": "Password is required",
}

DayOfWeek = Annotated[int, Field(ge=0, le=6)]


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case keys, ignores unknown ones and rejects inf/NaN."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore", allow_inf_nan=False
    )


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _unique(values: Optional[list[Any]]) -> Optional[list[Any]]:
    if values is None:
        return None
    seen: list[Any] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def _strip_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class TaskMetrics(CamelModel):
    duration: Optional[float] = None
    calories: Optional[float] = None
    distance: Optional[float] = None
    sets: Optional[float] = None
    reps: Optional[float] = None
    weight: Optional[float] = None
    water_amount: Optional[float] = None
    sleep_hours: Optional[float] = None


class TaskRecurrence(CamelModel):
    enabled: bool = False
    frequency: Optional[RecurrenceFrequency] = None
    days_of_week: list[DayOfWeek] = Field(default_factory=list)

    @field_validator("days_of_week")
    @classmethod
    def _as_set(cls, value: list[int]) -> list[int]:
        return sorted(set(value))


class TaskCreate(CamelModel):
    title: str
    description: Optional[str] = None
    category: TaskCategory
    priority: TaskPriority = TaskPriority.medium
    completed: bool = False
    due_date: Optional[datetime] = None
    reminder: Optional[datetime] = None
    recurring: TaskRecurrence = Field(default_factory=TaskRecurrence)
    metrics: TaskMetrics = Field(default_factory=TaskMetrics)

    @field_validator("title")
    @classmethod
    def _title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Task title is required")
        return value

    @field_validator("description")
    @classmethod
    def _description(cls, value: Optional[str]) -> Optional[str]:
        return _strip_optional(value)

    @field_validator("due_date", "reminder")
    @classmethod
    def _timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)


class TaskUpdate(CamelModel):
    """Partial task update; only keys present in the input are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[TaskCategory] = None
    priority: Optional[TaskPriority] = None
    completed: Optional[bool] = None
    due_date: Optional[datetime] = None
    reminder: Optional[datetime] = None
    recurring: Optional[TaskRecurrence] = None
    metrics: Optional[TaskMetrics] = None

    @field_validator("title")
    @classmethod
    def _title(cls, value: Optional[str]) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Task title is required")
        return value

    @field_validator("category", "priority", "completed")
    @classmethod
    def _not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Value cannot be null")
        return value

    @field_validator("description")
    @classmethod
    def _description(cls, value: Optional[str]) -> Optional[str]:
        return _strip_optional(value)

    @field_validator("due_date", "reminder")
    @classmethod
    def _timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=1, le=120)
    gender: Optional[Gender] = None
    height: Optional[float] = Field(default=None, ge=50, le=300)
    weight: Optional[float] = Field(default=None, ge=20, le=500)
    activity_level: Optional[ActivityLevel] = None
    goals: Optional[list[Goal]] = None
    dietary_restrictions: Optional[list[DietaryRestriction]] = None

    @field_validator("name")
    @classmethod
    def _name(cls, value: Optional[str]) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("goals", "dietary_restrictions")
    @classmethod
    def _dedupe(cls, value: Optional[list[Any]]) -> Optional[list[Any]]:
        return _unique(value)


class RegistrationFields(ProfileUpdate):
    name: str
    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)


class BiometricsUpdate(CamelModel):
    weight: float = Field(ge=20, le=500)
    height: float = Field(ge=50, le=300)


SchemaT = TypeVar("SchemaT", bound=BaseModel)


def violations_from_errors(errors: Sequence[Mapping[str, Any]]) -> list[dict[str, str]]:
    violations: list[dict[str, str]] = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in {"body", "query", "path"}:
            loc = loc[1:]
        field = ".".join(loc) or "body"
        kind = error.get("type", "")
        if kind == "missing":
            message = REQUIRED_MESSAGES.get(field, f"{field} is required")
        elif kind == "value_error":
            message = str(error.get("msg", "")).removeprefix("Value error, ")
        else:
            message = f"{field}: {error.get('msg', 'invalid value')}"
        violations.append({"field": field, "message": message})
    return violations


def validate_fields(schema: type[SchemaT], data: Any) -> SchemaT:
    if isinstance(data, schema):
        return data
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")
    try:
        return schema.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ValidationError.from_violations(violations_from_errors(exc.errors())) from None
