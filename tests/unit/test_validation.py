import pytest

from healthhub.core.errors import ValidationError
from healthhub.core.validation import (
    ProfileUpdate,
    TaskCreate,
    TaskUpdate,
    validate_fields,
)


def test_task_requires_title() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_fields(TaskCreate, {"category": "workout"})
    assert exc_info.value.message == "Task title is required"
    assert exc_info.value.errors[0]["field"] == "title"


def test_task_blank_title_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_fields(TaskCreate, {"title": "   ", "category": "meal"})
    assert exc_info.value.message == "Task title is required"


def test_task_requires_category_from_enum() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_fields(TaskCreate, {"title": "Swim", "category": "swimming"})
    assert exc_info.value.errors[0]["field"] == "category"


def test_task_days_of_week_must_be_in_range() -> None:
    with pytest.raises(ValidationError) as exc_info:
        validate_fields(
            TaskCreate,
            {"title": "Yoga", "category": "workout", "recurring": {"enabled": True, "daysOfWeek": [1, 7]}},
        )
    assert exc_info.value.errors[0]["field"].startswith("recurring")


def test_task_defaults_and_normalization() -> None:
    task = validate_fields(
        TaskCreate,
        {
            "title": "  Drink water  ",
            "description": "   ",
            "category": "hydration",
            "recurring": {"enabled": True, "frequency": "weekly", "daysOfWeek": [3, 1, 3]},
            "metrics": {"waterAmount": 500},
        },
    )
    assert task.title == "Drink water"
    assert task.description is None
    assert task.priority.value == "medium"
    assert task.completed is False
    assert task.recurring.days_of_week == [1, 3]
    assert task.metrics.water_amount == 500


def test_task_update_keeps_only_supplied_fields() -> None:
    update = validate_fields(TaskUpdate, {"priority": "high"})
    assert update.model_dump(exclude_unset=True) == {"priority": update.priority}


def test_task_update_cannot_null_title_or_category() -> None:
    with pytest.raises(ValidationError):
        validate_fields(TaskUpdate, {"title": None})
    with pytest.raises(ValidationError):
        validate_fields(TaskUpdate, {"category": None})


def test_profile_update_ignores_credentials() -> None:
    update = validate_fields(ProfileUpdate, {"age": 40, "password": "x", "email": "new@test.com"})
    assert update.model_dump(exclude_unset=True) == {"age": 40}


@pytest.mark.parametrize(
    "fields",
    [{"age": 0}, {"age": 121}, {"height": 20}, {"weight": 600}, {"gender": "unknown"}, {"goals": ["fly"]}],
)
def test_profile_update_range_and_enum_checks(fields) -> None:
    with pytest.raises(ValidationError):
        validate_fields(ProfileUpdate, fields)


def test_validate_fields_rejects_non_mapping() -> None:
    with pytest.raises(ValidationError):
        validate_fields(TaskCreate, ["not", "a", "mapping"])
