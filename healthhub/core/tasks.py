import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from sqlalchemy.orm import Session

from healthhub.core.errors import NotFound, ValidationError
from healthhub.core.transitions import completion_timestamp
from healthhub.core.validation import TaskCategory, TaskCreate, TaskUpdate, validate_fields
from healthhub.db.models import Task, utc_now

logger = logging.getLogger("uvicorn.error")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
ALL_CATEGORIES = "all"


@dataclass
class TaskPage:
    tasks: list[Task]
    total: int
    page: int
    pages: int


def task_recurrence(task: Task) -> dict[str, Any]:
    days: list[int] = []
    if task.recurring_days_json:
        try:
            loaded = json.loads(task.recurring_days_json)
            if isinstance(loaded, list):
                days = [int(day) for day in loaded]
        except (json.JSONDecodeError, TypeError, ValueError):
            days = []
    return {
        "enabled": bool(task.recurring_enabled),
        "frequency": task.recurring_frequency,
        "days_of_week": days,
    }


def task_metrics(task: Task) -> dict[str, Optional[float]]:
    if not task.metrics_json:
        return {}
    try:
        loaded = json.loads(task.metrics_json)
    except json.JSONDecodeError:
        return {}
    return loaded if isinstance(loaded, dict) else {}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _apply_task_fields(task: Task, changes: dict[str, Any]) -> None:
    for key, value in changes.items():
        if key == "recurring":
            value = value or {}
            task.recurring_enabled = bool(value.get("enabled", False))
            task.recurring_frequency = _plain(value.get("frequency"))
            task.recurring_days_json = json.dumps(value.get("days_of_week") or [])
        elif key == "metrics":
            metrics = {name: amount for name, amount in (value or {}).items() if amount is not None}
            task.metrics_json = json.dumps(metrics)
        else:
            setattr(task, key, _plain(value))


def _write_completion(task: Task, was_completed: bool) -> None:
    task.completed_at = completion_timestamp(
        was_completed, bool(task.completed), task.completed_at, utc_now()
    )


def _owned_task(db: Session, user_id: int, task_id: int) -> Task:
    # Missing and foreign tasks are indistinguishable to the caller.
    task = db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()
    if not task:
        raise NotFound("Task not found")
    return task


def _category_choices() -> str:
    return ", ".join([ALL_CATEGORIES] + [member.value for member in TaskCategory])


def _category_filter(category: Optional[str]) -> Optional[str]:
    if not category or category == ALL_CATEGORIES:
        return None
    try:
        return TaskCategory(category).value
    except ValueError:
        message = f"Unknown category: {category}. Expected one of: {_category_choices()}"
        raise ValidationError.from_violations([{"field": "category", "message": message}]) from None


def list_tasks(
    db: Session,
    user_id: int,
    completed: Optional[bool] = None,
    category: Optional[str] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> TaskPage:
    if page < 1:
        raise ValidationError("page must be at least 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
    category_value = _category_filter(category)

    query = db.query(Task).filter(Task.user_id == user_id)
    if completed is not None:
        query = query.filter(Task.completed == completed)
    if category_value:
        query = query.filter(Task.category == category_value)

    total = query.count()
    rows = (
        query.order_by(Task.created_at.desc(), Task.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return TaskPage(tasks=rows, total=total, page=page, pages=math.ceil(total / limit))


def create_task(db: Session, user_id: int, fields: Union[TaskCreate, Mapping[str, Any]]) -> Task:
    data = validate_fields(TaskCreate, fields)
    task = Task(user_id=user_id)
    _apply_task_fields(task, data.model_dump(mode="python"))
    _write_completion(task, was_completed=False)
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("task_created user_id=%s task_id=%s category=%s", user_id, task.id, task.category)
    return task


def get_task(db: Session, user_id: int, task_id: int) -> Task:
    return _owned_task(db, user_id, task_id)


def update_task(
    db: Session, user_id: int, task_id: int, fields: Union[TaskUpdate, Mapping[str, Any]]
) -> Task:
    data = validate_fields(TaskUpdate, fields)
    task = _owned_task(db, user_id, task_id)
    was_completed = bool(task.completed)
    _apply_task_fields(task, data.model_dump(mode="python", exclude_unset=True))
    _write_completion(task, was_completed)
    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, user_id: int, task_id: int) -> None:
    task = _owned_task(db, user_id, task_id)
    db.delete(task)
    db.commit()
    logger.info("task_deleted user_id=%s task_id=%s", user_id, task_id)


def toggle_completion(db: Session, user_id: int, task_id: int) -> Task:
    task = _owned_task(db, user_id, task_id)
    was_completed = bool(task.completed)
    task.completed = not was_completed
    _write_completion(task, was_completed)
    db.commit()
    db.refresh(task)
    return task
