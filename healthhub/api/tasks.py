from datetime import datetime
from typing import Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from healthhub.api.auth import get_current_user
from healthhub.core.stats import get_summary
from healthhub.core.tasks import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    create_task,
    delete_task,
    get_task,
    list_tasks,
    task_metrics,
    task_recurrence,
    toggle_completion,
    update_task,
)
from healthhub.core.validation import CamelModel, TaskCreate, TaskMetrics, TaskUpdate
from healthhub.db.models import Task, User, as_utc
from healthhub.db.session import get_db

router = APIRouter(prefix="/tasks", tags=["tasks"])


class RecurrenceItem(CamelModel):
    enabled: bool
    frequency: Optional[str] = None
    days_of_week: list[int]


class TaskItem(CamelModel):
    id: int
    user_id: int
    title: str
    description: Optional[str] = None
    category: str
    priority: str
    completed: bool
    completed_at: Optional[datetime] = None
    due_date: Optional[datetime] = None
    reminder: Optional[datetime] = None
    recurring: RecurrenceItem
    metrics: TaskMetrics
    created_at: datetime
    updated_at: Optional[datetime] = None


class TaskListResponse(CamelModel):
    tasks: list[TaskItem]
    total: int
    page: int
    pages: int


class TaskMessageResponse(CamelModel):
    message: str
    task: TaskItem


class MessageResponse(CamelModel):
    message: str


class TaskSummaryResponse(CamelModel):
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    today_tasks: int
    today_completed_tasks: int
    completion_rate: Union[int, float]
    tasks_by_category: dict[str, int]


def _to_item(row: Task) -> TaskItem:
    return TaskItem(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        category=row.category,
        priority=row.priority,
        completed=bool(row.completed),
        completed_at=as_utc(row.completed_at),
        due_date=as_utc(row.due_date),
        reminder=as_utc(row.reminder),
        recurring=RecurrenceItem(**task_recurrence(row)),
        metrics=TaskMetrics(**task_metrics(row)),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


@router.get("", response_model=TaskListResponse)
def get_tasks(
    completed: Optional[bool] = None,
    category: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskListResponse:
    result = list_tasks(db, user.id, completed=completed, category=category, page=page, limit=limit)
    return TaskListResponse(
        tasks=[_to_item(row) for row in result.tasks],
        total=result.total,
        page=result.page,
        pages=result.pages,
    )


@router.post("", response_model=TaskMessageResponse, status_code=status.HTTP_201_CREATED)
def post_task(
    payload: TaskCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskMessageResponse:
    task = create_task(db, user.id, payload)
    return TaskMessageResponse(message="Task created successfully", task=_to_item(task))


@router.get("/stats/summary", response_model=TaskSummaryResponse)
def task_summary(user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> TaskSummaryResponse:
    summary = get_summary(db, user.id)
    return TaskSummaryResponse(
        total_tasks=summary.total_tasks,
        completed_tasks=summary.completed_tasks,
        pending_tasks=summary.pending_tasks,
        today_tasks=summary.today_tasks,
        today_completed_tasks=summary.today_completed_tasks,
        completion_rate=summary.completion_rate,
        tasks_by_category=summary.tasks_by_category,
    )


@router.get("/{task_id}", response_model=TaskItem)
def get_one_task(
    task_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> TaskItem:
    return _to_item(get_task(db, user.id, task_id))


@router.put("/{task_id}", response_model=TaskMessageResponse)
def put_task(
    task_id: int,
    payload: TaskUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TaskMessageResponse:
    task = update_task(db, user.id, task_id, payload)
    return TaskMessageResponse(message="Task updated successfully", task=_to_item(task))


@router.delete("/{task_id}", response_model=MessageResponse)
def remove_task(
    task_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> MessageResponse:
    delete_task(db, user.id, task_id)
    return MessageResponse(message="Task deleted successfully")


@router.patch("/{task_id}/toggle", response_model=TaskMessageResponse)
def toggle_task(
    task_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)
) -> TaskMessageResponse:
    task = toggle_completion(db, user.id, task_id)
    state = "completed" if task.completed else "pending"
    return TaskMessageResponse(message=f"Task marked as {state}", task=_to_item(task))
