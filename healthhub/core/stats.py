from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from healthhub.db.models import Task


@dataclass
class TaskSummary:
    total_tasks: int
    completed_tasks: int
    pending_tasks: int
    today_tasks: int
    today_completed_tasks: int
    completion_rate: Union[int, float]
    tasks_by_category: dict[str, int] = field(default_factory=dict)


def _to_storage_clock(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def today_window(now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Server-local midnight to the next local midnight, on the UTC storage clock."""
    local_now = (now or datetime.now()).astimezone()
    start = datetime.combine(local_now.date(), time.min).astimezone()
    end = datetime.combine(local_now.date() + timedelta(days=1), time.min).astimezone()
    return _to_storage_clock(start), _to_storage_clock(end)


def completion_rate(completed: int, total: int) -> Union[int, float]:
    if total == 0:
        return 0
    return round(completed / total * 100, 1)


def _count(session: Session, *criteria: Any) -> int:
    return int(session.query(func.count(Task.id)).filter(*criteria).scalar() or 0)


def _counts_by_category(session: Session, user_id: int) -> dict[str, int]:
    rows = (
        session.query(Task.category, func.count(Task.id))
        .filter(Task.user_id == user_id)
        .group_by(Task.category)
        .all()
    )
    return {category: int(count) for category, count in rows}


def _run_in_own_session(bind: Any, query: Callable[[Session], Any]) -> Any:
    with Session(bind=bind) as session:
        return query(session)


def get_summary(db: Session, user_id: int, now: Optional[datetime] = None) -> TaskSummary:
    start, end = today_window(now)
    owned = Task.user_id == user_id
    done = Task.completed.is_(True)
    queries: list[Callable[[Session], Any]] = [
        lambda session: _count(session, owned),
        lambda session: _count(session, owned, done),
        lambda session: _count(session, owned, Task.created_at >= start, Task.created_at < end),
        lambda session: _count(
            session, owned, done, Task.completed_at >= start, Task.completed_at < end
        ),
        lambda session: _counts_by_category(session, user_id),
    ]

    # Independent reads; each worker gets its own session on the caller's engine.
    bind = db.get_bind()
    with ThreadPoolExecutor(max_workers=len(queries)) as pool:
        futures = [pool.submit(_run_in_own_session, bind, query) for query in queries]
        total, completed, today, today_completed, by_category = [future.result() for future in futures]

    return TaskSummary(
        total_tasks=total,
        completed_tasks=completed,
        pending_tasks=total - completed,
        today_tasks=today,
        today_completed_tasks=today_completed,
        completion_rate=completion_rate(completed, total),
        tasks_by_category=by_category,
    )
