# meeting_metrics/api/routes/tasks.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_metrics.core.clock import Clock, get_clock
from meeting_metrics.db.session import get_db
from meeting_metrics.models.member import Member
from meeting_metrics.models.task import Task
from meeting_metrics.schemas.task import TaskCreate, TaskRead, TaskStatus, TaskStatusUpdate
from meeting_metrics.services.aggregation_dispatcher import AggregationDispatcher, get_dispatcher
from meeting_metrics.services.time_windows import to_utc

router = APIRouter(prefix="/tasks", tags=["Tasks"])


@router.post(
    "",
    response_model=TaskRead,
    status_code=HTTPStatus.CREATED,
    summary="Assign a task to a member",
    description=(
        "Creates a pending task. Tasks created in a month count towards the "
        "assignee's `tasks_assigned` for that month; the assignee's "
        "performance record is recomputed in the background."
    ),
    responses={404: {"description": "Assignee not found."}},
)
async def create_task(
    payload: TaskCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: AggregationDispatcher = Depends(get_dispatcher),
) -> TaskRead:
    member = await db.execute(select(Member.id).where(Member.id == payload.assigned_to))
    if member.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Member with id {payload.assigned_to} not found.",
        )

    task = Task(
        title=payload.title,
        assigned_to=payload.assigned_to,
        status=TaskStatus.PENDING.value,
        deadline=to_utc(payload.deadline) if payload.deadline else None,
        created_at=clock.now(),
    )
    db.add(task)
    await db.commit()
    await db.refresh(task)

    dispatcher.dispatch(task.assigned_to)
    return TaskRead.model_validate(task)


@router.patch(
    "/{task_id}/status",
    response_model=TaskRead,
    summary="Change a task's status",
    description=(
        "Moving a task to `completed` stamps `completed_at` (used by the "
        "member-of-the-week window); moving it away from `completed` clears "
        "it. The assignee's performance record is recomputed in the background."
    ),
    responses={404: {"description": "No task exists with the given ID."}},
)
async def update_task_status(
    payload: TaskStatusUpdate,
    task_id: int = Path(..., ge=1, description="Numeric ID of the task.", examples=[3]),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
    dispatcher: AggregationDispatcher = Depends(get_dispatcher),
) -> TaskRead:
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()
    if task is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Task with id {task_id} not found.",
        )

    if payload.status == TaskStatus.COMPLETED:
        if task.status != TaskStatus.COMPLETED.value:
            task.completed_at = clock.now()
    else:
        task.completed_at = None
    task.status = payload.status.value

    await db.commit()
    await db.refresh(task)

    dispatcher.dispatch(task.assigned_to)
    return TaskRead.model_validate(task)
