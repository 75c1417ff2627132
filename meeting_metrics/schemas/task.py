# meeting_metrics/schemas/task.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, examples=["Book the auditorium"])
    assigned_to: int = Field(..., ge=1, description="Member the task is assigned to.", examples=[7])
    deadline: datetime | None = Field(default=None)


class TaskStatusUpdate(BaseModel):
    status: TaskStatus = Field(..., examples=["completed"])


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    assigned_to: int
    status: TaskStatus
    deadline: datetime | None = None
    created_at: datetime
    completed_at: datetime | None = None
