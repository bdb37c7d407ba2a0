"""任务声明"""

from taskbeat.scheduler.tasks.base import (
    BaseTask,
    TaskDescriptor,
    TaskKind,
    TaskResult,
    TaskResultStatus,
    TaskSchedule,
    scheduled_method,
)

__all__ = [
    "BaseTask",
    "TaskDescriptor",
    "TaskKind",
    "TaskResult",
    "TaskResultStatus",
    "TaskSchedule",
    "scheduled_method",
]
