"""任务状态管理"""

from taskbeat.scheduler.state.models import ExecutorState, TaskExecutionRecord, TaskState

__all__ = ["ExecutorState", "TaskExecutionRecord", "TaskState"]
