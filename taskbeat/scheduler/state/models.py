"""任务状态模型

定义执行器状态、任务运行统计和执行记录的数据结构。
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ExecutorState(str, Enum):
    """执行器状态

    IDLE -> INITIAL_DELAY（延迟大于 0 时）-> ARMED -> (FIRING)* -> CANCELLED
    cron 表达式不再触发、引擎出错或任务体抛出 TaskAborted 时进入 TERMINATED。
    """

    IDLE = "idle"
    INITIAL_DELAY = "initial_delay"
    ARMED = "armed"
    FIRING = "firing"
    CANCELLED = "cancelled"
    TERMINATED = "terminated"

    @property
    def is_final(self) -> bool:
        return self in (ExecutorState.CANCELLED, ExecutorState.TERMINATED)


@dataclass
class TaskState:
    """任务运行时统计

    Attributes:
        task_name: 任务名称
        state: 执行器状态
        schedule: 调度描述，如 "fixed_rate 5000ms"
        next_run_at: 下次执行时间
        last_run_at: 上次执行时间
        last_result: 上次执行结果（success/failed/skipped）
        last_error: 上次错误信息
        run_count: 累计执行次数
        fail_count: 累计失败次数
        in_flight: 正在执行的次数（固定频率任务可能大于 1）
    """

    task_name: str
    state: ExecutorState = ExecutorState.IDLE
    schedule: str = ""
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    last_result: str | None = None
    last_error: str | None = None
    run_count: int = 0
    fail_count: int = 0
    in_flight: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_name": self.task_name,
            "state": self.state.value,
            "schedule": self.schedule,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": self.last_result,
            "last_error": self.last_error,
            "run_count": self.run_count,
            "fail_count": self.fail_count,
            "in_flight": self.in_flight,
        }


@dataclass
class TaskExecutionRecord:
    """任务执行记录

    Attributes:
        id: 记录 ID
        task_name: 任务名称
        started_at: 开始时间
        finished_at: 结束时间
        duration_ms: 耗时（毫秒）
        status: 执行结果状态
        message: 结果描述
        error: 错误信息
        data: 附加数据
    """

    id: str
    task_name: str
    started_at: datetime
    finished_at: datetime | None = None
    duration_ms: int | None = None
    status: str = "running"
    message: str = ""
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def finish(self, status: str, *, message: str = "", error: str | None = None, data: dict | None = None) -> None:
        self.finished_at = datetime.now()
        self.duration_ms = int((self.finished_at - self.started_at).total_seconds() * 1000)
        self.status = status
        self.message = message
        self.error = error
        self.data = data or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_name": self.task_name,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": self.duration_ms,
            "status": self.status,
            "message": self.message,
            "error": self.error,
            "data": self.data,
        }
