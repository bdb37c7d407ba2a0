"""任务调度模块

- SchedulerBuilder / Scheduler / SchedulerHandle: 构建、启动和停止调度器
- TaskRegistry: 任务注册中心（task_registry / scheduled 供自动发现）
- TaskDescriptor / BaseTask / scheduled_method: 任务声明
- ConfigSource: 占位符解析使用的配置源
- CronEngine: cron 引擎接口（默认 CroniterEngine）
"""

from taskbeat.scheduler.config_source import ConfigSource
from taskbeat.scheduler.cron import CronEngine, CroniterEngine
from taskbeat.scheduler.executor import Executor
from taskbeat.scheduler.placeholder import Placeholder, resolve_placeholder
from taskbeat.scheduler.registry import SchedulerBuilder, TaskRegistry, scheduled, task_registry
from taskbeat.scheduler.scheduler import Scheduler, SchedulerHandle
from taskbeat.scheduler.state import ExecutorState, TaskExecutionRecord, TaskState
from taskbeat.scheduler.tasks import (
    BaseTask,
    TaskDescriptor,
    TaskKind,
    TaskResult,
    TaskResultStatus,
    TaskSchedule,
    scheduled_method,
)
from taskbeat.scheduler.time_unit import TimeUnit

__all__ = [
    "BaseTask",
    "ConfigSource",
    "CronEngine",
    "CroniterEngine",
    "Executor",
    "ExecutorState",
    "Placeholder",
    "Scheduler",
    "SchedulerBuilder",
    "SchedulerHandle",
    "TaskDescriptor",
    "TaskExecutionRecord",
    "TaskKind",
    "TaskRegistry",
    "TaskResult",
    "TaskResultStatus",
    "TaskSchedule",
    "TaskState",
    "TimeUnit",
    "resolve_placeholder",
    "scheduled",
    "scheduled_method",
    "task_registry",
]
