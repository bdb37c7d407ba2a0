"""taskbeat - 声明式定时任务调度

使用方式：
    from taskbeat import SchedulerBuilder, scheduled

    @scheduled(fixed_rate="${jobs.heartbeat.interval:5s}")
    async def heartbeat():
        ...

    @scheduled(cron="0 0 2 * * *", zone="Asia/Shanghai", enabled="${jobs.report.enabled:true}")
    def nightly_report():
        ...

    handle = await SchedulerBuilder().with_file("config/app.toml").start()
    # ... 运行中 ...
    await handle.shutdown()
"""

from taskbeat.core.errors import (
    ConfigError,
    ScheduleSpecError,
    ShutdownTimeout,
    StartError,
    TaskAborted,
    TaskbeatError,
    TaskConfigInvalid,
)
from taskbeat.scheduler import (
    BaseTask,
    ConfigSource,
    CronEngine,
    CroniterEngine,
    Scheduler,
    SchedulerBuilder,
    SchedulerHandle,
    TaskDescriptor,
    TaskRegistry,
    TaskResult,
    TaskSchedule,
    TimeUnit,
    scheduled,
    scheduled_method,
    task_registry,
)

__version__ = "0.1.0"

__all__ = [
    "BaseTask",
    "ConfigError",
    "ConfigSource",
    "CronEngine",
    "CroniterEngine",
    "ScheduleSpecError",
    "Scheduler",
    "SchedulerBuilder",
    "SchedulerHandle",
    "ShutdownTimeout",
    "StartError",
    "TaskAborted",
    "TaskConfigInvalid",
    "TaskDescriptor",
    "TaskRegistry",
    "TaskResult",
    "TaskSchedule",
    "TaskbeatError",
    "TimeUnit",
    "scheduled",
    "scheduled_method",
    "task_registry",
]
