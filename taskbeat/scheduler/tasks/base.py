"""任务声明

定义任务的调度声明、描述符和执行结果，以及三种声明方式：

1. 函数：registry.scheduled(...) 装饰器或 TaskDescriptor.from_function
2. 任务类：继承 BaseTask，设置 schedule 并实现 run
3. 对象方法：scheduled_method 装饰器，通过 SchedulerBuilder.register(obj) 注册
"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from taskbeat.scheduler.parser import parse_schedule
from taskbeat.scheduler.placeholder import Placeholder
from taskbeat.scheduler.schedule import (
    DurationSpec,
    ParsedSchedule,
    RawSchedule,
    ScheduleWarning,
)
from taskbeat.scheduler.time_unit import TimeUnit

SCHEDULE_ATTR = "__taskbeat_schedule__"


class TaskKind(str, Enum):
    """任务声明方式"""

    FUNCTION = "function"
    RUNNABLE = "runnable"
    METHOD = "method"


@dataclass(frozen=True)
class TaskSchedule:
    """任务调度声明

    cron / fixed_rate / fixed_delay 必须且只能指定一个。

    Attributes:
        cron: cron 表达式（5 段或秒在首位的 6 段）或占位符
        fixed_rate: 固定频率间隔，整数（单位 time_unit，默认毫秒）、带后缀字符串（如 "5s"）或占位符
        fixed_delay: 固定延迟间隔，格式同 fixed_rate
        zone: cron 时区（IANA 名或 "local"），仅对 cron 有效
        time_unit: 无后缀数值的单位，仅对间隔任务有效，不能使用占位符
        initial_delay: 首次执行前的延迟，格式同间隔，允许为 0
        enabled: 是否启用，布尔值或占位符（如 "${jobs.sync.enabled:true}"）

    Example:
        TaskSchedule(fixed_rate="${app.interval:5s}")
        TaskSchedule(cron="0 0 2 * * *", zone="Asia/Shanghai")
        TaskSchedule(fixed_delay=30, time_unit=TimeUnit.SECONDS, initial_delay=5)
    """

    cron: str | None = None
    fixed_rate: int | str | None = None
    fixed_delay: int | str | None = None
    zone: str | None = None
    time_unit: TimeUnit | str | None = None
    initial_delay: int | str | None = None
    enabled: bool | str = True

    def parse(self, task_name: str | None = None) -> ParsedSchedule:
        """校验并解析声明

        Raises:
            ScheduleSpecError: 声明错误
        """
        return parse_schedule(self, task_name)


class TaskResultStatus(str, Enum):
    """任务执行结果状态"""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class TaskResult:
    """任务执行结果

    任务体可以返回 TaskResult，也可以不返回（视为成功）。

    Attributes:
        status: 执行状态
        message: 结果描述
        data: 附加数据（如处理条数、耗时等）
        error: 错误信息（失败时）
    """

    status: TaskResultStatus
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @classmethod
    def success(cls, message: str = "执行成功", **data) -> "TaskResult":
        return cls(status=TaskResultStatus.SUCCESS, message=message, data=data)

    @classmethod
    def failed(cls, error: str, message: str = "执行失败") -> "TaskResult":
        return cls(status=TaskResultStatus.FAILED, message=message, error=error)

    @classmethod
    def skipped(cls, message: str = "跳过执行") -> "TaskResult":
        return cls(status=TaskResultStatus.SKIPPED, message=message)


@dataclass(frozen=True)
class TaskDescriptor:
    """任务描述符

    声明期构造完成后不可变，包含任务名、调度声明（可能含占位符）和任务体。

    Attributes:
        name: 任务名称
        kind: 声明方式
        raw_schedule: 调度声明
        body: 无参可调用对象，同步或异步均可
        enabled: 是否启用，布尔值或占位符
        initial_delay: 首次执行前延迟
        time_unit_hint: 声明的 time_unit，用于解析占位符间隔
        description: 任务描述
        warnings: 声明警告
    """

    name: str
    kind: TaskKind
    raw_schedule: RawSchedule
    body: Callable[[], Any]
    enabled: bool | Placeholder = True
    initial_delay: DurationSpec | None = None
    time_unit_hint: TimeUnit | None = None
    description: str = ""
    warnings: tuple[ScheduleWarning, ...] = ()

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.body)

    @classmethod
    def from_schedule(
        cls,
        name: str,
        body: Callable[[], Any],
        schedule: TaskSchedule,
        *,
        kind: TaskKind = TaskKind.FUNCTION,
        description: str = "",
    ) -> "TaskDescriptor":
        """由调度声明构造描述符

        Raises:
            ScheduleSpecError: 声明错误
        """
        if not name:
            raise ValueError("任务名称不能为空")
        if not callable(body):
            raise TypeError(f"任务 '{name}' 的 body 必须是可调用对象")

        parsed = schedule.parse(name)
        return cls(
            name=name,
            kind=kind,
            raw_schedule=parsed.raw_schedule,
            body=body,
            enabled=parsed.enabled,
            initial_delay=parsed.initial_delay,
            time_unit_hint=parsed.time_unit_hint,
            description=description,
            warnings=parsed.warnings,
        )

    @classmethod
    def create(
        cls,
        name: str,
        body: Callable[[], Any],
        *,
        kind: TaskKind = TaskKind.FUNCTION,
        description: str = "",
        **schedule_fields: Any,
    ) -> "TaskDescriptor":
        """以关键字参数声明调度并构造描述符

        Example:
            TaskDescriptor.create("heartbeat", send_heartbeat, fixed_rate="5s")
        """
        return cls.from_schedule(
            name,
            body,
            TaskSchedule(**schedule_fields),
            kind=kind,
            description=description,
        )

    @classmethod
    def from_function(
        cls,
        func: Callable[[], Any],
        *,
        name: str | None = None,
        description: str | None = None,
        **schedule_fields: Any,
    ) -> "TaskDescriptor":
        """由函数构造描述符，名称默认取函数名，描述默认取 docstring 首行"""
        return cls.create(
            name or func.__name__,
            func,
            kind=TaskKind.FUNCTION,
            description=_describe(func) if description is None else description,
            **schedule_fields,
        )

    @classmethod
    def from_object(cls, obj: Any) -> list["TaskDescriptor"]:
        """收集对象上所有 scheduled_method 方法

        任务名默认为 "类名.方法名"。
        """
        descriptors = []
        for attr_name, member in inspect.getmembers(type(obj)):
            declared = getattr(member, SCHEDULE_ATTR, None)
            if declared is None:
                continue
            schedule, name, description = declared
            descriptors.append(
                cls.from_schedule(
                    name or f"{type(obj).__name__}.{attr_name}",
                    getattr(obj, attr_name),
                    schedule,
                    kind=TaskKind.METHOD,
                    description=description or _describe(member),
                )
            )
        return descriptors


def scheduled_method(
    *,
    name: str | None = None,
    description: str | None = None,
    **schedule_fields: Any,
) -> Callable[[Callable], Callable]:
    """标记对象方法为定时任务

    声明在装饰时校验，对象通过 SchedulerBuilder.register(obj) 注册。

    Example:
        class Reporter:
            @scheduled_method(cron="0 0 9 * * *")
            async def daily_report(self):
                ...
    """
    schedule = TaskSchedule(**schedule_fields)

    def decorator(func: Callable) -> Callable:
        schedule.parse(name or func.__qualname__)
        setattr(func, SCHEDULE_ATTR, (schedule, name, description))
        return func

    return decorator


def _describe(func: Any) -> str:
    doc = inspect.getdoc(func) or ""
    return doc.strip().splitlines()[0] if doc.strip() else ""


class BaseTask(ABC):
    """任务抽象基类

    子类设置 name、schedule 并实现 run 方法，通过 SchedulerBuilder.register 注册。

    Example:
        class CleanupTask(BaseTask):
            name = "cleanup"
            description = "清理过期数据"
            schedule = TaskSchedule(cron="0 0 3 * * *", zone="Asia/Shanghai")

            async def run(self) -> TaskResult:
                removed = await purge_expired()
                return TaskResult.success("完成", removed=removed)
    """

    name: str
    description: str = ""
    schedule: TaskSchedule

    def __init_subclass__(cls, **kwargs: Any) -> None:
        """类定义时校验本类声明的 schedule

        Raises:
            TypeError: schedule 不是 TaskSchedule
            ScheduleSpecError: 声明错误
        """
        super().__init_subclass__(**kwargs)
        schedule = cls.__dict__.get("schedule")
        if schedule is None:
            return
        if not isinstance(schedule, TaskSchedule):
            raise TypeError(f"{cls.__name__}.schedule 必须是 TaskSchedule，收到 {type(schedule).__name__}")
        schedule.parse(getattr(cls, "name", None) or cls.__qualname__)

    @abstractmethod
    async def run(self) -> TaskResult | None:
        """执行任务

        Returns:
            TaskResult，返回 None 视为成功

        Raises:
            TaskAborted: 不可恢复的故障，终止该任务的调度
        """
        pass

    def to_descriptor(self) -> TaskDescriptor:
        """转换为任务描述符

        Raises:
            ScheduleSpecError: 声明错误
        """
        return TaskDescriptor.from_schedule(
            self.name,
            self.run,
            self.schedule,
            kind=TaskKind.RUNNABLE,
            description=self.description,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={getattr(self, 'name', None)}>"
