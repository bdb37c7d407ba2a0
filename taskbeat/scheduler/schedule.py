"""调度声明与解析结果的数据结构

- RawSchedule（CronSchedule / FixedRateSchedule / FixedDelaySchedule）：声明期产物，可能包含占位符
- ResolvedSchedule（ResolvedCron / ResolvedFixedRate / ResolvedFixedDelay）：start() 时解析得到的具体值
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Union

from taskbeat.scheduler.placeholder import Placeholder
from taskbeat.scheduler.time_unit import TimeUnit

if TYPE_CHECKING:
    from taskbeat.scheduler.tasks.base import TaskDescriptor


class ScheduleKind(str, Enum):
    """调度类型"""

    CRON = "cron"
    FIXED_RATE = "fixed_rate"
    FIXED_DELAY = "fixed_delay"


class WarningCode(str, Enum):
    """非致命的声明警告"""

    W001 = "W001"  # 后缀与 time_unit 同时指定，以后缀为准
    W002 = "W002"  # cron 任务指定了 time_unit，已忽略
    W003 = "W003"  # 间隔任务指定了 zone，已忽略


@dataclass(frozen=True)
class ScheduleWarning:
    code: WarningCode
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


@dataclass(frozen=True)
class CronSchedule:
    """cron 调度

    Attributes:
        expr: cron 表达式（5 段，或秒在首位的 6 段）或占位符
        zone: IANA 时区名、"local" 或占位符
    """

    kind: ClassVar[ScheduleKind] = ScheduleKind.CRON

    expr: str | Placeholder
    zone: str | Placeholder = "local"


@dataclass(frozen=True)
class FixedRateSchedule:
    """固定频率调度，不等待上一次执行结束

    Attributes:
        value: 正整数间隔（单位为 unit）或占位符（单位延迟到解析时确定）
        unit: 单位
    """

    kind: ClassVar[ScheduleKind] = ScheduleKind.FIXED_RATE

    value: int | Placeholder
    unit: TimeUnit = TimeUnit.MILLISECONDS


@dataclass(frozen=True)
class FixedDelaySchedule:
    """固定延迟调度，上一次执行结束后再等待间隔"""

    kind: ClassVar[ScheduleKind] = ScheduleKind.FIXED_DELAY

    value: int | Placeholder
    unit: TimeUnit = TimeUnit.MILLISECONDS


RawSchedule = Union[CronSchedule, FixedRateSchedule, FixedDelaySchedule]
IntervalSchedule = Union[FixedRateSchedule, FixedDelaySchedule]


@dataclass(frozen=True)
class DurationSpec:
    """时长声明（如 initial_delay）

    value 为非负整数或占位符。
    """

    value: int | Placeholder
    unit: TimeUnit = TimeUnit.MILLISECONDS


@dataclass(frozen=True)
class ParsedSchedule:
    """声明解析结果"""

    raw_schedule: RawSchedule
    enabled: bool | Placeholder = True
    initial_delay: DurationSpec | None = None
    time_unit_hint: TimeUnit | None = None
    warnings: tuple[ScheduleWarning, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ResolvedCron:
    kind: ClassVar[ScheduleKind] = ScheduleKind.CRON

    expr: str
    zone: str = "local"

    def describe(self) -> str:
        return f"cron '{self.expr}' ({self.zone})"


@dataclass(frozen=True)
class ResolvedFixedRate:
    kind: ClassVar[ScheduleKind] = ScheduleKind.FIXED_RATE

    interval_ms: int

    def describe(self) -> str:
        return f"fixed_rate {self.interval_ms}ms"


@dataclass(frozen=True)
class ResolvedFixedDelay:
    kind: ClassVar[ScheduleKind] = ScheduleKind.FIXED_DELAY

    interval_ms: int

    def describe(self) -> str:
        return f"fixed_delay {self.interval_ms}ms"


ResolvedSchedule = Union[ResolvedCron, ResolvedFixedRate, ResolvedFixedDelay]


@dataclass(frozen=True)
class ResolvedTask:
    """start() 时解析完成、可交给执行器的任务"""

    descriptor: "TaskDescriptor"
    schedule: ResolvedSchedule
    initial_delay_ms: int = 0

    @property
    def name(self) -> str:
        return self.descriptor.name
