"""调度声明解析

在声明期（装饰器应用、描述符构造时）校验 TaskSchedule，
尽早发现不依赖运行时配置即可判断的错误；占位符留到 start() 时解析。
"""

from typing import TYPE_CHECKING, Any

from taskbeat.core.errors import (
    AmbiguousScheduleKind,
    AmbiguousSuffixAndPlaceholder,
    InvalidScheduleValue,
    MalformedPlaceholder,
    NonCompileTimeTimeUnit,
    NonPositiveInterval,
)
from taskbeat.core.logging import get_logger
from taskbeat.scheduler.placeholder import (
    Placeholder,
    check_placeholders,
    contains_placeholder,
    parse_placeholder,
)
from taskbeat.scheduler.schedule import (
    CronSchedule,
    DurationSpec,
    FixedDelaySchedule,
    FixedRateSchedule,
    ParsedSchedule,
    RawSchedule,
    ScheduleKind,
    ScheduleWarning,
    WarningCode,
)
from taskbeat.scheduler.time_unit import TimeUnit, parse_duration

if TYPE_CHECKING:
    from taskbeat.scheduler.tasks.base import TaskSchedule

logger = get_logger("scheduler.parser")

_KIND_FIELDS = ("cron", "fixed_rate", "fixed_delay")
_STRING_FIELDS = ("cron", "fixed_rate", "fixed_delay", "zone", "time_unit", "initial_delay", "enabled")


def parse_schedule(schedule: "TaskSchedule", task_name: str | None = None) -> ParsedSchedule:
    """解析调度声明

    Args:
        schedule: 调度声明
        task_name: 任务名称，用于错误信息和日志

    Returns:
        ParsedSchedule，其中 warnings 为非致命警告（已记录日志）

    Raises:
        ScheduleSpecError: 声明错误（调度类型不唯一、占位符格式错误、后缀无效、间隔非正等）
    """
    kinds = [name for name in _KIND_FIELDS if getattr(schedule, name) is not None]
    if len(kinds) != 1:
        raise AmbiguousScheduleKind(task_name, kinds)
    kind = ScheduleKind(kinds[0])

    for name in _STRING_FIELDS:
        value = getattr(schedule, name)
        if isinstance(value, str):
            check_placeholders(value, task_name=task_name, field=name)

    time_unit = _parse_time_unit(schedule.time_unit, task_name)
    warnings: list[ScheduleWarning] = []

    if kind == ScheduleKind.CRON:
        raw_schedule: RawSchedule = CronSchedule(
            expr=_parse_cron_expr(schedule.cron, task_name),
            zone=_parse_zone(schedule.zone, task_name),
        )
        if schedule.time_unit is not None:
            warnings.append(
                ScheduleWarning(
                    code=WarningCode.W002,
                    field="time_unit",
                    message="cron 任务不使用 time_unit，已忽略",
                )
            )
        unit_hint = None
    else:
        if schedule.zone is not None:
            warnings.append(
                ScheduleWarning(
                    code=WarningCode.W003,
                    field="zone",
                    message=f"{kind.value} 任务不使用 zone，按本地时钟执行，已忽略",
                )
            )
        value, unit = parse_interval_value(
            getattr(schedule, kind.value),
            field=kind.value,
            time_unit=time_unit,
            task_name=task_name,
            warnings=warnings,
        )
        schedule_cls = FixedRateSchedule if kind == ScheduleKind.FIXED_RATE else FixedDelaySchedule
        raw_schedule = schedule_cls(value=value, unit=unit)
        unit_hint = time_unit

    initial_delay = None
    if schedule.initial_delay is not None:
        value, unit = parse_interval_value(
            schedule.initial_delay,
            field="initial_delay",
            time_unit=unit_hint,
            task_name=task_name,
            warnings=warnings,
            allow_zero=True,
        )
        initial_delay = DurationSpec(value=value, unit=unit)

    for warning in warnings:
        logger.warning(
            "调度声明警告",
            task_name=task_name,
            code=warning.code.value,
            field=warning.field,
            detail=warning.message,
        )

    return ParsedSchedule(
        raw_schedule=raw_schedule,
        enabled=_parse_enabled(schedule.enabled, task_name),
        initial_delay=initial_delay,
        time_unit_hint=unit_hint,
        warnings=tuple(warnings),
    )


def parse_interval_value(
    value: Any,
    *,
    field: str,
    time_unit: TimeUnit | None,
    task_name: str | None = None,
    warnings: list[ScheduleWarning] | None = None,
    allow_zero: bool = False,
) -> tuple[int | Placeholder, TimeUnit]:
    """解析间隔/延迟值

    Returns:
        (数值或占位符, 单位)。占位符的单位为 time_unit 或毫秒，解析时若配置值自带后缀则以后缀为准。
    """
    default_unit = time_unit or TimeUnit.MILLISECONDS

    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise InvalidScheduleValue(
            f"{field} 必须是整数、带单位后缀的字符串或配置占位符，当前类型: {type(value).__name__}",
            task_name=task_name,
            field=field,
            value=repr(value),
        )

    if isinstance(value, int):
        check_magnitude(value, field=field, task_name=task_name, allow_zero=allow_zero)
        return value, default_unit

    if contains_placeholder(value):
        placeholder = parse_placeholder(value)
        if placeholder is None:
            raise AmbiguousSuffixAndPlaceholder(value, task_name=task_name, field=field)
        return placeholder, default_unit

    parsed = parse_duration(value, field=field, task_name=task_name)
    check_magnitude(parsed.value, field=field, task_name=task_name, allow_zero=allow_zero)
    if parsed.unit is None:
        return parsed.value, default_unit

    if time_unit is not None and warnings is not None:
        warnings.append(
            ScheduleWarning(
                code=WarningCode.W001,
                field=field,
                message=f"'{value}' 已带单位后缀，忽略 time_unit={time_unit.value}",
            )
        )
    return parsed.value, parsed.unit


def check_magnitude(value: int, *, field: str, task_name: str | None = None, allow_zero: bool = False) -> None:
    """校验数值范围：间隔必须大于 0，延迟不能为负"""
    if allow_zero:
        if value < 0:
            raise InvalidScheduleValue(
                f"{field} 不能为负数，当前值: {value}",
                task_name=task_name,
                field=field,
                value=str(value),
            )
    elif value <= 0:
        raise NonPositiveInterval(value, task_name=task_name, field=field)


def _parse_time_unit(value: Any, task_name: str | None) -> TimeUnit | None:
    if value is None:
        return None
    if isinstance(value, str) and contains_placeholder(value):
        raise NonCompileTimeTimeUnit(value, task_name=task_name)
    return TimeUnit.parse(value, task_name=task_name)


def _parse_string_or_placeholder(value: Any, *, field: str, task_name: str | None) -> str | Placeholder:
    if not isinstance(value, str):
        raise InvalidScheduleValue(
            f"{field} 必须是字符串，当前类型: {type(value).__name__}",
            task_name=task_name,
            field=field,
            value=repr(value),
        )
    if contains_placeholder(value):
        placeholder = parse_placeholder(value)
        if placeholder is None:
            raise MalformedPlaceholder(
                value,
                task_name=task_name,
                field=field,
                reason="占位符必须是完整的值，不能与其他文本拼接",
            )
        return placeholder

    text = value.strip()
    if not text:
        raise InvalidScheduleValue(f"{field} 不能为空", task_name=task_name, field=field, value=value)
    return text


def _parse_cron_expr(value: Any, task_name: str | None) -> str | Placeholder:
    return _parse_string_or_placeholder(value, field="cron", task_name=task_name)


def _parse_zone(value: Any, task_name: str | None) -> str | Placeholder:
    if value is None:
        return "local"
    return _parse_string_or_placeholder(value, field="zone", task_name=task_name)


def _parse_enabled(value: Any, task_name: str | None) -> bool | Placeholder:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if contains_placeholder(value):
            placeholder = parse_placeholder(value)
            if placeholder is not None:
                return placeholder
        elif value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"

    raise InvalidScheduleValue(
        f"enabled 必须是布尔值、'true'/'false' 或配置占位符，当前值: {value!r}",
        task_name=task_name,
        field="enabled",
        value=repr(value),
    )
