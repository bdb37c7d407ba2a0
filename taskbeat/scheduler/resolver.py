"""调度解析

start() 时将声明（可能含占位符）解析为具体的调度参数：
占位符先解析为字符串，再按字段转换为布尔值、毫秒数、cron 表达式或时区。
"""

from taskbeat.core.errors import (
    ConfigValueParseFailure,
    InvalidScheduleValue,
    InvalidUnitSuffix,
    NonPositiveInterval,
)
from taskbeat.core.logging import get_logger
from taskbeat.scheduler.config_source import ConfigSource
from taskbeat.scheduler.cron import CronEngine, is_local_zone, load_zone
from taskbeat.scheduler.placeholder import Placeholder, resolve_placeholder
from taskbeat.scheduler.schedule import (
    CronSchedule,
    DurationSpec,
    FixedRateSchedule,
    RawSchedule,
    ResolvedCron,
    ResolvedFixedDelay,
    ResolvedFixedRate,
    ResolvedSchedule,
    ResolvedTask,
    WarningCode,
)
from taskbeat.scheduler.tasks.base import TaskDescriptor
from taskbeat.scheduler.time_unit import TimeUnit, parse_duration

logger = get_logger("scheduler.resolver")

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}


def resolve_enabled(value: bool | Placeholder, source: ConfigSource) -> bool:
    """解析 enabled

    Raises:
        ConfigKeyMissingNoDefault: 配置项不存在且无默认值
        ConfigValueParseFailure: 不是布尔值
    """
    if isinstance(value, bool):
        return value

    text = resolve_placeholder(value, source).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigValueParseFailure(
        text,
        "布尔值",
        key=value.key,
        reason="可选值: true/false/1/0/yes/no/on/off",
    )


def resolve_duration(
    value: int | Placeholder,
    unit: TimeUnit,
    source: ConfigSource,
    *,
    field: str,
    task_name: str | None = None,
    time_unit_hint: TimeUnit | None = None,
    allow_zero: bool = False,
) -> int:
    """解析时长为毫秒

    占位符解析出的值若自带后缀，以后缀为准（同时指定了 time_unit 时记录 W001 警告），
    否则使用声明时确定的单位。

    Raises:
        ConfigKeyMissingNoDefault: 配置项不存在且无默认值
        ConfigValueParseFailure: 解析值不是合法时长
        NonPositiveInterval: 间隔不大于 0
    """
    if not isinstance(value, Placeholder):
        return unit.to_millis(value)

    text = resolve_placeholder(value, source)
    try:
        parsed = parse_duration(text, field=field, task_name=task_name)
    except (InvalidScheduleValue, InvalidUnitSuffix) as e:
        raise ConfigValueParseFailure(text, "时长", key=value.key, reason=e.error_message) from e

    if parsed.unit is not None and time_unit_hint is not None:
        logger.warning(
            "调度声明警告",
            task_name=task_name,
            code=WarningCode.W001.value,
            field=field,
            detail=f"配置值 '{text}' 已带单位后缀，忽略 time_unit={time_unit_hint.value}",
        )

    if parsed.value < 0 or (parsed.value == 0 and not allow_zero):
        if allow_zero:
            raise ConfigValueParseFailure(text, "时长", key=value.key, reason="不能为负数")
        raise NonPositiveInterval(parsed.value, task_name=task_name, field=field)

    return parsed.to_millis(unit)


def resolve_schedule(
    raw: RawSchedule,
    source: ConfigSource,
    cron_engine: CronEngine,
    *,
    task_name: str | None = None,
    time_unit_hint: TimeUnit | None = None,
) -> ResolvedSchedule:
    """解析调度声明

    Raises:
        ConfigError: 配置项缺失或配置值无法转换
        NonPositiveInterval: 解析后的间隔不大于 0
    """
    if isinstance(raw, CronSchedule):
        expr = resolve_placeholder(raw.expr, source).strip()
        cron_engine.validate(expr)

        zone = resolve_placeholder(raw.zone, source).strip()
        load_zone(zone)
        if is_local_zone(zone):
            zone = "local"
        return ResolvedCron(expr=expr, zone=zone)

    interval_ms = resolve_duration(
        raw.value,
        raw.unit,
        source,
        field=raw.kind.value,
        task_name=task_name,
        time_unit_hint=time_unit_hint,
    )
    if isinstance(raw, FixedRateSchedule):
        return ResolvedFixedRate(interval_ms=interval_ms)
    return ResolvedFixedDelay(interval_ms=interval_ms)


def resolve_task(
    descriptor: TaskDescriptor,
    source: ConfigSource,
    cron_engine: CronEngine,
) -> ResolvedTask | None:
    """解析单个任务

    Returns:
        ResolvedTask；任务被禁用时返回 None（不会解析其调度）
    """
    if not resolve_enabled(descriptor.enabled, source):
        logger.debug("任务已禁用，跳过", task_name=descriptor.name)
        return None

    schedule = resolve_schedule(
        descriptor.raw_schedule,
        source,
        cron_engine,
        task_name=descriptor.name,
        time_unit_hint=descriptor.time_unit_hint,
    )

    initial_delay_ms = 0
    delay: DurationSpec | None = descriptor.initial_delay
    if delay is not None:
        initial_delay_ms = resolve_duration(
            delay.value,
            delay.unit,
            source,
            field="initial_delay",
            task_name=descriptor.name,
            time_unit_hint=descriptor.time_unit_hint,
            allow_zero=True,
        )

    return ResolvedTask(descriptor=descriptor, schedule=schedule, initial_delay_ms=initial_delay_ms)
