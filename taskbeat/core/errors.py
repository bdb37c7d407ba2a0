"""统一错误处理

提供标准化的错误结构和调度相关的异常类。

错误分层：
- ScheduleSpecError: 声明期（装饰器/描述符构造）即可发现的调度声明错误
- ConfigError: 需要运行时配置才能发现的解析错误（start() 时抛出）
- StartError: start() 失败（任务配置无效、cron 引擎初始化失败）
- ShutdownTimeout: shutdown() 超时仍有执行器未退出
- TaskAborted: 任务体主动抛出，终止自身执行器
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel


class ErrorPayload(BaseModel):
    """标准错误结构"""

    code: str
    message: str
    data: dict[str, Any] | None = None
    timestamp: str


class TaskbeatError(Exception):
    """基础异常

    使用示例:
        raise TaskbeatError(
            code="task_not_found",
            message="任务不存在",
            data={"task_name": name},
        )
    """

    code: str = "taskbeat_error"

    def __init__(
        self,
        *,
        message: str,
        code: str | None = None,
        data: dict[str, Any] | None = None,
    ):
        if code is not None:
            self.code = code
        self.error_message = message
        self.data = data
        super().__init__(message)

    def to_payload(self) -> ErrorPayload:
        """转换为标准错误结构"""
        return ErrorPayload(
            code=self.code,
            message=self.error_message,
            data=self.data,
            timestamp=datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z",
        )


# ========== 声明期错误 ==========


class ScheduleSpecError(TaskbeatError):
    """调度声明错误（声明期发现）"""

    code = "schedule_spec_invalid"

    def __init__(self, message: str, *, task_name: str | None = None, field: str | None = None, **data: Any):
        self.task_name = task_name
        self.field = field
        super().__init__(
            message=message,
            data={"task_name": task_name, "field": field, **data},
        )


class AmbiguousScheduleKind(ScheduleSpecError):
    """cron / fixed_rate / fixed_delay 必须且只能指定一个"""

    code = "ambiguous_schedule_kind"

    def __init__(self, task_name: str | None, kinds: list[str]):
        if kinds:
            detail = f"同时指定了 {', '.join(kinds)}"
        else:
            detail = "未指定任何调度类型"
        super().__init__(
            f"任务 '{task_name}' 必须且只能指定 cron、fixed_rate、fixed_delay 之一（{detail}）",
            task_name=task_name,
            kinds=kinds,
        )


class MalformedPlaceholder(ScheduleSpecError):
    """占位符格式错误，如缺少右括号的 ${app.interval"""

    code = "malformed_placeholder"

    def __init__(self, value: str, *, task_name: str | None = None, field: str | None = None, reason: str = ""):
        self.value = value
        message = f"配置占位符格式错误: '{value}'"
        if field:
            message += f"（字段 {field}）"
        if reason:
            message += f"，{reason}"
        message += "。正确格式: ${config.key} 或 ${config.key:default}"
        super().__init__(message, task_name=task_name, field=field, value=value)


class AmbiguousSuffixAndPlaceholder(ScheduleSpecError):
    """占位符后紧跟时间后缀（如 ${app.interval}s），解析前无法确定单位"""

    code = "ambiguous_suffix_and_placeholder"

    def __init__(self, value: str, *, task_name: str | None = None, field: str | None = None):
        self.value = value
        super().__init__(
            f"'{value}' 不能将配置占位符与时间后缀混用。"
            "请改用 ${app.interval:5s}（配置值自带后缀）"
            "或 ${app.interval:5} 配合 time_unit",
            task_name=task_name,
            field=field,
            value=value,
        )


class NonCompileTimeTimeUnit(ScheduleSpecError):
    """time_unit 不允许使用配置占位符"""

    code = "non_constant_time_unit"

    def __init__(self, value: str, *, task_name: str | None = None):
        self.value = value
        super().__init__(
            f"time_unit 不能使用配置占位符 '{value}'，请使用 TimeUnit 枚举（如 TimeUnit.SECONDS）"
            "或在间隔值中直接写后缀（如 '5s'）",
            task_name=task_name,
            field="time_unit",
            value=value,
        )


class InvalidUnitSuffix(ScheduleSpecError):
    """无法识别的时间单位后缀（包括大小写错误）"""

    code = "invalid_unit_suffix"

    def __init__(
        self,
        suffix: str,
        *,
        value: str | None = None,
        task_name: str | None = None,
        field: str | None = None,
        hint: str | None = None,
    ):
        self.suffix = suffix
        message = f"无效的时间单位后缀 '{suffix}'"
        if value is not None:
            message += f"（值 '{value}'）"
        message += "。有效后缀: ms/millis/milliseconds, s/sec/seconds, m/min/minutes, h/hr/hours, d/day/days"
        if hint:
            message += f"。{hint}"
        super().__init__(message, task_name=task_name, field=field, suffix=suffix, value=value)


class NonPositiveInterval(ScheduleSpecError):
    """间隔必须大于 0"""

    code = "non_positive_interval"

    def __init__(self, value: Any, *, task_name: str | None = None, field: str | None = None):
        self.value = value
        super().__init__(
            f"间隔必须大于 0，当前值: {value!r}",
            task_name=task_name,
            field=field,
            value=str(value),
        )


class InvalidScheduleValue(ScheduleSpecError):
    """字面量无法解析（类型错误、格式错误、负数延迟等）"""

    code = "invalid_schedule_value"


# ========== 配置解析错误 ==========


class ConfigError(TaskbeatError):
    """配置错误"""

    code = "config_error"


class ConfigFileError(ConfigError):
    """配置文件无法加载或解析"""

    code = "config_file_error"

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(
            message=f"无法加载配置文件 '{path}': {reason}",
            data={"path": path, "reason": reason},
        )


class ConfigKeyMissingNoDefault(ConfigError):
    """配置项不存在且未提供默认值"""

    code = "config_key_missing"

    def __init__(self, key: str, env_var: str | None = None):
        self.key = key
        self.env_var = env_var
        leaf = key.rsplit(".", 1)[-1]
        message = (
            f"配置项 '{key}' 不存在且未提供默认值。"
            f"请在配置文件中添加 {leaf} = \"value\""
        )
        if env_var:
            message += f"，或设置环境变量 {env_var}"
        message += f"，或在占位符中提供默认值: ${{{key}:default}}"
        super().__init__(message=message, data={"key": key, "env_var": env_var})


class ConfigValueParseFailure(ConfigError):
    """解析后的配置值无法转换为目标类型"""

    code = "config_value_invalid"

    def __init__(self, value: Any, target: str, *, key: str | None = None, reason: str | None = None):
        self.value = value
        self.target = target
        self.key = key
        message = f"无法将值 {value!r} 解析为 {target}"
        if key:
            message += f"（配置项 '{key}'）"
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message,
            data={"value": str(value), "target": target, "key": key, "reason": reason},
        )


class InvalidCronExpression(ConfigValueParseFailure):
    """cron 表达式无效"""

    code = "invalid_cron_expression"

    def __init__(self, expr: str, reason: str | None = None):
        super().__init__(expr, "cron 表达式", reason=reason)


class InvalidTimeZone(ConfigValueParseFailure):
    """时区标识无效"""

    code = "invalid_timezone"

    def __init__(self, zone: str):
        super().__init__(zone, "时区", reason="不是有效的 IANA 时区标识，也不是 'local'")


# ========== 启动/关闭错误 ==========


class StartError(TaskbeatError):
    """调度器启动失败"""

    code = "start_failed"


class TaskConfigInvalid(StartError):
    """任务配置无效（包装具体的解析错误）"""

    code = "task_config_invalid"

    def __init__(self, task_name: str, cause: Exception):
        self.task_name = task_name
        self.cause = cause
        if isinstance(cause, TaskbeatError):
            reason, cause_code = cause.error_message, cause.code
        else:
            reason, cause_code = str(cause) or type(cause).__name__, type(cause).__name__
        super().__init__(
            message=f"任务 '{task_name}' 配置无效: {reason}",
            data={"task_name": task_name, "cause": cause_code},
        )


class CronEngineInitError(StartError):
    """cron 引擎初始化失败"""

    code = "cron_engine_init_failed"

    def __init__(self, reason: str):
        super().__init__(message=f"cron 引擎初始化失败: {reason}", data={"reason": reason})


class ShutdownTimeout(TaskbeatError):
    """关闭超时，仍有执行器未退出"""

    code = "shutdown_timeout"

    def __init__(self, timeout: float, pending: list[str]):
        self.timeout = timeout
        self.pending = pending
        super().__init__(
            message=f"关闭超时（{timeout} 秒），仍在运行的任务: {', '.join(pending)}",
            data={"timeout": timeout, "pending": pending},
        )


class TaskAborted(TaskbeatError):
    """任务体不可恢复的故障，终止该任务的执行器（不影响其他任务）"""

    code = "task_aborted"

    def __init__(self, message: str = "任务已中止"):
        super().__init__(message=message)
