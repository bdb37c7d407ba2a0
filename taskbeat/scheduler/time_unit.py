"""时间单位与后缀语法

间隔值可以直接携带单位后缀（如 "5s"、"100ms"、"2h"），后缀区分大小写，只接受小写：

    ms | millis | milliseconds
    s  | sec    | seconds
    m  | min    | minutes
    h  | hr     | hours
    d  | day    | days
"""

import re
from dataclasses import dataclass
from enum import Enum

from taskbeat.core.errors import InvalidScheduleValue, InvalidUnitSuffix


class TimeUnit(str, Enum):
    """时间单位"""

    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def millis(self) -> int:
        """一个单位对应的毫秒数"""
        return _UNIT_MILLIS[self]

    def to_millis(self, value: int) -> int:
        """将该单位下的数值换算为毫秒"""
        return value * self.millis

    @classmethod
    def from_suffix(cls, suffix: str) -> "TimeUnit | None":
        """按后缀语法查找单位，无法识别返回 None"""
        return _SUFFIXES.get(suffix)

    @classmethod
    def parse(cls, value: "TimeUnit | str", *, task_name: str | None = None) -> "TimeUnit":
        """解析 time_unit 参数

        接受 TimeUnit 成员、后缀语法中的任一写法，或枚举名（如 "SECONDS"）。

        Raises:
            InvalidUnitSuffix: 无法识别的单位
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidUnitSuffix(repr(value), task_name=task_name, field="time_unit")

        unit = cls.from_suffix(value)
        if unit is not None:
            return unit
        try:
            return cls[value.upper()]
        except KeyError:
            raise InvalidUnitSuffix(
                value,
                task_name=task_name,
                field="time_unit",
                hint=suffix_hint(value),
            ) from None


_UNIT_MILLIS = {
    TimeUnit.MILLISECONDS: 1,
    TimeUnit.SECONDS: 1_000,
    TimeUnit.MINUTES: 60_000,
    TimeUnit.HOURS: 3_600_000,
    TimeUnit.DAYS: 86_400_000,
}

_SUFFIXES = {
    "ms": TimeUnit.MILLISECONDS,
    "millis": TimeUnit.MILLISECONDS,
    "milliseconds": TimeUnit.MILLISECONDS,
    "s": TimeUnit.SECONDS,
    "sec": TimeUnit.SECONDS,
    "seconds": TimeUnit.SECONDS,
    "m": TimeUnit.MINUTES,
    "min": TimeUnit.MINUTES,
    "minutes": TimeUnit.MINUTES,
    "h": TimeUnit.HOURS,
    "hr": TimeUnit.HOURS,
    "hours": TimeUnit.HOURS,
    "d": TimeUnit.DAYS,
    "day": TimeUnit.DAYS,
    "days": TimeUnit.DAYS,
}

_DURATION_RE = re.compile(r"^([+-]?\d+)([A-Za-z]*)$")


def suffix_hint(suffix: str) -> str | None:
    """大小写写错时给出提示，如 'S' -> "是否想写 's'？" """
    lowered = suffix.lower()
    if lowered != suffix and lowered in _SUFFIXES:
        return f"后缀区分大小写，是否想写 '{lowered}'？"
    return None


@dataclass(frozen=True)
class ParsedDuration:
    """解析后的时长字面量

    Attributes:
        value: 数值部分（可能为 0 或负数，由调用方校验）
        unit: 后缀指定的单位，未写后缀为 None
    """

    value: int
    unit: TimeUnit | None = None

    def to_millis(self, default_unit: TimeUnit = TimeUnit.MILLISECONDS) -> int:
        return (self.unit or default_unit).to_millis(self.value)


def parse_duration(text: str, *, field: str | None = None, task_name: str | None = None) -> ParsedDuration:
    """解析 "5s"、"100" 形式的时长字面量（数值与后缀之间不允许空格）

    Args:
        text: 时长文本
        field: 所属字段名，用于错误信息
        task_name: 所属任务名，用于错误信息

    Returns:
        ParsedDuration

    Raises:
        InvalidScheduleValue: 格式无法识别
        InvalidUnitSuffix: 后缀无法识别（包括大小写错误）
    """
    match = _DURATION_RE.match(text.strip())
    if not match:
        raise InvalidScheduleValue(
            f"无法解析时长 '{text}'，期望形如 5000、5s、10m",
            task_name=task_name,
            field=field,
            value=text,
        )

    value = int(match.group(1))
    suffix = match.group(2)
    if not suffix:
        return ParsedDuration(value=value)

    unit = TimeUnit.from_suffix(suffix)
    if unit is None:
        raise InvalidUnitSuffix(
            suffix,
            value=text,
            task_name=task_name,
            field=field,
            hint=suffix_hint(suffix),
        )
    return ParsedDuration(value=value, unit=unit)
