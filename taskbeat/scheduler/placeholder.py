"""配置占位符

语法：
    ${key}           配置项不存在时报错
    ${key:default}   配置项不存在时使用默认值

key 为点号分隔的路径（如 app.jobs.interval），只在第一个 ':' 处切分 key 与默认值，
因此默认值本身可以包含 ':'（如 ${app.cron:0 0 * * * *} 或 ${app.url:http://x}）。
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from taskbeat.core.errors import ConfigKeyMissingNoDefault, MalformedPlaceholder
from taskbeat.core.logging import get_logger

if TYPE_CHECKING:
    from taskbeat.scheduler.config_source import ConfigSource

logger = get_logger("scheduler.config")

_WHOLE_RE = re.compile(r"^\$\{([^}]*)\}$")
_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+(\.[A-Za-z0-9_-]+)*$")


@dataclass(frozen=True)
class Placeholder:
    """配置占位符

    Attributes:
        key: 配置键（点号路径）
        default: 默认值，未提供为 None
    """

    key: str
    default: str | None = None

    @property
    def expr(self) -> str:
        if self.default is None:
            return f"${{{self.key}}}"
        return f"${{{self.key}:{self.default}}}"

    def __str__(self) -> str:
        return self.expr


def contains_placeholder(text: str) -> bool:
    return "${" in text


def check_placeholders(text: str, *, task_name: str | None = None, field: str | None = None) -> None:
    """检查字符串中所有 ${...} 片段的格式

    Raises:
        MalformedPlaceholder: 缺少右括号、key 为空、key 不是点号路径或嵌套占位符
    """
    start = text.find("${")
    while start != -1:
        end = text.find("}", start + 2)
        if end == -1:
            raise MalformedPlaceholder(text, task_name=task_name, field=field, reason="缺少右括号 '}'")

        body = text[start + 2 : end]
        if "${" in body:
            raise MalformedPlaceholder(text, task_name=task_name, field=field, reason="不支持嵌套占位符")

        key = body.partition(":")[0]
        if not key:
            raise MalformedPlaceholder(text, task_name=task_name, field=field, reason="配置键为空")
        if not _KEY_RE.match(key):
            raise MalformedPlaceholder(
                text,
                task_name=task_name,
                field=field,
                reason=f"配置键 '{key}' 不是点号分隔的路径",
            )
        start = text.find("${", end + 1)


def parse_placeholder(text: str) -> Placeholder | None:
    """整个字符串恰好是一个占位符时返回 Placeholder，否则返回 None

    调用前应先通过 check_placeholders 校验格式。
    """
    match = _WHOLE_RE.match(text.strip())
    if not match:
        return None
    key, sep, default = match.group(1).partition(":")
    return Placeholder(key=key, default=default if sep else None)


def resolve_placeholder(expr: "str | Placeholder", source: "ConfigSource") -> str:
    """将占位符解析为字符串

    查找顺序：环境变量 > 配置源 > 占位符默认值。

    Args:
        expr: 字面量或占位符（字符串形式或 Placeholder）
        source: 配置源

    Returns:
        解析后的字符串，字面量原样返回

    Raises:
        ConfigKeyMissingNoDefault: 配置项不存在且未提供默认值
    """
    if isinstance(expr, str):
        placeholder = parse_placeholder(expr)
        if placeholder is None:
            return expr
    else:
        placeholder = expr

    value = source.get(placeholder.key)
    if value is not None:
        return value

    if placeholder.default is None:
        raise ConfigKeyMissingNoDefault(placeholder.key, env_var=source.env_var_name(placeholder.key))

    logger.warning(
        "配置项未找到，使用默认值",
        key=placeholder.key,
        default=placeholder.default,
    )
    return placeholder.default
