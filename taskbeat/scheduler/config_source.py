"""任务配置源

为占位符解析提供只读的键值查询，优先级：

1. 环境变量：app.jobs.interval -> APP_APP_JOBS_INTERVAL（前缀可配置，点号和连字符转为下划线，全大写）
2. 配置数据：任意嵌套的 dict，按点号路径逐层查找；也接受扁平的 "a.b.c" 键
3. 占位符默认值（由 resolve_placeholder 处理）

Example:
    source = ConfigSource.from_file("config/app.toml")
    source.get("app.jobs.interval")  # "5s"
"""

import json
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from taskbeat.core.config import settings
from taskbeat.core.errors import ConfigFileError, ConfigValueParseFailure
from taskbeat.core.logging import get_logger

logger = get_logger("scheduler.config")

_FORMATS = {
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
}


class ConfigSource:
    """只读配置源

    Attributes:
        env_prefix: 环境变量前缀，为空则不加前缀
    """

    def __init__(
        self,
        data: Mapping[str, Any] | None = None,
        *,
        env_prefix: str | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._data: Mapping[str, Any] = data or {}
        self.env_prefix = settings.CONFIG_ENV_PREFIX if env_prefix is None else env_prefix
        self._environ = os.environ if environ is None else environ

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], **kwargs: Any) -> "ConfigSource":
        return cls(data, **kwargs)

    @classmethod
    def from_file(cls, path: str | Path, format: str | None = None, **kwargs: Any) -> "ConfigSource":
        """从配置文件加载

        Args:
            path: 文件路径
            format: toml / yaml / json，为 None 时按扩展名推断

        Raises:
            ConfigFileError: 文件不存在、格式不支持或内容无法解析
        """
        path = Path(path)
        fmt = (format or _FORMATS.get(path.suffix.lower(), "")).lower()
        if fmt == "yml":
            fmt = "yaml"
        if fmt not in ("toml", "yaml", "json"):
            raise ConfigFileError(str(path), f"不支持的配置格式 '{format or path.suffix}'")

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigFileError(str(path), str(e)) from e

        try:
            if fmt == "toml":
                data = tomllib.loads(text)
            elif fmt == "yaml":
                data = yaml.safe_load(text) or {}
            else:
                data = json.loads(text)
        except (tomllib.TOMLDecodeError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise ConfigFileError(str(path), f"{fmt} 解析失败: {e}") from e

        if not isinstance(data, Mapping):
            raise ConfigFileError(str(path), "顶层必须是键值映射")

        logger.info("加载任务配置文件", path=str(path), format=fmt, keys=len(data))
        return cls(data, **kwargs)

    def env_var_name(self, key: str) -> str:
        """配置键对应的环境变量名"""
        name = key.replace(".", "_").replace("-", "_").upper()
        if self.env_prefix:
            return f"{self.env_prefix.upper()}_{name}"
        return name

    def get(self, key: str) -> str | None:
        """查询配置值

        Returns:
            字符串形式的配置值，不存在返回 None

        Raises:
            ConfigValueParseFailure: 该键对应的是表/列表而不是标量
        """
        env_value = self._environ.get(self.env_var_name(key))
        if env_value is not None:
            return env_value

        value = self._lookup(key)
        if value is None:
            return None
        if isinstance(value, (Mapping, list, tuple)):
            raise ConfigValueParseFailure(value, "标量配置值", key=key, reason="该配置项是表或列表")
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _lookup(self, key: str) -> Any:
        if key in self._data:
            return self._data[key]

        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return None
            node = node[part]
        return node

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __repr__(self) -> str:
        return f"<ConfigSource keys={len(self._data)} env_prefix={self.env_prefix!r}>"
