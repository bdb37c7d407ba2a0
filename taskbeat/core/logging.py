"""日志系统 - 使用 loguru + rich

支持配置模式:
- simple: 简洁模式，只显示关键信息
- detailed: 详细模式，显示调用位置、上下文和完整堆栈
- json: JSON 格式，适合生产环境日志收集

使用方式:
    from taskbeat.core.logging import get_logger

    logger = get_logger("scheduler.core")
    logger.info("任务调度器已启动", task_count=3)
    logger.exception("任务执行异常", task_name="sync")
"""

import asyncio
import json
import sys
import traceback
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger as loguru_logger
from rich.console import Console
from rich.traceback import install as install_rich_traceback

from taskbeat.core.config import settings


class LogLevel(str, Enum):
    """日志级别"""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogMode(str, Enum):
    """日志模式"""

    SIMPLE = "simple"  # 简洁模式
    DETAILED = "detailed"  # 详细模式
    JSON = "json"  # JSON 模式（生产环境）


# Rich 控制台
console = Console(stderr=True, color_system="auto")


def _safe_for_logging(value: Any, *, _level: int = 0) -> Any:
    """将任意对象转换为可序列化的结构，避免 loguru enqueue/serialize 报错。"""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value

    # asyncio Future/Task 等不可 picklable
    if isinstance(value, (asyncio.Future, asyncio.Task)):
        return repr(value)

    if isinstance(value, Enum):
        return value.value

    if isinstance(value, dict):
        if _level >= 4:
            return "{...}"
        return {str(k): _safe_for_logging(v, _level=_level + 1) for k, v in value.items()}

    if isinstance(value, (list, tuple, set)):
        if _level >= 4:
            return ["..."]
        return [_safe_for_logging(v, _level=_level + 1) for v in value]

    if isinstance(value, Path):
        return str(value)

    # Pydantic 模型
    if hasattr(value, "model_dump"):
        try:
            return _safe_for_logging(value.model_dump(), _level=_level + 1)
        except Exception:
            return repr(value)

    # 兜底：字符串化（限制长度避免巨日志）
    text = repr(value)
    if len(text) > 2000:
        return text[:2000] + "..."
    return text


def _escape(text: str) -> str:
    """转义特殊字符，避免 colorizer 将其误认为格式指令"""
    return text.replace("<", "\\<").replace(">", "\\>").replace("{", "{{").replace("}", "}}")


def _relative_file(record: dict) -> str | None:
    file_obj = record.get("file")
    file_path_str = getattr(file_obj, "path", None)
    if not file_path_str:
        return getattr(file_obj, "name", None)
    try:
        return str(Path(file_path_str).resolve().relative_to(Path.cwd()))
    except ValueError:
        return getattr(file_obj, "name", None)


def format_simple(record: dict) -> str:
    """简洁格式"""
    level = record["level"].name
    module = record.get("extra", {}).get("module", "taskbeat")

    color_map = {
        "DEBUG": "dim",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold red",
    }
    color = color_map.get(level, "white")

    return f"<{color}>[{module}]</{color}> {_escape(record['message'])}\n"


def format_detailed(record: dict) -> str:
    """详细格式"""
    level = record["level"].name
    time = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
    extra = record.get("extra", {})
    module = extra.get("module", "taskbeat")

    file = _relative_file(record) or ""
    line = record.get("line", "")
    function = record.get("function", "")

    color_map = {
        "DEBUG": "dim cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold red on white",
    }
    color = color_map.get(level, "white")

    header = f"<dim>{time}</dim> <{color}>{level:8}</{color}>"
    location = f"<cyan>{file}:{line}</cyan> in <blue>{function}</blue>"
    module_tag = f"<magenta>[{module}]</magenta>"

    # 额外上下文
    context_keys = [k for k in extra if k != "module"]
    context = ""
    if context_keys:
        ctx_parts = [f"{k}={_escape(repr(extra[k]))}" for k in context_keys]
        context = f" <dim>| {', '.join(ctx_parts)}</dim>"

    result = f"{header} {module_tag} {location}{context}\n    → {_escape(record['message'])}\n"

    if record.get("exception"):
        exc_type, exc_value, exc_tb = record["exception"]
        if exc_value:
            tb_str = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
            # loguru 的 formatter 仍会对返回字符串做 format_map，因此必须转义大括号
            result += f"\n<red>{_escape(tb_str)}</red>\n"

    return result


def format_json(record: dict) -> str:
    """JSON 格式"""
    extra = record.get("extra", {})

    log_entry = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": extra.get("module", "taskbeat"),
        "file": _relative_file(record),
        "line": record.get("line", 0),
        "function": record.get("function", ""),
    }

    for k, v in extra.items():
        if k not in ("module", "file", "line", "function"):
            try:
                json.dumps(v)
                log_entry[k] = v
            except (TypeError, ValueError):
                log_entry[k] = str(v)

    if record.get("exception"):
        exc_type, exc_value, exc_tb = record["exception"]
        if exc_value:
            log_entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

    # 返回值会再经过标签解析和 format_map，需转义
    return _escape(json.dumps(log_entry, ensure_ascii=False, default=str)) + "\n"


class Logger:
    """统一日志接口"""

    def __init__(self) -> None:
        self._configured = False
        self._mode = LogMode.SIMPLE
        self._level = LogLevel.INFO

    @property
    def mode(self) -> LogMode:
        return self._mode

    @property
    def level(self) -> LogLevel:
        return self._level

    def configure(
        self,
        mode: LogMode | str | None = None,
        level: LogLevel | str | None = None,
        log_file: str | None = None,
    ) -> None:
        """配置日志系统

        Args:
            mode: 日志模式 (simple, detailed, json)
            level: 日志级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_file: 日志文件路径，留空则不记录文件
        """
        if mode is None:
            mode = settings.LOG_MODE
        if level is None:
            level = settings.LOG_LEVEL
        if log_file is None:
            log_file = settings.LOG_FILE

        if isinstance(mode, str):
            mode = LogMode(mode.lower())
        if isinstance(level, str):
            level = LogLevel(level.upper())

        self._mode = mode
        self._level = level

        # 移除默认处理器
        loguru_logger.remove()

        if mode == LogMode.SIMPLE:
            formatter = format_simple
        elif mode == LogMode.JSON:
            formatter = format_json
        else:
            formatter = format_detailed
            # 详细模式下安装 Rich traceback
            install_rich_traceback(console=console, show_locals=True, width=120)

        loguru_logger.add(
            sys.stderr,
            format=formatter,
            level=level.value,
            colorize=mode != LogMode.JSON,
            backtrace=mode == LogMode.DETAILED,
            diagnose=mode == LogMode.DETAILED,
            enqueue=True,  # 异步写入，避免阻塞事件循环
        )

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            # 文件日志使用 JSON 格式（方便解析）
            loguru_logger.add(
                str(log_path),
                format="{message}",
                level=level.value,
                rotation=settings.LOG_FILE_ROTATION,
                retention=settings.LOG_FILE_RETENTION,
                compression="gz",
                enqueue=False,
                serialize=True,
            )

        # 标记为已配置（必须在记录日志之前设置，避免递归）
        self._configured = True

        if log_file:
            loguru_logger.bind(module="logging").debug(
                f"日志文件已配置: {log_file} "
                f"(rotation={settings.LOG_FILE_ROTATION}, retention={settings.LOG_FILE_RETENTION})"
            )
        loguru_logger.bind(module="logging").debug(f"日志系统已配置: mode={mode.value}, level={level.value}")

    def _ensure_configured(self) -> None:
        if not self._configured:
            self.configure()

    def _log(
        self,
        level: str,
        message: str,
        *,
        module: str = "taskbeat",
        exc_info: bool = False,
        _depth: int = 0,
        **extra: Any,
    ) -> None:
        """内部日志方法"""
        self._ensure_configured()

        context = {"module": module}
        for k, v in extra.items():
            context[str(k)] = _safe_for_logging(v)

        # 调用栈（直接调用 Logger）：user -> Logger.info -> _log -> loguru
        # 调用栈（使用 BoundLogger）：user -> BoundLogger.info -> Logger.info -> _log -> loguru
        opt_depth = 2 + _depth
        loguru_logger.bind(**context).opt(depth=opt_depth, exception=exc_info).log(
            level.upper(),
            message,
        )

    def debug(self, message: str, *, module: str = "taskbeat", _depth: int = 0, **extra: Any) -> None:
        self._log("debug", message, module=module, _depth=_depth, **extra)

    def info(self, message: str, *, module: str = "taskbeat", _depth: int = 0, **extra: Any) -> None:
        self._log("info", message, module=module, _depth=_depth, **extra)

    def warning(self, message: str, *, module: str = "taskbeat", _depth: int = 0, **extra: Any) -> None:
        self._log("warning", message, module=module, _depth=_depth, **extra)

    def error(
        self,
        message: str,
        *,
        module: str = "taskbeat",
        exc_info: bool = False,
        _depth: int = 0,
        **extra: Any,
    ) -> None:
        self._log("error", message, module=module, exc_info=exc_info, _depth=_depth, **extra)

    def exception(self, message: str, *, module: str = "taskbeat", _depth: int = 0, **extra: Any) -> None:
        """异常日志（自动包含堆栈）"""
        self._log("error", message, module=module, exc_info=True, _depth=_depth, **extra)

    def bind(self, **context: Any) -> "BoundLogger":
        """创建绑定上下文的日志器"""
        return BoundLogger(self, context)


class BoundLogger:
    """绑定上下文的日志器"""

    def __init__(self, parent: Logger, context: dict[str, Any]) -> None:
        self._parent = parent
        self._context = context

    def bind(self, **context: Any) -> "BoundLogger":
        return BoundLogger(self._parent, {**self._context, **context})

    def debug(self, message: str, **extra: Any) -> None:
        self._parent.debug(message, _depth=1, **{**self._context, **extra})

    def info(self, message: str, **extra: Any) -> None:
        self._parent.info(message, _depth=1, **{**self._context, **extra})

    def warning(self, message: str, **extra: Any) -> None:
        self._parent.warning(message, _depth=1, **{**self._context, **extra})

    def error(self, message: str, exc_info: bool = False, **extra: Any) -> None:
        self._parent.error(message, exc_info=exc_info, _depth=1, **{**self._context, **extra})

    def exception(self, message: str, **extra: Any) -> None:
        self._parent.exception(message, _depth=1, **{**self._context, **extra})


# 全局日志实例
logger = Logger()


def get_logger(module: str) -> BoundLogger:
    """获取模块专用日志器

    Args:
        module: 模块名称

    Returns:
        绑定了模块名的日志器
    """
    return logger.bind(module=module)
