"""Pytest 配置"""

import pytest
from loguru import logger as loguru_logger

from taskbeat.core.logging import logger
from taskbeat.scheduler.config_source import ConfigSource


# 测试使用简洁模式，不写日志文件
logger.configure(mode="simple", level="DEBUG", log_file="")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def empty_source():
    """不读取真实环境变量的空配置源"""
    return ConfigSource({}, environ={})


@pytest.fixture
def log_records():
    """捕获测试期间的日志记录（同步写入，不经过队列）"""
    records = []
    handler_id = loguru_logger.add(lambda message: records.append(message.record), level="DEBUG", format="{message}")
    yield records
    loguru_logger.remove(handler_id)
