"""运行时配置与日志测试"""

import pytest

from taskbeat.core.config import Settings, get_settings, settings
from taskbeat.core.logging import BoundLogger, LogMode, get_logger, logger


class TestSettings:
    """测试运行时配置"""

    def test_settings_is_cached(self):
        assert get_settings() is get_settings()
        assert settings is get_settings()

    def test_defaults(self, monkeypatch):
        """测试默认值"""
        for name in ("CONFIG_ENV_PREFIX", "SHUTDOWN_TIMEOUT_SECONDS", "EXECUTION_HISTORY_LIMIT"):
            monkeypatch.delenv(f"TASKBEAT_{name}", raising=False)
        fresh = Settings(_env_file=None)
        assert fresh.CONFIG_ENV_PREFIX == "APP"
        assert fresh.SHUTDOWN_TIMEOUT_SECONDS == 30.0
        assert fresh.EXECUTION_HISTORY_LIMIT == 20

    def test_env_override(self, monkeypatch):
        """测试 TASKBEAT_ 前缀环境变量覆盖"""
        monkeypatch.setenv("TASKBEAT_SHUTDOWN_TIMEOUT_SECONDS", "5")
        monkeypatch.setenv("TASKBEAT_LOG_MODE", "json")
        fresh = Settings(_env_file=None)
        assert fresh.SHUTDOWN_TIMEOUT_SECONDS == 5.0
        assert fresh.LOG_MODE == "json"


class TestLogging:
    """测试日志接口"""

    def test_get_logger_binds_module(self):
        bound = get_logger("scheduler.test")
        assert isinstance(bound, BoundLogger)
        bound.info("测试日志", task_name="x")

    def test_bind_chains_context(self):
        bound = get_logger("scheduler.test").bind(task_name="x")
        bound.debug("带上下文的日志", extra_key=1)

    @pytest.mark.parametrize("mode", ["simple", "detailed", "json"])
    def test_configure_modes(self, mode):
        """测试各日志模式均可配置并输出"""
        logger.configure(mode=mode, level="DEBUG", log_file="")
        assert logger.mode == LogMode(mode)
        get_logger("scheduler.test").warning("模式测试 {braces} <tags>", payload={"a": [1, 2]})
        logger.configure(mode="simple", level="DEBUG", log_file="")

    def test_file_sink(self, tmp_path):
        """测试文件日志"""
        log_file = tmp_path / "logs" / "taskbeat.log"
        logger.configure(mode="simple", level="INFO", log_file=str(log_file))
        get_logger("scheduler.test").info("file-sink-check")
        logger.configure(mode="simple", level="DEBUG", log_file="")
        assert log_file.exists()
        assert "file-sink-check" in log_file.read_text(encoding="utf-8")
