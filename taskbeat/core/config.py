"""运行时配置管理

taskbeat 自身的运行参数（日志、关闭超时等），与任务的业务配置（ConfigSource）相互独立。
所有字段均可通过 TASKBEAT_ 前缀的环境变量或 .env 文件覆盖，例如：

    TASKBEAT_LOG_MODE=json
    TASKBEAT_SHUTDOWN_TIMEOUT_SECONDS=10
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """运行时配置"""

    model_config = SettingsConfigDict(
        env_prefix="TASKBEAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 日志配置
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_MODE: str = "simple"  # simple, detailed, json
    LOG_FILE: str = ""  # 日志文件路径，留空则不记录文件
    LOG_FILE_ROTATION: str = "10 MB"  # 日志文件轮转大小
    LOG_FILE_RETENTION: str = "7 days"  # 日志文件保留时间

    # 业务配置的环境变量覆盖前缀：app.interval -> APP_APP_INTERVAL
    CONFIG_ENV_PREFIX: str = "APP"

    # 调度配置
    SHUTDOWN_TIMEOUT_SECONDS: float = 30.0  # shutdown() 默认等待时间
    EXECUTION_HISTORY_LIMIT: int = 20  # 每个任务保留的执行记录数


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


settings = get_settings()
