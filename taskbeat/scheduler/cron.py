"""cron 引擎

调度器只依赖 CronEngine 接口计算下一次触发时间，默认实现基于 croniter。

表达式格式：
- 5 段：标准 crontab（分 时 日 月 周），如 "*/5 * * * *"
- 6 段：秒在首位（秒 分 时 日 月 周），如 "0 */5 * * * *"
"""

from abc import ABC, abstractmethod
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import CroniterBadDateError, croniter

from taskbeat.core.errors import InvalidCronExpression, InvalidTimeZone
from taskbeat.core.logging import get_logger

logger = get_logger("scheduler.cron")

LOCAL_ZONE = "local"


def is_local_zone(zone: str) -> bool:
    return zone.strip().lower() == LOCAL_ZONE


def load_zone(zone: str) -> ZoneInfo | None:
    """加载时区，"local" 返回 None（使用系统本地时区）

    Raises:
        InvalidTimeZone: 不是有效的 IANA 时区标识
    """
    if is_local_zone(zone):
        return None
    try:
        return ZoneInfo(zone.strip())
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise InvalidTimeZone(zone) from None


class CronEngine(ABC):
    """cron 引擎接口

    Example:
        class MyEngine(CronEngine):
            def validate(self, expr: str) -> None:
                ...

            def next_fire(self, expr, zone, after):
                ...
    """

    async def startup(self) -> None:
        """启动时调用，失败将导致 start() 抛出 CronEngineInitError"""

    async def shutdown(self) -> None:
        """所有执行器退出后调用"""

    @abstractmethod
    def validate(self, expr: str) -> None:
        """校验表达式

        Raises:
            InvalidCronExpression: 表达式无效
        """

    @abstractmethod
    def next_fire(self, expr: str, zone: str, after: datetime) -> datetime | None:
        """计算 after 之后的下一次触发时间

        Args:
            expr: 已校验的 cron 表达式
            zone: IANA 时区名或 "local"
            after: 基准时间（带时区）

        Returns:
            带时区的触发时间；表达式不会再触发时返回 None
        """


class CroniterEngine(CronEngine):
    """基于 croniter 的默认实现"""

    def validate(self, expr: str) -> None:
        fields = expr.split()
        if len(fields) not in (5, 6):
            raise InvalidCronExpression(expr, f"需要 5 段或 6 段（秒在首位），实际 {len(fields)} 段")
        try:
            croniter(expr, datetime.now(), second_at_beginning=len(fields) == 6)
        except ValueError as e:
            raise InvalidCronExpression(expr, str(e)) from e

    def next_fire(self, expr: str, zone: str, after: datetime) -> datetime | None:
        six_fields = len(expr.split()) == 6
        tz = load_zone(zone)
        try:
            if tz is None:
                # 以本地墙上时间计算，结果再按系统时区补全偏移
                base = after.astimezone().replace(tzinfo=None)
                return croniter(expr, base, second_at_beginning=six_fields).get_next(datetime).astimezone()
            return croniter(expr, after.astimezone(tz), second_at_beginning=six_fields).get_next(datetime)
        except CroniterBadDateError:
            logger.debug("cron 表达式不再触发", expr=expr, zone=zone)
            return None
