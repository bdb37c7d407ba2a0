"""调度解析与 cron 引擎测试"""

from datetime import datetime, timezone

import pytest

from taskbeat.core.errors import (
    ConfigKeyMissingNoDefault,
    ConfigValueParseFailure,
    InvalidCronExpression,
    InvalidTimeZone,
    NonPositiveInterval,
)
from taskbeat.scheduler.config_source import ConfigSource
from taskbeat.scheduler.cron import CroniterEngine, load_zone
from taskbeat.scheduler.placeholder import Placeholder
from taskbeat.scheduler.resolver import resolve_duration, resolve_enabled, resolve_task
from taskbeat.scheduler.schedule import ResolvedCron, ResolvedFixedDelay, ResolvedFixedRate
from taskbeat.scheduler.tasks.base import TaskDescriptor
from taskbeat.scheduler.time_unit import TimeUnit


def noop():
    pass


def make(**fields):
    return TaskDescriptor.create("job", noop, **fields)


def source(data=None, environ=None):
    return ConfigSource(data or {}, environ=environ or {})


@pytest.fixture
def engine():
    return CroniterEngine()


class TestResolveEnabled:
    """测试 enabled 解析"""

    def test_literal(self, empty_source):
        assert resolve_enabled(True, empty_source) is True
        assert resolve_enabled(False, empty_source) is False

    @pytest.mark.parametrize(
        "text, expected",
        [("true", True), ("ON", True), ("1", True), ("yes", True), ("off", False), ("0", False), ("No", False)],
    )
    def test_config_values(self, text, expected):
        assert resolve_enabled(Placeholder(key="jobs.on"), source({"jobs": {"on": text}})) is expected

    def test_bool_from_file(self):
        assert resolve_enabled(Placeholder(key="jobs.on"), source({"jobs": {"on": False}})) is False

    def test_invalid_value(self):
        with pytest.raises(ConfigValueParseFailure):
            resolve_enabled(Placeholder(key="jobs.on"), source({"jobs": {"on": "sometimes"}}))


class TestResolveDuration:
    """测试时长解析"""

    def test_literal_value_uses_declared_unit(self, empty_source):
        assert resolve_duration(5, TimeUnit.SECONDS, empty_source, field="fixed_rate") == 5000

    def test_placeholder_with_suffix(self):
        """配置值 "5s" 解析为 5000 毫秒"""
        value = Placeholder(key="app.interval")
        result = resolve_duration(value, TimeUnit.MILLISECONDS, source({"app": {"interval": "5s"}}), field="fixed_rate")
        assert result == 5000

    def test_placeholder_bare_number_uses_declared_unit(self):
        value = Placeholder(key="app.interval")
        result = resolve_duration(value, TimeUnit.MINUTES, source({"app": {"interval": 5}}), field="fixed_rate")
        assert result == 300_000

    def test_resolved_suffix_wins_over_time_unit(self):
        value = Placeholder(key="app.interval")
        result = resolve_duration(
            value,
            TimeUnit.MINUTES,
            source({"app": {"interval": "2s"}}),
            field="fixed_rate",
            time_unit_hint=TimeUnit.MINUTES,
        )
        assert result == 2000

    def test_resolved_suffix_with_time_unit_logs_w001(self, log_records):
        """配置值带后缀且声明了 time_unit 时记录 W001"""
        resolve_duration(
            Placeholder(key="app.interval"),
            TimeUnit.MINUTES,
            source({"app": {"interval": "2s"}}),
            field="fixed_rate",
            task_name="job",
            time_unit_hint=TimeUnit.MINUTES,
        )
        w001 = [r for r in log_records if r["extra"].get("code") == "W001"]
        assert len(w001) == 1
        assert w001[0]["level"].name == "WARNING"
        assert w001[0]["extra"]["task_name"] == "job"

    def test_bare_value_with_time_unit_logs_nothing(self, log_records):
        resolve_duration(
            Placeholder(key="app.interval"),
            TimeUnit.MINUTES,
            source({"app": {"interval": "2"}}),
            field="fixed_rate",
            time_unit_hint=TimeUnit.MINUTES,
        )
        assert not [r for r in log_records if r["extra"].get("code") == "W001"]

    def test_default_used(self, empty_source):
        value = Placeholder(key="app.interval", default="250ms")
        assert resolve_duration(value, TimeUnit.SECONDS, empty_source, field="fixed_delay") == 250

    def test_unparseable_value(self):
        with pytest.raises(ConfigValueParseFailure):
            resolve_duration(
                Placeholder(key="a"), TimeUnit.MILLISECONDS, source({"a": "soon"}), field="fixed_rate"
            )

    def test_wrong_case_suffix_value(self):
        with pytest.raises(ConfigValueParseFailure):
            resolve_duration(Placeholder(key="a"), TimeUnit.MILLISECONDS, source({"a": "5S"}), field="fixed_rate")

    def test_zero_interval(self):
        with pytest.raises(NonPositiveInterval):
            resolve_duration(Placeholder(key="a"), TimeUnit.MILLISECONDS, source({"a": "0"}), field="fixed_rate")

    def test_zero_delay_allowed(self):
        result = resolve_duration(
            Placeholder(key="a"), TimeUnit.MILLISECONDS, source({"a": "0"}), field="initial_delay", allow_zero=True
        )
        assert result == 0

    def test_negative_delay(self):
        with pytest.raises(ConfigValueParseFailure):
            resolve_duration(
                Placeholder(key="a"), TimeUnit.MILLISECONDS, source({"a": "-1s"}), field="initial_delay", allow_zero=True
            )


class TestResolveTask:
    """测试任务解析"""

    def test_fixed_rate(self, engine, empty_source):
        resolved = resolve_task(make(fixed_rate="5s"), empty_source, engine)
        assert resolved.schedule == ResolvedFixedRate(interval_ms=5000)
        assert resolved.initial_delay_ms == 0
        assert resolved.name == "job"

    def test_fixed_delay_with_time_unit(self, engine, empty_source):
        resolved = resolve_task(make(fixed_delay=5, time_unit=TimeUnit.MINUTES), empty_source, engine)
        assert resolved.schedule == ResolvedFixedDelay(interval_ms=300_000)

    def test_env_overrides_file(self, engine):
        """环境变量优先于配置文件"""
        config = source({"app": {"interval": "1s"}}, environ={"APP_APP_INTERVAL": "3s"})
        resolved = resolve_task(make(fixed_rate="${app.interval:9s}"), config, engine)
        assert resolved.schedule.interval_ms == 3000

    def test_default_when_absent_everywhere(self, engine, empty_source):
        resolved = resolve_task(make(fixed_rate="${app.interval:9s}"), empty_source, engine)
        assert resolved.schedule.interval_ms == 9000

    def test_initial_delay(self, engine):
        config = source({"app": {"delay": "2s"}})
        resolved = resolve_task(make(fixed_rate=100, initial_delay="${app.delay}"), config, engine)
        assert resolved.initial_delay_ms == 2000

    def test_cron(self, engine):
        config = source({"app": {"cron": "0 */5 * * * *", "zone": "UTC"}})
        resolved = resolve_task(make(cron="${app.cron}", zone="${app.zone}"), config, engine)
        assert resolved.schedule == ResolvedCron(expr="0 */5 * * * *", zone="UTC")

    def test_cron_local_zone_normalized(self, engine, empty_source):
        resolved = resolve_task(make(cron="* * * * *", zone="LOCAL"), empty_source, engine)
        assert resolved.schedule.zone == "local"

    def test_invalid_cron(self, engine):
        with pytest.raises(InvalidCronExpression):
            resolve_task(make(cron="${app.cron}"), source({"app": {"cron": "not a cron"}}), engine)

    def test_invalid_zone(self, engine, empty_source):
        with pytest.raises(InvalidTimeZone):
            resolve_task(make(cron="* * * * *", zone="Mars/Olympus"), empty_source, engine)

    @pytest.mark.parametrize("zone", ["America", "Europe"])
    def test_zone_naming_region_directory(self, engine, zone):
        """时区数据库中的目录名不是有效时区"""
        with pytest.raises(InvalidTimeZone):
            resolve_task(make(cron="* * * * *", zone="${tz}"), source({"tz": zone}), engine)

    def test_missing_key(self, engine, empty_source):
        with pytest.raises(ConfigKeyMissingNoDefault):
            resolve_task(make(fixed_delay="${app.delay}"), empty_source, engine)

    def test_disabled_skips_schedule_resolution(self, engine, empty_source):
        """禁用的任务不解析调度（即使配置缺失）"""
        descriptor = make(fixed_delay="${app.delay}", enabled="${jobs.on:false}")
        assert resolve_task(descriptor, empty_source, engine) is None


class TestCroniterEngine:
    """测试默认 cron 引擎"""

    def test_validate_five_and_six_fields(self, engine):
        engine.validate("*/5 * * * *")
        engine.validate("0 */5 * * * *")

    @pytest.mark.parametrize("expr", ["", "* * *", "61 * * * *", "* * * * * * * *"])
    def test_validate_invalid(self, engine, expr):
        with pytest.raises(InvalidCronExpression):
            engine.validate(expr)

    def test_six_fields_seconds_first(self, engine):
        after = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert engine.next_fire("30 * * * * *", "UTC", after) == datetime(2024, 1, 1, 12, 0, 30, tzinfo=timezone.utc)

    def test_five_fields_minutes(self, engine):
        after = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert engine.next_fire("*/5 * * * *", "UTC", after) == datetime(2024, 1, 1, 12, 5, tzinfo=timezone.utc)

    def test_zone_applied(self, engine):
        """按指定时区计算：上海 9 点为 UTC 1 点"""
        after = datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        next_fire = engine.next_fire("0 0 9 * * *", "Asia/Shanghai", after)
        assert next_fire.astimezone(timezone.utc) == datetime(2024, 1, 1, 1, 0, tzinfo=timezone.utc)

    def test_local_zone_is_aware(self, engine):
        next_fire = engine.next_fire("* * * * * *", "local", datetime.now().astimezone())
        assert next_fire.tzinfo is not None
        assert next_fire > datetime.now().astimezone().replace(microsecond=0)

    def test_strictly_after(self, engine):
        after = datetime(2024, 1, 1, 12, 0, 30, tzinfo=timezone.utc)
        assert engine.next_fire("30 * * * * *", "UTC", after) == datetime(2024, 1, 1, 12, 1, 30, tzinfo=timezone.utc)

    def test_load_zone(self):
        assert load_zone("local") is None
        assert load_zone("UTC") is not None
        with pytest.raises(InvalidTimeZone):
            load_zone("Nowhere/Town")
