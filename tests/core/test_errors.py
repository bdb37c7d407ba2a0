"""错误处理模块测试"""

from taskbeat.core.errors import (
    AmbiguousScheduleKind,
    ConfigError,
    ConfigKeyMissingNoDefault,
    ConfigValueParseFailure,
    ErrorPayload,
    InvalidCronExpression,
    InvalidTimeZone,
    InvalidUnitSuffix,
    NonPositiveInterval,
    ScheduleSpecError,
    ShutdownTimeout,
    StartError,
    TaskAborted,
    TaskbeatError,
    TaskConfigInvalid,
)


class TestTaskbeatError:
    """测试基础异常"""

    def test_basic_error(self):
        """测试基本错误创建"""
        error = TaskbeatError(code="test_error", message="测试错误消息")
        assert error.code == "test_error"
        assert error.error_message == "测试错误消息"
        assert error.data is None
        assert str(error) == "测试错误消息"

    def test_default_code(self):
        """测试未指定 code 时使用类默认值"""
        error = TaskbeatError(message="x")
        assert error.code == "taskbeat_error"

    def test_to_payload(self):
        """测试转换为标准错误结构"""
        error = TaskbeatError(code="c", message="m", data={"k": 1})
        payload = error.to_payload()
        assert isinstance(payload, ErrorPayload)
        assert payload.code == "c"
        assert payload.message == "m"
        assert payload.data == {"k": 1}
        assert payload.timestamp.endswith("Z")


class TestScheduleSpecErrors:
    """测试声明期错误"""

    def test_ambiguous_kind_lists_kinds(self):
        error = AmbiguousScheduleKind("job", ["cron", "fixed_rate"])
        assert isinstance(error, ScheduleSpecError)
        assert error.task_name == "job"
        assert "cron, fixed_rate" in error.error_message

    def test_ambiguous_kind_none_given(self):
        error = AmbiguousScheduleKind("job", [])
        assert "未指定" in error.error_message

    def test_invalid_suffix_with_hint(self):
        """测试后缀错误附带提示"""
        error = InvalidUnitSuffix("S", value="5S", field="fixed_rate", hint="是否想写 's'？")
        assert error.suffix == "S"
        assert "'s'" in error.error_message
        assert error.data["field"] == "fixed_rate"

    def test_non_positive_interval(self):
        error = NonPositiveInterval(-5, task_name="job", field="fixed_rate")
        assert error.value == -5
        assert error.code == "non_positive_interval"


class TestConfigErrors:
    """测试配置解析错误"""

    def test_missing_key_message_suggests_fixes(self):
        """测试缺失配置项时提示添加方式"""
        error = ConfigKeyMissingNoDefault("app.jobs.interval", env_var="APP_APP_JOBS_INTERVAL")
        assert isinstance(error, ConfigError)
        assert error.key == "app.jobs.interval"
        assert "APP_APP_JOBS_INTERVAL" in error.error_message
        assert "${app.jobs.interval:default}" in error.error_message
        assert 'interval = "value"' in error.error_message

    def test_cron_and_zone_are_parse_failures(self):
        assert isinstance(InvalidCronExpression("bad"), ConfigValueParseFailure)
        assert isinstance(InvalidTimeZone("Mars/Base"), ConfigValueParseFailure)


class TestRuntimeErrors:
    """测试启动/关闭错误"""

    def test_task_config_invalid_wraps_cause(self):
        cause = ConfigKeyMissingNoDefault("a.b")
        error = TaskConfigInvalid("job", cause)
        assert isinstance(error, StartError)
        assert error.cause is cause
        assert error.task_name == "job"
        assert error.data["cause"] == "config_key_missing"

    def test_shutdown_timeout_lists_pending(self):
        error = ShutdownTimeout(1.5, ["a", "b"])
        assert error.pending == ["a", "b"]
        assert "a, b" in error.error_message

    def test_task_aborted_default_message(self):
        assert TaskAborted().error_message == "任务已中止"
