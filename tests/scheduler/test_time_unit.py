"""时间单位与后缀语法测试"""

import pytest

from taskbeat.core.errors import InvalidScheduleValue, InvalidUnitSuffix
from taskbeat.scheduler.time_unit import ParsedDuration, TimeUnit, parse_duration


class TestTimeUnit:
    """测试时间单位换算"""

    @pytest.mark.parametrize(
        "unit, expected",
        [
            (TimeUnit.MILLISECONDS, 5),
            (TimeUnit.SECONDS, 5_000),
            (TimeUnit.MINUTES, 300_000),
            (TimeUnit.HOURS, 18_000_000),
            (TimeUnit.DAYS, 432_000_000),
        ],
    )
    def test_to_millis(self, unit, expected):
        assert unit.to_millis(5) == expected

    @pytest.mark.parametrize(
        "text, unit",
        [
            ("ms", TimeUnit.MILLISECONDS),
            ("millis", TimeUnit.MILLISECONDS),
            ("milliseconds", TimeUnit.MILLISECONDS),
            ("s", TimeUnit.SECONDS),
            ("sec", TimeUnit.SECONDS),
            ("m", TimeUnit.MINUTES),
            ("min", TimeUnit.MINUTES),
            ("hr", TimeUnit.HOURS),
            ("d", TimeUnit.DAYS),
            ("day", TimeUnit.DAYS),
        ],
    )
    def test_parse_suffix_names(self, text, unit):
        assert TimeUnit.parse(text) is unit

    def test_parse_member_and_enum_name(self):
        assert TimeUnit.parse(TimeUnit.HOURS) is TimeUnit.HOURS
        assert TimeUnit.parse("SECONDS") is TimeUnit.SECONDS

    def test_parse_unknown_unit(self):
        with pytest.raises(InvalidUnitSuffix):
            TimeUnit.parse("fortnights")


class TestParseDuration:
    """测试时长字面量解析"""

    def test_bare_number(self):
        assert parse_duration("1500") == ParsedDuration(value=1500, unit=None)

    def test_with_suffix(self):
        parsed = parse_duration("5s")
        assert parsed.unit is TimeUnit.SECONDS
        assert parsed.to_millis() == 5000

    def test_bare_number_uses_default_unit(self):
        assert parse_duration("5").to_millis(TimeUnit.MINUTES) == 300_000

    def test_surrounding_whitespace_ignored(self):
        assert parse_duration("  10m ").to_millis() == 600_000

    def test_negative_value_is_returned(self):
        """数值范围由调用方校验"""
        assert parse_duration("-5").value == -5

    def test_wrong_case_suffix_has_hint(self):
        """测试大小写错误的后缀给出提示"""
        with pytest.raises(InvalidUnitSuffix) as exc_info:
            parse_duration("5S", field="fixed_rate")
        assert exc_info.value.suffix == "S"
        assert "'s'" in exc_info.value.error_message

    def test_unknown_suffix_without_hint(self):
        with pytest.raises(InvalidUnitSuffix) as exc_info:
            parse_duration("5weeks")
        assert "是否想写" not in exc_info.value.error_message

    @pytest.mark.parametrize("text", ["", "abc", "5 s", "1.5s", "s5"])
    def test_unparseable(self, text):
        with pytest.raises(InvalidScheduleValue):
            parse_duration(text)
