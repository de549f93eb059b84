"""
证书过期计算器测试
"""
from datetime import datetime, timezone, timedelta

from tls_health_probe.services.expiry_calculator import ExpiryCalculator
from tls_health_probe.models import Certificate, Severity


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_certificate(delta: timedelta, common_name: str = "example.com") -> Certificate:
    return Certificate(subject_common_name=common_name, not_after=NOW + delta)


class TestExpiryCalculator:
    """证书过期计算器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.calculator = ExpiryCalculator(threshold_days=15)

    def test_enabled(self):
        """测试阈值为0时禁用"""
        assert self.calculator.enabled is True
        assert ExpiryCalculator(threshold_days=0).enabled is False

    def test_calculate_days_until_expiry_floors(self):
        """测试剩余天数向下取整"""
        expiry = NOW + timedelta(days=10, hours=23, minutes=59)
        assert self.calculator.calculate_days_until_expiry(expiry, NOW) == 10

    def test_calculate_days_until_expiry_past(self):
        """测试已过期时为负数"""
        expiry = NOW - timedelta(hours=1)
        assert self.calculator.calculate_days_until_expiry(expiry, NOW) == -1

    def test_calculate_seconds_remaining(self):
        expiry = NOW + timedelta(seconds=90)
        assert self.calculator.calculate_seconds_remaining(expiry, NOW) == 90

    def test_within_threshold_is_critical(self):
        """测试10天后过期、阈值15天时为 CRITICAL"""
        certificate = make_certificate(timedelta(days=10))

        result = self.calculator.check(certificate, now=NOW)

        assert result.severity == Severity.CRITICAL
        assert result.days_remaining == 10
        assert "example.com" in result.message
        assert "Jun 11 12:00:00 2024 GMT" in result.message
        assert result.message == "Certificate 'example.com' will expire in 10 days (Jun 11 12:00:00 2024 GMT)"

    def test_outside_threshold_is_ok(self):
        """测试20天后过期、阈值15天时为 OK"""
        certificate = make_certificate(timedelta(days=20))

        result = self.calculator.check(certificate, now=NOW)

        assert result.severity == Severity.OK
        assert result.message == "Certificate 'example.com' will expire on Jun 21 12:00:00 2024 GMT"

    def test_expired_is_critical(self):
        """测试已过期证书"""
        certificate = make_certificate(-timedelta(days=3))

        result = self.calculator.check(certificate, now=NOW)

        assert result.severity == Severity.CRITICAL
        assert "expired" in result.message
        assert result.message == "Certificate 'example.com' is expired (May 29 12:00:00 2024 GMT)"

    def test_single_digit_day_is_space_padded(self):
        """测试日期按OpenSSL格式用空格补齐"""
        certificate = make_certificate(timedelta(days=30))

        result = self.calculator.check(certificate, now=NOW)

        assert result.message == "Certificate 'example.com' will expire on Jul  1 12:00:00 2024 GMT"

    def test_boundary_exactly_at_threshold_is_ok(self):
        """测试过期时间恰好等于 now + 阈值 时不告警（严格大于）"""
        certificate = make_certificate(timedelta(days=15))

        result = self.calculator.check(certificate, now=NOW)

        assert result.severity == Severity.OK

    def test_boundary_one_second_inside_threshold(self):
        certificate = make_certificate(timedelta(days=15) - timedelta(seconds=1))

        result = self.calculator.check(certificate, now=NOW)

        assert result.severity == Severity.CRITICAL
        assert result.days_remaining == 14

    def test_boundary_expiring_right_now_is_not_expired(self):
        """测试过期时间等于当前时间时不算已过期（严格大于）"""
        certificate = make_certificate(timedelta(0))

        result = self.calculator.check(certificate, now=NOW)

        assert result.severity == Severity.CRITICAL
        assert "will expire in 0 days" in result.message

    def test_custom_within_window_severity(self):
        """测试可以把告警窗口内的级别调整为 WARNING"""
        calculator = ExpiryCalculator(threshold_days=15, within_window_severity=Severity.WARNING)

        result = calculator.check(make_certificate(timedelta(days=10)), now=NOW)

        assert result.severity == Severity.WARNING

    def test_missing_certificate_is_critical(self):
        """测试证书无法解析时返回通用 CRITICAL 消息"""
        result = self.calculator.check(None, now=NOW)

        assert result.severity == Severity.CRITICAL
        assert result.message == "Unable to read the server certificate"
        assert result.days_remaining is None

    def test_large_threshold_does_not_overflow(self):
        """测试非常大的阈值"""
        calculator = ExpiryCalculator(threshold_days=10 ** 12)

        result = calculator.check(make_certificate(timedelta(days=400)), now=NOW)

        assert result.severity == Severity.CRITICAL

    def test_uses_current_time_by_default(self):
        """测试未传入 now 时使用系统时间"""
        certificate = Certificate(
            subject_common_name="example.com",
            not_after=datetime.now(timezone.utc) + timedelta(days=60)
        )

        result = self.calculator.check(certificate)

        assert result.severity == Severity.OK
        assert result.days_remaining in (59, 60)
