"""
证书过期计算服务
"""
from datetime import datetime, timezone
from typing import Optional
import logging

from ..interfaces import ExpirationCheckerInterface
from ..models import Certificate, ExpirationResult, Severity

SECONDS_PER_DAY = 86400


class ExpiryCalculator(ExpirationCheckerInterface):
    """证书过期计算器"""

    def __init__(self, threshold_days: int = 0, within_window_severity: Severity = Severity.CRITICAL):
        """
        初始化过期计算器

        Args:
            threshold_days: 提前告警天数，0表示不检查
            within_window_severity: 证书在告警窗口内时的严重级别。
                旧版脚本在这里输出 "WARNING" 文本但返回 CRITICAL 退出码，
                默认保持 CRITICAL。
        """
        self.threshold_days = threshold_days
        self.within_window_severity = within_window_severity
        self.logger = logging.getLogger(__name__)

    @property
    def enabled(self) -> bool:
        return self.threshold_days > 0

    def calculate_seconds_remaining(self, expiry_date: datetime, now: Optional[datetime] = None) -> int:
        """
        计算距离过期的秒数

        Args:
            expiry_date: 过期时间
            now: 当前时间，默认取系统UTC时间

        Returns:
            int: 剩余秒数（负数表示已过期）
        """
        now = now or datetime.now(timezone.utc)
        return int(expiry_date.timestamp()) - int(now.timestamp())

    def calculate_days_until_expiry(self, expiry_date: datetime, now: Optional[datetime] = None) -> int:
        """
        计算距离过期的天数（向下取整）

        Args:
            expiry_date: 过期时间
            now: 当前时间

        Returns:
            int: 剩余天数（负数表示已过期）
        """
        return self.calculate_seconds_remaining(expiry_date, now) // SECONDS_PER_DAY

    def check(self, certificate: Optional[Certificate], now: Optional[datetime] = None) -> ExpirationResult:
        """
        判断证书过期状态

        Args:
            certificate: 服务端叶子证书，无法解析时为None
            now: 当前时间

        Returns:
            ExpirationResult: 检查结果
        """
        if certificate is None:
            self.logger.error("无法读取服务端证书，跳过过期时间计算")
            return ExpirationResult(
                severity=Severity.CRITICAL,
                message="Unable to read the server certificate"
            )

        now = now or datetime.now(timezone.utc)
        now_ts = int(now.timestamp())
        expiry_ts = int(certificate.not_after.timestamp())
        limit_ts = now_ts + self.threshold_days * SECONDS_PER_DAY
        days = self.calculate_days_until_expiry(certificate.not_after, now)

        cn = certificate.subject_common_name
        expiry_text = certificate.not_after_text

        self.logger.debug(f"证书 {cn} 过期时间: {expiry_text}，剩余 {days} 天，阈值 {self.threshold_days} 天")

        if now_ts > expiry_ts:
            return ExpirationResult(
                severity=Severity.CRITICAL,
                message=f"Certificate '{cn}' is expired ({expiry_text})",
                days_remaining=days
            )

        if limit_ts > expiry_ts:
            return ExpirationResult(
                severity=self.within_window_severity,
                message=f"Certificate '{cn}' will expire in {days} days ({expiry_text})",
                days_remaining=days
            )

        return ExpirationResult(
            severity=Severity.OK,
            message=f"Certificate '{cn}' will expire on {expiry_text}",
            days_remaining=days
        )
