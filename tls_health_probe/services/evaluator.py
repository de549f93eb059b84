"""
结果评估服务：把握手结果与过期检查结果合并为一份报告
"""
from typing import Optional
import logging

from ..interfaces import ExpirationCheckerInterface
from ..models import ProbeOutcome, Report, Severity


class ReportEvaluator:
    """报告评估器"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def evaluate_connection(self, outcome: ProbeOutcome) -> Report:
        """
        根据握手结果生成报告

        握手失败为 CRITICAL；握手成功但证书链未通过校验为 WARNING。

        Args:
            outcome: 握手结果

        Returns:
            Report: 连接报告
        """
        if not outcome.connected:
            return Report(Severity.CRITICAL, f"Can not establish SSL connection ({outcome.raw_error})")

        if not outcome.verified:
            return Report(Severity.WARNING, f"SSL connection established but not verified ({outcome.verify_detail})")

        return Report(Severity.OK, "SSL connection established and verified")

    def evaluate(self, outcome: ProbeOutcome,
                 expiry_calculator: Optional[ExpirationCheckerInterface] = None) -> Report:
        """
        生成最终报告

        握手失败或未启用过期检查时，连接报告即为最终结果；
        握手成功且启用了过期检查时，以过期检查结果为准。

        Args:
            outcome: 握手结果
            expiry_calculator: 过期检查器，None 表示不检查

        Returns:
            Report: 最终报告
        """
        connection_report = self.evaluate_connection(outcome)

        if not outcome.connected or expiry_calculator is None:
            return connection_report

        if outcome.peer_certificate is None and outcome.certificate_error:
            self.logger.warning(f"服务端证书无法解析: {outcome.certificate_error}")

        self.logger.debug(f"连接检查结果: {connection_report.render()}，改用过期检查结果")
        result = expiry_calculator.check(outcome.peer_certificate)
        return Report(result.severity, result.message)

    def configuration_error(self, message: str) -> Report:
        """参数或环境错误，总是 CRITICAL"""
        return Report(Severity.CRITICAL, message)

    def usage_error(self, message: str) -> Report:
        """命令行用法错误，告警但不视为故障"""
        return Report(Severity.WARNING, message)
