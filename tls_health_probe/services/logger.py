"""
日志服务

日志统一输出到 stderr，stdout 只留给监控调度器读取的那一行报告。
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import ProbeOutcome, Report, Target


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "tls_health_probe", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'WARNING')

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 执行统计
        self.execution_stats = {
            'start_time': None,
            'end_time': None,
            'target': None,
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.WARNING)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            # 默认输出到 stderr
            handler = logging.StreamHandler()

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        for handler in self.logger.handlers:
            handler.setLevel(level)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_probe_start(self, target: Target):
        """
        记录探测开始

        Args:
            target: 探测目标
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['target'] = str(target)

        self.logger.info(f"开始TLS探测: {target}")
        if target.uses_client_certificate:
            self.logger.info(f"使用客户端证书: {target.client_cert}")

    def log_probe_outcome(self, target: Target, outcome: ProbeOutcome):
        """
        记录握手结果

        Args:
            target: 探测目标
            outcome: 握手结果
        """
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        if not outcome.connected:
            self.logger.error(f"TLS握手失败 - 目标: {target}, 错误: {outcome.raw_error}")
            return

        if outcome.verified:
            self.logger.info(f"TLS握手成功，证书链校验通过 - 目标: {target}")
        else:
            self.logger.warning(f"TLS握手成功，证书链未通过校验 - 目标: {target}, 结果: {outcome.verify_detail}")

        certificate = outcome.peer_certificate
        if certificate is not None:
            self.logger.info(
                f"服务端证书 - CN: {certificate.subject_common_name}, "
                f"过期时间: {certificate.not_after.isoformat()}"
            )

    def log_error(self, target: Target, error: Exception):
        """
        记录错误信息

        Args:
            target: 探测目标
            error: 异常对象
        """
        error_info = {
            'target': str(target),
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        self.execution_stats['errors'].append(error_info)

        self.logger.error(f"探测 {target} 时发生错误: {type(error).__name__}: {str(error)}")

        # 记录详细的堆栈跟踪（调试级别）
        self.logger.debug(f"{target} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_report(self, report: Report):
        """
        记录最终报告

        Args:
            report: 最终报告
        """
        if report.exit_code == 0:
            self.logger.info(f"探测结果: {report.render()}")
        elif report.exit_code == 1:
            self.logger.warning(f"探测结果: {report.render()}")
        else:
            self.logger.error(f"探测结果: {report.render()}")

        summary = self.get_execution_summary()
        self.logger.debug(f"探测耗时: {summary['duration_seconds']:.2f} 秒")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        # 过滤敏感信息
        safe_config = self._sanitize_config(config)

        self.logger.debug("探测参数:")
        for key, value in safe_config.items():
            self.logger.debug(f"  {key:<18}= {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        sensitive_patterns = ('password', 'passphrase', 'secret', 'token', 'credential')

        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                any(pattern in key_lower for pattern in sensitive_patterns) or
                key_lower.endswith('_pass')
            )

            if is_sensitive and isinstance(value, str) and value:
                safe_config[key] = "***"
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        duration = 0
        if self.execution_stats['start_time'] and self.execution_stats['end_time']:
            duration = (self.execution_stats['end_time'] - self.execution_stats['start_time']).total_seconds()

        return {
            'target': self.execution_stats['target'],
            'start_time': self.execution_stats['start_time'].isoformat() if self.execution_stats['start_time'] else None,
            'end_time': self.execution_stats['end_time'].isoformat() if self.execution_stats['end_time'] else None,
            'duration_seconds': duration,
            'error_count': len(self.execution_stats['errors']),
            'errors': self.execution_stats['errors']
        }
