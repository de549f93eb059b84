"""
服务接口定义
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from .models import Certificate, ExpirationResult, ProbeOutcome, Report, Target


class TLSConnectorInterface(ABC):
    """TLS连接器接口"""

    @abstractmethod
    def probe(self, target: Target) -> ProbeOutcome:
        """对目标执行一次TLS握手并返回结果"""
        pass


class ExpirationCheckerInterface(ABC):
    """证书过期检查器接口"""

    @abstractmethod
    def check(self, certificate: Optional[Certificate], now: Optional[datetime] = None) -> ExpirationResult:
        """检查证书剩余有效期"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_probe_start(self, target: Target):
        """记录探测开始"""
        pass

    @abstractmethod
    def log_probe_outcome(self, target: Target, outcome: ProbeOutcome):
        """记录握手结果"""
        pass

    @abstractmethod
    def log_error(self, target: Target, error: Exception):
        """记录错误信息"""
        pass

    @abstractmethod
    def log_report(self, report: Report):
        """记录最终报告"""
        pass
