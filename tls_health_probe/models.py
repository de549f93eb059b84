"""
数据模型定义
"""
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Optional


class Severity(IntEnum):
    """探测结果严重级别，数值即监控插件的退出码"""
    OK = 0
    WARNING = 1
    CRITICAL = 2


@dataclass(frozen=True)
class Target:
    """探测目标"""
    hostname: str
    port: int = 443
    client_cert: Optional[str] = None
    client_key: Optional[str] = None
    client_key_passphrase: Optional[str] = None

    @property
    def uses_client_certificate(self) -> bool:
        """是否启用双向TLS认证"""
        return bool(self.client_cert and self.client_key)

    def __str__(self) -> str:
        return f"{self.hostname}:{self.port}"


@dataclass(frozen=True)
class ExpirationPolicy:
    """证书过期检查策略"""
    threshold_days: int = 0

    @property
    def enabled(self) -> bool:
        """阈值为0时不检查过期时间"""
        return self.threshold_days > 0


@dataclass(frozen=True)
class Certificate:
    """服务端叶子证书信息"""
    subject_common_name: str
    not_after: datetime

    @property
    def not_after_text(self) -> str:
        """按OpenSSL的格式输出过期时间，日期不足两位时用空格补齐，例如 'Jun  1 23:59:59 2024 GMT'"""
        return (
            f"{self.not_after.strftime('%b')} {self.not_after.day:2d} "
            f"{self.not_after.strftime('%H:%M:%S %Y')} GMT"
        )


@dataclass(frozen=True)
class ProbeOutcome:
    """一次TLS握手的结果"""
    connected: bool
    verified: bool
    verify_detail: str = ""
    raw_error: Optional[str] = None
    peer_certificate: Optional[Certificate] = None
    certificate_error: Optional[str] = None


@dataclass(frozen=True)
class ExpirationResult:
    """证书过期检查结果"""
    severity: Severity
    message: str
    days_remaining: Optional[int] = None


@dataclass(frozen=True)
class Report:
    """最终输出给监控调度器的报告"""
    severity: Severity
    message: str

    @property
    def exit_code(self) -> int:
        return int(self.severity)

    def render(self) -> str:
        """生成唯一的一行输出"""
        return f"{self.severity.name}: {self.message}"
