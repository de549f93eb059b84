"""
错误处理服务
"""
import socket
from typing import Any, Dict
from datetime import datetime, timezone
import logging

from OpenSSL import SSL, crypto


class ClientCredentialsError(Exception):
    """客户端证书或私钥无法加载"""


class NetworkErrorHandler:
    """
    网络错误处理器

    探测是单次的，这里不做重试，只负责把异常整理成一行可读的诊断信息。
    """

    def __init__(self):
        """初始化网络错误处理器"""
        self.logger = logging.getLogger(__name__)

    def describe_error(self, error: Exception) -> str:
        """
        提取异常中最有价值的一行诊断信息

        Args:
            error: 异常对象

        Returns:
            str: 诊断信息
        """
        if isinstance(error, SSL.SysCallError):
            # args 形如 (-1, 'Unexpected EOF') 或 (104, 'ECONNRESET')
            if len(error.args) >= 2 and error.args[1]:
                return str(error.args[1])
            return "Unexpected EOF"

        if isinstance(error, (SSL.Error, crypto.Error)):
            return self._openssl_reason(error)

        if isinstance(error, socket.timeout):
            return str(error) or "timed out"

        if isinstance(error, socket.gaierror):
            return error.strerror or str(error)

        if isinstance(error, OSError):
            return error.strerror or str(error) or type(error).__name__

        if isinstance(error, UnicodeError):
            # 主机名无法按idna编码，例如标签过长
            return str(error) or "Invalid hostname encoding"

        return str(error) or type(error).__name__

    def _openssl_reason(self, error: Exception) -> str:
        """
        取OpenSSL错误队列中最后一条的原因

        Args:
            error: pyOpenSSL异常，args[0] 为 (lib, func, reason) 列表

        Returns:
            str: 错误原因
        """
        errors = error.args[0] if error.args else None
        if isinstance(errors, list) and errors:
            last = errors[-1]
            if isinstance(last, tuple) and last:
                return str(last[-1])
            return str(last)
        return str(error) or type(error).__name__

    def handle_connection_error(self, target: Any, error: Exception) -> Dict[str, Any]:
        """
        处理TLS连接错误

        Args:
            target: 探测目标
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        error_info = {
            'target': str(target),
            'error_type': type(error).__name__,
            'error_message': self.describe_error(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error)
        }

        self.logger.error(
            f"{error_info['target']} TLS连接失败: {error_info['error_type']}: {error_info['error_message']}"
        )
        self.logger.debug(f"建议: {error_info['suggested_action']}")

        return error_info

    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = self.describe_error(error).lower()

        if isinstance(error, socket.timeout):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, socket.gaierror):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, UnicodeError):
            return "检查域名是否正确，每个标签不超过63个字符"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, SSL.SysCallError):
            return "服务器在握手过程中断开连接，检查端口是否提供TLS服务"
        elif isinstance(error, SSL.Error):
            if 'certificate required' in error_message:
                return "服务器要求客户端证书，使用 -c/-k 指定"
            elif 'handshake failure' in error_message or 'protocol version' in error_message:
                return "SSL握手失败，检查SSL/TLS版本兼容性"
            else:
                return "SSL连接问题，检查服务器SSL配置"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"
