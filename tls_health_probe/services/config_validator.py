"""
配置验证服务
"""
import os
import logging
from typing import Dict, Any, Optional

from ..models import ExpirationPolicy, Target
from .tls_connector import DEFAULT_CA_PATH
from .validator import parse_digits, validate_day_count, validate_hostname

DEFAULT_TIMEOUT = 10
MAX_TIMEOUT = 3600

LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

        # 可选的环境变量
        self.optional_env_vars = {
            'CA_PATH': '受信任根证书目录',
            'PROBE_TIMEOUT': '握手超时时间（秒）',
            'LOG_LEVEL': '日志级别'
        }

    def validate_environment_variables(self) -> Dict[str, Any]:
        """
        验证运行环境

        受信任根证书目录不存在时探测无法进行，视为错误；
        其它变量格式不对时只给出警告并使用默认值。

        Returns:
            Dict[str, Any]: 环境验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'ca_path': os.getenv('CA_PATH') or DEFAULT_CA_PATH,
            'timeout': DEFAULT_TIMEOUT,
            'present_vars': {}
        }

        for var_name in self.optional_env_vars:
            value = os.getenv(var_name)
            if value:
                result['present_vars'][var_name] = value

        if not os.path.isdir(result['ca_path']):
            result['is_valid'] = False
            result['errors'].append(
                "Common CA Certificates path not found. Maybe ca-certificates package is not installed"
            )

        timeout = os.getenv('PROBE_TIMEOUT')
        if timeout:
            if validate_day_count(timeout, 1, MAX_TIMEOUT):
                result['timeout'] = parse_digits(timeout)
            else:
                result['warnings'].append(
                    f"PROBE_TIMEOUT格式无效: {timeout}，使用默认值 {DEFAULT_TIMEOUT} 秒"
                )

        log_level = os.getenv('LOG_LEVEL')
        if log_level and log_level.upper() not in LOG_LEVELS:
            result['warnings'].append(f"LOG_LEVEL格式无效: {log_level}")

        for warning in result['warnings']:
            self.logger.warning(warning)

        return result

    def validate_probe_options(self, hostname: Optional[str], port: Optional[str] = '443',
                               client_cert: Optional[str] = None, client_key: Optional[str] = None,
                               passphrase: Optional[str] = None, expiration: Optional[str] = '0',
                               timeout: Optional[str] = None,
                               default_timeout: int = DEFAULT_TIMEOUT) -> Dict[str, Any]:
        """
        验证探测参数，遇到第一个错误即停止

        Args:
            hostname: 主机名
            port: 端口
            client_cert: 客户端证书文件
            client_key: 客户端私钥文件
            passphrase: 私钥口令
            expiration: 过期告警天数，0表示不检查
            timeout: 握手超时时间（秒），None时使用默认值
            default_timeout: 默认超时时间

        Returns:
            Dict[str, Any]: 验证结果，通过时包含 target、policy 和 timeout
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'target': None,
            'policy': None,
            'timeout': default_timeout
        }

        if not hostname:
            return self._fail(result, "Hostname is required")

        if not validate_hostname(hostname):
            return self._fail(result, "Hostname is not a Full Qualified Domain Name (FQDN)")

        if not validate_day_count(port, 1, 65535):
            return self._fail(result, "Port must be a number between 1 and 65535")

        if client_cert and not os.path.exists(client_cert):
            return self._fail(result, "Client certificate file not found")

        if client_cert and not (client_key and os.path.exists(client_key)):
            return self._fail(result, "Client private key file not found")

        if client_key and not client_cert:
            return self._fail(result, "Client certificate is required with a private key")

        if passphrase and not client_key:
            self.logger.debug("未指定客户端私钥，忽略私钥口令")

        if not validate_day_count(expiration):
            return self._fail(result, "Expiration must be a number of days")

        if timeout is not None:
            if not validate_day_count(timeout, 1, MAX_TIMEOUT):
                return self._fail(result, f"Timeout must be a number of seconds between 1 and {MAX_TIMEOUT}")
            result['timeout'] = parse_digits(timeout)

        result['target'] = Target(
            hostname=hostname,
            port=parse_digits(port),
            client_cert=client_cert or None,
            client_key=client_key or None,
            client_key_passphrase=passphrase or None
        )
        result['policy'] = ExpirationPolicy(threshold_days=parse_digits(expiration))

        return result

    def _fail(self, result: Dict[str, Any], message: str) -> Dict[str, Any]:
        result['is_valid'] = False
        result['errors'].append(message)
        self.logger.error(f"参数验证失败: {message}")
        return result
