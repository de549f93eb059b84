"""
命令行入口：Nagios风格的TLS端点探测插件

输出一行 "<SEVERITY>: <message>"，退出码 0/1/2 分别对应 OK/WARNING/CRITICAL。
"""
import sys
from typing import Any, Dict, List, Optional

import click

from .models import Report
from .services.config_validator import ConfigValidator, DEFAULT_TIMEOUT
from .services.error_handler import ClientCredentialsError
from .services.evaluator import ReportEvaluator
from .services.expiry_calculator import ExpiryCalculator
from .services.logger import LoggerService
from .services.tls_connector import TLSConnector


class TLSHealthProbe:
    """TLS端点探测器主类"""

    def __init__(self, ca_path: Optional[str] = None, default_timeout: int = DEFAULT_TIMEOUT,
                 debug: bool = False):
        """
        初始化探测器

        Args:
            ca_path: 受信任根证书目录
            default_timeout: 未指定 -t 时的握手超时时间（秒）
            debug: 是否输出调试日志
        """
        self.ca_path = ca_path
        self.default_timeout = default_timeout
        self.debug = debug

        self.logger_service = LoggerService(log_level='DEBUG' if debug else None)
        self.config_validator = ConfigValidator()
        self.evaluator = ReportEvaluator()

    def execute(self, hostname: Optional[str], port: str = '443', client_cert: Optional[str] = None,
                client_key: Optional[str] = None, passphrase: Optional[str] = None,
                expiration: str = '0', timeout: Optional[str] = None) -> Report:
        """
        执行一次探测

        Returns:
            Report: 最终报告
        """
        self.logger_service.log_configuration_info({
            'hostname': hostname,
            'client_cert': client_cert,
            'client_key': client_key,
            'client_key_pass': passphrase,
            'port': port,
            'check_expiration': expiration,
            'timeout': timeout if timeout is not None else self.default_timeout,
            'ca_path': self.ca_path
        })

        options = self.config_validator.validate_probe_options(
            hostname, port, client_cert, client_key, passphrase, expiration, timeout,
            default_timeout=self.default_timeout
        )
        if not options['is_valid']:
            report = self.evaluator.configuration_error(options['errors'][0])
            self.logger_service.log_report(report)
            return report

        target = options['target']
        policy = options['policy']
        connector = TLSConnector(timeout=options['timeout'], ca_path=self.ca_path)

        self.logger_service.log_probe_start(target)

        try:
            outcome = connector.probe(target)
            self.logger_service.log_probe_outcome(target, outcome)

            expiry_calculator = ExpiryCalculator(policy.threshold_days) if policy.enabled else None
            report = self.evaluator.evaluate(outcome, expiry_calculator)

        except ClientCredentialsError as e:
            self.logger_service.log_error(target, e)
            report = self.evaluator.configuration_error(f"Can not load client certificate ({e})")

        except Exception as e:
            # 插件不能以Python堆栈退出，任何意外都要落成一行 CRITICAL
            self.logger_service.log_error(target, e)
            report = self.evaluator.configuration_error(f"Unexpected error ({type(e).__name__}: {e})")

        self.logger_service.log_report(report)
        return report


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-H", "hostname", help="Hostname or IPv4 address (required).")
@click.option("-c", "client_cert", help="Client certificate file.")
@click.option("-k", "client_key", help="Client private key file.")
@click.option("-P", "passphrase", help="Password to decrypt the client private key file.")
@click.option("-p", "port", default="443", show_default=True, help="Port.")
@click.option("-e", "expiration", default="0", show_default=True,
              help="Check server certificate expiration; alert if it expires in less than n days (0 = off).")
@click.option("-t", "timeout", default=None, help="Connect and handshake timeout in seconds.")
@click.option("-d", "debug", is_flag=True, help="Log the effective parameters to stderr.")
@click.pass_obj
def check_tls(environment: Dict[str, Any], hostname: Optional[str], client_cert: Optional[str],
              client_key: Optional[str], passphrase: Optional[str], port: str, expiration: str,
              timeout: Optional[str], debug: bool) -> Report:
    """Checks that a TLS endpoint is reachable, trusted and not about to expire."""
    environment = environment or {}
    probe = TLSHealthProbe(
        ca_path=environment.get('ca_path'),
        default_timeout=environment.get('timeout', DEFAULT_TIMEOUT),
        debug=debug
    )
    return probe.execute(hostname, port, client_cert, client_key, passphrase, expiration, timeout)


def usage_error_message(error: click.UsageError) -> str:
    """
    把click的用法错误转换成报告消息

    Args:
        error: click异常

    Returns:
        str: 报告消息
    """
    if isinstance(error, click.NoSuchOption):
        return f"Unknown option {error.option_name}"
    if isinstance(error, click.BadOptionUsage):
        return f"No argument value for option {error.option_name}"
    return f"Unknown error while processing options ({error.format_message()})"


def run(argv: Optional[List[str]] = None) -> Optional[Report]:
    """
    运行探测并返回报告；只请求帮助信息时返回 None

    Args:
        argv: 命令行参数，默认取 sys.argv

    Returns:
        Optional[Report]: 最终报告
    """
    # 环境检查先于参数解析
    logger_service = LoggerService()
    evaluator = ReportEvaluator()

    environment = ConfigValidator().validate_environment_variables()
    if not environment['is_valid']:
        report = evaluator.configuration_error(environment['errors'][0])
        logger_service.log_report(report)
        return report

    try:
        result = check_tls.main(args=argv, prog_name="check_tls", standalone_mode=False, obj=environment)
    except click.UsageError as e:
        report = evaluator.usage_error(usage_error_message(e))
        logger_service.log_report(report)
        return report

    if isinstance(result, Report):
        return result
    return None


def main(argv: Optional[List[str]] = None):
    """console_scripts 入口"""
    report = run(argv)
    if report is None:
        sys.exit(0)

    click.echo(report.render())
    sys.exit(report.exit_code)


if __name__ == "__main__":
    main()
