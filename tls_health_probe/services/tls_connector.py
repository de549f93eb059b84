"""
TLS连接与证书链校验服务
"""
import os
import select
import socket
import time
from typing import List, Optional, Tuple
import logging

from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID
from OpenSSL import SSL, crypto

from ..interfaces import TLSConnectorInterface
from ..models import Certificate, ProbeOutcome, Target
from .error_handler import ClientCredentialsError, NetworkErrorHandler
from .validator import is_ip

DEFAULT_CA_PATH = '/etc/ssl/certs'

VERIFY_OK = "Verify return code: 0 (ok)"


class TLSConnector(TLSConnectorInterface):
    """
    TLS连接器实现

    行为与 ``openssl s_client`` 一致：证书链不可信时握手照常完成，
    校验结果单独记录，由上层决定严重级别。
    """

    def __init__(self, timeout: float = 10, ca_path: Optional[str] = None):
        """
        初始化TLS连接器

        Args:
            timeout: 连接与握手的总超时时间（秒）
            ca_path: 受信任根证书目录，默认读取环境变量 CA_PATH
        """
        self.timeout = timeout
        self.ca_path = ca_path or os.getenv('CA_PATH', DEFAULT_CA_PATH)
        self.logger = logging.getLogger(__name__)
        self.error_handler = NetworkErrorHandler()

    def probe(self, target: Target) -> ProbeOutcome:
        """
        对目标执行一次TLS握手

        Args:
            target: 探测目标

        Returns:
            ProbeOutcome: 握手与校验结果

        Raises:
            ClientCredentialsError: 客户端证书或私钥无法加载
        """
        context = self._create_context(target)
        deadline = time.monotonic() + self.timeout

        try:
            with socket.create_connection((target.hostname, target.port), timeout=self.timeout) as sock:
                connection = SSL.Connection(context, sock)
                if not is_ip(target.hostname):
                    connection.set_tlsext_host_name(target.hostname.encode('ascii'))
                connection.set_connect_state()

                self._do_handshake(connection, sock, deadline)
                self.logger.debug(
                    f"{target} 握手完成，协议: {connection.get_protocol_version_name()}，"
                    f"加密套件: {connection.get_cipher_name()}"
                )

                leaf = connection.get_peer_certificate()
                chain = connection.get_peer_cert_chain() or []
                self._shutdown(connection)

        # 主机名标签超过63个字符时，idna编码在DNS解析前失败
        except (OSError, SSL.Error, UnicodeError) as e:
            error_info = self.error_handler.handle_connection_error(target, e)
            return ProbeOutcome(
                connected=False,
                verified=False,
                raw_error=error_info['error_message']
            )

        if leaf is None:
            return ProbeOutcome(
                connected=True,
                verified=False,
                verify_detail="no peer certificate available"
            )

        verified, verify_detail = self._verify_chain(leaf, chain)
        certificate, certificate_error = self._parse_certificate(leaf)

        return ProbeOutcome(
            connected=True,
            verified=verified,
            verify_detail=verify_detail,
            peer_certificate=certificate,
            certificate_error=certificate_error
        )

    def _create_context(self, target: Target) -> SSL.Context:
        """
        创建TLS上下文，按需加载客户端证书

        Args:
            target: 探测目标

        Returns:
            SSL.Context: TLS上下文
        """
        context = SSL.Context(SSL.TLS_CLIENT_METHOD)
        context.set_verify(SSL.VERIFY_NONE)

        if target.uses_client_certificate:
            private_key = self._load_private_key(target)
            try:
                context.use_certificate_chain_file(target.client_cert)
                context.use_privatekey(crypto.PKey.from_cryptography_key(private_key))
                context.check_privatekey()
            except (SSL.Error, TypeError) as e:
                raise ClientCredentialsError(self.error_handler.describe_error(e)) from e
            self.logger.debug(f"已加载客户端证书: {target.client_cert}")

        return context

    def _load_private_key(self, target: Target):
        """
        读取并解密客户端私钥

        私钥未加密时忽略口令，与 openssl 的 -pass 行为一致。

        Args:
            target: 探测目标

        Returns:
            私钥对象

        Raises:
            ClientCredentialsError: 文件无法读取、口令错误或格式无效
        """
        passphrase = target.client_key_passphrase.encode('utf-8') if target.client_key_passphrase else None

        try:
            with open(target.client_key, 'rb') as f:
                data = f.read()
        except OSError as e:
            raise ClientCredentialsError(self.error_handler.describe_error(e)) from e

        try:
            return serialization.load_pem_private_key(data, password=passphrase)
        except TypeError as e:
            if passphrase is None:
                raise ClientCredentialsError("Private key is encrypted and no passphrase was given") from e
            # 私钥未加密但指定了口令
            try:
                return serialization.load_pem_private_key(data, password=None)
            except (ValueError, TypeError) as retry_error:
                raise ClientCredentialsError(str(retry_error)) from retry_error
        except ValueError as e:
            raise ClientCredentialsError(str(e) or "Unable to load private key") from e

    def _do_handshake(self, connection: SSL.Connection, sock: socket.socket, deadline: float):
        """
        在截止时间内完成握手

        套接字设置了超时后处于非阻塞模式，pyOpenSSL 会抛出 WantRead/WantWrite，
        这里用 select 等待直到截止时间。

        Raises:
            socket.timeout: 超过截止时间
            SSL.Error: 握手失败
        """
        while True:
            try:
                connection.do_handshake()
                return
            except SSL.WantReadError:
                self._wait(sock, deadline, for_write=False)
            except SSL.WantWriteError:
                self._wait(sock, deadline, for_write=True)

    def _wait(self, sock: socket.socket, deadline: float, for_write: bool):
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise socket.timeout("timed out")

        if for_write:
            _, ready, _ = select.select([], [sock], [], remaining)
        else:
            ready, _, _ = select.select([sock], [], [], remaining)

        if not ready:
            raise socket.timeout("timed out")

    def _shutdown(self, connection: SSL.Connection):
        """发送 close_notify，失败不影响探测结果"""
        try:
            connection.shutdown()
        except (SSL.Error, OSError) as e:
            self.logger.debug(f"关闭TLS连接时出错（忽略）: {type(e).__name__}: {e}")

    def _verify_chain(self, leaf: crypto.X509, chain: List[crypto.X509]) -> Tuple[bool, str]:
        """
        使用受信任根证书目录校验证书链

        Args:
            leaf: 服务端叶子证书
            chain: 服务端发送的完整证书链（第一项为叶子证书）

        Returns:
            Tuple[bool, str]: (是否通过, 校验结果描述)
        """
        store = crypto.X509Store()
        store.load_locations(None, self.ca_path)

        intermediates = chain[1:] or None
        store_context = crypto.X509StoreContext(store, leaf, chain=intermediates)

        try:
            store_context.verify_certificate()
        except crypto.X509StoreContextError as e:
            code, _depth, reason = e.errors
            detail = f"Verify return code: {code} ({reason})"
            self.logger.warning(f"证书链校验失败: {detail}")
            return False, detail

        return True, VERIFY_OK

    def _parse_certificate(self, leaf: crypto.X509) -> Tuple[Optional[Certificate], Optional[str]]:
        """
        解析叶子证书的CN和过期时间

        Args:
            leaf: 服务端叶子证书

        Returns:
            Tuple[Optional[Certificate], Optional[str]]: (证书信息, 解析错误)
        """
        try:
            cert = leaf.to_cryptography()
            names = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
            if not names:
                raise ValueError("证书主题中未找到通用名称(CN)")

            common_name = names[0].value
            if isinstance(common_name, bytes):
                common_name = common_name.decode('utf-8', 'replace')

            return Certificate(
                subject_common_name=common_name,
                not_after=cert.not_valid_after_utc
            ), None

        except ValueError as e:
            self.logger.error(f"解析服务端证书失败: {e}")
            return None, str(e)
