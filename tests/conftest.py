"""
测试公共夹具：本地证书生成与回环TLS服务器
"""
import socket
import ssl
import threading
from datetime import datetime, timezone, timedelta

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from OpenSSL import crypto


def make_certificate(common_name, not_after=None, issuer=None, is_ca=False, not_before=None):
    """
    生成证书和私钥

    Args:
        common_name: 证书CN
        not_after: 过期时间，默认一年后
        issuer: (证书, 私钥)，为None时自签名
        is_ca: 是否为CA证书
        not_before: 生效时间，默认一天前

    Returns:
        tuple: (证书, 私钥)
    """
    now = datetime.now(timezone.utc)
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])

    issuer_cert, issuer_key = issuer if issuer else (None, key)

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_cert.subject if issuer_cert else subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before or now - timedelta(days=1))
        .not_valid_after(not_after or now + timedelta(days=365))
        .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
    )
    return builder.sign(issuer_key, hashes.SHA256()), key


def write_pem(path, certificate=None, key=None, passphrase=None):
    """把证书和/或私钥写成PEM文件"""
    data = b""
    if certificate is not None:
        data += certificate.public_bytes(serialization.Encoding.PEM)
    if key is not None:
        encryption = (
            serialization.BestAvailableEncryption(passphrase.encode())
            if passphrase else serialization.NoEncryption()
        )
        data += key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            encryption
        )
    path.write_bytes(data)
    return str(path)


def write_ca_directory(directory, ca_certificate):
    """按OpenSSL哈希目录格式写入CA证书"""
    directory.mkdir(exist_ok=True)
    subject_hash = crypto.X509.from_cryptography(ca_certificate).subject_name_hash()
    (directory / f"{subject_hash:08x}.0").write_bytes(
        ca_certificate.public_bytes(serialization.Encoding.PEM)
    )
    return str(directory)


class LocalTLSServer:
    """在回环地址上运行的测试TLS服务器"""

    def __init__(self, certfile, keyfile, handshake=True, client_ca_file=None):
        self.listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.listener.bind(("127.0.0.1", 0))
        self.listener.listen(5)
        self.listener.settimeout(0.2)
        self.port = self.listener.getsockname()[1]

        self.context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self.context.load_cert_chain(certfile, keyfile)
        if client_ca_file:
            self.context.verify_mode = ssl.CERT_REQUIRED
            self.context.load_verify_locations(client_ca_file)

        self.handshake = handshake
        self.accepted = 0
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def start(self):
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        self._thread.join(timeout=5)
        self.listener.close()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return

            self.accepted += 1
            conn.settimeout(5)
            with conn:
                if not self.handshake:
                    # 只接受TCP连接，不回应ClientHello
                    self._stop.wait(5)
                    continue
                try:
                    with self.context.wrap_socket(conn, server_side=True) as tls:
                        tls.recv(1)
                except (ssl.SSLError, OSError):
                    continue


@pytest.fixture
def tls_server():
    """启动测试TLS服务器的工厂，测试结束后自动关闭"""
    servers = []

    def start(certfile, keyfile, **kwargs):
        server = LocalTLSServer(certfile, keyfile, **kwargs).start()
        servers.append(server)
        return server

    yield start

    for server in servers:
        server.stop()


@pytest.fixture
def unused_port():
    """获取一个当前没有监听的端口"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


@pytest.fixture
def self_signed_server(tmp_path, tls_server):
    """使用自签名证书的测试服务器"""
    certificate, key = make_certificate("self-signed.test")
    certfile = write_pem(tmp_path / "server.pem", certificate=certificate)
    keyfile = write_pem(tmp_path / "server.key", key=key)
    return tls_server(certfile, keyfile)


@pytest.fixture
def trusted_pki(tmp_path):
    """CA、由CA签发的服务端证书以及对应的受信任目录"""
    ca_certificate, ca_key = make_certificate("Probe Test Root CA", is_ca=True)
    server_certificate, server_key = make_certificate(
        "trusted.test", issuer=(ca_certificate, ca_key)
    )

    return {
        'ca_certificate': ca_certificate,
        'ca_key': ca_key,
        'ca_file': write_pem(tmp_path / "ca.pem", certificate=ca_certificate),
        'ca_path': write_ca_directory(tmp_path / "ca", ca_certificate),
        'certfile': write_pem(tmp_path / "trusted.pem", certificate=server_certificate),
        'keyfile': write_pem(tmp_path / "trusted.key", key=server_key),
        'server_certificate': server_certificate
    }
