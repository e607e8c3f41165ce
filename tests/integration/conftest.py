import datetime
import sys

import pytest
import pytest_asyncio
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from loguru import logger

from graceterm.models.connection import ConnectionKind
from graceterm.modules.registry import ConnectionRegistry
from graceterm.modules.server import HostServer, ServerConfig, create_ssl_context
from tests.utils.test_logger import create_test_logger


@pytest.fixture(scope="session")
def tls_files(tmp_path_factory):
    """Write a self-signed certificate for localhost and its key."""
    directory = tmp_path_factory.mktemp("tls")
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "localhost")])
    now = datetime.datetime.now(datetime.timezone.utc)
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=1))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName("localhost")]), critical=False)
        .sign(key, hashes.SHA256())
    )

    certfile = directory / "server.crt"
    keyfile = directory / "server.key"
    certfile.write_bytes(certificate.public_bytes(serialization.Encoding.PEM))
    keyfile.write_bytes(key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption()
    ))
    return str(certfile), str(keyfile)


@pytest.fixture
def test_logger():
    return create_test_logger()


@pytest.fixture
def registry(test_logger):
    return ConnectionRegistry(test_logger)


@pytest_asyncio.fixture
async def make_server(tls_files, test_logger):
    """Factory starting HostServers on a free port; anything left running is torn down."""
    servers = []

    async def factory(handler, kind=ConnectionKind.PLAIN):
        if kind is ConnectionKind.SECURE:
            certfile, keyfile = tls_files
            config = ServerConfig(port=0, certfile=certfile, keyfile=keyfile)
        else:
            config = ServerConfig(port=0)
        server = HostServer(handler, config=config, logger=test_logger, ssl_context=create_ssl_context(config))
        await server.start()
        servers.append(server)
        return server

    yield factory

    for server in servers:
        if server.is_serving:
            for connection in server.connections:
                connection.destroy()
            await server.close()


@pytest.fixture(autouse=True)
def restore_loguru():
    yield
    logger.remove()
    logger.add(sys.stderr)
