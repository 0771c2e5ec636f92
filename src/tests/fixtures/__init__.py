#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from datetime import datetime, timedelta, timezone

from aioresponses import aioresponses
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509.oid import NameOID
from fastapi.testclient import TestClient
import pytest

from idbridgeapiserver.main import create_app
from idbridgeapiserver.settings import read_config
from idbridgeservicelayer.config import PKIConfig
from idbridgeservicelayer.context import Context
from idbridgeservicelayer.services import Collaborators
from idbridgeservicelayer.testing.fakes import (
    FakeAuthzAdminClient,
    FakeSecretStore,
    FakeTokenValidator,
    FakeUsersService,
)


def _name(common_name: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])


def _pem(certificate: x509.Certificate) -> str:
    return certificate.public_bytes(Encoding.PEM).decode()


def make_issued_certificate(
    principal: str = "alice", serial: int = 0x1A2B3C
) -> dict:
    """Answer of the Secret Store to an issue request, with real PEMs."""
    now = datetime.now(timezone.utc)
    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_name = _name(f"{principal}.fadalax.tech")
    ca_certificate = (
        x509.CertificateBuilder()
        .subject_name(ca_name)
        .issuer_name(ca_name)
        .public_key(ca_key.public_key())
        .serial_number(1)
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=1))
        .add_extension(
            x509.BasicConstraints(ca=True, path_length=None), critical=True
        )
        .sign(ca_key, hashes.SHA256())
    )
    key = ec.generate_private_key(ec.SECP256R1())
    certificate = (
        x509.CertificateBuilder()
        .subject_name(_name(f"{principal}@fadalax.tech"))
        .issuer_name(ca_name)
        .public_key(key.public_key())
        .serial_number(serial)
        .not_valid_before(now)
        .not_valid_after(now + timedelta(days=14))
        .sign(ca_key, hashes.SHA256())
    )
    hex_serial = f"{serial:x}"
    if len(hex_serial) % 2:
        hex_serial = "0" + hex_serial
    return {
        "serial_number": ":".join(
            hex_serial[i : i + 2] for i in range(0, len(hex_serial), 2)
        ),
        "certificate": _pem(certificate),
        "issuing_ca": _pem(ca_certificate),
        "ca_chain": [_pem(ca_certificate)],
        "private_key": key.private_bytes(
            Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
        ).decode(),
        "private_key_type": "ec",
        "expiration": int((now + timedelta(days=14)).timestamp()),
    }


@pytest.fixture
def mock_aioresponse():
    with aioresponses() as m:
        yield m


@pytest.fixture
def context() -> Context:
    return Context()


@pytest.fixture
def pki_config() -> PKIConfig:
    return PKIConfig()


@pytest.fixture
def secret_store() -> FakeSecretStore:
    return FakeSecretStore()


@pytest.fixture
def authz_client() -> FakeAuthzAdminClient:
    return FakeAuthzAdminClient()


@pytest.fixture
def users_service() -> FakeUsersService:
    return FakeUsersService({"alice": "wonderland"})


@pytest.fixture
def token_validator() -> FakeTokenValidator:
    return FakeTokenValidator({"alice-token": "alice"})


@pytest.fixture
def collaborators(
    pki_config, secret_store, authz_client, users_service, token_validator
) -> Collaborators:
    return Collaborators(
        pki_config=pki_config,
        secret_store=secret_store,
        authz_client=authz_client,
        users_service=users_service,
        token_validator=token_validator,
    )


@pytest.fixture
def bridge_config():
    return read_config()


@pytest.fixture
def bridge_client(bridge_config, collaborators):
    app = create_app(bridge_config, collaborators)
    return TestClient(app.fastapi_app, base_url="https://bridge.fadalax.tech")
