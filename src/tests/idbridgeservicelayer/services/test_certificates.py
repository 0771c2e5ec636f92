#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID
import pytest

from idbridgeservicelayer.exceptions.catalog import (
    IssuanceFailedException,
    UnauthorizedException,
    UpstreamUnavailableException,
    ValidationException,
)
from idbridgeservicelayer.models.certificates import IssuedCertificate
from idbridgeservicelayer.services.certificates import (
    build_pkcs12,
    CertificatesService,
)
from idbridgeservicelayer.testing.fakes import FakeSecretStore
from idbridgeservicelayer.vault.api.models.exceptions import VaultException
from tests.fixtures import make_issued_certificate

ISSUE_PATH = "pki-user/alice/issue/alice"


@pytest.fixture
def issued():
    return make_issued_certificate("alice")


@pytest.fixture
def certificates(context, secret_store, pki_config):
    return CertificatesService(
        context=context, secret_store=secret_store, pki_config=pki_config
    )


def test_build_pkcs12(issued):
    bundle = build_pkcs12("alice", IssuedCertificate(**issued))

    loaded = pkcs12.load_pkcs12(bundle, None)
    assert loaded.key is not None
    assert loaded.cert.friendly_name == b"alice"
    subject = loaded.cert.certificate.subject
    assert subject.get_attributes_for_oid(NameOID.COMMON_NAME)[0].value == (
        "alice@fadalax.tech"
    )
    assert len(loaded.additional_certs) == 1


@pytest.mark.asyncio
class TestIssue:
    async def test_issue(self, context, pki_config, issued):
        secret_store = FakeSecretStore(responses={ISSUE_PATH: issued})
        certificates = CertificatesService(
            context=context, secret_store=secret_store, pki_config=pki_config
        )

        bundle = await certificates.issue("alice")

        key, certificate, cas = pkcs12.load_key_and_certificates(bundle, None)
        assert key is not None
        assert certificate.serial_number == 0x1A2B3C
        assert len(cas) == 1
        assert secret_store.writes[0] == (
            ISSUE_PATH,
            {"common_name": "alice@fadalax.tech", "ttl": "336h"},
        )

    async def test_issue_escrows(self, context, pki_config, issued):
        secret_store = FakeSecretStore(responses={ISSUE_PATH: issued})
        certificates = CertificatesService(
            context=context, secret_store=secret_store, pki_config=pki_config
        )

        await certificates.issue("alice")

        assert secret_store.store["kv-user/alice/1a:2b:3c"] == issued

    async def test_issue_refused(self, certificates, secret_store):
        secret_store.failing.add(ISSUE_PATH)
        with pytest.raises(IssuanceFailedException) as exc_info:
            await certificates.issue("alice")
        assert exc_info.value.principal == "alice"

    async def test_issue_empty_response(self, certificates):
        with pytest.raises(IssuanceFailedException):
            await certificates.issue("alice")

    async def test_issue_garbage_key(self, context, pki_config, issued):
        issued["private_key"] = "not a key"
        secret_store = FakeSecretStore(responses={ISSUE_PATH: issued})
        certificates = CertificatesService(
            context=context, secret_store=secret_store, pki_config=pki_config
        )
        with pytest.raises(IssuanceFailedException):
            await certificates.issue("alice")

    async def test_escrow_failure(self, context, pki_config, issued):
        secret_store = FakeSecretStore(
            responses={ISSUE_PATH: issued},
            failing={"kv-user/alice/1a:2b:3c"},
        )
        certificates = CertificatesService(
            context=context, secret_store=secret_store, pki_config=pki_config
        )
        with pytest.raises(IssuanceFailedException):
            await certificates.issue("alice")

    async def test_invalid_principal(self, certificates, secret_store):
        with pytest.raises(ValidationException):
            await certificates.issue("../alice")
        assert secret_store.writes == []


@pytest.mark.asyncio
class TestRevokeAll:
    async def test_revoke_all(self, certificates, secret_store):
        for serial in ("01:02", "03:04"):
            secret_store.store[f"pki-user/alice/certs/{serial}"] = {}

        summary = await certificates.revoke_all("alice")

        assert summary.revoked == ["01:02", "03:04"]
        assert summary.failed == []
        assert secret_store.writes == [
            ("pki-user/alice/revoke", {"serial_number": "01:02"}),
            ("pki-user/alice/revoke", {"serial_number": "03:04"}),
        ]

    async def test_nothing_to_revoke(self, certificates, secret_store):
        summary = await certificates.revoke_all("alice")
        assert summary.revoked == []
        assert summary.failed == []
        assert secret_store.writes == []

    async def test_partial_failure(self, context, pki_config):
        def revoke(data):
            if data["serial_number"] == "03:04":
                raise VaultException("already expired", 400)
            return {"revocation_time": 1}

        secret_store = FakeSecretStore(
            responses={"pki-user/alice/revoke": revoke}
        )
        for serial in ("01:02", "03:04", "05:06"):
            secret_store.store[f"pki-user/alice/certs/{serial}"] = {}
        certificates = CertificatesService(
            context=context, secret_store=secret_store, pki_config=pki_config
        )

        summary = await certificates.revoke_all("alice")

        assert summary.revoked == ["01:02", "05:06"]
        assert summary.failed == ["03:04"]

    async def test_list_failure(self, certificates, secret_store):
        secret_store.failing.add("pki-user/alice/certs")
        with pytest.raises(UpstreamUnavailableException):
            await certificates.revoke_all("alice")


@pytest.mark.asyncio
class TestForBearer:
    async def test_for_bearer(self, certificates, secret_store):
        secret_store.jwt_roles["alice-jwt"] = "alice"

        scoped = await certificates.for_bearer("alice", "alice-jwt")

        assert isinstance(scoped, CertificatesService)
        assert scoped.secret_store is secret_store
        assert secret_store.logins == [("alice", "alice-jwt")]

    async def test_refused(self, certificates, secret_store):
        secret_store.jwt_roles["alice-jwt"] = "alice"
        with pytest.raises(UnauthorizedException):
            await certificates.for_bearer("bob", "alice-jwt")

    async def test_store_unavailable(self, certificates, secret_store):
        secret_store.failing.add("auth/jwt/login")
        with pytest.raises(UpstreamUnavailableException):
            await certificates.for_bearer("alice", "alice-jwt")
