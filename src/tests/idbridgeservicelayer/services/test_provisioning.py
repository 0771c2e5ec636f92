#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

import pytest

from idbridgeservicelayer.config import PKIConfig
from idbridgeservicelayer.exceptions.catalog import (
    ProvisioningFailedException,
    ValidationException,
)
from idbridgeservicelayer.services.provisioning import (
    full_access_policy,
    PKIProvisioningService,
)
from idbridgeservicelayer.testing.fakes import (
    FAKE_CSR,
    FAKE_SIGNED_INTERMEDIATE,
    FakeSecretStore,
)


@pytest.fixture
def provisioning(context, secret_store, pki_config):
    return PKIProvisioningService(
        context=context, secret_store=secret_store, pki_config=pki_config
    )


def test_full_access_policy():
    assert full_access_policy("kv-user/alice") == (
        'path "kv-user/alice/*" {capabilities = [ "create", "read", '
        '"update", "delete", "list", "sudo" ]}'
    )


@pytest.mark.asyncio
class TestPKIProvisioningService:
    async def test_provisions_in_order(self, provisioning, secret_store):
        assert await provisioning.ensure_provisioned("alice")

        assert secret_store.mount_calls == ["pki-user/alice", "kv-user/alice"]
        assert secret_store.written_paths() == [
            "pki-user/alice/intermediate/generate/internal",
            "pki/root/sign-intermediate",
            "pki-user/alice/intermediate/set-signed",
            "pki-user/alice/roles/alice",
            "sys/policy/pki-user/alice",
            "sys/policy/kv-user/alice",
            "auth/jwt/role/alice",
            "auth/oidc/role/alice",
        ]

    async def test_mounts(self, provisioning, secret_store):
        await provisioning.ensure_provisioned("alice")
        assert secret_store.mounts == {
            "pki-user/alice": {
                "type": "pki",
                "config": {"max_lease_ttl": "43800h"},
            },
            "kv-user/alice": {
                "type": "kv",
                "config": {"max_lease_ttl": "43800h"},
            },
        }

    async def test_intermediate_chain(self, provisioning, secret_store):
        await provisioning.ensure_provisioned("alice")
        store = secret_store.store
        assert store["pki-user/alice/intermediate/generate/internal"] == {
            "common_name": "alice.fadalax.tech"
        }
        assert store["pki/root/sign-intermediate"] == {
            "csr": FAKE_CSR,
            "format": "pem_bundle",
            "ttl": "43800h",
        }
        assert store["pki-user/alice/intermediate/set-signed"] == {
            "certificate": FAKE_SIGNED_INTERMEDIATE
        }

    async def test_issuance_role(self, provisioning, secret_store):
        await provisioning.ensure_provisioned("alice")
        role = secret_store.store["pki-user/alice/roles/alice"]
        assert role["allowed_domains"] == ["alice@fadalax.tech"]
        assert role["allow_bare_domains"] is True
        assert role["allow_localhost"] is False
        assert role["allow_ip_sans"] is False
        assert role["enforce_hostnames"] is True
        assert role["server_flag"] is False
        assert role["client_flag"] is True
        assert role["email_protection_flag"] is True
        assert role["organization"] == "imovies"
        assert role["country"] == "CH"

    async def test_policies(self, provisioning, secret_store):
        await provisioning.ensure_provisioned("alice")
        assert secret_store.store["sys/policy/pki-user/alice"] == {
            "policy": full_access_policy("pki-user/alice")
        }
        assert secret_store.store["sys/policy/kv-user/alice"] == {
            "policy": full_access_policy("kv-user/alice")
        }

    async def test_auth_roles(self, provisioning, secret_store):
        await provisioning.ensure_provisioned("alice")
        jwt_role = secret_store.store["auth/jwt/role/alice"]
        oidc_role = secret_store.store["auth/oidc/role/alice"]
        assert jwt_role == {
            "role_type": "jwt",
            "bound_audiences": ["fadalax-frontend"],
            "user_claim": "sub",
            "bound_subject": "alice",
            "policies": ["pki-user/alice", "kv-user/alice"],
        }
        assert oidc_role == {
            "role_type": "oidc",
            "bound_audiences": ["vault"],
            "allowed_redirect_uris": [
                "https://vault.fadalax.tech:8200"
                "/ui/vault/auth/oidc/oidc/callback"
            ],
            "user_claim": "sub",
            "bound_subject": "alice",
            "policies": ["pki-user/alice", "kv-user/alice"],
        }

    async def test_custom_config(self, context, secret_store):
        provisioning = PKIProvisioningService(
            context=context,
            secret_store=secret_store,
            pki_config=PKIConfig(domain="example.com", root_mount="root-ca"),
        )
        await provisioning.ensure_provisioned("bob")
        assert "root-ca/root/sign-intermediate" in secret_store.store
        role = secret_store.store["pki-user/bob/roles/bob"]
        assert role["allowed_domains"] == ["bob@example.com"]

    async def test_idempotent(self, provisioning, secret_store):
        await provisioning.ensure_provisioned("alice")
        calls = secret_store.call_count

        assert not await provisioning.ensure_provisioned("alice")
        assert secret_store.call_count == calls

    async def test_is_provisioned(self, provisioning, secret_store):
        assert not await provisioning.is_provisioned("alice")
        secret_store.store["auth/oidc/role/alice"] = {"role_type": "oidc"}
        assert await provisioning.is_provisioned("alice")

    async def test_invalid_principal(self, provisioning, secret_store):
        with pytest.raises(ValidationException):
            await provisioning.ensure_provisioned("al ice")
        assert secret_store.reads == []
        assert secret_store.call_count == 0

    @pytest.mark.parametrize(
        "failing,step",
        [
            ("sys/mounts/pki-user/alice", "mount-pki"),
            (
                "pki-user/alice/intermediate/generate/internal",
                "generate-intermediate",
            ),
            ("pki/root/sign-intermediate", "sign-intermediate"),
            ("pki-user/alice/intermediate/set-signed", "set-signed"),
            ("pki-user/alice/roles/alice", "issuance-role"),
            ("sys/policy/pki-user/alice", "pki-policy"),
            ("sys/mounts/kv-user/alice", "mount-kv"),
            ("sys/policy/kv-user/alice", "kv-policy"),
            ("auth/jwt/role/alice", "jwt-role"),
        ],
    )
    async def test_failing_step(
        self, provisioning, secret_store, failing, step
    ):
        secret_store.failing.add(failing)
        with pytest.raises(ProvisioningFailedException) as exc_info:
            await provisioning.ensure_provisioned("alice")
        assert exc_info.value.principal == "alice"
        assert exc_info.value.step == step

    async def test_marker_absent_after_partial_failure(
        self, provisioning, secret_store
    ):
        secret_store.failing.add("sys/policy/kv-user/alice")
        with pytest.raises(ProvisioningFailedException):
            await provisioning.ensure_provisioned("alice")
        assert "auth/oidc/role/alice" not in secret_store.store
        assert not await provisioning.is_provisioned("alice")

    async def test_resumes_after_partial_failure(
        self, provisioning, secret_store
    ):
        secret_store.failing.add("sys/policy/kv-user/alice")
        with pytest.raises(ProvisioningFailedException):
            await provisioning.ensure_provisioned("alice")

        secret_store.failing.clear()
        assert await provisioning.ensure_provisioned("alice")
        assert await provisioning.is_provisioned("alice")

    async def test_missing_csr(self, context, pki_config):
        secret_store = FakeSecretStore(
            responses={"pki-user/alice/intermediate/generate/internal": {}}
        )
        provisioning = PKIProvisioningService(
            context=context, secret_store=secret_store, pki_config=pki_config
        )
        with pytest.raises(ProvisioningFailedException) as exc_info:
            await provisioning.ensure_provisioned("alice")
        assert exc_info.value.step == "generate-intermediate"
        assert "pki/root/sign-intermediate" not in secret_store.store

    async def test_marker_lookup_failure(self, provisioning, secret_store):
        secret_store.failing.add("auth/oidc/role/alice")
        with pytest.raises(ProvisioningFailedException) as exc_info:
            await provisioning.is_provisioned("alice")
        assert exc_info.value.step == "lookup"
