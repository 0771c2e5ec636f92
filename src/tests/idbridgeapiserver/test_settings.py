# Copyright 2026 Canonical Ltd.  This software is licensed under the
# GNU Affero General Public License version 3 (see the file LICENSE).

import yaml

from idbridgeapiserver.settings import read_config


def write_config(tmpdir, **options) -> str:
    path = tmpdir.join("idbridge.conf")
    path.write(yaml.safe_dump(options))
    return str(path)


class TestReadConfig:
    def test_defaults(self):
        config = read_config()
        assert config.host == "127.0.0.1"
        assert config.port == 8088
        assert config.vault.url == "https://vault.fadalax.tech:8200"
        assert config.vault.token == ""
        assert config.vault.request_timeout == 2
        assert config.authz.admin_url == "https://localhost:9001"
        assert config.authz.verify_tls is True
        assert config.oidc.client_id == "fadalax-frontend"
        assert config.pki.domain == "fadalax.tech"
        assert config.pki.root_mount == "pki"
        assert config.pki.jwt_bound_audience == "fadalax-frontend"
        assert config.identity_header == "x-fadalax-auth"
        assert config.serial_header == "x-fadalax-serial"
        assert config.database_dsn is None
        assert config.debug is False
        assert config.debug_http is False

    def test_from_file(self, tmpdir):
        path = write_config(
            tmpdir,
            listen_host="0.0.0.0",
            listen_port=9443,
            request_timeout=5,
            vault_token="s.file",
            certificate_domain="example.com",
            oidc_client_id="frontend",
            serial_header="X-Serial",
            database_dsn="postgresql+asyncpg://idbridge@localhost/users",
        )
        config = read_config(path)
        assert config.host == "0.0.0.0"
        assert config.port == 9443
        assert config.vault.token == "s.file"
        assert config.vault.request_timeout == 5
        assert config.authz.request_timeout == 5
        assert config.oidc.request_timeout == 5
        assert config.pki.domain == "example.com"
        assert config.pki.jwt_bound_audience == "frontend"
        assert config.serial_header == "x-serial"
        assert config.database_dsn == (
            "postgresql+asyncpg://idbridge@localhost/users"
        )

    def test_vault_token_from_environment(self, monkeypatch):
        monkeypatch.setenv("VAULT_TOKEN", "s.env")
        assert read_config().vault.token == "s.env"

    def test_vault_token_file_wins(self, monkeypatch, tmpdir):
        monkeypatch.setenv("VAULT_TOKEN", "s.env")
        path = write_config(tmpdir, vault_token="s.file")
        assert read_config(path).vault.token == "s.file"

    def test_debug_implies_debug_http(self, tmpdir):
        path = write_config(tmpdir, debug=True)
        config = read_config(path)
        assert config.debug is True
        assert config.debug_http is True

    def test_debug_http_only(self, tmpdir):
        path = write_config(tmpdir, debug_http=True)
        config = read_config(path)
        assert config.debug is False
        assert config.debug_http is True
