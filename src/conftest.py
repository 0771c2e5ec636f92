# Copyright 2026 Canonical Ltd.  This software is licensed under the
# GNU Affero General Public License version 3 (see the file LICENSE).

import pytest

from idbridgecommon.config import BridgeConfiguration


@pytest.fixture(autouse=True)
def setup_testenv(monkeypatch, tmpdir):
    # Never read the configuration of the host.
    monkeypatch.setenv(
        BridgeConfiguration.envvar, str(tmpdir.join("idbridge.conf"))
    )
    monkeypatch.delenv("VAULT_TOKEN", raising=False)
    yield
