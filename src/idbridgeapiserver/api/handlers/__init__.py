#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from idbridgeapiserver.api.base import API
from idbridgeapiserver.api.handlers.cert import CertificateHandler
from idbridgeapiserver.api.handlers.challenges import (
    ConsentHandler,
    LoginHandler,
)


def bridge_api(identity_header: str, serial_header: str) -> API:
    return API(
        prefix="",
        handlers=[
            LoginHandler(
                identity_header=identity_header, serial_header=serial_header
            ),
            ConsentHandler(),
            CertificateHandler(),
        ],
    )
