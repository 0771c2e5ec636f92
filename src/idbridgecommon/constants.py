#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

# Headers set by the reverse proxy once the mTLS handshake succeeded.
DEFAULT_IDENTITY_HEADER = "x-fadalax-auth"
DEFAULT_SERIAL_HEADER = "x-fadalax-serial"

DEFAULT_CERTIFICATE_DOMAIN = "fadalax.tech"
DEFAULT_CERTIFICATE_ORGANIZATION = "imovies"
DEFAULT_CERTIFICATE_COUNTRY = "CH"

# The admin certificates are issued by the shared root mount.
ADMIN_PRINCIPAL = "admin"
DEFAULT_ROOT_PKI_MOUNT = "pki"
PKI_USER_MOUNT_PREFIX = "pki-user"
KV_USER_MOUNT_PREFIX = "kv-user"

# ~5 years
INTERMEDIATE_MAX_LEASE_TTL = "43800h"
# 14 days
CLIENT_CERTIFICATE_TTL = "336h"

LOGIN_REMEMBER_FOR_SECONDS = 300
CONSENT_REMEMBER_FOR_SECONDS = 300

DEFAULT_REQUEST_TIMEOUT_SECONDS = 2

OIDC_ROLE_BOUND_AUDIENCE = "vault"
