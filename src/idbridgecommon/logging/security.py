#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

# Security Log Type
SECURITY = "security"

# Authentication
AUTHN_LOGIN_SUCCESSFUL = "AUTHN_login_successful"
AUTHN_LOGIN_UNSUCCESSFUL = "AUTHN_login_unsuccessful"
AUTHN_AUTH_FAILED = "AUTHN_authentication_failed"
AUTHN_AUTH_SUCCESSFUL = "AUTHN_authentication_successful"
AUTHN_CERTIFICATE_REJECTED = "AUTHN_certificate_rejected"

# Authorization
AUTHZ_CONSENT_GRANTED = "AUTHZ_consent_granted"

# Certificates
CERTIFICATE_ISSUED = "CERTIFICATE_issued"
CERTIFICATE_REVOKED = "CERTIFICATE_revoked"
PKI_PROVISIONED = "PKI_provisioned"
