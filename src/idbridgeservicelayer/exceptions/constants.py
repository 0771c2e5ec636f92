#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

# Auth
UNEXISTING_USER_OR_INVALID_CREDENTIALS_VIOLATION_TYPE = (
    "UnexistingUserOrInvalidCredentialsViolation"
)
INVALID_TOKEN_VIOLATION_TYPE = "InvalidTokenViolation"
MISSING_CREDENTIALS_VIOLATION_TYPE = "MissingCredentialsViolation"

# Certificates
MALFORMED_SERIAL_VIOLATION_TYPE = "MalformedSerialViolation"
CERTIFICATE_LOOKUP_FAILED_VIOLATION_TYPE = "CertificateLookupFailedViolation"
MALFORMED_CERTIFICATE_RECORD_VIOLATION_TYPE = (
    "MalformedCertificateRecordViolation"
)
CERTIFICATE_ISSUANCE_FAILED_VIOLATION_TYPE = (
    "CertificateIssuanceFailedViolation"
)

# Provisioning
PROVISIONING_FAILED_VIOLATION_TYPE = "ProvisioningFailedViolation"

# Challenges
MISSING_CHALLENGE_VIOLATION_TYPE = "MissingChallengeViolation"

# Upstream
PROVIDER_COMMUNICATION_FAILED_VIOLATION_TYPE = (
    "ProviderCommunicationFailedViolation"
)

# Generic
INVALID_ARGUMENT_VIOLATION_TYPE = "InvalidArgumentViolation"
