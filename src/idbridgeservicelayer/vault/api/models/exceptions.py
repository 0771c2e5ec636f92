#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).


class VaultException(Exception):
    """A call to Vault failed."""

    def __init__(
        self, message: str, status: int | None = None, errors=None
    ):
        super().__init__(message)
        self.status = status
        self.errors = errors or []


class VaultUnreachableException(VaultException):
    """Vault could not be reached, or did not answer in time."""


class VaultAuthenticationException(VaultException):
    pass


class VaultPermissionsException(VaultException):
    pass


class VaultNotFoundException(VaultException):
    pass
