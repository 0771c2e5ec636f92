#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from pydantic import BaseModel, Field


class CertificateIdentity(BaseModel):
    principal: str
    serial: str


class IssuedCertificate(BaseModel):
    serial_number: str
    certificate: str
    private_key: str
    issuing_ca: str
    ca_chain: list[str] = Field(default_factory=list)
    private_key_type: str | None = None
    expiration: int | None = None


class RevocationSummary(BaseModel):
    revoked: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


class ProxyHeaders(BaseModel):
    """What the reverse proxy tells about the client certificate."""

    identity: list[str] = Field(default_factory=list)
    serial: str | None = None
