#  Copyright 2026 Canonical Ltd.  This software is licensed under the
#  GNU Affero General Public License version 3 (see the file LICENSE).

from pydantic import BaseModel, Field


class LoginChallenge(BaseModel):
    challenge: str = ""
    skip: bool = False
    subject: str = ""
    requested_scope: list[str] = Field(default_factory=list)


class ConsentChallenge(LoginChallenge):
    requested_access_token_audience: list[str] = Field(default_factory=list)


class LoginAcceptRequest(BaseModel):
    subject: str
    remember: bool
    remember_for: int


class ConsentAcceptRequest(BaseModel):
    grant_scope: list[str]
    grant_access_token_audience: list[str]
    remember: bool
    remember_for: int


class CompletedRequest(BaseModel):
    redirect_to: str


class LoginResolution(BaseModel):
    authenticated: bool
    principal: str | None = None
    redirect_to: str | None = None


class ConsentResolution(BaseModel):
    granted: bool
    redirect_to: str | None = None
