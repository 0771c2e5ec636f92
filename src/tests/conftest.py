from tests.fixtures import (
    authz_client,
    bridge_client,
    bridge_config,
    collaborators,
    context,
    mock_aioresponse,
    pki_config,
    secret_store,
    token_validator,
    users_service,
)

__all__ = [
    "authz_client",
    "bridge_client",
    "bridge_config",
    "collaborators",
    "context",
    "mock_aioresponse",
    "pki_config",
    "secret_store",
    "token_validator",
    "users_service",
]
